"""
Version independent in-memory tag representation.

Both tag versions are decoded into the same 540-byte buffer. The encryption
code only ever sees this buffer and the layout offsets below.
"""

from typing import NamedTuple

from .errors import FormatError

DATA_SIZE = 540


class TagLayout(NamedTuple):
    version: int
    data_size: int                   # size of the HMAC covered data
    seed_offset: int                 # write counter
    key_gen_salt_offset: int
    uid_offset: int
    unfixed_infos_offset: int
    unfixed_infos_size: int
    locked_secret_offset: int
    locked_secret_size: int
    unfixed_infos_hmac_offset: int
    locked_secret_hmac_offset: int


class Tag:
    """Base class of TagV0 and TagV2. Subclasses set LAYOUT."""

    LAYOUT = None

    def __init__(self):
        self.data = bytearray(DATA_SIZE)
        self.is_encrypted = False

    @classmethod
    def from_bytes(cls, data):
        raise NotImplementedError

    def to_bytes(self):
        raise NotImplementedError

    def get_data(self, offset, count):
        return bytes(self.data[offset:offset + count])

    def set_data(self, offset, data):
        if offset + len(data) > DATA_SIZE:
            raise ValueError(f"Write of {len(data)} bytes at 0x{offset:x} exceeds the tag buffer.")
        self.data[offset:offset + len(data)] = data

    @property
    def version(self):
        return self.LAYOUT.version

    @property
    def data_size(self):
        return self.LAYOUT.data_size

    @property
    def seed_offset(self):
        return self.LAYOUT.seed_offset

    @property
    def key_gen_salt_offset(self):
        return self.LAYOUT.key_gen_salt_offset

    @property
    def uid_offset(self):
        return self.LAYOUT.uid_offset

    @property
    def unfixed_infos_offset(self):
        return self.LAYOUT.unfixed_infos_offset

    @property
    def unfixed_infos_size(self):
        return self.LAYOUT.unfixed_infos_size

    @property
    def locked_secret_offset(self):
        return self.LAYOUT.locked_secret_offset

    @property
    def locked_secret_size(self):
        return self.LAYOUT.locked_secret_size

    @property
    def unfixed_infos_hmac_offset(self):
        return self.LAYOUT.unfixed_infos_hmac_offset

    @property
    def locked_secret_hmac_offset(self):
        return self.LAYOUT.locked_secret_hmac_offset

    def info(self):
        """Short summary of the tag, for display."""
        return {
            "version": self.version,
            "encrypted": self.is_encrypted,
            "uid": self.get_data(self.uid_offset, 8).hex().upper(),
            "write_counter": int.from_bytes(self.get_data(self.seed_offset, 2), 'big'),
            "key_gen_salt": self.get_data(self.key_gen_salt_offset, 0x20).hex().upper(),
        }


def tag_classes():
    from .tag_v0 import TagV0
    from .tag_v2 import TagV2
    return {TagV0.LAYOUT.version: TagV0, TagV2.LAYOUT.version: TagV2}


def decode_tag(version, data, encrypted=False):
    """
    Decode a raw dump of the given tag version. The caller states whether
    the dump is encrypted, it cannot be told from the data.
    """
    classes = tag_classes()
    if version not in classes:
        raise FormatError(f"Unsupported tag version {version}, expected one of {sorted(classes)}.")
    tag = classes[version].from_bytes(data)
    tag.is_encrypted = encrypted
    return tag
