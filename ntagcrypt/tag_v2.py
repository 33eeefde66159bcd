"""
Version 2 tags: NTAG215 dumps, with or without the trailing password and
reserved bytes. The layout is fixed, decoding is a set of range copies into
the internal buffer.
"""

from .errors import FormatError
from .tag import Tag, TagLayout

# excluding PWD/PACK and reserved bytes
TAG_SIZE_SHORT = 0x214
# including them
TAG_SIZE_FULL = 0x21c

TAG_MAGIC = 0xA5
TAG_MAGIC_OFFSET = 0x10

CONFIG_OFFSET = 0x208


class TagV2(Tag):
    """Version 2 figure tag."""

    LAYOUT = TagLayout(
        version=2,
        # tag data without the lock and CFG bytes
        data_size=0x208,
        # write counter, raw offset 0x11
        seed_offset=0x29,
        key_gen_salt_offset=0x1e8,
        # 7-byte UID and check byte
        uid_offset=0x1d4,
        unfixed_infos_offset=0x2c,
        unfixed_infos_size=0x188,
        locked_secret_offset=0x1dc,
        # the locked secret is not encrypted on version 2 tags
        locked_secret_size=0x0,
        unfixed_infos_hmac_offset=0x8,
        locked_secret_hmac_offset=0x1b4,
    )

    def __init__(self):
        super().__init__()
        self.original_size = TAG_SIZE_FULL

    def _ranges(self):
        """(raw offset, internal offset, size) for every copied range."""
        layout = self.LAYOUT
        config_size = 0x14 if self.original_size == TAG_SIZE_FULL else 0xc
        return (
            (0x00, layout.uid_offset, 0x8),
            (0x08, 0x00, 0x8),
            (0x10, 0x28, 0x4),
            (0x14, layout.unfixed_infos_offset, 0x20),
            (0x34, layout.locked_secret_hmac_offset, 0x20),
            (0x54, layout.locked_secret_offset, 0xc),
            (0x60, layout.key_gen_salt_offset, 0x20),
            (0x80, layout.unfixed_infos_hmac_offset, 0x20),
            (0xa0, layout.unfixed_infos_offset + 0x20, 0x168),
            (CONFIG_OFFSET, CONFIG_OFFSET, config_size),
        )

    @classmethod
    def from_bytes(cls, data):
        if len(data) not in (TAG_SIZE_SHORT, TAG_SIZE_FULL):
            raise FormatError(f"Version 2 tags should be either {TAG_SIZE_SHORT} or {TAG_SIZE_FULL} "
                              f"bytes in size (got {len(data)}).")
        if data[TAG_MAGIC_OFFSET] != TAG_MAGIC:
            raise FormatError("Version 2 tag doesn't contain tag magic. Not a valid tag?")

        tag = cls()
        tag.original_size = len(data)
        for raw, internal, size in tag._ranges():
            tag.data[internal:internal + size] = data[raw:raw + size]
        return tag

    def to_bytes(self):
        out = bytearray(self.original_size)
        for raw, internal, size in self._ranges():
            out[raw:raw + size] = self.data[internal:internal + size]
        return bytes(out)
