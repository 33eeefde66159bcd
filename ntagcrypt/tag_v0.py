"""
Version 0 tags: 512-byte NFC Forum Type 2 images.

The tag memory is split into 64 blocks of 8 bytes. Lock bits in blocks 0xe and
0xf mark blocks as read-only. Locked blocks are left out of the NDEF data area
and appended to the NDEF payload in the internal buffer, which is what the
encryption layer operates on.
"""

import logging

from . import tlv
from .errors import FormatError
from .ndef import Message, Tnf
from .tag import Tag, TagLayout
from .tlv import TlvTag

log = logging.getLogger(__name__)

TAG_SIZE = 512
BLOCK_SIZE = 8
BLOCK_COUNT = TAG_SIZE // BLOCK_SIZE

# These are part of the memory control TLV on a generic tag, but the figure
# firmware hardcodes them: (block, first lock byte, end lock byte)
LOCK_BYTE_RANGES = (
    (0xe, 0x0, 0x2),
    (0xf, 0x2, 0x8),
)

NDEF_MAGIC = 0xE1
CC_SIZE = 4
NOFT_MAGIC = b"NOFT"
NOFT_MAGIC_OFFSET = 0x20

# UID, reserved block, lock byte blocks
RESERVED_BLOCKS = (0x0, 0xd, 0xe, 0xf)


def is_block_reserved(block):
    return block in RESERVED_BLOCKS


def _block(data, idx):
    return bytes(data[idx * BLOCK_SIZE:(idx + 1) * BLOCK_SIZE])


class TagV0(Tag):
    """Version 0 figure tag."""

    LAYOUT = TagLayout(
        version=0,
        # NDEF payload plus locked area
        data_size=0x1c8,
        # write counter in the NOFT info
        seed_offset=0x25,
        key_gen_salt_offset=0x1a8,
        # UID copy in the format info
        uid_offset=0x198,
        unfixed_infos_offset=0x28,
        unfixed_infos_size=0x120,
        locked_secret_offset=0x168,
        locked_secret_size=0x30,
        unfixed_infos_hmac_offset=0x0,
        locked_secret_hmac_offset=0x148,
    )

    def __init__(self):
        super().__init__()
        self.locked_or_reserved_blocks = {}
        self.locked_blocks = {}
        self.capability_container = bytes(CC_SIZE)
        self.tlvs = []
        self.ndef_message = None
        self._data_area = b""

    @classmethod
    def from_bytes(cls, data):
        """Decode a 512-byte dump, raising FormatError if it is not a figure tag."""
        if len(data) != TAG_SIZE:
            raise FormatError(f"Version 0 tags should be {TAG_SIZE} bytes in size (got {len(data)}).")
        data = bytes(data)

        tag = cls()
        tag._parse_locked_area(data)
        tag._data_area = tag._parse_data_area(data)
        if len(tag._data_area) < CC_SIZE:
            raise FormatError("Tag has no free blocks for the data area.")

        tag.capability_container = tag._data_area[:CC_SIZE]
        tag._validate_capability_container()

        tag.tlvs = tlv.decode(tag._data_area[CC_SIZE:])
        if not tag.tlvs:
            raise FormatError("Tag contains no TLVs.")

        ndef_tlv = tlv.find(tag.tlvs, TlvTag.NDEF)
        if ndef_tlv is None:
            raise FormatError("Tag contains no NDEF TLV.")
        tag.ndef_message = Message.decode(ndef_tlv.value)

        rec = tag.ndef_message.find(Tnf.UNKNOWN)
        if rec is None or not rec.payload:
            raise FormatError("Tag doesn't contain an NDEF payload.")

        tag.data[:len(rec.payload)] = rec.payload
        pos = len(rec.payload)
        for idx in sorted(tag.locked_blocks):
            tag.data[pos:pos + BLOCK_SIZE] = tag.locked_blocks[idx]
            pos += BLOCK_SIZE

        if tag.get_data(NOFT_MAGIC_OFFSET, len(NOFT_MAGIC)) != NOFT_MAGIC:
            raise FormatError("Tag doesn't contain NOFT magic.")
        return tag

    def to_bytes(self):
        message = self.ndef_message.copy()
        rec = message.find(Tnf.UNKNOWN)
        payload_size = len(rec.payload)
        rec.payload = self.data[:payload_size]

        tlvs = [tlv.Tlv(t.tag, t.value) for t in self.tlvs]
        tlv.find(tlvs, TlvTag.NDEF).value = message.to_bytes()

        out = bytearray(TAG_SIZE)
        for idx, block in self.locked_or_reserved_blocks.items():
            out[idx * BLOCK_SIZE:(idx + 1) * BLOCK_SIZE] = block

        # locked blocks come from the buffer, they may have been re-encrypted
        pos = payload_size
        for idx in sorted(self.locked_blocks):
            out[idx * BLOCK_SIZE:(idx + 1) * BLOCK_SIZE] = self.data[pos:pos + BLOCK_SIZE]
            pos += BLOCK_SIZE

        area = self.capability_container + tlv.encode(tlvs)
        if len(area) > len(self._data_area):
            raise FormatError(f"Encoded data area ({len(area)} bytes) exceeds the "
                              f"{len(self._data_area)} bytes of free blocks.")
        # zero pad the last block, whole free blocks after it keep their content
        area += bytes(-len(area) % BLOCK_SIZE)
        area += self._data_area[len(area):]

        pos = 0
        for idx in range(BLOCK_COUNT):
            if not self.is_block_locked(idx):
                out[idx * BLOCK_SIZE:(idx + 1) * BLOCK_SIZE] = area[pos:pos + BLOCK_SIZE]
                pos += BLOCK_SIZE
        return bytes(out)

    def is_block_locked(self, idx):
        return idx in self.locked_blocks or is_block_reserved(idx)

    def _parse_locked_area(self, data):
        idx = 0
        for lock_block, start, end in LOCK_BYTE_RANGES:
            for lock_byte in data[lock_block * BLOCK_SIZE + start:lock_block * BLOCK_SIZE + end]:
                for bit in range(8):
                    if lock_byte & (1 << bit) and not is_block_reserved(idx):
                        self.locked_blocks[idx] = _block(data, idx)
                    idx += 1

        # reserved blocks are kept whether or not their lock bit is set
        for idx in RESERVED_BLOCKS:
            self.locked_or_reserved_blocks[idx] = _block(data, idx)
        log.debug("Locked blocks: %s", ' '.join(f"{idx:02x}" for idx in sorted(self.locked_blocks)))

    def _parse_data_area(self, data):
        return b"".join(_block(data, idx) for idx in range(BLOCK_COUNT) if not self.is_block_locked(idx))

    def _validate_capability_container(self):
        nmn, vno, tms = self.capability_container[0:3]
        if nmn != NDEF_MAGIC:
            raise FormatError(f"CC: Invalid NDEF magic number 0x{nmn:02X}.")
        if vno >> 4 != 1:
            raise FormatError(f"CC: Invalid version number 0x{vno:02X}.")
        if 8 * (tms + 1) < TAG_SIZE:
            raise FormatError(f"CC: Incomplete tag memory size ({8 * (tms + 1)} bytes).")
