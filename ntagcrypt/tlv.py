"""
TLV blocks stored in the data area of an NFC Forum Type 2 tag.

A block is a tag byte, followed (except for NULL and TERMINATOR) by a length
and a value. The length is one byte, or 0xFF followed by a 16-bit big-endian
length.
"""

from enum import IntEnum
from struct import pack, unpack


class TlvTag(IntEnum):
    NULL = 0x00
    LOCK_CONTROL = 0x01
    MEMORY_CONTROL = 0x02
    NDEF = 0x03
    PROPRIETARY = 0xFD
    TERMINATOR = 0xFE


def _as_tag(byte):
    try:
        return TlvTag(byte)
    except ValueError:
        # reserved tag values are kept as-is
        return byte


class Tlv:
    """A single TLV block."""

    def __init__(self, tag, value=b""):
        self.tag = _as_tag(tag)
        self.value = value

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, value):
        if len(value) >= 0x10000:
            raise ValueError(f"TLV value too long ({len(value)} bytes), max is 65535.")
        self._value = bytes(value)

    def to_bytes(self):
        out = bytearray([int(self.tag)])
        if self.tag in (TlvTag.NULL, TlvTag.TERMINATOR):
            return bytes(out)
        if len(self._value) >= 0xFF:
            out.append(0xFF)
            out.extend(pack('>H', len(self._value)))
        else:
            out.append(len(self._value))
        out.extend(self._value)
        return bytes(out)

    def __eq__(self, other):
        if not isinstance(other, Tlv):
            return NotImplemented
        return int(self.tag) == int(other.tag) and self._value == other._value

    def __repr__(self):
        tag = self.tag.name if isinstance(self.tag, TlvTag) else f"0x{self.tag:02X}"
        return f"Tlv({tag}, {self._value.hex()})"


def decode(data):
    """
    Decode a TLV stream.

    NULL blocks are skipped and a TERMINATOR block ends the stream. Reaching
    the end of the data without a TERMINATOR is fine, NTAGs don't write one.
    If any block runs past the end of the data the whole stream is rejected
    and an empty list is returned.
    """
    data = bytes(data)
    tlvs = []
    pos = 0
    while pos < len(data):
        tag = data[pos]
        pos += 1
        if tag == TlvTag.NULL:
            continue
        if tag == TlvTag.TERMINATOR:
            tlvs.append(Tlv(tag))
            break

        if pos >= len(data):
            return []
        length = data[pos]
        pos += 1
        if length == 0xFF:
            if pos + 2 > len(data):
                return []
            length = unpack('>H', data[pos:pos + 2])[0]
            pos += 2
        if pos + length > len(data):
            return []
        tlvs.append(Tlv(tag, data[pos:pos + length]))
        pos += length
    return tlvs


def encode(tlvs):
    """Serialize a sequence of TLV blocks."""
    return b"".join(tlv.to_bytes() for tlv in tlvs)


def find(tlvs, tag):
    """Return the first block with the given tag, or None."""
    for tlv in tlvs:
        if tlv.tag == tag:
            return tlv
    return None
