"""
NDEF records and messages, as carried in the NDEF TLV of a version 0 tag.

Record header byte: MB ME CF SR IL TNF(3 bits). Message begin/end flags are
owned by the message, records only keep the remaining flags.
"""

import io
import logging
from enum import IntEnum
from struct import pack, unpack

from .errors import FormatError

log = logging.getLogger(__name__)

FLAG_MB = 0x80  # message begin
FLAG_ME = 0x40  # message end
FLAG_CF = 0x20  # chunk
FLAG_SR = 0x10  # short record
FLAG_IL = 0x08  # ID length present
TNF_MASK = 0x07

# sane upper bound for a single payload
MAX_PAYLOAD_LENGTH = 2 * 1024 * 1024


class Tnf(IntEnum):
    EMPTY = 0x00
    WELL_KNOWN = 0x01
    MIME_MEDIA = 0x02
    ABSOLUTE_URI = 0x03
    EXTERNAL = 0x04
    UNKNOWN = 0x05
    UNCHANGED = 0x06
    RESERVED = 0x07


def _read(stream, n):
    data = stream.read(n)
    if len(data) != n:
        raise FormatError(f"NDEF record truncated (wanted {n} bytes, got {len(data)}).")
    return data


class Record:
    """One NDEF record."""

    def __init__(self, tnf=Tnf.EMPTY, type=b"", payload=b"", id=b"", flags=0):
        self.flags = flags & ~TNF_MASK
        self.tnf = Tnf(tnf)
        self.type = type
        self.id = id
        self.payload = payload

    @property
    def type(self):
        return self._type

    @type.setter
    def type(self, value):
        if len(value) > 0xFF:
            raise ValueError("NDEF record type must be shorter than 256 bytes.")
        self._type = bytes(value)

    @property
    def id(self):
        return self._id

    @id.setter
    def id(self, value):
        if len(value) > 0xFF:
            raise ValueError("NDEF record ID must be shorter than 256 bytes.")
        if value:
            self.flags |= FLAG_IL
        else:
            self.flags &= ~FLAG_IL
        self._id = bytes(value)

    @property
    def payload(self):
        return self._payload

    @payload.setter
    def payload(self, value):
        if len(value) < 0xFF:
            self.flags |= FLAG_SR
        else:
            self.flags &= ~FLAG_SR
        self._payload = bytes(value)

    @property
    def is_short(self):
        return bool(self.flags & FLAG_SR)

    @property
    def is_last(self):
        return bool(self.flags & FLAG_ME)

    @classmethod
    def decode(cls, stream):
        """Read one record from a binary stream, raising FormatError on short reads."""
        header = _read(stream, 1)[0]
        type_len = _read(stream, 1)[0]
        if header & FLAG_SR:
            payload_len = _read(stream, 1)[0]
        else:
            payload_len = unpack('>I', _read(stream, 4))[0]
        if payload_len > MAX_PAYLOAD_LENGTH:
            raise FormatError(f"NDEF payload length {payload_len} exceeds {MAX_PAYLOAD_LENGTH}.")
        id_len = _read(stream, 1)[0] if header & FLAG_IL else 0

        rec = cls.__new__(cls)
        rec.flags = header & ~TNF_MASK
        rec.tnf = Tnf(header & TNF_MASK)
        rec._type = _read(stream, type_len)
        rec._id = _read(stream, id_len)
        rec._payload = _read(stream, payload_len)
        return rec

    def to_bytes(self, flags=0):
        """
        Serialize the record. The stored begin/end flags are replaced with the
        ones passed by the caller.
        """
        header = (self.flags & ~(FLAG_MB | FLAG_ME)) | flags
        out = bytearray([(header & ~TNF_MASK) | int(self.tnf), len(self._type)])
        if self.is_short:
            out.append(len(self._payload))
        else:
            out.extend(pack('>I', len(self._payload)))
        if self.flags & FLAG_IL:
            out.append(len(self._id))
        out.extend(self._type)
        out.extend(self._id)
        out.extend(self._payload)
        return bytes(out)

    def copy(self):
        rec = Record.__new__(Record)
        rec.flags = self.flags
        rec.tnf = self.tnf
        rec._type = self._type
        rec._id = self._id
        rec._payload = self._payload
        return rec

    def __repr__(self):
        return (f"Record(tnf={self.tnf.name}, type={self._type!r}, "
                f"id={self._id.hex()}, payload={len(self._payload)} bytes)")


class Message:
    """An ordered list of NDEF records."""

    def __init__(self, records=None):
        self.records = list(records or [])

    def __iter__(self):
        return iter(self.records)

    def __len__(self):
        return len(self.records)

    def __getitem__(self, idx):
        return self.records[idx]

    @classmethod
    def decode(cls, data):
        """
        Decode an NDEF message.

        A record that fails to parse ends the message with a warning, as do
        trailing bytes after the record flagged as last. The message is rejected
        if no record was decoded or the last record lacks the end flag.
        """
        data = bytes(data)
        stream = io.BytesIO(data)
        records = []
        while stream.tell() < len(data):
            try:
                rec = Record.decode(stream)
            except FormatError as e:
                remaining = len(data) - stream.tell()
                log.warning("Failed to parse NDEF record #%d (%s). Ignoring the remaining %d bytes in NDEF message",
                            len(records), e, remaining)
                break
            records.append(rec)
            remaining = len(data) - stream.tell()
            if rec.is_last and remaining > 0:
                log.warning("Ignoring %d bytes in NDEF message", remaining)
                break

        if not records:
            raise FormatError("NDEF message contains no records.")
        if not records[-1].is_last:
            raise FormatError("NDEF message missing end record.")
        return cls(records)

    def to_bytes(self):
        """Serialize all records, setting MB on the first and ME on the last."""
        out = bytearray()
        last = len(self.records) - 1
        for n, rec in enumerate(self.records):
            flags = 0
            if n == 0:
                flags |= FLAG_MB
            if n == last:
                flags |= FLAG_ME
            out.extend(rec.to_bytes(flags))
        return bytes(out)

    def find(self, tnf):
        """Return the first record with the given type name format, or None."""
        for rec in self.records:
            if rec.tnf == tnf:
                return rec
        return None

    def copy(self):
        return Message(rec.copy() for rec in self.records)
