from struct import pack

import pytest

from ntagcrypt.keys import Keys

XOR_PAD = bytes((0x80 + i) & 0xFF for i in range(0x20))

V0_UID_BLOCK = bytes.fromhex("04A1B2C3D4E5F680")
V0_PAYLOAD_SIZE = 0x1a8
V0_LOCKED_BLOCKS = (60, 61, 62, 63)
V0_LOCKED_DATA = bytes(range(0x40, 0x60))


def build_keyset(xor_pad_locked=XOR_PAD):
    unfixed = bytearray(80)
    unfixed[0x00:0x10] = bytes(range(0x10, 0x20))
    unfixed[0x10:0x1e] = b"unfixed infos\x00"
    unfixed[0x20:0x2e] = bytes(range(0xa0, 0xae))
    unfixed[0x30:0x50] = XOR_PAD

    locked = bytearray(80)
    locked[0x00:0x10] = bytes(range(0x20, 0x30))
    locked[0x10:0x1e] = b"locked secret\x00"
    locked[0x20:0x30] = bytes(range(0xb0, 0xc0))
    locked[0x30:0x50] = xor_pad_locked
    return bytes(unfixed + locked)


def default_v0_payload():
    payload = bytearray((i * 7 + 3) & 0xFF for i in range(V0_PAYLOAD_SIZE))
    payload[0x20:0x24] = b"NOFT"
    return payload


def build_v0_dump(cc=b"\xE1\x10\x3F\x00", payload=None, tnf=0x05, with_ndef=True,
                  lock_byte=0xF0, locked_data=V0_LOCKED_DATA, trailer=b"",
                  null_tlvs=0, terminator=True):
    """
    Build a 512-byte version 0 image. Blocks 60-63 are locked by default
    (last lock byte of block 0xf), their content ends up after the payload.
    """
    if payload is None:
        payload = default_v0_payload()

    # MB|ME + tnf, long record
    record = bytes([0xC0 | tnf, 0x00]) + pack('>I', len(payload)) + bytes(payload)
    area = bytearray(cc) + bytes(null_tlvs)
    if with_ndef:
        area += b"\x03\xFF" + pack('>H', len(record)) + record
    if terminator:
        area += b"\xFE"
    area += trailer

    locked = [56 + bit for bit in range(8) if lock_byte & (1 << bit)]
    dump = bytearray(512)
    dump[0:8] = V0_UID_BLOCK
    dump[0xd * 8:0xe * 8] = b"\x00\x00\x00\x00\x11\x22\x33\x44"
    dump[0xe * 8:0xf * 8] = b"\x00\xE0\x00\x00\x00\x00\x00\x00"
    dump[0xf * 8:0x10 * 8] = bytes([0xAA, 0xBB, 0, 0, 0, 0, 0, lock_byte])

    free = [idx for idx in range(64) if idx not in (0, 0xd, 0xe, 0xf) and idx not in locked]
    area += bytes(len(free) * 8 - len(area))
    for n, idx in enumerate(free):
        dump[idx * 8:(idx + 1) * 8] = area[n * 8:(n + 1) * 8]
    for n, idx in enumerate(locked):
        dump[idx * 8:(idx + 1) * 8] = locked_data[n * 8:(n + 1) * 8]
    return bytes(dump)


def build_v2_dump(size=0x21c):
    dump = bytearray((i * 13 + 5) & 0xFF for i in range(size))
    dump[0:8] = bytes.fromhex("04C1D2E3F4A5B6C7")
    dump[0x10] = 0xA5
    return bytes(dump)


@pytest.fixture()
def keyset():
    return build_keyset()


@pytest.fixture()
def keys(keyset):
    return Keys.from_keyset(keyset)


@pytest.fixture()
def v0_dump():
    return build_v0_dump()


@pytest.fixture()
def v0_factory():
    return build_v0_dump


@pytest.fixture()
def v2_dump():
    return build_v2_dump()


@pytest.fixture()
def v2_factory():
    return build_v2_dump
