import dataclasses

import pytest

from ntagcrypt import config
from ntagcrypt.errors import KeysError
from ntagcrypt.keys import Keys

from conftest import XOR_PAD, build_keyset


def test_from_keyset_layout(keyset):
    keys = Keys.from_keyset(keyset)
    assert keys.unfixed_infos_hmac_key == bytes(range(0x10, 0x20)) + bytes(0x30)
    assert keys.unfixed_infos_string == b"unfixed infos\x00"
    assert keys.unfixed_infos_magic == bytes(range(0xa0, 0xae))
    assert keys.locked_secret_hmac_key == bytes(range(0x20, 0x30)) + bytes(0x30)
    assert keys.locked_secret_string == b"locked secret\x00"
    assert keys.locked_secret_magic == bytes(range(0xb0, 0xc0))
    assert keys.nfc_xor_pad == XOR_PAD
    assert not keys.has_nfc_key


def test_from_bins_matches_keyset(keyset):
    assert Keys.from_bins(keyset[:80], keyset[80:]) == Keys.from_keyset(keyset)


def test_wrong_lengths():
    with pytest.raises(KeysError):
        Keys.from_keyset(bytes(159))
    with pytest.raises(KeysError):
        Keys.from_bins(bytes(80), bytes(79))


def test_xor_pad_mismatch():
    bad_pad = bytes(0x1f) + b"\x01"
    with pytest.raises(KeysError, match="XOR pad"):
        Keys.from_keyset(build_keyset(xor_pad_locked=bad_pad))


def test_keys_are_immutable(keys):
    with pytest.raises(dataclasses.FrozenInstanceError):
        keys.nfc_xor_pad = bytes(0x20)


def test_with_nfc_key(keys):
    with_key = keys.with_nfc_key(bytes(range(16)), bytes(16))
    assert with_key.has_nfc_key
    assert with_key.nfc_key == bytes(range(16))
    assert not keys.has_nfc_key
    with pytest.raises(KeysError):
        keys.with_nfc_key(bytes(15), bytes(16))


def test_from_configuration(tmp_path, monkeypatch, keyset):
    key_file = tmp_path / "key-retail.bin"
    key_file.write_bytes(keyset)
    monkeypatch.setattr(config, "KEY_FILE", str(key_file))
    monkeypatch.setattr(config, "NFC_KEY", "")
    monkeypatch.setattr(config, "NFC_NONCE", "")
    keys = Keys.from_configuration()
    assert keys == Keys.from_keyset(keyset)

    monkeypatch.setattr(config, "NFC_KEY", bytes(range(16)).hex())
    monkeypatch.setattr(config, "NFC_NONCE", bytes(range(16, 32)).hex())
    keys = Keys.from_configuration()
    assert keys.nfc_nonce == bytes(range(16, 32))


def test_from_configuration_missing_file(tmp_path):
    with pytest.raises(KeysError):
        Keys.from_configuration(str(tmp_path / "missing.bin"))


def test_from_configuration_needs_key_and_nonce(tmp_path, monkeypatch, keyset):
    key_file = tmp_path / "key-retail.bin"
    key_file.write_bytes(keyset)
    monkeypatch.setattr(config, "NFC_KEY", bytes(range(16)).hex())
    monkeypatch.setattr(config, "NFC_NONCE", "")
    assert not Keys.from_configuration(str(key_file)).has_nfc_key


@pytest.mark.parametrize("nfc_key, nfc_nonce", [
    ("not hex", "00" * 16),
    ("00" * 16, "0"),
    ("00" * 15, "00" * 16),
])
def test_from_configuration_bad_nfc_key(tmp_path, monkeypatch, keyset, nfc_key, nfc_nonce):
    key_file = tmp_path / "key-retail.bin"
    key_file.write_bytes(keyset)
    monkeypatch.setattr(config, "NFC_KEY", nfc_key)
    monkeypatch.setattr(config, "NFC_NONCE", nfc_nonce)
    with pytest.raises(KeysError):
        Keys.from_configuration(str(key_file))
