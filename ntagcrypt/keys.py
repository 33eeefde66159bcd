"""
Shared key material for the two encrypted tag domains.

The retail key set is 160 bytes: an 80-byte "unfixed infos" half followed by
an 80-byte "locked secret" half. Each half is laid out as

    0x00  HMAC key (0x10, zero padded to 0x40 when used)
    0x10  KDF label (0xe)
    0x20  magic bytes (0xe for unfixed infos, 0x10 for locked secret)
    0x30  XOR pad (0x20, identical in both halves)
"""

import binascii
import logging
from dataclasses import dataclass, replace
from typing import Optional

from . import config
from .errors import KeysError

log = logging.getLogger(__name__)

KEYSET_SIZE = 160
HALF_SIZE = 80
HMAC_KEY_SIZE = 0x40


def _hmac_key(half):
    # only the first 0x10 bytes are used, the rest is zero padded
    return bytes(half[0x00:0x10]) + bytes(HMAC_KEY_SIZE - 0x10)


@dataclass(frozen=True)
class Keys:
    unfixed_infos_hmac_key: bytes
    unfixed_infos_string: bytes
    unfixed_infos_magic: bytes
    locked_secret_hmac_key: bytes
    locked_secret_string: bytes
    locked_secret_magic: bytes
    nfc_xor_pad: bytes
    nfc_key: Optional[bytes] = None
    nfc_nonce: Optional[bytes] = None

    @classmethod
    def from_keyset(cls, keyset):
        """Build keys from a 160-byte key set."""
        if len(keyset) != KEYSET_SIZE:
            raise KeysError(f"Key set must be {KEYSET_SIZE} bytes (got {len(keyset)}).")
        return cls.from_bins(keyset[:HALF_SIZE], keyset[HALF_SIZE:])

    @classmethod
    def from_bins(cls, unfixed_info, locked_secret):
        """Build keys from the separate unfixed-info and locked-secret blobs."""
        if len(unfixed_info) != HALF_SIZE:
            raise KeysError(f"Unfixed info key must be {HALF_SIZE} bytes (got {len(unfixed_info)}).")
        if len(locked_secret) != HALF_SIZE:
            raise KeysError(f"Locked secret key must be {HALF_SIZE} bytes (got {len(locked_secret)}).")

        xor_pad = bytes(unfixed_info[0x30:0x50])
        if bytes(locked_secret[0x30:0x50]) != xor_pad:
            raise KeysError("Locked secret XOR pad does not match unfixed info XOR pad.")

        return cls(
            unfixed_infos_hmac_key=_hmac_key(unfixed_info),
            unfixed_infos_string=bytes(unfixed_info[0x10:0x1e]),
            unfixed_infos_magic=bytes(unfixed_info[0x20:0x2e]),
            locked_secret_hmac_key=_hmac_key(locked_secret),
            locked_secret_string=bytes(locked_secret[0x10:0x1e]),
            locked_secret_magic=bytes(locked_secret[0x20:0x30]),
            nfc_xor_pad=xor_pad,
        )

    @classmethod
    def from_configuration(cls, key_file=None):
        """
        Load the key set named by the configuration (or key_file) and attach
        the configured NFC transport key, if any.
        """
        path = key_file or config.KEY_FILE
        try:
            with open(path, "rb") as f:
                keyset = f.read()
        except OSError as e:
            raise KeysError(f"Failed to read key file {path}: {e}") from e

        keys = cls.from_keyset(keyset)
        if config.NFC_KEY and config.NFC_NONCE:
            try:
                nfc_key = binascii.unhexlify(config.NFC_KEY)
                nfc_nonce = binascii.unhexlify(config.NFC_NONCE)
            except (binascii.Error, ValueError) as e:
                raise KeysError(f"Invalid NFC key or nonce in configuration: {e}") from e
            keys = keys.with_nfc_key(nfc_key, nfc_nonce)
        elif config.NFC_KEY or config.NFC_NONCE:
            log.warning("Ignoring NFC transport key, both key and nonce must be configured")
        return keys

    def with_nfc_key(self, key, nonce):
        """Return a copy of these keys with the NFC transport key attached."""
        if len(key) != 0x10 or len(nonce) != 0x10:
            raise KeysError("NFC key and nonce must both be 16 bytes.")
        log.debug("Using NFC transport key for key-gen salt")
        return replace(self, nfc_key=bytes(key), nfc_nonce=bytes(nonce))

    @property
    def has_nfc_key(self):
        return self.nfc_key is not None
