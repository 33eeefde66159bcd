"""
Per-tag key derivation, AES-CTR encryption and HMAC handling.

Both domains (locked secret, unfixed infos) get their own AES key, nonce and
HMAC key, derived from the shared keys and tag specific data (UID, write
counter, key-gen salt).
"""

import hmac
import logging

from . import crypto
from .errors import CryptoError

log = logging.getLogger(__name__)

SUPPORTED_VERSIONS = (0, 2)

KEY_GEN_SALT_SIZE = 0x20
HMAC_SIZE = 0x20
DERIVED_SIZE = 0x40


def generate_key(hmac_key, name, in_data, out_size=DERIVED_SIZE):
    """
    Counter mode HMAC expansion.

    Every 32-byte output chunk is HMAC-SHA-256 over
    counter (2 bytes, big-endian) || name (14 bytes) || in_data (64 bytes),
    with the counter starting at 0.
    """
    if len(name) != 0xe:
        raise ValueError(f"Key name must be 14 bytes (got {len(name)}).")
    if len(in_data) != 0x40:
        raise ValueError(f"Key input must be 64 bytes (got {len(in_data)}).")
    if out_size % HMAC_SIZE:
        raise ValueError(f"Output size must be a multiple of {HMAC_SIZE} (got {out_size}).")
    out = bytearray()
    for counter in range(out_size // HMAC_SIZE):
        buf = counter.to_bytes(2, 'big') + bytes(name) + bytes(in_data)
        out.extend(crypto.hmac_sha256(hmac_key, buf))
    return bytes(out)


class DomainKeys:
    """AES key, nonce and HMAC key of one domain."""

    def __init__(self, derived):
        self.key = derived[0x00:0x10]
        self.nonce = derived[0x10:0x20]
        # only the first 0x10 bytes are used, the rest is zero padded
        self.hmac_key = derived[0x20:0x30] + bytes(0x30)
        # derived[0x30:0x40] is unused


class TagEncryption:
    """
    Encrypts, decrypts and authenticates one tag with one set of keys.

    Operations return True on success. They return False without touching the
    tag when called in the wrong state (already encrypted, not decrypted yet,
    keys not initialized).
    """

    def __init__(self, tag, keys):
        self.tag = tag
        self.keys = keys
        self.key_gen_salt = None
        self.locked_secret = None
        self.unfixed_infos = None

    @property
    def initialized(self):
        return self.locked_secret is not None and self.unfixed_infos is not None

    def initialize_internal_keys(self):
        if self.tag.version not in SUPPORTED_VERSIONS:
            log.error("Unsupported tag version %d", self.tag.version)
            return False

        self.key_gen_salt = self._generate_key_gen_salt()
        self._generate_internal_keys()
        return True

    def _generate_key_gen_salt(self):
        salt = self.tag.get_data(self.tag.key_gen_salt_offset, KEY_GEN_SALT_SIZE)
        if self.keys.has_nfc_key:
            return crypto.aes_ctr(self.keys.nfc_key, self.keys.nfc_nonce, salt)
        # no transport key available, the XOR pad gives the same result
        return bytes(a ^ b for a, b in zip(salt, self.keys.nfc_xor_pad))

    def _uid_block(self):
        uid_offset = self.tag.uid_offset
        if self.tag.version == 0:
            # 16-byte format info
            return self.tag.get_data(uid_offset, 0x10)
        # 7-byte UID and check byte, twice
        return self.tag.get_data(uid_offset, 8) * 2

    def _generate_internal_keys(self):
        uid_block = self._uid_block()

        locked_secret_buf = self.keys.locked_secret_magic + uid_block + self.key_gen_salt
        derived = generate_key(self.keys.locked_secret_hmac_key, self.keys.locked_secret_string,
                               locked_secret_buf)
        self.locked_secret = DomainKeys(derived)

        seed = self.tag.get_data(self.tag.seed_offset, 2)
        unfixed_infos_buf = seed + self.keys.unfixed_infos_magic + uid_block + self.key_gen_salt
        derived = generate_key(self.keys.unfixed_infos_hmac_key, self.keys.unfixed_infos_string,
                               unfixed_infos_buf)
        self.unfixed_infos = DomainKeys(derived)
        log.debug("Derived internal keys for version %d tag", self.tag.version)

    def encrypt_tag(self):
        if self.tag.is_encrypted or not self.initialized:
            return False
        if not self._crypt_tag():
            return False
        self.tag.is_encrypted = True
        return True

    def decrypt_tag(self):
        if not self.tag.is_encrypted or not self.initialized:
            return False
        if not self._crypt_tag():
            return False
        self.tag.is_encrypted = False
        return True

    def _crypt_tag(self):
        tag = self.tag
        try:
            locked_secret = None
            # only version 0 tags have an encrypted locked secret
            if tag.version == 0:
                locked_secret = crypto.aes_ctr(self.locked_secret.key, self.locked_secret.nonce,
                                               tag.get_data(tag.locked_secret_offset, tag.locked_secret_size))
            unfixed_infos = crypto.aes_ctr(self.unfixed_infos.key, self.unfixed_infos.nonce,
                                           tag.get_data(tag.unfixed_infos_offset, tag.unfixed_infos_size))
        except CryptoError as e:
            log.error("Failed to crypt tag: %s", e)
            return False

        if locked_secret is not None:
            tag.set_data(tag.locked_secret_offset, locked_secret)
        tag.set_data(tag.unfixed_infos_offset, unfixed_infos)
        return True

    def _locked_secret_hmac(self):
        offset = self.tag.locked_secret_hmac_offset + 0x20
        return crypto.hmac_sha256(self.locked_secret.hmac_key,
                                  self.tag.data[offset:self.tag.data_size])

    def _unfixed_infos_hmac(self):
        # version 2 skips one more byte
        skip = 0x20 if self.tag.version == 0 else 0x21
        offset = self.tag.unfixed_infos_hmac_offset + skip
        return crypto.hmac_sha256(self.unfixed_infos.hmac_key,
                                  self.tag.data[offset:self.tag.data_size])

    def _can_authenticate(self):
        return not self.tag.is_encrypted and self.initialized

    def validate_locked_secret_hmac(self):
        if not self._can_authenticate():
            return False
        stored = self.tag.get_data(self.tag.locked_secret_hmac_offset, HMAC_SIZE)
        return hmac.compare_digest(self._locked_secret_hmac(), stored)

    def validate_unfixed_infos_hmac(self):
        if not self._can_authenticate():
            return False
        stored = self.tag.get_data(self.tag.unfixed_infos_hmac_offset, HMAC_SIZE)
        return hmac.compare_digest(self._unfixed_infos_hmac(), stored)

    def update_locked_secret_hmac(self):
        if not self._can_authenticate():
            return False
        self.tag.set_data(self.tag.locked_secret_hmac_offset, self._locked_secret_hmac())
        return True

    def update_unfixed_infos_hmac(self):
        if not self._can_authenticate():
            return False
        self.tag.set_data(self.tag.unfixed_infos_hmac_offset, self._unfixed_infos_hmac())
        return True
