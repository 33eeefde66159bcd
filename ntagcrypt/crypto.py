"""
Thin wrappers around the pycryptodome primitives used by the tag scheme.

Every function takes and returns plain bytes. Primitive errors (wrong key or
IV size, unaligned CBC input) are raised as CryptoError.
"""

from Crypto.Cipher import AES
from Crypto.Hash import HMAC, SHA256

from .errors import CryptoError


def aes_ctr(key, nonce, data):
    """
    Encrypts or decrypts data with AES in counter mode.
    The 16-byte nonce is the full initial counter block, incremented big-endian.
    """
    if len(nonce) != AES.block_size:
        raise CryptoError(f"CTR nonce must be {AES.block_size} bytes (got {len(nonce)}).")
    try:
        cipher = AES.new(bytes(key), AES.MODE_CTR, nonce=b"", initial_value=bytes(nonce))
        return cipher.encrypt(bytes(data))
    except (ValueError, TypeError) as e:
        raise CryptoError(f"AES-CTR failed: {e}") from e


def aes_cbc_encrypt(key, iv, data):
    """
    Encrypts block-aligned data using AES in CBC mode, without padding.
    """
    try:
        cipher = AES.new(bytes(key), AES.MODE_CBC, iv=bytes(iv))
        return cipher.encrypt(bytes(data))
    except (ValueError, TypeError) as e:
        raise CryptoError(f"AES-CBC encryption failed: {e}") from e


def aes_cbc_decrypt(key, iv, data):
    """
    Decrypts block-aligned data using AES in CBC mode, without padding.
    """
    try:
        cipher = AES.new(bytes(key), AES.MODE_CBC, iv=bytes(iv))
        return cipher.decrypt(bytes(data))
    except (ValueError, TypeError) as e:
        raise CryptoError(f"AES-CBC decryption failed: {e}") from e


def hmac_sha256(key, data):
    """Compute HMAC-SHA-256 of data."""
    return HMAC.new(bytes(key), bytes(data), digestmod=SHA256).digest()
