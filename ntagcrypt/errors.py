"""Exceptions raised while decoding tags, loading keys or running primitives."""


class NtagError(Exception):
    """Base class for all errors raised by ntagcrypt."""


class FormatError(NtagError, ValueError):
    """Raised when a dump, TLV stream or NDEF message is malformed."""


class KeysError(NtagError, ValueError):
    """Raised when the key material is incomplete or inconsistent."""


class CryptoError(NtagError):
    """Raised when an AES or HMAC primitive rejects its input."""
