"""Decrypt and re-encrypt NFC figure tag dumps (tag versions 0 and 2)."""

from .errors import CryptoError, FormatError, KeysError, NtagError
from .keys import Keys
from .tag import Tag, TagLayout, decode_tag
from .tag_v0 import TagV0
from .tag_v2 import TagV2
from .encryption import TagEncryption, generate_key

__version__ = "1.0.0"

__all__ = [
    "CryptoError",
    "FormatError",
    "Keys",
    "KeysError",
    "NtagError",
    "Tag",
    "TagEncryption",
    "TagLayout",
    "TagV0",
    "TagV2",
    "decode_tag",
    "generate_key",
]
