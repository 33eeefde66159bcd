"""
Runtime settings, overridable through environment variables.
"""

import os

# 160-byte retail key set (unfixed-infos half followed by locked-secret half)
KEY_FILE = os.environ.get("NTAGCRYPT_KEY_FILE", "key-retail.bin")

# optional NFC transport key and nonce (hex), used to decrypt the key-gen salt
# directly. Both must be set.
NFC_KEY = os.environ.get("NTAGCRYPT_NFC_KEY", "")
NFC_NONCE = os.environ.get("NTAGCRYPT_NFC_NONCE", "")
