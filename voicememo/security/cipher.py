"""
Voice Memo Backend — Credential Cipher
========================================

What:  Symmetric encrypt/decrypt of short secrets (third-party API keys).
How:   AES-256-GCM with a fresh random 12-byte nonce per message. The wire
       form (a "ciphertext token") is base64(nonce || ciphertext || tag).
Who:   CredentialService, on every key write and read.

Properties:
    - decrypt(encrypt(p)) == p for every string p
    - two encryptions of the same plaintext never yield the same token
    - decrypt never returns garbage: any tampering fails the tag check
"""

import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from voicememo.exceptions import (
    AuthenticationFailedError,
    DecodeError,
    EncodingError,
    EncryptionError,
    MalformedPayloadError,
)

KEY_SIZE = 32
NONCE_SIZE = 12


class CredentialCipher:
    """
    AES-256-GCM over UTF-8 text.

    Args:
        key: Exactly 32 bytes, supplied from configuration at startup.

    Raises:
        ValueError: If the key has the wrong length.
    """

    def __init__(self, key: bytes):
        if len(key) != KEY_SIZE:
            raise ValueError(f"Encryption key must be {KEY_SIZE} bytes, got {len(key)}")
        self._aead = AESGCM(key)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a string into a ciphertext token.

        Raises:
            EncryptionError: The plaintext cannot be encoded as UTF-8
                (e.g. lone surrogates) or the AEAD call failed.
        """
        try:
            data = plaintext.encode("utf-8")
            nonce = os.urandom(NONCE_SIZE)
            sealed = self._aead.encrypt(nonce, data, None)
        except (UnicodeEncodeError, ValueError, OverflowError) as e:
            raise EncryptionError(context={"error_type": type(e).__name__})
        return base64.b64encode(nonce + sealed).decode("ascii")

    def decrypt(self, token: str) -> str:
        """
        Recover the plaintext from a ciphertext token.

        Raises:
            DecodeError:               token is not valid base64
            MalformedPayloadError:     fewer than NONCE_SIZE bytes after decoding
            AuthenticationFailedError: tag mismatch (wrong key, corrupt or truncated)
            EncodingError:             recovered bytes are not UTF-8
        """
        try:
            combined = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(
                message="Invalid encrypted payload: not base64",
                context={"error": str(e)},
            )

        if len(combined) < NONCE_SIZE:
            raise MalformedPayloadError(
                message="Invalid encrypted payload: too short",
                context={"length": len(combined)},
            )

        nonce, sealed = combined[:NONCE_SIZE], combined[NONCE_SIZE:]
        try:
            data = self._aead.decrypt(nonce, sealed, None)
        except InvalidTag:
            raise AuthenticationFailedError(message="Decryption failed: authentication tag mismatch")

        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(
                message="Decrypted payload is not valid UTF-8",
                context={"error": str(e)},
            )
