"""
Client-side blob encryption.

Blobs written with encryption requested are stored as a small JSON envelope:

    {"alg": "AES-256-GCM", "iv": "<base64 nonce>", "data": "<base64 ciphertext+tag>"}

The AES key is derived from the user's security key with PBKDF2-HMAC-SHA256,
so the same security key always opens the same blobs.
"""
import base64
import hashlib
import json
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from pod_records.core.exceptions import EncryptionError

ALGORITHM = "AES-256-GCM"
NONCE_SIZE = 12
TAG_SIZE = 16
KDF_ITERATIONS = 100_000
KDF_SALT = hashlib.sha256(b"pod_records.blob-key").digest()


class BlobCipher:
    """AES-GCM cipher bound to one derived key."""

    def __init__(self, key: bytes):
        if len(key) != 32:
            raise ValueError("BlobCipher needs a 32-byte key")
        self._key = key

    @classmethod
    def from_security_key(cls, security_key: str) -> "BlobCipher":
        """Derive the AES key from the user's security key."""
        if not security_key:
            raise ValueError("Security key must not be empty")
        key = hashlib.pbkdf2_hmac(
            "sha256",
            security_key.encode("utf-8"),
            KDF_SALT,
            KDF_ITERATIONS,
            dklen=32,
        )
        return cls(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt text into a JSON envelope string. A fresh nonce is used per call."""
        nonce = os.urandom(NONCE_SIZE)
        encryptor = Cipher(algorithms.AES(self._key), modes.GCM(nonce), backend=default_backend()).encryptor()
        ciphertext = encryptor.update(plaintext.encode("utf-8")) + encryptor.finalize()
        return json.dumps({
            "alg": ALGORITHM,
            "iv": base64.b64encode(nonce).decode("ascii"),
            "data": base64.b64encode(ciphertext + encryptor.tag).decode("ascii"),
        })

    def decrypt(self, envelope: str) -> str:
        """
        Open an envelope produced by ``encrypt``.

        Raises:
            EncryptionError: If the envelope is malformed or authentication fails.
        """
        parsed = self._parse_envelope(envelope)
        if parsed is None:
            raise EncryptionError("Content is not an encrypted envelope")
        try:
            nonce = base64.b64decode(parsed["iv"])
            payload = base64.b64decode(parsed["data"])
        except (ValueError, TypeError) as e:
            raise EncryptionError(f"Invalid envelope encoding: {e}") from e
        if len(payload) < TAG_SIZE:
            raise EncryptionError("Envelope payload too short")

        ciphertext, tag = payload[:-TAG_SIZE], payload[-TAG_SIZE:]
        try:
            decryptor = Cipher(
                algorithms.AES(self._key), modes.GCM(nonce, tag), backend=default_backend()
            ).decryptor()
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
        except (InvalidTag, ValueError) as e:
            raise EncryptionError("Cannot decrypt blob (wrong security key or corrupted data)") from e
        return plaintext.decode("utf-8")

    @staticmethod
    def is_envelope(content: str) -> bool:
        """True if ``content`` looks like an encryption envelope."""
        return BlobCipher._parse_envelope(content) is not None

    @staticmethod
    def _parse_envelope(content: str) -> Optional[dict]:
        try:
            parsed = json.loads(content)
        except (ValueError, TypeError):
            return None
        if not isinstance(parsed, dict):
            return None
        if parsed.get("alg") != ALGORITHM or "iv" not in parsed or "data" not in parsed:
            return None
        return parsed
