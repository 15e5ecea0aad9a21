"""
Encryption utilities for securing session payloads at rest.
"""

import base64
import logging
from typing import Sequence

from cryptography.fernet import Fernet, InvalidToken, MultiFernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

logger = logging.getLogger(__name__)

MIN_KDF_ITERATIONS = 100_000
MAX_KDF_ITERATIONS = 1_000_000
DEFAULT_KDF_ITERATIONS = 300_000


class PayloadDecryptionError(Exception):
    """Raised when an encrypted payload fails authentication or is malformed"""
    pass


def clamp_kdf_iterations(kdf_iterations) -> int:
    """Parse and bound PBKDF2 iterations, falling back to the default on bad input"""
    try:
        kdf_iterations = int(kdf_iterations)
    except (ValueError, TypeError):
        logger.warning(f"Invalid KDF iterations value, using default: {DEFAULT_KDF_ITERATIONS}")
        return DEFAULT_KDF_ITERATIONS

    if kdf_iterations > MAX_KDF_ITERATIONS:
        logger.warning(f"KDF iterations {kdf_iterations} exceeds maximum, using {MAX_KDF_ITERATIONS:,}")
        return MAX_KDF_ITERATIONS
    if kdf_iterations < MIN_KDF_ITERATIONS:
        logger.warning(f"KDF iterations {kdf_iterations} below recommended minimum, using {DEFAULT_KDF_ITERATIONS:,}")
        return DEFAULT_KDF_ITERATIONS
    return kdf_iterations


def derive_key(secret: str, salt: str, kdf_iterations: int = DEFAULT_KDF_ITERATIONS) -> bytes:
    """
    Derive a Fernet key from a passphrase.

    Args:
        secret: Passphrase shared by every process using the store
        salt: Deployment-specific salt
        kdf_iterations: PBKDF2 iterations (bounded by clamp_kdf_iterations)

    Returns:
        URL-safe base64 encoded 32-byte key
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt.encode('utf-8'),
        iterations=clamp_kdf_iterations(kdf_iterations),
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode('utf-8')))


class PayloadEncryption:
    """Encrypts and decrypts opaque session payloads.

    The first key encrypts; every key is tried on decrypt, so keys can be
    rotated by prepending a new one and dropping the old one once every live
    session has been re-saved or has expired.
    """

    def __init__(self, keys: Sequence[bytes | str]):
        if not keys:
            raise ValueError("At least one encryption key is required")
        try:
            self.cipher = MultiFernet([Fernet(key) for key in keys])
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid encryption key: {e}") from e

    @classmethod
    def from_settings(cls, settings) -> "PayloadEncryption | None":
        """Build the cipher from settings, or return None when encryption is off"""
        keys: list[bytes | str] = list(settings.ENCRYPTION_KEYS)
        if settings.ENCRYPTION_SECRET:
            keys.append(
                derive_key(
                    settings.ENCRYPTION_SECRET,
                    settings.ENCRYPTION_SALT,
                    settings.ENCRYPTION_KDF_ITERATIONS,
                )
            )
        if not keys:
            return None
        return cls(keys)

    @staticmethod
    def generate_key() -> str:
        """Generate a fresh key suitable for ENCRYPTION_KEYS"""
        return Fernet.generate_key().decode('ascii')

    def encrypt(self, payload: bytes) -> bytes:
        """Encrypt a payload; the token is URL-safe base64"""
        return self.cipher.encrypt(payload)

    def decrypt(self, token: bytes) -> bytes:
        """
        Decrypt a payload.

        Raises:
            PayloadDecryptionError: If no key authenticates the token
        """
        try:
            return self.cipher.decrypt(token)
        except InvalidToken as e:
            logger.error("Failed to decrypt session payload", extra={"error_type": type(e).__name__})
            raise PayloadDecryptionError("Session payload failed authentication") from e

    def rotate(self, token: bytes) -> bytes:
        """Re-encrypt a token under the primary key"""
        try:
            return self.cipher.rotate(token)
        except InvalidToken as e:
            raise PayloadDecryptionError("Session payload failed authentication") from e
