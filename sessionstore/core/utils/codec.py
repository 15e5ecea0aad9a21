"""Storage envelope for session payloads.

Stored bytes are a one-byte format header followed by the body:

    0x01  plain      body is the payload verbatim
    0x02  encrypted  body is a Fernet token of the payload

The codec never looks inside the payload itself.
"""
from typing import Optional, Union

from sessionstore.core.exceptions import EncodingError
from sessionstore.core.utils.encryption import PayloadDecryptionError, PayloadEncryption

FORMAT_PLAIN = 0x01
FORMAT_ENCRYPTED = 0x02

BytesLike = Union[bytes, bytearray, memoryview]


class RecordCodec:
    """Encode payloads for storage and decode them back."""

    def __init__(self, encryption: Optional[PayloadEncryption] = None):
        self.encryption = encryption

    @classmethod
    def from_settings(cls, settings) -> "RecordCodec":
        return cls(PayloadEncryption.from_settings(settings))

    def encode(self, data: BytesLike) -> bytes:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Session data must be bytes-like, got {type(data).__name__}")
        payload = bytes(data)
        if self.encryption is not None:
            return bytes([FORMAT_ENCRYPTED]) + self.encryption.encrypt(payload)
        return bytes([FORMAT_PLAIN]) + payload

    def decode(self, stored: BytesLike) -> bytes:
        """
        Decode stored bytes back to the original payload.

        Raises:
            EncodingError: If the envelope is empty, unknown, or fails decryption
        """
        if not isinstance(stored, (bytes, bytearray, memoryview)):
            raise EncodingError(f"Stored session data has unexpected type {type(stored).__name__}")
        raw = bytes(stored)
        if not raw:
            raise EncodingError("Stored session data is empty")

        header, body = raw[0], raw[1:]
        if header == FORMAT_PLAIN:
            return body
        if header == FORMAT_ENCRYPTED:
            if self.encryption is None:
                raise EncodingError("Stored session data is encrypted but no encryption keys are configured")
            try:
                return self.encryption.decrypt(body)
            except PayloadDecryptionError as e:
                raise EncodingError(str(e)) from e
        raise EncodingError(f"Unknown session data format 0x{header:02x}")

    def reencode(self, stored: BytesLike) -> bytes:
        """Rewrite stored bytes under the current settings (new primary key, or plain to encrypted)."""
        raw = bytes(stored)
        if raw[:1] == bytes([FORMAT_ENCRYPTED]) and self.encryption is not None:
            try:
                return bytes([FORMAT_ENCRYPTED]) + self.encryption.rotate(raw[1:])
            except PayloadDecryptionError as e:
                raise EncodingError(str(e)) from e
        return self.encode(self.decode(raw))
