"""Encoding helpers for cipherinit."""

from __future__ import annotations

import base64
import binascii


def to_base64(data: bytes) -> str:
    """Encode bytes to standard base64.

    Args:
        data: The bytes to encode.

    Returns:
        Standard base64 string with padding.
    """
    return base64.b64encode(data).decode("ascii")


def from_base64(s: str) -> bytes:
    """Decode standard base64 string to bytes.

    Handles missing padding and surrounding whitespace.

    Args:
        s: The base64 string to decode.

    Returns:
        The decoded bytes.

    Raises:
        ValueError: If the string contains non-base64 characters.
    """
    s = s.strip()
    # Add padding if needed
    padding = 4 - (len(s) % 4)
    if padding != 4:
        s += "=" * padding
    try:
        return base64.b64decode(s, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 data: {e}") from e


def password_bytes(password: str | bytes | bytearray | memoryview | None) -> bytes:
    """Normalize a password to bytes.

    None and the empty string both become b"". Text is encoded as UTF-8.
    """
    if not password:
        return b""
    if isinstance(password, str):
        return password.encode("utf-8")
    if isinstance(password, (bytes, bytearray, memoryview)):
        return bytes(password)
    raise TypeError(f"password must be str or bytes, got {type(password).__name__}")
