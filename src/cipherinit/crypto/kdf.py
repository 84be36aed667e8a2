"""PBKDF2 and secure randomness for cipherinit."""

from __future__ import annotations

import os

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ..errors import InvalidOptionsError, RandomnessError, UnsupportedDigestError
from .digests import resolve_digest


def pbkdf2(password: bytes, salt: bytes, iterations: int, length: int, digest: str) -> bytes:
    """Derive a byte block with PBKDF2-HMAC.

    Args:
        password: The password bytes.
        salt: The salt bytes (any length, including empty).
        iterations: PBKDF2 iteration count.
        length: Number of output bytes.
        digest: Digest name for the HMAC (e.g. "sha256").

    Returns:
        Exactly ``length`` derived bytes.

    Raises:
        UnsupportedDigestError: If the digest is unknown or unavailable.
        InvalidOptionsError: If iterations or length are out of range.
    """
    if iterations <= 0:
        raise InvalidOptionsError(f"iterations must be positive, got {iterations}")
    if length <= 0:
        raise InvalidOptionsError(f"length must be positive, got {length}")

    algorithm = resolve_digest(digest)
    try:
        kdf = PBKDF2HMAC(
            algorithm=algorithm,
            length=length,
            salt=bytes(salt),
            iterations=iterations,
        )
    except UnsupportedAlgorithm as e:
        raise UnsupportedDigestError(digest) from e
    except ValueError as e:
        raise InvalidOptionsError(f"Invalid PBKDF2 parameters: {e}") from e
    return kdf.derive(bytes(password))


def random_bytes(n: int) -> bytes:
    """Return ``n`` bytes from the operating system CSPRNG.

    Raises:
        RandomnessError: If the generator fails.
    """
    try:
        return os.urandom(n)
    except (OSError, NotImplementedError) as e:
        raise RandomnessError(f"Secure random generator failed: {e}") from e
