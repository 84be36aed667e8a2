"""Error hierarchy for cipherinit."""

from __future__ import annotations


class CipherInitError(Exception):
    """Base exception for all cipherinit errors."""

    pass


class InvalidOptionsError(CipherInitError, ValueError):
    """Derivation options or key/IV sizes are out of range."""

    pass


class UnsupportedDigestError(CipherInitError, ValueError):
    """Digest name not recognized by the PBKDF2 primitive.

    Attributes:
        digest: The rejected digest name.
    """

    def __init__(self, digest: str) -> None:
        self.digest = digest
        super().__init__(f"Unsupported digest: {digest!r}")


class UnsupportedAlgorithmError(CipherInitError, ValueError):
    """Cipher algorithm name not recognized.

    Attributes:
        algorithm: The rejected algorithm name.
    """

    def __init__(self, algorithm: str) -> None:
        self.algorithm = algorithm
        super().__init__(f"Unsupported cipher algorithm: {algorithm!r}")


class InvalidSaltError(CipherInitError, ValueError):
    """Salt text could not be decoded as base64."""

    pass


class RandomnessError(CipherInitError):
    """The secure random generator failed to produce bytes."""

    pass


class DecryptionError(CipherInitError):
    """Decryption failure (bad padding or authentication tag)."""

    pass


class CipherStateError(CipherInitError):
    """Cipher stream used after it was finalized."""

    pass
