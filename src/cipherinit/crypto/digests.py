"""Digest name resolution for PBKDF2."""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes

from ..errors import UnsupportedDigestError

# OpenSSL-style digest names accepted by PBKDF2
_DIGESTS: dict[str, type[hashes.HashAlgorithm]] = {
    "md5": hashes.MD5,
    "sha1": hashes.SHA1,
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
    "sha512-224": hashes.SHA512_224,
    "sha512-256": hashes.SHA512_256,
    "sha3-224": hashes.SHA3_224,
    "sha3-256": hashes.SHA3_256,
    "sha3-384": hashes.SHA3_384,
    "sha3-512": hashes.SHA3_512,
}

_ALIASES = {
    "sha-1": "sha1",
    "sha-224": "sha224",
    "sha-256": "sha256",
    "sha-384": "sha384",
    "sha-512": "sha512",
    "sha512/224": "sha512-224",
    "sha512/256": "sha512-256",
    "sha3_224": "sha3-224",
    "sha3_256": "sha3-256",
    "sha3_384": "sha3-384",
    "sha3_512": "sha3-512",
}


def normalize_digest_name(name: str) -> str:
    """Return the canonical lowercase digest name."""
    lowered = name.strip().lower()
    return _ALIASES.get(lowered, lowered)


def resolve_digest(name: str) -> hashes.HashAlgorithm:
    """Resolve a digest name to a hash algorithm instance.

    Args:
        name: Digest name such as "sha256" or "SHA-512" (case-insensitive).

    Returns:
        A fresh cryptography HashAlgorithm.

    Raises:
        UnsupportedDigestError: If the name is unknown.
    """
    if not isinstance(name, str):
        raise UnsupportedDigestError(repr(name))
    algorithm = _DIGESTS.get(normalize_digest_name(name))
    if algorithm is None:
        raise UnsupportedDigestError(name)
    return algorithm()


def supported_digests() -> list[str]:
    """List the canonical digest names accepted by resolve_digest."""
    return sorted(_DIGESTS)
