"""Cryptographic primitives for cipherinit."""

from .ciphers import CipherSpec, CipherStream, create_cipher_primitive, parse_algorithm
from .digests import normalize_digest_name, resolve_digest, supported_digests
from .kdf import pbkdf2, random_bytes
from .utils import from_base64, password_bytes, to_base64

__all__ = [
    "CipherSpec",
    "CipherStream",
    "create_cipher_primitive",
    "from_base64",
    "normalize_digest_name",
    "parse_algorithm",
    "password_bytes",
    "pbkdf2",
    "random_bytes",
    "resolve_digest",
    "supported_digests",
    "to_base64",
]
