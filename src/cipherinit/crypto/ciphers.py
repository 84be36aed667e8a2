"""Symmetric cipher construction for cipherinit.

Algorithm names follow the OpenSSL convention (``aes-256-cbc``,
``aes-128-gcm``, ``chacha20``). Block modes without a stream property
(CBC, ECB) get PKCS#7 padding applied automatically.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from cryptography.exceptions import AlreadyFinalized, AlreadyUpdated, InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, CipherContext, algorithms, modes

from ..errors import (
    CipherStateError,
    DecryptionError,
    InvalidOptionsError,
    UnsupportedAlgorithmError,
)

AES_BLOCK_SIZE = 16
GCM_MIN_IV_SIZE = 8
GCM_MAX_IV_SIZE = 128
CHACHA20_KEY_SIZE = 32
CHACHA20_NONCE_SIZE = 16

_AES_PATTERN = re.compile(r"^aes-(128|192|256)-(cbc|ctr|cfb|cfb8|ofb|ecb|gcm)$")

_ALIASES = {
    "aes128": "aes-128-cbc",
    "aes192": "aes-192-cbc",
    "aes256": "aes-256-cbc",
}

_PADDED_MODES = frozenset({"cbc", "ecb"})


@dataclass(frozen=True)
class CipherSpec:
    """Parsed cipher algorithm.

    Attributes:
        name: Canonical algorithm name.
        family: "aes" or "chacha20".
        key_size: Required key length in bytes.
        mode: Block mode name, or None for stream ciphers.
        min_iv_size: Smallest accepted IV length in bytes.
        max_iv_size: Largest accepted IV length in bytes.
    """

    name: str
    family: str
    key_size: int
    mode: str | None
    min_iv_size: int
    max_iv_size: int

    @property
    def padded(self) -> bool:
        return self.mode in _PADDED_MODES

    @property
    def aead(self) -> bool:
        return self.mode == "gcm"


def parse_algorithm(algorithm: str) -> CipherSpec:
    """Parse an OpenSSL-style cipher name.

    Args:
        algorithm: Name such as "aes-256-cbc" (case-insensitive).

    Returns:
        The CipherSpec describing key and IV requirements.

    Raises:
        UnsupportedAlgorithmError: If the name is unknown.
    """
    if not isinstance(algorithm, str):
        raise UnsupportedAlgorithmError(repr(algorithm))
    name = algorithm.strip().lower()
    name = _ALIASES.get(name, name)

    if name == "chacha20":
        return CipherSpec(
            name=name,
            family="chacha20",
            key_size=CHACHA20_KEY_SIZE,
            mode=None,
            min_iv_size=CHACHA20_NONCE_SIZE,
            max_iv_size=CHACHA20_NONCE_SIZE,
        )

    match = _AES_PATTERN.match(name)
    if match is None:
        raise UnsupportedAlgorithmError(algorithm)
    bits, mode = match.groups()
    if mode == "ecb":
        min_iv, max_iv = 0, 0
    elif mode == "gcm":
        min_iv, max_iv = GCM_MIN_IV_SIZE, GCM_MAX_IV_SIZE
    else:
        min_iv = max_iv = AES_BLOCK_SIZE
    return CipherSpec(
        name=name,
        family="aes",
        key_size=int(bits) // 8,
        mode=mode,
        min_iv_size=min_iv,
        max_iv_size=max_iv,
    )


def _build_mode(spec: CipherSpec, iv: bytes) -> modes.Mode | None:
    if spec.mode == "cbc":
        return modes.CBC(iv)
    if spec.mode == "ctr":
        return modes.CTR(iv)
    if spec.mode == "cfb":
        return modes.CFB(iv)
    if spec.mode == "cfb8":
        return modes.CFB8(iv)
    if spec.mode == "ofb":
        return modes.OFB(iv)
    if spec.mode == "ecb":
        return modes.ECB()
    if spec.mode == "gcm":
        return modes.GCM(iv)
    return None


def _check_sizes(spec: CipherSpec, key: bytes, iv: bytes) -> None:
    if len(key) != spec.key_size:
        raise InvalidOptionsError(
            f"Invalid key length for {spec.name}: {len(key)}, expected {spec.key_size}"
        )
    if not spec.min_iv_size <= len(iv) <= spec.max_iv_size:
        if spec.min_iv_size == spec.max_iv_size:
            expected = str(spec.min_iv_size)
        else:
            expected = f"{spec.min_iv_size}..{spec.max_iv_size}"
        raise InvalidOptionsError(f"Invalid IV length for {spec.name}: {len(iv)}, expected {expected}")


class CipherStream:
    """Incremental encrypt or decrypt stream.

    Mirrors the update/final interface of OpenSSL-backed cipher objects:
    feed data through ``update`` and collect the tail from ``finalize``.
    """

    def __init__(self, spec: CipherSpec, context: CipherContext, *, decrypt: bool) -> None:
        self._spec = spec
        self._context = context
        self._decrypt = decrypt
        self._finalized = False
        self._auth_tag: bytes | None = None
        self._padding: padding.PaddingContext | None = None
        if spec.padded:
            pkcs7 = padding.PKCS7(AES_BLOCK_SIZE * 8)
            self._padding = pkcs7.unpadder() if decrypt else pkcs7.padder()

    @property
    def algorithm(self) -> str:
        return self._spec.name

    @property
    def decrypting(self) -> bool:
        return self._decrypt

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _ensure_open(self) -> None:
        if self._finalized:
            raise CipherStateError(f"{self._spec.name} stream already finalized")

    def update(self, data: bytes | bytearray | memoryview | str) -> bytes:
        """Process a chunk and return whatever output is ready.

        Args:
            data: Bytes, or text encoded as UTF-8.

        Raises:
            CipherStateError: If the stream was already finalized.
        """
        self._ensure_open()
        if isinstance(data, str):
            data = data.encode("utf-8")
        if self._padding is None:
            return self._context.update(data)
        if self._decrypt:
            return self._padding.update(self._context.update(data))
        return self._context.update(self._padding.update(data))

    def finalize(self) -> bytes:
        """Flush the stream and return the remaining output.

        Raises:
            CipherStateError: If the stream was already finalized.
            DecryptionError: If padding or the authentication tag is invalid.
        """
        self._ensure_open()
        self._finalized = True
        try:
            if self._decrypt:
                return self._finalize_decrypt()
            if self._padding is None:
                return self._context.finalize()
            tail = self._context.update(self._padding.finalize())
            return tail + self._context.finalize()
        except InvalidTag as e:
            raise DecryptionError(f"Authentication failed for {self._spec.name}") from e
        except ValueError as e:
            raise DecryptionError(f"Decryption failed for {self._spec.name}: {e}") from e

    def _finalize_decrypt(self) -> bytes:
        if self._spec.aead:
            if self._auth_tag is None:
                raise DecryptionError(f"Authentication tag required for {self._spec.name}")
            out = self._context.finalize_with_tag(self._auth_tag)  # type: ignore[attr-defined]
        else:
            out = self._context.finalize()
        if self._padding is None:
            return out
        return self._padding.update(out) + self._padding.finalize()

    # AEAD (GCM) support

    @property
    def tag(self) -> bytes:
        """Authentication tag of a finalized GCM encryption."""
        if not self._spec.aead or self._decrypt:
            raise CipherStateError(f"No authentication tag on this {self._spec.name} stream")
        if not self._finalized:
            raise CipherStateError("Authentication tag is available only after finalize")
        return self._context.tag  # type: ignore[attr-defined]

    def set_auth_tag(self, tag: bytes) -> CipherStream:
        """Provide the expected tag for GCM decryption.

        Returns:
            Self for method chaining.
        """
        self._ensure_open()
        if not self._spec.aead or not self._decrypt:
            raise CipherStateError(f"Cannot set an authentication tag on this {self._spec.name} stream")
        self._auth_tag = bytes(tag)
        return self

    def authenticate_additional_data(self, data: bytes) -> CipherStream:
        """Feed additional authenticated data; must precede ``update``.

        Returns:
            Self for method chaining.
        """
        self._ensure_open()
        if not self._spec.aead:
            raise CipherStateError(f"{self._spec.name} does not support additional data")
        try:
            self._context.authenticate_additional_data(bytes(data))  # type: ignore[attr-defined]
        except (AlreadyUpdated, AlreadyFinalized) as e:
            raise CipherStateError(f"Additional data must be supplied before update: {e}") from e
        return self


def create_cipher_primitive(
    algorithm: str,
    key: bytes,
    iv: bytes,
    *,
    decrypt: bool = False,
) -> CipherStream:
    """Build an encrypt or decrypt stream for ``algorithm`` from key and IV.

    Args:
        algorithm: OpenSSL-style cipher name, e.g. "aes-256-cbc".
        key: Key bytes; length must match the algorithm.
        iv: IV bytes; length must match the mode.
        decrypt: Build a decryptor instead of an encryptor.

    Returns:
        A CipherStream.

    Raises:
        UnsupportedAlgorithmError: If the algorithm is unknown.
        InvalidOptionsError: If key or IV sizes do not fit the algorithm.
    """
    spec = parse_algorithm(algorithm)
    key = bytes(key)
    iv = bytes(iv)
    _check_sizes(spec, key, iv)

    if spec.family == "chacha20":
        cipher = Cipher(algorithms.ChaCha20(key, iv), mode=None)
    else:
        cipher = Cipher(algorithms.AES(key), _build_mode(spec, iv))

    context = cipher.decryptor() if decrypt else cipher.encryptor()
    return CipherStream(spec, context, decrypt=decrypt)
