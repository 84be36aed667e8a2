"""Type definitions for cipherinit."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from .constants import (
    DEFAULT_DIGEST,
    DEFAULT_ITERATION_COUNT,
    DEFAULT_IV_LENGTH,
    DEFAULT_KEY_LENGTH,
    LEGACY_DIGEST,
)
from .errors import InvalidOptionsError

# Historical camelCase option names accepted in override mappings
_OPTION_ALIASES = {
    "keyLength": "key_length",
    "ivLength": "iv_length",
    "iterationCount": "iteration_count",
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass(frozen=True)
class DerivationOptions:
    """PBKDF2 derivation parameters.

    Attributes:
        key_length: Key length in bytes (default 32 = 256 bits).
        iv_length: Initialization vector length in bytes (default 16 = 128 bits).
        digest: Digest algorithm used by PBKDF2 (default sha256).
        iteration_count: PBKDF2 iteration count (default 10000).
    """

    key_length: int = DEFAULT_KEY_LENGTH
    iv_length: int = DEFAULT_IV_LENGTH
    digest: str = DEFAULT_DIGEST
    iteration_count: int = DEFAULT_ITERATION_COUNT

    @property
    def output_length(self) -> int:
        """Length of the PBKDF2 block holding key and IV."""
        return self.key_length + self.iv_length

    def validate(self) -> DerivationOptions:
        """Check field domains.

        Returns:
            Self, for chaining.

        Raises:
            InvalidOptionsError: If any field is out of range.
        """
        if not _is_int(self.key_length) or self.key_length <= 0:
            raise InvalidOptionsError(f"key_length must be a positive integer, got {self.key_length!r}")
        if not _is_int(self.iv_length) or self.iv_length < 0:
            raise InvalidOptionsError(f"iv_length must be a non-negative integer, got {self.iv_length!r}")
        if not _is_int(self.iteration_count) or self.iteration_count <= 0:
            raise InvalidOptionsError(
                f"iteration_count must be a positive integer, got {self.iteration_count!r}"
            )
        if not isinstance(self.digest, str) or not self.digest:
            raise InvalidOptionsError(f"digest must be a non-empty string, got {self.digest!r}")
        return self

    def merge(self, overrides: OptionsInput) -> DerivationOptions:
        """Shallow-merge caller overrides onto these options.

        Args:
            overrides: A full DerivationOptions (used as-is), a mapping of field
                names to values (snake_case or camelCase), or None.

        Returns:
            A new DerivationOptions instance. Self is never modified.

        Raises:
            InvalidOptionsError: If the mapping names an unknown field.
        """
        if overrides is None:
            return self
        if isinstance(overrides, DerivationOptions):
            return overrides
        if not isinstance(overrides, Mapping):
            raise InvalidOptionsError(
                f"options must be DerivationOptions, a mapping or None, got {type(overrides).__name__}"
            )

        names = {f.name for f in dataclasses.fields(self)}
        changes: dict[str, Any] = {}
        for key, value in overrides.items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in names:
                raise InvalidOptionsError(f"Unknown derivation option: {key!r}")
            changes[name] = value
        return dataclasses.replace(self, **changes)


OptionsInput = Union[DerivationOptions, Mapping[str, Any], None]


@dataclass(frozen=True)
class DeriverConfig:
    """Configuration resolved once when a deriver is built.

    Attributes:
        default_options: Options that caller overrides are merged onto.
        forced_digest: When set, every derivation uses this digest regardless
            of caller overrides.
    """

    default_options: DerivationOptions = field(default_factory=DerivationOptions)
    forced_digest: str | None = None

    @classmethod
    def legacy(cls) -> DeriverConfig:
        """Configuration byte-compatible with runtimes limited to PBKDF2-HMAC-SHA1."""
        return cls(
            default_options=DerivationOptions(digest=LEGACY_DIGEST),
            forced_digest=LEGACY_DIGEST,
        )

    def resolve(self, overrides: OptionsInput = None) -> DerivationOptions:
        """Merge overrides onto the defaults, apply the forced digest and validate.

        Raises:
            InvalidOptionsError: If the merged options are invalid.
        """
        options = self.default_options.merge(overrides)
        if self.forced_digest is not None and options.digest != self.forced_digest:
            options = dataclasses.replace(options, digest=self.forced_digest)
        return options.validate()


@dataclass(frozen=True)
class NoSalt:
    """Generate a fresh random salt and return it with the derived material."""


@dataclass(frozen=True)
class ExplicitSalt:
    """Caller-owned raw salt bytes, not echoed back.

    Attributes:
        value: The salt bytes.
    """

    value: bytes


@dataclass(frozen=True)
class Base64Salt:
    """Caller-owned salt in base64 text form, not echoed back.

    Attributes:
        value: The base64-encoded salt.
    """

    value: str


Salt = Union[NoSalt, ExplicitSalt, Base64Salt]
SaltInput = Union[Salt, bytes, bytearray, memoryview, str, None]
PasswordInput = Union[str, bytes, bytearray, memoryview, None]


def as_salt(salt: SaltInput) -> Salt:
    """Coerce a salt argument to its tagged variant.

    Args:
        salt: None, raw bytes, base64 text, or an existing salt variant.

    Returns:
        NoSalt, ExplicitSalt or Base64Salt.

    Raises:
        TypeError: If the value has no salt interpretation.
    """
    if salt is None:
        return NoSalt()
    if isinstance(salt, (NoSalt, ExplicitSalt, Base64Salt)):
        return salt
    if isinstance(salt, (bytes, bytearray, memoryview)):
        return ExplicitSalt(bytes(salt))
    if isinstance(salt, str):
        return Base64Salt(salt)
    raise TypeError(f"salt must be bytes, base64 str or None, got {type(salt).__name__}")


@dataclass(frozen=True)
class DerivedMaterial:
    """Cipher initialization material.

    Attributes:
        key: The first key_length bytes of the PBKDF2 block.
        iv: The remaining iv_length bytes.
        salt: Base64 text of the generated salt, or None when the caller
            supplied the salt.
    """

    key: bytes
    iv: bytes
    salt: str | None = None

    @property
    def salt_bytes(self) -> bytes | None:
        """The generated salt decoded to bytes, or None."""
        if self.salt is None:
            return None
        from .crypto.utils import from_base64

        return from_base64(self.salt)
