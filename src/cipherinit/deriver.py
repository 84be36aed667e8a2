"""Password-based cipher initialization for cipherinit.

Example:
    ```python
    import asyncio
    from cipherinit import create_cipher, create_decipher, derive_init

    async def main():
        init = await derive_init("It's a kind of magic")
        # Persist init.salt next to the ciphertext; re-deriving with it
        # reproduces init.key and init.iv.
        again = await derive_init("It's a kind of magic", init.salt)
        assert again.key == init.key

        cipher = await create_cipher("aes-256-cbc", "secret", b"salt")
        ciphertext = cipher.update("Hello world!") + cipher.finalize()

    asyncio.run(main())
    ```
"""

from __future__ import annotations

import asyncio
import functools
import logging
from concurrent.futures import Executor

from .crypto.ciphers import CipherStream, create_cipher_primitive, parse_algorithm
from .crypto.kdf import pbkdf2, random_bytes
from .crypto.utils import from_base64, password_bytes, to_base64
from .errors import CipherInitError, InvalidSaltError
from .types import (
    Base64Salt,
    DerivationOptions,
    DerivedMaterial,
    DeriverConfig,
    ExplicitSalt,
    NoSalt,
    OptionsInput,
    PasswordInput,
    SaltInput,
    as_salt,
)

logger = logging.getLogger("cipherinit")


class CipherInitDeriver:
    """Derive key, IV and salt from a password with PBKDF2.

    Every call is independent; the deriver holds only immutable
    configuration and an optional executor for the PBKDF2 work.
    """

    def __init__(
        self,
        config: DeriverConfig | None = None,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the deriver.

        Args:
            config: Default options and forced digest. Defaults to DeriverConfig().
            executor: Executor running PBKDF2. None uses the event loop's
                default executor.
        """
        self._config = config or DeriverConfig()
        self._executor = executor

    @property
    def config(self) -> DeriverConfig:
        return self._config

    def resolve_options(self, options: OptionsInput = None) -> DerivationOptions:
        """Merge caller options onto the configured defaults and validate them."""
        return self._config.resolve(options)

    def derive_init_sync(
        self,
        password: PasswordInput,
        salt: SaltInput = None,
        options: OptionsInput = None,
    ) -> DerivedMaterial:
        """Derive cipher initialization material on the calling thread.

        Args:
            password: The password; None or empty is treated as b"".
            salt: Raw bytes, base64 text, a salt variant, or None to generate
                a salt of key_length random bytes.
            options: Partial or full derivation options.

        Returns:
            DerivedMaterial with key, iv and, when generated, the base64 salt.

        Raises:
            InvalidOptionsError: If the merged options are invalid.
            InvalidSaltError: If a text salt is not valid base64.
            RandomnessError: If salt generation fails.
            UnsupportedDigestError: If the digest is unknown.
        """
        return self._derive(password, as_salt(salt), self.resolve_options(options))

    async def derive_init(
        self,
        password: PasswordInput,
        salt: SaltInput = None,
        options: OptionsInput = None,
    ) -> DerivedMaterial:
        """Derive cipher initialization material without blocking the event loop.

        Same contract as derive_init_sync. Options and salt type are checked
        before any work is sent to the executor. Cancelling the awaiting task
        does not stop a derivation already running.
        """
        resolved = self.resolve_options(options)
        salt_variant = as_salt(salt)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._executor,
            functools.partial(self._derive, password, salt_variant, resolved),
        )

    def _derive(
        self,
        password: PasswordInput,
        salt: ExplicitSalt | Base64Salt | NoSalt,
        options: DerivationOptions,
    ) -> DerivedMaterial:
        generated: str | None = None
        if isinstance(salt, Base64Salt):
            try:
                salt_bytes = from_base64(salt.value)
            except ValueError as e:
                raise InvalidSaltError(f"Salt is not valid base64: {e}") from e
        elif isinstance(salt, ExplicitSalt):
            salt_bytes = salt.value
        else:
            # Salt entropy matches the key
            salt_bytes = random_bytes(options.key_length)
            generated = to_base64(salt_bytes)

        logger.debug(
            "Deriving cipher init: digest=%s iterations=%d key_length=%d iv_length=%d salt=%s",
            options.digest,
            options.iteration_count,
            options.key_length,
            options.iv_length,
            "generated" if generated is not None else "supplied",
        )

        try:
            block = pbkdf2(
                password_bytes(password),
                salt_bytes,
                options.iteration_count,
                options.output_length,
                options.digest,
            )
        except CipherInitError as e:
            logger.debug("Cipher init derivation failed: %s", e, exc_info=True)
            raise

        return DerivedMaterial(
            key=block[: options.key_length],
            iv=block[options.key_length :],
            salt=generated,
        )

    async def create_cipher(
        self,
        algorithm: str,
        password: PasswordInput,
        salt: SaltInput = None,
        options: OptionsInput = None,
    ) -> CipherStream:
        """Build an encryption stream keyed from a password.

        If no salt is given the password bytes double as the salt.

        Args:
            algorithm: OpenSSL-style cipher name, e.g. "aes-256-cbc".
            password: The password.
            salt: Raw bytes, base64 text, a salt variant, or None.
            options: Partial or full derivation options.

        Returns:
            An encrypting CipherStream.
        """
        return await self._create(algorithm, password, salt, options, decrypt=False)

    async def create_decipher(
        self,
        algorithm: str,
        password: PasswordInput,
        salt: SaltInput = None,
        options: OptionsInput = None,
    ) -> CipherStream:
        """Build a decryption stream keyed from a password.

        Mirror of create_cipher; the same password, salt and options
        reproduce the key and IV used for encryption.

        Returns:
            A decrypting CipherStream.
        """
        return await self._create(algorithm, password, salt, options, decrypt=True)

    async def _create(
        self,
        algorithm: str,
        password: PasswordInput,
        salt: SaltInput,
        options: OptionsInput,
        *,
        decrypt: bool,
    ) -> CipherStream:
        parse_algorithm(algorithm)
        salt_variant = as_salt(salt)
        if isinstance(salt_variant, NoSalt):
            salt_variant = ExplicitSalt(password_bytes(password))

        init = await self.derive_init(password, salt_variant, options)
        logger.debug("Creating %s for %s", "decipher" if decrypt else "cipher", algorithm)
        return create_cipher_primitive(algorithm, init.key, init.iv, decrypt=decrypt)


_default_deriver: CipherInitDeriver | None = None


def get_default_deriver() -> CipherInitDeriver:
    """Return the process-wide deriver, creating it on first use."""
    global _default_deriver
    if _default_deriver is None:
        _default_deriver = CipherInitDeriver()
    return _default_deriver


def set_default_deriver(deriver: CipherInitDeriver | None) -> None:
    """Replace the process-wide deriver; None restores a fresh default on next use."""
    global _default_deriver
    _default_deriver = deriver


async def derive_init(
    password: PasswordInput,
    salt: SaltInput = None,
    options: OptionsInput = None,
) -> DerivedMaterial:
    """Derive key, IV and salt with the default deriver. See CipherInitDeriver.derive_init."""
    return await get_default_deriver().derive_init(password, salt, options)


def derive_init_sync(
    password: PasswordInput,
    salt: SaltInput = None,
    options: OptionsInput = None,
) -> DerivedMaterial:
    """Blocking variant of derive_init."""
    return get_default_deriver().derive_init_sync(password, salt, options)


async def create_cipher(
    algorithm: str,
    password: PasswordInput,
    salt: SaltInput = None,
    options: OptionsInput = None,
) -> CipherStream:
    """Build an encryption stream with the default deriver."""
    return await get_default_deriver().create_cipher(algorithm, password, salt, options)


async def create_decipher(
    algorithm: str,
    password: PasswordInput,
    salt: SaltInput = None,
    options: OptionsInput = None,
) -> CipherStream:
    """Build a decryption stream with the default deriver."""
    return await get_default_deriver().create_decipher(algorithm, password, salt, options)
