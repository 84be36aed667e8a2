"""cipherinit: password-based cipher initialization.

Derives a key, an initialization vector and (optionally) a fresh salt from a
password with PBKDF2, and builds ready-to-use encrypt/decrypt streams from
them.

Example:
    ```python
    import asyncio
    from cipherinit import create_cipher, create_decipher

    async def main():
        salt = b"stored-with-the-ciphertext"
        cipher = await create_cipher("aes-256-cbc", "It's a kind of magic", salt)
        ciphertext = cipher.update("Hello world!") + cipher.finalize()

        decipher = await create_decipher("aes-256-cbc", "It's a kind of magic", salt)
        clear_text = decipher.update(ciphertext) + decipher.finalize()
        print(clear_text.decode("utf-8"))

    asyncio.run(main())
    ```
"""

from .constants import (
    DEFAULT_DIGEST,
    DEFAULT_ITERATION_COUNT,
    DEFAULT_IV_LENGTH,
    DEFAULT_KEY_LENGTH,
    LEGACY_DIGEST,
)
from .crypto import CipherStream, create_cipher_primitive
from .deriver import (
    CipherInitDeriver,
    create_cipher,
    create_decipher,
    derive_init,
    derive_init_sync,
    get_default_deriver,
    set_default_deriver,
)
from .errors import (
    CipherInitError,
    CipherStateError,
    DecryptionError,
    InvalidOptionsError,
    InvalidSaltError,
    RandomnessError,
    UnsupportedAlgorithmError,
    UnsupportedDigestError,
)
from .types import (
    Base64Salt,
    DerivationOptions,
    DerivedMaterial,
    DeriverConfig,
    ExplicitSalt,
    NoSalt,
    as_salt,
)

__version__ = "0.1.0"

__all__ = [
    # Main API
    "CipherInitDeriver",
    "derive_init",
    "derive_init_sync",
    "create_cipher",
    "create_decipher",
    "get_default_deriver",
    "set_default_deriver",
    "CipherStream",
    "create_cipher_primitive",
    # Constants
    "DEFAULT_KEY_LENGTH",
    "DEFAULT_IV_LENGTH",
    "DEFAULT_DIGEST",
    "DEFAULT_ITERATION_COUNT",
    "LEGACY_DIGEST",
    # Configuration
    "DerivationOptions",
    "DeriverConfig",
    # Data types
    "DerivedMaterial",
    "NoSalt",
    "ExplicitSalt",
    "Base64Salt",
    "as_salt",
    # Errors
    "CipherInitError",
    "InvalidOptionsError",
    "UnsupportedDigestError",
    "UnsupportedAlgorithmError",
    "InvalidSaltError",
    "RandomnessError",
    "DecryptionError",
    "CipherStateError",
    # Version
    "__version__",
]
