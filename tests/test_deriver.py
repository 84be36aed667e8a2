"""Tests for deriver module."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

import cipherinit
from cipherinit import (
    Base64Salt,
    CipherInitDeriver,
    DerivationOptions,
    DeriverConfig,
    ExplicitSalt,
    NoSalt,
    create_cipher,
    create_decipher,
    derive_init,
    derive_init_sync,
    get_default_deriver,
    set_default_deriver,
)
from cipherinit.crypto.utils import from_base64, to_base64
from cipherinit.errors import (
    DecryptionError,
    InvalidOptionsError,
    InvalidSaltError,
    RandomnessError,
    UnsupportedAlgorithmError,
    UnsupportedDigestError,
)

PASSWORD = "It's a kind of magic"
CLEAR_TEXT = "Hello world!"


@pytest.fixture(autouse=True)
def reset_default_deriver() -> Iterator[None]:
    set_default_deriver(None)
    yield
    set_default_deriver(None)


def aes_cbc_encrypt(key: bytes, iv: bytes, text: str) -> bytes:
    padder = padding.PKCS7(128).padder()
    padded = padder.update(text.encode("utf-8")) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def aes_cbc_decrypt(key: bytes, iv: bytes, ciphertext: bytes) -> str:
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = padding.PKCS7(128).unpadder()
    return (unpadder.update(padded) + unpadder.finalize()).decode("utf-8")


class TestDeriveInit:
    """Tests for derive_init."""

    @pytest.mark.asyncio
    async def test_creates_cipher_initialization_data(self) -> None:
        """Test default key, IV and generated salt sizes."""
        init = await derive_init(PASSWORD)
        assert isinstance(init.key, bytes)
        assert isinstance(init.iv, bytes)
        assert isinstance(init.salt, str)
        assert len(init.key.hex()) == 64
        assert len(init.iv.hex()) == 32
        assert len(init.salt) == 44  # 32 bytes in base64
        assert len(from_base64(init.salt)) == 32

    @pytest.mark.asyncio
    async def test_deterministic_with_returned_salt(self) -> None:
        """Test that re-deriving with the returned salt reproduces key and IV."""
        first = await derive_init(PASSWORD)
        second = await derive_init(PASSWORD, first.salt)
        assert second.key == first.key
        assert second.iv == first.iv
        assert second.salt is None

    @pytest.mark.asyncio
    async def test_matches_pbkdf2_block_split(self) -> None:
        """Test that key and IV are the two halves of one PBKDF2 block."""
        salt = b"0123456789abcdef"
        init = await derive_init(PASSWORD, salt)
        block = hashlib.pbkdf2_hmac("sha256", PASSWORD.encode("utf-8"), salt, 10000, dklen=48)
        assert init.key == block[:32]
        assert init.iv == block[32:]

    @pytest.mark.asyncio
    async def test_bytes_and_base64_salt_agree(self) -> None:
        """Test that raw and base64 forms of a salt derive the same material."""
        salt = b"\x00\x01\x02salty"
        from_bytes = await derive_init(PASSWORD, salt)
        from_text = await derive_init(PASSWORD, to_base64(salt))
        from_variant = await derive_init(PASSWORD, Base64Salt(to_base64(salt)))
        assert from_bytes == from_text == from_variant

    @pytest.mark.asyncio
    async def test_supplied_salt_not_echoed(self) -> None:
        """Test that a caller-supplied salt is not returned."""
        init = await derive_init(PASSWORD, ExplicitSalt(b"mine"))
        assert init.salt is None

    @pytest.mark.asyncio
    async def test_generated_salts_differ(self) -> None:
        """Test that two calls without a salt use different salts and keys."""
        a = await derive_init(PASSWORD)
        b = await derive_init(PASSWORD)
        assert a.salt != b.salt
        assert a.key != b.key

    @pytest.mark.asyncio
    async def test_generated_salt_length_follows_key_length(self) -> None:
        """Test that generated salt entropy matches the key length."""
        init = await derive_init(PASSWORD, NoSalt(), {"key_length": 24})
        assert init.salt_bytes is not None
        assert len(init.salt_bytes) == 24

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options",
        [
            {"key_length": 16, "iv_length": 16},
            {"key_length": 24, "iv_length": 12, "digest": "sha512"},
            {"key_length": 32, "iv_length": 0},
            {"keyLength": 64, "ivLength": 8, "iterationCount": 1},
        ],
    )
    async def test_length_contract(self, options: dict) -> None:
        """Test that key and IV lengths follow the options."""
        resolved = DerivationOptions().merge(options)
        init = await derive_init(PASSWORD, b"salt", options)
        assert len(init.key) == resolved.key_length
        assert len(init.iv) == resolved.iv_length

    @pytest.mark.asyncio
    async def test_options_change_output(self) -> None:
        """Test that digest and iteration count affect the result."""
        base = await derive_init(PASSWORD, b"salt")
        other_digest = await derive_init(PASSWORD, b"salt", {"digest": "sha512"})
        other_count = await derive_init(PASSWORD, b"salt", {"iteration_count": 10001})
        assert base.key != other_digest.key
        assert base.key != other_count.key

    @pytest.mark.asyncio
    async def test_empty_password_equals_none(self) -> None:
        """Test that absent and empty passwords derive the same material."""
        a = await derive_init(None, b"salt")
        b = await derive_init("", b"salt")
        assert a == b

    @pytest.mark.asyncio
    async def test_empty_salt_is_used(self) -> None:
        """Test that an empty supplied salt is used, not replaced."""
        init = await derive_init(PASSWORD, b"", {"iteration_count": 1})
        block = hashlib.pbkdf2_hmac("sha256", PASSWORD.encode("utf-8"), b"", 1, dklen=48)
        assert init.key + init.iv == block
        assert init.salt is None

    def test_sync_variant(self) -> None:
        """Test that the blocking variant matches PBKDF2 directly."""
        init = derive_init_sync(PASSWORD, b"salt", {"iteration_count": 1})
        block = hashlib.pbkdf2_hmac("sha256", PASSWORD.encode("utf-8"), b"salt", 1, dklen=48)
        assert init.key + init.iv == block


class TestDeriveInitErrors:
    """Tests for derive_init failure propagation."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options",
        [{"iteration_count": 0}, {"key_length": 0}, {"iv_length": -1}, {"bogus": 1}],
    )
    async def test_invalid_options(self, options: dict) -> None:
        """Test that invalid options fail without deriving."""
        with patch("cipherinit.deriver.pbkdf2") as mock_pbkdf2:
            with pytest.raises(InvalidOptionsError):
                await derive_init(PASSWORD, b"salt", options)
        mock_pbkdf2.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsupported_digest(self) -> None:
        """Test that an unknown digest fails the future."""
        with pytest.raises(UnsupportedDigestError):
            await derive_init(PASSWORD, b"salt", {"digest": "sha999"})

    @pytest.mark.asyncio
    async def test_randomness_failure(self) -> None:
        """Test that RNG failure fails before any derivation."""
        with (
            patch("cipherinit.deriver.random_bytes", side_effect=RandomnessError("rng down")),
            patch("cipherinit.deriver.pbkdf2") as mock_pbkdf2,
        ):
            with pytest.raises(RandomnessError, match="rng down"):
                await derive_init(PASSWORD)
        mock_pbkdf2.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_base64_salt(self) -> None:
        """Test that malformed text salts raise InvalidSaltError."""
        with pytest.raises(InvalidSaltError, match="not valid base64"):
            await derive_init(PASSWORD, "%%%not-base64%%%")

    @pytest.mark.asyncio
    async def test_salt_of_wrong_type(self) -> None:
        """Test that options passed in the salt slot are rejected."""
        with pytest.raises(TypeError, match="salt must be"):
            await derive_init(PASSWORD, {"key_length": 16})  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that derivation failures are logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger="cipherinit"):
            with pytest.raises(UnsupportedDigestError):
                await derive_init(PASSWORD, b"salt", {"digest": "nope"})
        assert any("derivation failed" in r.getMessage() for r in caplog.records)

    @pytest.mark.asyncio
    async def test_secrets_not_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that debug logs never contain the password or salt."""
        with caplog.at_level(logging.DEBUG, logger="cipherinit"):
            init = await derive_init(PASSWORD)
        text = caplog.text
        assert PASSWORD not in text
        assert init.salt is not None and init.salt not in text
        assert "digest=sha256" in text


class TestCreateCipher:
    """Tests for create_cipher."""

    @pytest.mark.asyncio
    async def test_key_and_iv_from_password_and_salt(self) -> None:
        """Test that the cipher uses key and IV derived from password and salt."""
        salt = b"\x10" * 16
        cipher = await create_cipher("aes-256-cbc", PASSWORD, salt)
        ciphertext = cipher.update(CLEAR_TEXT) + cipher.finalize()

        init = await derive_init(PASSWORD, salt)
        assert aes_cbc_decrypt(init.key, init.iv, ciphertext) == CLEAR_TEXT

    @pytest.mark.asyncio
    async def test_password_used_as_salt(self) -> None:
        """Test that the password doubles as salt when none is passed."""
        cipher = await create_cipher("aes-256-cbc", PASSWORD)
        ciphertext = cipher.update(CLEAR_TEXT) + cipher.finalize()

        init = await derive_init(PASSWORD, PASSWORD.encode("utf-8"))
        assert aes_cbc_decrypt(init.key, init.iv, ciphertext) == CLEAR_TEXT

    @pytest.mark.asyncio
    async def test_unknown_algorithm_fails_before_derivation(self) -> None:
        """Test that an unknown algorithm is rejected without deriving."""
        with patch("cipherinit.deriver.pbkdf2") as mock_pbkdf2:
            with pytest.raises(UnsupportedAlgorithmError):
                await create_cipher("aes-256-nope", PASSWORD)
        mock_pbkdf2.assert_not_called()

    @pytest.mark.asyncio
    async def test_key_length_must_fit_algorithm(self) -> None:
        """Test that derived key sizes are checked against the algorithm."""
        with pytest.raises(InvalidOptionsError, match="Invalid key length"):
            await create_cipher("aes-256-cbc", PASSWORD, b"salt", {"key_length": 16})

    @pytest.mark.asyncio
    async def test_options_for_other_algorithm(self) -> None:
        """Test matching options for AES-128-GCM with a 12-byte IV."""
        options = {"key_length": 16, "iv_length": 12}
        cipher = await create_cipher("aes-128-gcm", PASSWORD, b"salt", options)
        ciphertext = cipher.update(CLEAR_TEXT) + cipher.finalize()

        decipher = await create_decipher("aes-128-gcm", PASSWORD, b"salt", options)
        decipher.set_auth_tag(cipher.tag)
        assert (decipher.update(ciphertext) + decipher.finalize()).decode("utf-8") == CLEAR_TEXT


class TestCreateDecipher:
    """Tests for create_decipher."""

    @pytest.mark.asyncio
    async def test_key_and_iv_from_password_and_salt(self) -> None:
        """Test that the decipher uses key and IV derived from password and salt."""
        salt = b"\x20" * 16
        init = await derive_init(PASSWORD, salt)
        ciphertext = aes_cbc_encrypt(init.key, init.iv, CLEAR_TEXT)

        decipher = await create_decipher("aes-256-cbc", PASSWORD, salt)
        text = decipher.update(ciphertext) + decipher.finalize()
        assert text.decode("utf-8") == CLEAR_TEXT

    @pytest.mark.asyncio
    async def test_password_used_as_salt(self) -> None:
        """Test that the password doubles as salt when none is passed."""
        init = await derive_init(PASSWORD, PASSWORD.encode("utf-8"))
        ciphertext = aes_cbc_encrypt(init.key, init.iv, CLEAR_TEXT)

        decipher = await create_decipher("aes-256-cbc", PASSWORD)
        text = decipher.update(ciphertext) + decipher.finalize()
        assert text.decode("utf-8") == CLEAR_TEXT

    @pytest.mark.asyncio
    async def test_round_trip_with_base64_salt(self) -> None:
        """Test a round trip where the salt is stored as base64 text."""
        init = await derive_init(PASSWORD)
        assert init.salt is not None

        cipher = await create_cipher("aes-256-cbc", PASSWORD, init.salt)
        ciphertext = cipher.update(CLEAR_TEXT) + cipher.finalize()
        decipher = await create_decipher("aes-256-cbc", PASSWORD, init.salt)
        assert (decipher.update(ciphertext) + decipher.finalize()).decode("utf-8") == CLEAR_TEXT

    @pytest.mark.asyncio
    async def test_wrong_password_does_not_recover_text(self) -> None:
        """Test that a different password does not decrypt the text."""
        cipher = await create_cipher("aes-256-cbc", PASSWORD, b"salt")
        ciphertext = cipher.update(CLEAR_TEXT) + cipher.finalize()

        decipher = await create_decipher("aes-256-cbc", "wrong password", b"salt")
        try:
            recovered = decipher.update(ciphertext) + decipher.finalize()
        except DecryptionError:
            return
        assert recovered != CLEAR_TEXT.encode("utf-8")


class TestCipherInitDeriver:
    """Tests for configured derivers and concurrency."""

    @pytest.mark.asyncio
    async def test_legacy_config_forces_sha1(self) -> None:
        """Test that the legacy configuration derives with SHA-1."""
        deriver = CipherInitDeriver(DeriverConfig.legacy())
        init = await deriver.derive_init(
            "password", b"salt", {"key_length": 20, "iv_length": 0, "iteration_count": 2, "digest": "sha256"}
        )
        # RFC 6070, c=2
        assert init.key.hex() == "ea6c014dc72d6f8ccd1ed92ace1d41f0d8de8957"
        assert init.iv == b""

    @pytest.mark.asyncio
    async def test_custom_defaults(self) -> None:
        """Test that a deriver merges options onto its own defaults."""
        config = DeriverConfig(default_options=DerivationOptions(iteration_count=1, iv_length=12))
        deriver = CipherInitDeriver(config)
        init = await deriver.derive_init(PASSWORD, b"salt")
        block = hashlib.pbkdf2_hmac("sha256", PASSWORD.encode("utf-8"), b"salt", 1, dklen=44)
        assert init.key == block[:32]
        assert init.iv == block[32:]
        assert deriver.config is config

    @pytest.mark.asyncio
    async def test_concurrent_derivations_with_executor(self) -> None:
        """Test independent concurrent derivations on a dedicated pool."""
        with ThreadPoolExecutor(max_workers=4) as pool:
            deriver = CipherInitDeriver(executor=pool)
            results = await asyncio.gather(*(deriver.derive_init(PASSWORD, b"salt") for _ in range(6)))
            salts = await asyncio.gather(*(deriver.derive_init(PASSWORD) for _ in range(6)))
        assert len({(r.key, r.iv) for r in results}) == 1
        assert len({r.salt for r in salts}) == 6

    @pytest.mark.asyncio
    async def test_timeout_is_caller_side(self) -> None:
        """Test that callers can bound a derivation with asyncio.wait_for."""
        init = await asyncio.wait_for(derive_init(PASSWORD, b"salt", {"iteration_count": 1}), timeout=30)
        assert len(init.key) == 32

    def test_default_deriver_is_shared(self) -> None:
        """Test that the default deriver is created once and replaceable."""
        first = get_default_deriver()
        assert get_default_deriver() is first

        custom = CipherInitDeriver(DeriverConfig.legacy())
        set_default_deriver(custom)
        assert get_default_deriver() is custom
        assert cipherinit.get_default_deriver() is custom

    @pytest.mark.asyncio
    async def test_module_functions_use_default_deriver(self) -> None:
        """Test that module-level functions honor the configured default."""
        set_default_deriver(CipherInitDeriver(DeriverConfig.legacy()))
        init = await derive_init("password", b"salt", {"key_length": 20, "iv_length": 0, "iteration_count": 2})
        assert init.key.hex() == "ea6c014dc72d6f8ccd1ed92ace1d41f0d8de8957"
