"""Default derivation parameters for cipherinit."""

# PBKDF2 output split (bytes)
DEFAULT_KEY_LENGTH = 32
DEFAULT_IV_LENGTH = 16

# PBKDF2 settings
DEFAULT_DIGEST = "sha256"
DEFAULT_ITERATION_COUNT = 10_000

# Digest forced by the legacy byte-compatible configuration
LEGACY_DIGEST = "sha1"
