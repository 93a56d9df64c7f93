"""Per-ceremony challenge generation."""

import secrets

from passkeys.constants import CHALLENGE_LENGTH


def generate_challenge() -> bytes:
    """
    Generate a fresh challenge for one ceremony.

    Drawn from the operating system CSPRNG. Errors from the randomness
    source propagate; there is no fallback.

    Returns:
        CHALLENGE_LENGTH random bytes
    """
    return secrets.token_bytes(CHALLENGE_LENGTH)
