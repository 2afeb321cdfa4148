"""Anti-forgery state tokens for the OAuth redirect."""

import base64
import secrets

STATE_BYTES = 16


def generate_state(nbytes: int = STATE_BYTES) -> str:
    """Generate a single-use OAuth state token.

    Args:
        nbytes: Number of random bytes (at least 16).

    Returns:
        URL-safe base64 encoding of ``nbytes`` random bytes.
    """
    if nbytes < STATE_BYTES:
        raise ValueError(f"State tokens need at least {STATE_BYTES} bytes of entropy")
    return base64.urlsafe_b64encode(secrets.token_bytes(nbytes)).decode("ascii")
