"""ID generators (CUID2) for audit, usage and membership rows; invitation tokens."""

import secrets

from cuid2 import cuid_wrapper

cuid_generator = cuid_wrapper()


def generate_cuid() -> str:
    """Return a new collision-resistant id (CUID2).

    Raises:
        TypeError: If the generator returns a non-string.
    """
    result = cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid_generator, got {type(result).__name__}"
        )
    return result


def generate_invite_token() -> str:
    """Return an unguessable URL-safe invitation token."""
    return secrets.token_urlsafe(32)
