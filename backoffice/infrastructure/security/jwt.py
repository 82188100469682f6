"""Bearer JWT handling. The sub claim is the caller's user id."""

from datetime import timedelta
from typing import Any, cast

from jose import JWTError, jwt

from backoffice.core.config import get_settings
from backoffice.shared.utils.datetime import utc_now


def create_access_token(subject: str, expires_delta: timedelta | None = None, **claims: Any) -> str:
    """Return a signed token for subject (user id) with extra claims.

    Tokens are issued by the identity provider in production; this is
    used by tooling and tests.
    """
    settings = get_settings()
    ttl = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {**claims, "sub": subject, "exp": utc_now() + ttl}
    return cast(
        str,
        jwt.encode(
            payload,
            settings.secret_key.get_secret_value(),
            algorithm=settings.algorithm,
        ),
    )


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT.

    Raises:
        ValueError: If the token is invalid, expired, or lacks exp/sub.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.secret_key.get_secret_value(),
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    if not payload.get("sub"):
        raise ValueError("Token missing required claim: sub")
    return payload
