"""Identity-provider token verification.

Tokens are issued by the external identity provider; this service only
verifies them with PyJWT and reads the subject and role claims.
"""

from typing import Any

import jwt

from ortoqbank.core.config import settings


class TokenError(Exception):
    """The bearer token is missing, malformed, expired or not trusted."""


def verify_identity_token(token: str) -> dict[str, Any]:
    """Verify a bearer token and return its claims."""
    if not settings.AUTH_JWT_KEY:
        raise TokenError("AUTH_JWT_KEY is not configured")

    options = {"require": ["sub", "exp"]}
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_KEY,
            algorithms=list(settings.AUTH_JWT_ALGORITHMS),
            audience=settings.AUTH_JWT_AUDIENCE,
            issuer=settings.AUTH_JWT_ISSUER,
            options=options if settings.AUTH_JWT_AUDIENCE else {**options, "verify_aud": False},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenError("Token has expired") from e
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}") from e

    if not isinstance(payload.get("sub"), str) or not payload["sub"]:
        raise TokenError("Token subject must be a non-empty string")
    return payload
