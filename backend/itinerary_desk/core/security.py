from __future__ import annotations

from typing import Any

import jwt

from itinerary_desk.core.errors import AuthenticationError


def decode_access_token(token: str, *, secret: str, audience: str) -> dict[str, Any]:
    """Verify an access token issued by the hosted auth provider.

    Raises AuthenticationError when the token is missing, expired, signed with
    another key or issued for another audience.
    """
    if not secret:
        raise AuthenticationError("Authentication is not configured.")
    try:
        payload = jwt.decode(token, secret, algorithms=["HS256"], audience=audience)
    except jwt.ExpiredSignatureError as exc:
        raise AuthenticationError("Session expired. Please sign in again.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError("Invalid authentication token.") from exc

    if not payload.get("sub"):
        raise AuthenticationError("Invalid token payload.")
    return payload
