from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from itinerary_desk.core.config import Settings
from itinerary_desk.core.context import get_app_settings
from itinerary_desk.core.db import get_db
from itinerary_desk.core.errors import AuthenticationError
from itinerary_desk.core.security import decode_access_token
from itinerary_desk.models import UserRole

STAFF_ROLES = frozenset({"admin", "coordinator"})


@dataclass(frozen=True)
class CurrentUser:
    id: str
    role: str
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise AuthenticationError("Authentication required.")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authentication required.")
    return token.strip()


def get_current_user(
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> CurrentUser:
    try:
        token = _bearer_token(authorization)
        payload = decode_access_token(
            token,
            secret=settings.auth_jwt_secret,
            audience=settings.auth_jwt_audience,
        )
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=exc.status_code,
            detail=exc.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    user_id = str(payload["sub"])
    role_row = db.get(UserRole, user_id)
    if role_row is None or role_row.role not in STAFF_ROLES:
        raise HTTPException(status_code=403, detail="Your account has no access to this area.")
    return CurrentUser(id=user_id, role=role_row.role, email=role_row.email or payload.get("email"))


def require_staff(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    return user


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required.")
    return user
