"""Authentication: resolves the calling user and their storage mode.

Public interface:
    ``require_auth`` -- returns AuthContext or raises 401.

When ``settings.auth_enabled`` is False the user id is read from the
``X-User-Id`` header (default ``1``) so local development needs no tokens.
Either way the user row is created on first sight.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .token_factory import decode_token
from ..database import get_db
from ..exceptions import AuthenticationError
from ..repositories.user_repository import UserRepository
from ..services.storage_mode import StorageMode, resolve_storage_mode

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

DEV_USER_ID = 1


@dataclass(frozen=True)
class AuthContext:
    """Resolved identity available to every storage endpoint."""

    user_id: int
    is_premium: bool
    mode: StorageMode

    @property
    def mirrored(self) -> bool:
        return self.mode is StorageMode.MIRRORED


def _dev_user_id(raw: Optional[str]) -> int:
    if raw is None or raw.strip() == "":
        return DEV_USER_ID
    try:
        user_id = int(raw)
    except ValueError:
        raise AuthenticationError("X-User-Id must be a positive integer") from None
    if user_id < 1:
        raise AuthenticationError("X-User-Id must be a positive integer")
    return user_id


def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    x_user_id: Optional[str] = Header(default=None),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Identify the caller and decide which representation is authoritative."""
    if not settings.auth_enabled:
        user_id = _dev_user_id(x_user_id)
    else:
        if credentials is None:
            raise AuthenticationError("Missing authentication token")
        payload = decode_token(
            credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
        )
        if payload is None:
            raise AuthenticationError("Invalid or expired token")
        user_id = payload.user_id

    user = UserRepository(db).get_or_create(user_id)
    mode = resolve_storage_mode(user, settings.storage_mode_policy)
    return AuthContext(user_id=user.id, is_premium=bool(user.is_premium), mode=mode)
