from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from uuid import UUID

from fastapi.security import OAuth2PasswordBearer
from jose import jwt
from pydantic import BaseModel

from app.wms.core.config import settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")

ELEVATED_ROLES = {"ADMIN", "SUPERADMIN"}
SUPERADMIN_ROLES = {"SUPERADMIN"}


class TokenData(BaseModel):
    sub: UUID
    org_id: UUID | None = None
    role: str
    username: str


def _normalize_role(role: str | None) -> str:
    return (role or "").upper()


def is_elevated(role: str | None) -> bool:
    return _normalize_role(role) in ELEVATED_ROLES


def is_superadmin(role: str | None) -> bool:
    return _normalize_role(role) in SUPERADMIN_ROLES


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def create_actor_token(
    *,
    user_id: str,
    org_id: str | None,
    role: str,
    username: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    return create_access_token(
        {"sub": user_id, "org_id": org_id, "role": role, "username": username},
        expires_delta=expires_delta,
    )
