from dataclasses import dataclass

from fastapi import Depends, Request
from jose import JWTError
from pydantic import ValidationError

from app.wms.core.error_catalog import AppError, ErrorCatalog
from app.wms.core.security import TokenData, decode_token, is_elevated, is_superadmin, oauth2_scheme


@dataclass(frozen=True)
class Actor:
    """Acting identity resolved by the authentication layer.

    The inbound services never authenticate anybody; they only read `user_id` for
    attribution and `is_elevated` for the locked-state guard.
    """

    user_id: str
    username: str
    org_id: str | None
    role: str
    is_elevated: bool
    trace_id: str | None = None


def get_current_token_data(token: str = Depends(oauth2_scheme)) -> TokenData:
    try:
        payload = decode_token(token)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_actor(request: Request, token_data: TokenData = Depends(get_current_token_data)) -> Actor:
    trace_id = getattr(request.state, "trace_id", "") or None
    request.state.org_id = str(token_data.org_id) if token_data.org_id else None
    request.state.user_id = str(token_data.sub)
    return Actor(
        user_id=str(token_data.sub),
        username=token_data.username,
        org_id=str(token_data.org_id) if token_data.org_id else None,
        role=token_data.role,
        is_elevated=is_elevated(token_data.role),
        trace_id=trace_id,
    )


def resolve_org_id(actor: Actor, org_id) -> str:
    org_id = str(org_id) if org_id else None
    if is_superadmin(actor.role):
        resolved = org_id or actor.org_id
        if not resolved:
            raise AppError(ErrorCatalog.ORG_SCOPE_REQUIRED)
        return resolved
    if not actor.org_id:
        raise AppError(ErrorCatalog.ORG_SCOPE_REQUIRED)
    if org_id and org_id != actor.org_id:
        raise AppError(ErrorCatalog.CROSS_ORG_ACCESS_DENIED)
    return actor.org_id


__all__ = ["Actor", "get_current_token_data", "get_actor", "resolve_org_id"]
