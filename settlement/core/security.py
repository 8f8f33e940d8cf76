"""Bearer-token verification for identity-provider JWTs, role guards and the cron secret."""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from settlement.core.config import SecuritySettings
from settlement.core.container import ApplicationContainer
from settlement.interfaces.http.deps import get_container
from settlement.modules.common.enums import BuyerRole

security = HTTPBearer(auto_error=False)


@dataclass(slots=True, frozen=True)
class Principal:
    user_id: str
    role: BuyerRole
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role is BuyerRole.ADMIN


def create_access_token(user_id: str, role: BuyerRole, settings: SecuritySettings, email: str | None = None) -> str:
    """Mint a token the way the identity provider does; used by tooling and tests."""
    payload = {"sub": user_id, "role": role.value}
    if email:
        payload["email"] = email
    if settings.audience:
        payload["aud"] = settings.audience
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: SecuritySettings) -> Principal:
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.audience,
            options={"verify_aud": settings.audience is not None},
        )
    except JWTError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials") from exc

    user_id = payload.get("sub")
    raw_role = payload.get("role") or BuyerRole.USER.value
    try:
        role = BuyerRole(str(raw_role).lower())
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown role claim") from exc
    if not user_id or role is BuyerRole.GUEST:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials")
    return Principal(user_id=str(user_id), role=role, email=payload.get("email"))


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    container: ApplicationContainer = Depends(get_container),
) -> Optional[Principal]:
    """Guests may check out; a present but invalid token is still rejected."""
    if credentials is None:
        return None
    return decode_access_token(credentials.credentials, container.settings.security)


async def get_current_principal(principal: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


async def get_current_reseller(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.role.is_reseller:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Reseller account required")
    return principal


async def get_current_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return principal


async def require_cron_secret(
    x_cron_secret: Optional[str] = Header(default=None),
    container: ApplicationContainer = Depends(get_container),
) -> None:
    expected = container.settings.security.cron_secret
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid cron secret")


__all__ = [
    "Principal",
    "create_access_token",
    "decode_access_token",
    "get_optional_principal",
    "get_current_principal",
    "get_current_reseller",
    "get_current_admin",
    "require_cron_secret",
]
