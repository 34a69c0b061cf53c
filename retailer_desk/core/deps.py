from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from retailer_desk.core.db import get_session
from retailer_desk.core.exceptions import PermissionDeniedError
from retailer_desk.core.logging import user_id_ctx_var
from retailer_desk.core.security import decode_access_token
from retailer_desk.models.sales_rep import SalesRep, UserRole


@dataclass(frozen=True)
class CallerIdentity:
    """The resolved caller of a request."""

    id: int
    username: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


async def get_current_user(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> CallerIdentity:
    auth = request.headers.get("Authorization")
    if not auth or not auth.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )
    token = auth.split(" ", 1)[1]
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type"
        )

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token"
        )
    user = await session.scalar(select(SalesRep).where(SalesRep.id == user_id))
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found"
        )
    request.state.user_id = user.id
    user_id_ctx_var.set(str(user.id))
    return CallerIdentity(id=user.id, username=user.username, role=user.role)


async def require_admin(user: CallerIdentity = Depends(get_current_user)) -> CallerIdentity:
    if not user.is_admin:
        raise PermissionDeniedError("Administrator role required")
    return user
