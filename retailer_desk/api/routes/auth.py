from fastapi import APIRouter, Depends, HTTPException, Request, status

from retailer_desk.api.deps import get_sales_rep_service
from retailer_desk.core.audit import log_audit
from retailer_desk.core.config import settings
from retailer_desk.core.logging import user_id_ctx_var
from retailer_desk.core.rate_limit import limiter
from retailer_desk.core.security import create_access_token, verify_password_async
from retailer_desk.schemas.auth import LoginIn, LoginOut, LoginUser
from retailer_desk.schemas.common import ApiResponse
from retailer_desk.services.sales_reps import SalesRepService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=ApiResponse[LoginOut])
@limiter.limit(settings.LOGIN_RATE)
async def login(
    payload: LoginIn,
    request: Request,
    service: SalesRepService = Depends(get_sales_rep_service),
):
    remote_addr = request.client.host if request.client else None
    user = await service.get_by_username(payload.username)
    if not user or not await verify_password_async(payload.password, user.password_hash):
        if user:
            log_audit(
                user.id,
                "auth",
                None,
                "LOGIN_FAILED",
                details={"reason": "invalid_credentials"},
                remote_addr=remote_addr,
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )

    request.state.user_id = user.id
    user_id_ctx_var.set(str(user.id))
    access_token = create_access_token({"sub": str(user.id), "role": user.role})
    log_audit(user.id, "auth", None, "LOGIN", remote_addr=remote_addr)
    return ApiResponse(
        data=LoginOut(
            access_token=access_token,
            user=LoginUser(id=user.id, username=user.username, name=user.name, role=user.role),
        ),
        message="Login successful",
    )
