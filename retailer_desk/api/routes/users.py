from fastapi import APIRouter, Depends

from retailer_desk.api.deps import get_sales_rep_service
from retailer_desk.core.deps import CallerIdentity, get_current_user
from retailer_desk.core.exceptions import NotFoundError
from retailer_desk.schemas.common import ApiResponse
from retailer_desk.schemas.sales_rep import SalesRepOut
from retailer_desk.services.sales_reps import SalesRepService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=ApiResponse[SalesRepOut])
async def me(
    user: CallerIdentity = Depends(get_current_user),
    service: SalesRepService = Depends(get_sales_rep_service),
):
    profile = await service.get(user.id)
    if profile is None:
        raise NotFoundError("Sales rep not found")
    return ApiResponse(data=profile)
