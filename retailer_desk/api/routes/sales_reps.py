from typing import Optional

from fastapi import APIRouter, Depends, Request

from retailer_desk.api.deps import get_registry, get_sales_rep_service, lenient_int
from retailer_desk.core.audit import log_audit
from retailer_desk.core.deps import CallerIdentity, require_admin
from retailer_desk.core.exceptions import NotFoundError
from retailer_desk.schemas.common import ApiResponse, PaginatedResponse
from retailer_desk.schemas.sales_rep import SalesRepCreate, SalesRepOut, SalesRepUpdate
from retailer_desk.services.assignments import AssignmentRegistry
from retailer_desk.services.sales_reps import SalesRepService

router = APIRouter(prefix="/admin/sales-reps", tags=["sales-reps"])


@router.get("", response_model=PaginatedResponse[SalesRepOut])
async def list_sales_reps(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    user: CallerIdentity = Depends(require_admin),
    service: SalesRepService = Depends(get_sales_rep_service),
):
    result = await service.list_all(limit=lenient_int(limit), page=lenient_int(page))
    return PaginatedResponse(data=result["items"], meta=result["meta"])


@router.post("", response_model=ApiResponse[SalesRepOut], status_code=201)
async def create_sales_rep(
    payload: SalesRepCreate,
    request: Request,
    user: CallerIdentity = Depends(require_admin),
    service: SalesRepService = Depends(get_sales_rep_service),
):
    created = await service.create(payload)
    log_audit(
        user.id,
        "sales_rep",
        str(created["id"]),
        "CREATE",
        details=payload.model_dump(mode="json"),
        remote_addr=(request.client.host if request.client else None),
    )
    return ApiResponse(data=created, message="Sales rep created successfully")


@router.get("/{sales_rep_id}", response_model=ApiResponse[SalesRepOut])
async def get_sales_rep(
    sales_rep_id: int,
    user: CallerIdentity = Depends(require_admin),
    service: SalesRepService = Depends(get_sales_rep_service),
):
    found = await service.get(sales_rep_id)
    if found is None:
        raise NotFoundError("Sales rep not found")
    return ApiResponse(data=found)


@router.put("/{sales_rep_id}", response_model=ApiResponse[SalesRepOut])
async def update_sales_rep(
    sales_rep_id: int,
    payload: SalesRepUpdate,
    request: Request,
    user: CallerIdentity = Depends(require_admin),
    service: SalesRepService = Depends(get_sales_rep_service),
):
    updated = await service.update(sales_rep_id, payload)
    log_audit(
        user.id,
        "sales_rep",
        str(sales_rep_id),
        "UPDATE",
        details=payload.model_dump(mode="json", exclude_unset=True),
        remote_addr=(request.client.host if request.client else None),
    )
    return ApiResponse(data=updated, message="Sales rep updated successfully")


@router.delete("/{sales_rep_id}", response_model=ApiResponse[None])
async def delete_sales_rep(
    sales_rep_id: int,
    request: Request,
    user: CallerIdentity = Depends(require_admin),
    service: SalesRepService = Depends(get_sales_rep_service),
):
    await service.delete(sales_rep_id)
    log_audit(
        user.id,
        "sales_rep",
        str(sales_rep_id),
        "DELETE",
        remote_addr=(request.client.host if request.client else None),
    )
    return ApiResponse(message="Sales rep deleted successfully")


@router.get("/{sales_rep_id}/retailers/count", response_model=ApiResponse[dict])
async def count_assigned_retailers(
    sales_rep_id: int,
    user: CallerIdentity = Depends(require_admin),
    service: SalesRepService = Depends(get_sales_rep_service),
    registry: AssignmentRegistry = Depends(get_registry),
):
    if await service.get(sales_rep_id) is None:
        raise NotFoundError("Sales rep not found")
    return ApiResponse(data={"count": await registry.count_for(sales_rep_id)})
