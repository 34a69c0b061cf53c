"""Retailer endpoints for signed-in representatives."""

from fastapi import APIRouter, Depends, Request

from retailer_desk.api.deps import (
    RetailerQuery,
    get_directory,
    get_ownership_gate,
    get_scoped_query,
    retailer_query,
)
from retailer_desk.core.audit import log_audit
from retailer_desk.core.deps import CallerIdentity, get_current_user
from retailer_desk.core.exceptions import NotFoundError
from retailer_desk.schemas.common import ApiResponse, PaginatedResponse
from retailer_desk.schemas.retailer import RetailerOut, RetailerPatch
from retailer_desk.services.ownership import OwnershipGate
from retailer_desk.services.retailers import RetailerDirectory, ScopedRetailerQuery

router = APIRouter(prefix="/retailers", tags=["retailers"])


@router.get("", response_model=PaginatedResponse[RetailerOut])
async def list_my_retailers(
    query: RetailerQuery = Depends(retailer_query),
    user: CallerIdentity = Depends(get_current_user),
    scoped: ScopedRetailerQuery = Depends(get_scoped_query),
):
    result = await scoped.list_for_rep(user.id, query.filters, query.page, query.limit)
    return PaginatedResponse(data=result["items"], meta=result["meta"])


@router.get("/{uid}", response_model=ApiResponse[RetailerOut])
async def get_retailer(
    uid: str,
    user: CallerIdentity = Depends(get_current_user),
    directory: RetailerDirectory = Depends(get_directory),
    gate: OwnershipGate = Depends(get_ownership_gate),
):
    retailer = await directory.find_by_uid(uid)
    if retailer is None:
        raise NotFoundError("Retailer not found")
    await gate.ensure_can_modify(user, retailer["id"])
    return ApiResponse(data=retailer)


@router.patch("/{uid}", response_model=ApiResponse[RetailerOut])
async def patch_retailer(
    uid: str,
    payload: RetailerPatch,
    request: Request,
    user: CallerIdentity = Depends(get_current_user),
    gate: OwnershipGate = Depends(get_ownership_gate),
):
    retailer = await gate.patch_by_uid(user, uid, payload)
    log_audit(
        user.id,
        "retailer",
        uid,
        "PATCH",
        details=payload.model_dump(exclude_unset=True),
        remote_addr=(request.client.host if request.client else None),
    )
    return ApiResponse(data=retailer, message="Retailer updated successfully")
