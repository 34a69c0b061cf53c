"""Reference data routers: regions, areas, territories and distributors.

Every signed-in user may read; only administrators may write.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from retailer_desk.core.audit import log_audit
from retailer_desk.core.cache import CacheStore, get_cache_store
from retailer_desk.core.db import get_session
from retailer_desk.core.deps import CallerIdentity, get_current_user, require_admin
from retailer_desk.core.exceptions import NotFoundError
from retailer_desk.schemas.common import ApiResponse
from retailer_desk.schemas.reference import (
    AreaCreate,
    AreaUpdate,
    DistributorCreate,
    DistributorUpdate,
    RegionCreate,
    RegionUpdate,
    TerritoryCreate,
    TerritoryUpdate,
)
from retailer_desk.services.reference import (
    AREAS,
    DISTRIBUTORS,
    REGIONS,
    TERRITORIES,
    ReferenceDataService,
    ReferenceKind,
)


def build_reference_router(
    kind: ReferenceKind,
    create_schema: type[BaseModel],
    update_schema: type[BaseModel],
    parent_path: Optional[str] = None,
) -> APIRouter:
    router = APIRouter(prefix=f"/{kind.family}", tags=["reference"])
    entity = kind.label.lower()

    def get_service(
        session: AsyncSession = Depends(get_session),
        cache: CacheStore = Depends(get_cache_store),
    ) -> ReferenceDataService:
        return ReferenceDataService(kind, session, cache)

    @router.get("", response_model=ApiResponse[list[kind.schema]])
    async def list_items(
        user: CallerIdentity = Depends(get_current_user),
        service: ReferenceDataService = Depends(get_service),
    ):
        return ApiResponse(data=await service.list_all())

    if parent_path:

        @router.get(f"/{parent_path}/{{parent_id}}", response_model=ApiResponse[list[kind.schema]])
        async def list_by_parent(
            parent_id: int,
            user: CallerIdentity = Depends(get_current_user),
            service: ReferenceDataService = Depends(get_service),
        ):
            return ApiResponse(data=await service.list_by_parent(parent_id))

    @router.get("/{ref_id}", response_model=ApiResponse[kind.schema])
    async def get_item(
        ref_id: int,
        user: CallerIdentity = Depends(get_current_user),
        service: ReferenceDataService = Depends(get_service),
    ):
        item = await service.get(ref_id)
        if item is None:
            raise NotFoundError(f"{kind.label} not found")
        return ApiResponse(data=item)

    @router.post("", response_model=ApiResponse[kind.schema], status_code=201)
    async def create_item(
        payload: create_schema,  # type: ignore[valid-type]
        request: Request,
        user: CallerIdentity = Depends(require_admin),
        service: ReferenceDataService = Depends(get_service),
    ):
        item: dict[str, Any] = await service.create(payload)
        log_audit(
            user.id, entity, str(item["id"]), "CREATE",
            details=payload.model_dump(),
            remote_addr=(request.client.host if request.client else None),
        )
        return ApiResponse(data=item, message=f"{kind.label} created successfully")

    @router.put("/{ref_id}", response_model=ApiResponse[kind.schema])
    async def update_item(
        ref_id: int,
        payload: update_schema,  # type: ignore[valid-type]
        request: Request,
        user: CallerIdentity = Depends(require_admin),
        service: ReferenceDataService = Depends(get_service),
    ):
        item = await service.update(ref_id, payload)
        log_audit(
            user.id, entity, str(ref_id), "UPDATE",
            details=payload.model_dump(exclude_unset=True),
            remote_addr=(request.client.host if request.client else None),
        )
        return ApiResponse(data=item, message=f"{kind.label} updated successfully")

    @router.delete("/{ref_id}", response_model=ApiResponse[None])
    async def delete_item(
        ref_id: int,
        request: Request,
        user: CallerIdentity = Depends(require_admin),
        service: ReferenceDataService = Depends(get_service),
    ):
        await service.delete(ref_id)
        log_audit(
            user.id, entity, str(ref_id), "DELETE",
            remote_addr=(request.client.host if request.client else None),
        )
        return ApiResponse(message=f"{kind.label} deleted successfully")

    return router


regions_router = build_reference_router(REGIONS, RegionCreate, RegionUpdate)
areas_router = build_reference_router(AREAS, AreaCreate, AreaUpdate, parent_path="region")
territories_router = build_reference_router(TERRITORIES, TerritoryCreate, TerritoryUpdate, parent_path="area")
distributors_router = build_reference_router(DISTRIBUTORS, DistributorCreate, DistributorUpdate)
