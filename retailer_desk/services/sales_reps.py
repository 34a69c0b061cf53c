from __future__ import annotations

import math
from typing import Any, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from retailer_desk.core.cache import CacheStore
from retailer_desk.core.config import settings
from retailer_desk.core.db_errors import raise_on_integrity_conflict
from retailer_desk.core.exceptions import ConflictError, NotFoundError
from retailer_desk.core.security import get_password_hash_async
from retailer_desk.models import SalesRep, SalesRepRetailer
from retailer_desk.schemas.sales_rep import SalesRepCreate, SalesRepOut, SalesRepUpdate
from retailer_desk.services.retailers import normalise_page, sales_rep_family

SALES_REP_FAMILY = "salesreps"


def serialize_sales_rep(obj: SalesRep) -> dict[str, Any]:
    return SalesRepOut.model_validate(obj).model_dump(mode="json")


class SalesRepService:
    """Administration of representative and administrator accounts."""

    def __init__(self, session: AsyncSession, cache: CacheStore) -> None:
        self.session = session
        self.cache = cache

    async def _invalidate(self, sales_rep_id: Optional[int] = None) -> None:
        await self.cache.delete_by_pattern(f"{SALES_REP_FAMILY}:*")
        if sales_rep_id is not None:
            await self.cache.invalidate_family(sales_rep_family(sales_rep_id))

    async def _get_model(self, sales_rep_id: int) -> SalesRep:
        obj = await self.session.scalar(select(SalesRep).where(SalesRep.id == sales_rep_id))
        if obj is None:
            raise NotFoundError("Sales rep not found")
        return obj

    async def create(self, payload: SalesRepCreate) -> dict[str, Any]:
        existing = await self.session.scalar(
            select(SalesRep.id).where(SalesRep.username == payload.username)
        )
        if existing:
            raise ConflictError("Username already exists")

        obj = SalesRep(
            username=payload.username,
            name=payload.name,
            phone=payload.phone,
            password_hash=await get_password_hash_async(payload.password),
            role=payload.role.value,
        )
        self.session.add(obj)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise_on_integrity_conflict(exc, "Username already exists")
        await self.session.refresh(obj)
        await self._invalidate()
        return serialize_sales_rep(obj)

    async def list_all(self, limit: Optional[int] = None, page: Optional[int] = None) -> dict[str, Any]:
        page, limit = normalise_page(page, limit)
        key = f"{SALES_REP_FAMILY}:all:limit:{limit}:page:{page}"

        async def load():
            total = await self.session.scalar(select(func.count()).select_from(SalesRep))
            rows = (
                await self.session.scalars(
                    select(SalesRep)
                    .order_by(SalesRep.name.asc(), SalesRep.id.asc())
                    .offset((page - 1) * limit)
                    .limit(limit)
                )
            ).all()
            return {
                "items": [serialize_sales_rep(row) for row in rows],
                "meta": {
                    "total": total,
                    "page": page,
                    "limit": limit,
                    "total_pages": math.ceil(total / limit) if total else 0,
                },
            }

        return await self.cache.get_or_load(key, settings.CACHE_TTL_REFERENCE, load)

    async def get(self, sales_rep_id: int) -> Optional[dict[str, Any]]:
        async def load():
            obj = await self.session.scalar(select(SalesRep).where(SalesRep.id == sales_rep_id))
            return serialize_sales_rep(obj) if obj else None

        return await self.cache.get_or_load(
            f"{SALES_REP_FAMILY}:{sales_rep_id}", settings.CACHE_TTL_REFERENCE, load
        )

    async def update(self, sales_rep_id: int, payload: SalesRepUpdate) -> dict[str, Any]:
        obj = await self._get_model(sales_rep_id)
        data = payload.model_dump(exclude_unset=True, exclude_none=True)
        password = data.pop("password", None)
        if password:
            obj.password_hash = await get_password_hash_async(password)
        if "role" in data:
            data["role"] = data["role"].value
        for field, value in data.items():
            setattr(obj, field, value)
        await self.session.commit()
        await self.session.refresh(obj)
        await self._invalidate()
        return serialize_sales_rep(obj)

    async def delete(self, sales_rep_id: int) -> None:
        obj = await self._get_model(sales_rep_id)
        await self.session.execute(
            delete(SalesRepRetailer).where(SalesRepRetailer.sales_rep_id == sales_rep_id)
        )
        await self.session.delete(obj)
        await self.session.commit()
        await self._invalidate(sales_rep_id)

    async def get_by_username(self, username: str) -> Optional[SalesRep]:
        return await self.session.scalar(select(SalesRep).where(SalesRep.username == username))
