"""Retailer directory and the representative-scoped query path.

Every cached view of a retailer lives under the ``retailers`` key family:

* ``retailers:uid:{uid}:{stamp}`` / ``retailers:id:{id}:{stamp}`` - single records
* ``retailers:search:{stamp}:...`` - administrator searches
* ``retailers:salesrep:{rep_id}:{stamp}:...`` - lists scoped to one representative

``stamp`` carries the generation of the families a view depends on. Any
directory write bumps the ``retailers`` generation and sweeps the whole
family; assignment changes do the same for one representative's family.
A reader that loaded data before an invalidation stores it under the old
stamp, which no later reader asks for.
"""

from __future__ import annotations

import math
from typing import Any, Optional

from loguru import logger
from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from retailer_desk.core.cache import CacheStore, generate_cache_key
from retailer_desk.core.config import settings
from retailer_desk.core.db import insert_ignore
from retailer_desk.core.db_errors import raise_on_integrity_conflict
from retailer_desk.core.exceptions import ConflictError, NotFoundError
from retailer_desk.models import Area, Distributor, Region, Retailer, SalesRepRetailer, Territory
from retailer_desk.schemas.retailer import RetailerCreate, RetailerFilters, RetailerOut

RETAILER_FAMILY = "retailers"

_REFERENCE_MODELS = {
    "region_id": (Region, "Region"),
    "area_id": (Area, "Area"),
    "distributor_id": (Distributor, "Distributor"),
    "territory_id": (Territory, "Territory"),
}


def sales_rep_family(sales_rep_id: int) -> str:
    return f"{RETAILER_FAMILY}:salesrep:{sales_rep_id}"


def serialize_retailer(obj: Retailer) -> dict[str, Any]:
    return RetailerOut.model_validate(obj).model_dump(mode="json")


def _with_references(stmt):
    return stmt.options(
        selectinload(Retailer.region),
        selectinload(Retailer.area),
        selectinload(Retailer.distributor),
        selectinload(Retailer.territory),
    )


def normalise_page(page: Optional[int], page_size: Optional[int]) -> tuple[int, int]:
    page = page if page and page > 0 else 1
    page_size = page_size if page_size and page_size > 0 else settings.DEFAULT_PAGE_SIZE
    return page, min(page_size, settings.MAX_PAGE_SIZE)


def filter_conditions(filters: RetailerFilters) -> list:
    conds = []
    search = (filters.search or "").strip()
    if search:
        # autoescape keeps % and _ in the search text literal
        conds.append(
            or_(
                Retailer.name.icontains(search, autoescape=True),
                Retailer.uid.icontains(search, autoescape=True),
                Retailer.phone.icontains(search, autoescape=True),
            )
        )
    if filters.region_id:
        conds.append(Retailer.region_id == filters.region_id)
    if filters.area_id:
        conds.append(Retailer.area_id == filters.area_id)
    if filters.distributor_id:
        conds.append(Retailer.distributor_id == filters.distributor_id)
    if filters.territory_id:
        conds.append(Retailer.territory_id == filters.territory_id)
    return conds


def _filter_key_params(filters: RetailerFilters) -> dict[str, Any]:
    params = filters.model_dump()
    search = (params.get("search") or "").strip()
    params["search"] = search or None
    return params


class RetailerDirectory:
    """Owns retailer records and their cached views."""

    def __init__(self, session: AsyncSession, cache: CacheStore) -> None:
        self.session = session
        self.cache = cache

    # ------------------------------------------------------------------
    # Cache helpers

    async def stamp(self, *families: str) -> Optional[str]:
        """Generation stamp for the given families, or None when the cache is unreachable."""

        parts = []
        for family in (RETAILER_FAMILY, *families):
            generation = await self.cache.get_generation(family)
            if generation is None:
                return None
            parts.append(str(generation))
        return "g" + ".".join(parts)

    async def cached(self, key: Optional[str], ttl: int, loader):
        if key is None:
            return await loader()
        return await self.cache.get_or_load(key, ttl, loader)

    async def invalidate(self) -> None:
        swept = await self.cache.invalidate_family(RETAILER_FAMILY)
        logger.bind(family=RETAILER_FAMILY, swept=swept).debug("cache_family_invalidated")

    # ------------------------------------------------------------------
    # Reads

    async def _load(self, *conds) -> Optional[Retailer]:
        stmt = _with_references(select(Retailer)).where(*conds)
        return await self.session.scalar(stmt.execution_options(populate_existing=True))

    async def get_model_by_uid(self, uid: str) -> Optional[Retailer]:
        return await self._load(Retailer.uid == uid)

    async def find_by_uid(self, uid: str) -> Optional[dict[str, Any]]:
        stamp = await self.stamp()
        key = f"{RETAILER_FAMILY}:uid:{uid}:{stamp}" if stamp else None

        async def load():
            obj = await self._load(Retailer.uid == uid)
            return serialize_retailer(obj) if obj else None

        return await self.cached(key, settings.CACHE_TTL_RECORD, load)

    async def find_by_id(self, retailer_id: int) -> Optional[dict[str, Any]]:
        stamp = await self.stamp()
        key = f"{RETAILER_FAMILY}:id:{retailer_id}:{stamp}" if stamp else None

        async def load():
            obj = await self._load(Retailer.id == retailer_id)
            return serialize_retailer(obj) if obj else None

        return await self.cached(key, settings.CACHE_TTL_RECORD, load)

    async def paginate(self, conds: list, page: int, page_size: int) -> dict[str, Any]:
        total = await self.session.scalar(select(func.count()).select_from(Retailer).where(*conds))
        stmt = (
            _with_references(select(Retailer))
            .where(*conds)
            .order_by(Retailer.name.asc(), Retailer.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        rows = (await self.session.scalars(stmt)).all()
        return {
            "items": [serialize_retailer(row) for row in rows],
            "meta": {
                "total": total,
                "page": page,
                "limit": page_size,
                "total_pages": math.ceil(total / page_size) if total else 0,
            },
        }

    async def search(
        self,
        filters: RetailerFilters,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> dict[str, Any]:
        """Unscoped, filtered, paginated search used by administrators."""

        page, page_size = normalise_page(page, page_size)
        stamp = await self.stamp()
        key = (
            generate_cache_key(
                f"{RETAILER_FAMILY}:search:{stamp}",
                page=page,
                limit=page_size,
                **_filter_key_params(filters),
            )
            if stamp
            else None
        )

        async def load():
            return await self.paginate(filter_conditions(filters), page, page_size)

        return await self.cached(key, settings.CACHE_TTL_LIST, load)

    # ------------------------------------------------------------------
    # Writes

    async def _ensure_references(self, fields: dict[str, Any]) -> None:
        for field, (model, label) in _REFERENCE_MODELS.items():
            ref_id = fields.get(field)
            if ref_id is None:
                continue
            found = await self.session.scalar(select(model.id).where(model.id == ref_id))
            if found is None:
                raise NotFoundError(f"{label} with id {ref_id} not found")

    async def _ensure_batch_references(self, rows: list[dict[str, Any]]) -> None:
        for field, (model, label) in _REFERENCE_MODELS.items():
            wanted = {row[field] for row in rows if row.get(field) is not None}
            if not wanted:
                continue
            found = set(await self.session.scalars(select(model.id).where(model.id.in_(wanted))))
            missing = sorted(wanted - found)
            if missing:
                raise NotFoundError(f"{label} with id {', '.join(map(str, missing))} not found")

    async def _commit(self, detail: str) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise_on_integrity_conflict(exc, detail)

    async def create(self, payload: RetailerCreate) -> dict[str, Any]:
        exists = await self.session.scalar(select(Retailer.id).where(Retailer.uid == payload.uid))
        if exists:
            raise ConflictError("Retailer UID already exists")
        data = payload.model_dump()
        await self._ensure_references(data)

        obj = Retailer(**data)
        self.session.add(obj)
        await self._commit("Retailer UID already exists")
        await self.invalidate()
        return serialize_retailer(await self._load(Retailer.id == obj.id))

    async def update(self, retailer_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        """Apply a partial update; only keys present in ``changes`` are written."""

        obj = await self._load(Retailer.id == retailer_id)
        if obj is None:
            raise NotFoundError("Retailer not found")
        if changes:
            await self._ensure_references(changes)
            for field, value in changes.items():
                setattr(obj, field, value)
            await self._commit("Retailer update conflicts with an existing record")
            await self.invalidate()
        return serialize_retailer(await self._load(Retailer.id == retailer_id))

    async def delete(self, retailer_id: int) -> None:
        obj = await self.session.scalar(select(Retailer).where(Retailer.id == retailer_id))
        if obj is None:
            raise NotFoundError("Retailer not found")
        # Assignment rows go first so no assignment ever points at a missing retailer.
        await self.session.execute(
            delete(SalesRepRetailer).where(SalesRepRetailer.retailer_id == retailer_id)
        )
        await self.session.delete(obj)
        await self._commit("Retailer is still referenced")
        await self.invalidate()

    async def bulk_create(self, records: list[RetailerCreate], skip_duplicates: bool = True) -> int:
        """Insert many retailers; returns the number actually inserted.

        With ``skip_duplicates`` (the default) records whose uid already exists,
        in the store or earlier in ``records``, are skipped silently.
        """

        if not records:
            return 0
        uids = [record.uid for record in records]
        seen = set(await self.session.scalars(select(Retailer.uid).where(Retailer.uid.in_(uids))))
        rows = []
        for record in records:
            if record.uid in seen:
                if not skip_duplicates:
                    raise ConflictError(f"Retailer UID {record.uid} already exists")
                continue
            seen.add(record.uid)
            rows.append(record.model_dump())
        if not rows:
            return 0

        # INSERT IGNORE on MySQL also drops foreign-key violations, so check first.
        await self._ensure_batch_references(rows)
        stmt = insert_ignore(self.session, Retailer.__table__) if skip_duplicates else Retailer.__table__.insert()
        result = await self.session.execute(stmt, rows)
        await self.session.commit()
        await self.invalidate()
        inserted = result.rowcount if result.rowcount is not None and result.rowcount >= 0 else len(rows)
        logger.bind(requested=len(records), inserted=inserted).info("retailers_bulk_created")
        return inserted


class ScopedRetailerQuery:
    """Retailer searches restricted to the outlets assigned to one representative."""

    def __init__(self, directory: RetailerDirectory) -> None:
        self.directory = directory

    async def list_for_rep(
        self,
        sales_rep_id: int,
        filters: RetailerFilters,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> dict[str, Any]:
        page, page_size = normalise_page(page, page_size)
        family = sales_rep_family(sales_rep_id)
        stamp = await self.directory.stamp(family)
        key = (
            generate_cache_key(
                f"{family}:{stamp}",
                page=page,
                limit=page_size,
                **_filter_key_params(filters),
            )
            if stamp
            else None
        )

        async def load():
            assigned = (
                select(SalesRepRetailer.retailer_id)
                .where(
                    SalesRepRetailer.retailer_id == Retailer.id,
                    SalesRepRetailer.sales_rep_id == sales_rep_id,
                )
                .exists()
            )
            conds = [assigned, *filter_conditions(filters)]
            return await self.directory.paginate(conds, page, page_size)

        return await self.directory.cached(key, settings.CACHE_TTL_LIST, load)
