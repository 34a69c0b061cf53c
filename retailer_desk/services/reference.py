"""Region / area / territory / distributor reference data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pydantic import BaseModel
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from retailer_desk.core.cache import CacheStore
from retailer_desk.core.config import settings
from retailer_desk.core.db_errors import raise_on_integrity_conflict
from retailer_desk.core.exceptions import ConflictError, NotFoundError
from retailer_desk.models import Area, Distributor, Region, Territory
from retailer_desk.schemas.reference import AreaOut, DistributorOut, RegionOut, TerritoryOut
from retailer_desk.services.retailers import RETAILER_FAMILY


@dataclass(frozen=True)
class ReferenceKind:
    family: str
    model: type
    schema: type[BaseModel]
    label: str
    parent_field: Optional[str] = None
    parent_model: Optional[type] = None
    unique_name: bool = False
    eager: tuple = ()
    # Families whose rows are removed by the database when a row of this kind is deleted.
    children: tuple[str, ...] = field(default_factory=tuple)

    @property
    def parent_key(self) -> Optional[str]:
        return self.parent_field[: -len("_id")] if self.parent_field else None


REGIONS = ReferenceKind("regions", Region, RegionOut, "Region", unique_name=True, children=("areas", "territories"))
AREAS = ReferenceKind(
    "areas", Area, AreaOut, "Area",
    parent_field="region_id", parent_model=Region, eager=(Area.region,), children=("territories",),
)
TERRITORIES = ReferenceKind("territories", Territory, TerritoryOut, "Territory", parent_field="area_id", parent_model=Area)
DISTRIBUTORS = ReferenceKind("distributors", Distributor, DistributorOut, "Distributor", unique_name=True)


class ReferenceDataService:
    """Cached CRUD for one reference-data kind."""

    def __init__(self, kind: ReferenceKind, session: AsyncSession, cache: CacheStore) -> None:
        self.kind = kind
        self.session = session
        self.cache = cache

    def _select(self):
        stmt = select(self.kind.model)
        if self.kind.eager:
            stmt = stmt.options(*(selectinload(rel) for rel in self.kind.eager))
        return stmt.execution_options(populate_existing=True)

    def _serialize(self, obj: Any) -> dict[str, Any]:
        return self.kind.schema.model_validate(obj).model_dump(mode="json")

    async def _invalidate(self, *, retailers: bool) -> None:
        for family in (self.kind.family, *self.kind.children):
            await self.cache.delete_by_pattern(f"{family}:*")
        if retailers:
            # Retailer payloads embed reference names.
            await self.cache.invalidate_family(RETAILER_FAMILY)

    async def _load(self, ref_id: int):
        return await self.session.scalar(self._select().where(self.kind.model.id == ref_id))

    async def _ensure_parent(self, parent_id: Optional[int]) -> None:
        if parent_id is None or self.kind.parent_model is None:
            return
        model = self.kind.parent_model
        if await self.session.scalar(select(model.id).where(model.id == parent_id)) is None:
            raise NotFoundError(f"{model.__name__} with id {parent_id} not found")

    async def _ensure_unique_name(self, name: Optional[str], exclude_id: Optional[int] = None) -> None:
        if not self.kind.unique_name or not name:
            return
        stmt = select(self.kind.model.id).where(self.kind.model.name == name)
        if exclude_id is not None:
            stmt = stmt.where(self.kind.model.id != exclude_id)
        if await self.session.scalar(stmt) is not None:
            raise ConflictError(f"{self.kind.label} name already exists")

    async def _commit(self, **kwargs: Any) -> None:
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise_on_integrity_conflict(exc, f"{self.kind.label} name already exists", **kwargs)

    async def list_all(self) -> list[dict[str, Any]]:
        async def load():
            rows = (await self.session.scalars(self._select().order_by(self.kind.model.name))).all()
            return [self._serialize(row) for row in rows]

        return await self.cache.get_or_load(f"{self.kind.family}:all", settings.CACHE_TTL_REFERENCE, load)

    async def list_by_parent(self, parent_id: int) -> list[dict[str, Any]]:
        if not self.kind.parent_field:
            raise NotFoundError(f"{self.kind.label} has no parent")
        column = getattr(self.kind.model, self.kind.parent_field)

        async def load():
            rows = (
                await self.session.scalars(
                    self._select().where(column == parent_id).order_by(self.kind.model.name)
                )
            ).all()
            return [self._serialize(row) for row in rows]

        key = f"{self.kind.family}:{self.kind.parent_key}:{parent_id}"
        return await self.cache.get_or_load(key, settings.CACHE_TTL_REFERENCE, load)

    async def get(self, ref_id: int) -> Optional[dict[str, Any]]:
        async def load():
            obj = await self._load(ref_id)
            return self._serialize(obj) if obj else None

        return await self.cache.get_or_load(f"{self.kind.family}:{ref_id}", settings.CACHE_TTL_REFERENCE, load)

    async def create(self, payload: BaseModel) -> dict[str, Any]:
        data = payload.model_dump()
        await self._ensure_unique_name(data.get("name"))
        if self.kind.parent_field:
            await self._ensure_parent(data.get(self.kind.parent_field))
        obj = self.kind.model(**data)
        self.session.add(obj)
        await self._commit()
        await self._invalidate(retailers=False)
        return self._serialize(await self._load(obj.id))

    async def update(self, ref_id: int, payload: BaseModel) -> dict[str, Any]:
        obj = await self._load(ref_id)
        if obj is None:
            raise NotFoundError(f"{self.kind.label} not found")
        data = payload.model_dump(exclude_unset=True, exclude_none=True)
        await self._ensure_unique_name(data.get("name"), exclude_id=ref_id)
        if self.kind.parent_field:
            await self._ensure_parent(data.get(self.kind.parent_field))
        for key, value in data.items():
            setattr(obj, key, value)
        await self._commit()
        await self._invalidate(retailers=True)
        return self._serialize(await self._load(ref_id))

    async def delete(self, ref_id: int) -> None:
        if await self._load(ref_id) is None:
            raise NotFoundError(f"{self.kind.label} not found")
        try:
            await self.session.execute(delete(self.kind.model).where(self.kind.model.id == ref_id))
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise_on_integrity_conflict(
                exc,
                f"{self.kind.label} is still in use",
                fk_detail=f"{self.kind.label} is still referenced by retailers",
            )
        await self._invalidate(retailers=True)
