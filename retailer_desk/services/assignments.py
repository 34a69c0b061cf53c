"""Assignment registry: which retailers each sales representative owns."""

from __future__ import annotations

from typing import Any, Iterable

from loguru import logger
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from retailer_desk.core.cache import CacheStore
from retailer_desk.core.db import insert_ignore
from retailer_desk.core.db_retry import with_db_retry
from retailer_desk.core.exceptions import NotFoundError
from retailer_desk.models import Retailer, SalesRep, SalesRepRetailer
from retailer_desk.services.retailers import sales_rep_family


class AssignmentRegistry:
    """Idempotent bulk assignment of retailers to a representative.

    The composite primary key on ``sales_rep_retailers`` is what keeps pairs
    unique. Reading the existing pairs first only serves to report how many
    rows a call actually added; inserts still go through an insert-ignore so
    two concurrent calls for the same pair cannot fail or duplicate.
    """

    def __init__(self, session: AsyncSession, cache: CacheStore) -> None:
        self.session = session
        self.cache = cache

    async def _ensure_sales_rep(self, sales_rep_id: int) -> None:
        found = await self.session.scalar(select(SalesRep.id).where(SalesRep.id == sales_rep_id))
        if found is None:
            raise NotFoundError(f"Sales rep with id {sales_rep_id} not found")

    async def bulk_assign(self, sales_rep_id: int, retailer_ids: Iterable[int]) -> dict[str, Any]:
        await self._ensure_sales_rep(sales_rep_id)
        requested = list(dict.fromkeys(retailer_ids))

        async def apply() -> int:
            existing = set(
                await self.session.scalars(
                    select(SalesRepRetailer.retailer_id).where(
                        SalesRepRetailer.sales_rep_id == sales_rep_id,
                        SalesRepRetailer.retailer_id.in_(requested),
                    )
                )
            )
            new_ids = [rid for rid in requested if rid not in existing]
            if not new_ids:
                return 0

            known = set(await self.session.scalars(select(Retailer.id).where(Retailer.id.in_(new_ids))))
            missing = [rid for rid in new_ids if rid not in known]
            if missing:
                raise NotFoundError(f"Retailers not found: {', '.join(map(str, missing))}")

            result = await self.session.execute(
                insert_ignore(self.session, SalesRepRetailer.__table__),
                [{"sales_rep_id": sales_rep_id, "retailer_id": rid} for rid in new_ids],
            )
            await self.session.commit()
            if result.rowcount is not None and result.rowcount >= 0:
                return result.rowcount
            return len(new_ids)

        assigned = await with_db_retry(self.session, apply)
        if assigned == 0:
            return {
                "success": True,
                "assigned": 0,
                "message": "All retailers are already assigned to this sales rep",
            }

        await self.cache.invalidate_family(sales_rep_family(sales_rep_id))
        logger.bind(sales_rep_id=sales_rep_id, assigned=assigned).info("retailers_assigned")
        return {
            "success": True,
            "assigned": assigned,
            "message": f"Successfully assigned {assigned} retailers",
        }

    async def bulk_unassign(self, sales_rep_id: int, retailer_ids: Iterable[int]) -> dict[str, Any]:
        await self._ensure_sales_rep(sales_rep_id)
        requested = list(dict.fromkeys(retailer_ids))

        async def apply() -> int:
            result = await self.session.execute(
                delete(SalesRepRetailer).where(
                    SalesRepRetailer.sales_rep_id == sales_rep_id,
                    SalesRepRetailer.retailer_id.in_(requested),
                )
            )
            await self.session.commit()
            return max(result.rowcount or 0, 0)

        removed = await with_db_retry(self.session, apply)
        await self.cache.invalidate_family(sales_rep_family(sales_rep_id))
        logger.bind(sales_rep_id=sales_rep_id, removed=removed).info("retailers_unassigned")
        return {
            "success": True,
            "assigned": removed,
            "message": f"Successfully unassigned {removed} retailers",
        }

    async def exists(self, sales_rep_id: int, retailer_id: int) -> bool:
        found = await self.session.scalar(
            select(SalesRepRetailer.retailer_id).where(
                SalesRepRetailer.sales_rep_id == sales_rep_id,
                SalesRepRetailer.retailer_id == retailer_id,
            )
        )
        return found is not None

    async def count_for(self, sales_rep_id: int) -> int:
        return await self.session.scalar(
            select(func.count())
            .select_from(SalesRepRetailer)
            .where(SalesRepRetailer.sales_rep_id == sales_rep_id)
        )
