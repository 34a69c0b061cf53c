"""Service factories and request parsing helpers for the routers."""

from typing import Optional

from fastapi import Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from retailer_desk.core.cache import CacheStore, get_cache_store
from retailer_desk.core.db import get_session
from retailer_desk.schemas.retailer import RetailerFilters
from retailer_desk.services.assignments import AssignmentRegistry
from retailer_desk.services.ownership import OwnershipGate
from retailer_desk.services.retailers import RetailerDirectory, ScopedRetailerQuery
from retailer_desk.services.sales_reps import SalesRepService


def get_directory(
    session: AsyncSession = Depends(get_session),
    cache: CacheStore = Depends(get_cache_store),
) -> RetailerDirectory:
    return RetailerDirectory(session, cache)


def get_registry(
    session: AsyncSession = Depends(get_session),
    cache: CacheStore = Depends(get_cache_store),
) -> AssignmentRegistry:
    return AssignmentRegistry(session, cache)


def get_scoped_query(directory: RetailerDirectory = Depends(get_directory)) -> ScopedRetailerQuery:
    return ScopedRetailerQuery(directory)


def get_ownership_gate(
    registry: AssignmentRegistry = Depends(get_registry),
    directory: RetailerDirectory = Depends(get_directory),
) -> OwnershipGate:
    return OwnershipGate(registry, directory)


def get_sales_rep_service(
    session: AsyncSession = Depends(get_session),
    cache: CacheStore = Depends(get_cache_store),
) -> SalesRepService:
    return SalesRepService(session, cache)


def lenient_int(value: Optional[str]) -> Optional[int]:
    """Parse a positive integer query value; anything else means "not given"."""

    if value is None:
        return None
    try:
        number = int(value.strip())
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


class RetailerQuery(BaseModel):
    filters: RetailerFilters
    page: Optional[int] = None
    limit: Optional[int] = None


def retailer_query(
    search: Optional[str] = None,
    region_id: Optional[str] = Query(None, alias="regionId"),
    area_id: Optional[str] = Query(None, alias="areaId"),
    distributor_id: Optional[str] = Query(None, alias="distributorId"),
    territory_id: Optional[str] = Query(None, alias="territoryId"),
    page: Optional[str] = None,
    limit: Optional[str] = None,
) -> RetailerQuery:
    """Read list filters from the query string.

    Numeric values that do not parse are ignored rather than rejected.
    """

    return RetailerQuery(
        filters=RetailerFilters(
            search=(search or "").strip() or None,
            region_id=lenient_int(region_id),
            area_id=lenient_int(area_id),
            distributor_id=lenient_int(distributor_id),
            territory_id=lenient_int(territory_id),
        ),
        page=lenient_int(page),
        limit=lenient_int(limit),
    )
