from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from retailer_desk.schemas.reference import ReferenceRef


class RetailerCreate(BaseModel):
    uid: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=1, max_length=20)
    region_id: PositiveInt
    area_id: PositiveInt
    distributor_id: PositiveInt
    territory_id: PositiveInt
    points: int = Field(default=0, ge=0)
    routes: Optional[str] = None
    notes: Optional[str] = None


class RetailerUpdate(BaseModel):
    """Full-record update available to administrators."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=20)
    region_id: Optional[PositiveInt] = None
    area_id: Optional[PositiveInt] = None
    distributor_id: Optional[PositiveInt] = None
    territory_id: Optional[PositiveInt] = None
    points: Optional[int] = Field(default=None, ge=0)
    routes: Optional[str] = None
    notes: Optional[str] = None


class RetailerPatch(BaseModel):
    """Fields an assigned representative may change."""

    points: Optional[int] = Field(default=None, ge=0)
    routes: Optional[str] = None
    notes: Optional[str] = None


class RetailerFilters(BaseModel):
    search: Optional[str] = None
    region_id: Optional[int] = None
    area_id: Optional[int] = None
    distributor_id: Optional[int] = None
    territory_id: Optional[int] = None


class RetailerOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    uid: str
    name: str
    phone: str
    points: int
    routes: Optional[str] = None
    notes: Optional[str] = None
    region_id: int
    area_id: int
    distributor_id: int
    territory_id: int
    region: Optional[ReferenceRef] = None
    area: Optional[ReferenceRef] = None
    distributor: Optional[ReferenceRef] = None
    territory: Optional[ReferenceRef] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CsvImportResult(BaseModel):
    success: bool
    imported: int
    failed: int
    errors: List[str]
