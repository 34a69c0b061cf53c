from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt


class RegionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class RegionUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class RegionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AreaCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    region_id: PositiveInt


class AreaUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    region_id: Optional[PositiveInt] = None


class AreaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    region_id: int
    region: Optional[RegionOut] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TerritoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    area_id: PositiveInt


class TerritoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    area_id: Optional[PositiveInt] = None


class TerritoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    area_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DistributorCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class DistributorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class DistributorOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReferenceRef(BaseModel):
    """Compact id/name pair embedded in retailer payloads."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
