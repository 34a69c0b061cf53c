from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from retailer_desk.models.sales_rep import UserRole


class SalesRepCreate(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=255)
    phone: str = Field(min_length=1, max_length=20)
    password: str = Field(min_length=6)
    role: UserRole = UserRole.SALES_REP


class SalesRepUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, min_length=1, max_length=20)
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[UserRole] = None


class SalesRepOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    name: str
    phone: str
    role: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
