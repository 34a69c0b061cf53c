from typing import List

from pydantic import BaseModel, Field, PositiveInt


class BulkAssignmentIn(BaseModel):
    sales_rep_id: PositiveInt
    retailer_ids: List[PositiveInt] = Field(min_length=1)


class BulkUnassignmentIn(BaseModel):
    sales_rep_id: PositiveInt
    retailer_ids: List[PositiveInt] = Field(min_length=1)


class BulkAssignmentOut(BaseModel):
    success: bool
    assigned: int
    message: str
