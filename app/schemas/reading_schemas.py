from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional


class ReadingCreate(BaseModel):
    """Schema for recording a meter reading"""

    reading_value: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    reading_date: date
    notes: Optional[str] = Field(None, max_length=1000)


class ReadingResponse(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    user_id: int
    tenant_id: Optional[int]
    reading_value: float
    reading_date: date
    notes: Optional[str]
    created_at: datetime


class ReadingListResponse(BaseModel):
    items: list[ReadingResponse]
    total: int
