from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Optional


class VoucherCreate(BaseModel):
    """Schema for recording a prepaid electricity purchase"""

    token_number: str = Field(..., min_length=1, max_length=64)
    purchase_date: date
    # Must fit the Numeric(12, 2) columns
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2, description="Currency amount paid")
    kwh_amount: Decimal = Field(
        ..., gt=0, max_digits=12, decimal_places=2, description="Energy purchased in kWh"
    )
    vat_amount: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=1000)


class VoucherResponse(BaseModel):
    """Schema for voucher response"""

    model_config = {"from_attributes": True}

    id: int
    user_id: int
    tenant_id: Optional[int]
    token_number: str
    purchase_date: date
    amount: float
    kwh_amount: float
    vat_amount: float
    notes: Optional[str]
    created_at: datetime


class VoucherListResponse(BaseModel):
    items: list[VoucherResponse]
    total: int


class CreatedResponse(BaseModel):
    id: int


class DeletedResponse(BaseModel):
    deleted_id: int
