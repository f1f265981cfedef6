from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from app.schemas.voucher_schemas import VoucherResponse
from app.schemas.reading_schemas import ReadingResponse


class TransactionsResponse(BaseModel):
    """History view: vouchers and readings side by side"""

    vouchers: list[VoucherResponse]
    readings: list[ReadingResponse]
    total_vouchers: int
    total_readings: int


class MonthlyTotal(BaseModel):
    month: str
    amount: float
    kwh: float


class DashboardResponse(BaseModel):
    total_vouchers: int
    total_amount: float
    total_kwh: float
    total_vat: float
    avg_cost_per_kwh: float
    reading_count: int
    lowest_reading: float
    highest_reading: float
    avg_reading: float
    recent_vouchers: list[VoucherResponse]
    recent_readings: list[ReadingResponse]
    monthly: list[MonthlyTotal]
    member_count: int


class ExportTenant(BaseModel):
    id: int
    name: str
    subscription_status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ExportSummary(BaseModel):
    voucher_count: int
    reading_count: int
    total_amount: float
    total_kwh: float
    total_vat: float
    exported_at: datetime


class ExportResponse(BaseModel):
    tenant: ExportTenant
    vouchers: list[VoucherResponse]
    readings: list[ReadingResponse]
    summary: ExportSummary
    exported_by: Optional[str] = None
