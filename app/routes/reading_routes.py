from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.dates import MONTH_PATTERN
from app.database import get_db
from app.dependencies import get_tenant_context
from app.models.tenant_context import TenantContext
from app.services.reading_service import ReadingService
from app.schemas.reading_schemas import ReadingCreate, ReadingListResponse
from app.schemas.voucher_schemas import CreatedResponse, DeletedResponse

router = APIRouter()


@router.post("", response_model=CreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_reading(
    data: ReadingCreate,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    """Record a meter reading for the current tenant"""
    service = ReadingService(db)
    reading = service.create_reading(data, context)
    return {"id": reading.id}


@router.get("", response_model=ReadingListResponse)
async def list_readings(
    month: Optional[str] = Query(None, pattern=MONTH_PATTERN, description="Filter by YYYY-MM"),
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    service = ReadingService(db)
    readings = service.list_readings(context, month)
    return ReadingListResponse(items=readings, total=len(readings))


@router.delete("/{reading_id}", response_model=DeletedResponse)
async def delete_reading(
    reading_id: int,
    context: TenantContext = Depends(get_tenant_context),
    db: Session = Depends(get_db),
):
    service = ReadingService(db)
    return {"deleted_id": service.delete_reading(reading_id, context)}
