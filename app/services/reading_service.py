import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.dates import month_bounds
from app.core.exceptions import DuplicateRecordException, NotFoundOrDeniedException
from app.core.permissions import Permission, read_scope
from app.models.reading import Reading
from app.models.tenant_context import TenantContext
from app.repositories.reading_repository import ReadingRepository
from app.schemas.reading_schemas import ReadingCreate

logger = logging.getLogger(__name__)


class ReadingService:
    """Service layer for meter readings; same rules as vouchers"""

    def __init__(self, db: Session):
        self.db = db
        self.reading_repo = ReadingRepository(db)

    def create_reading(self, data: ReadingCreate, context: TenantContext) -> Reading:
        """
        Record a meter reading in the caller's tenant.

        Raises:
            NoTenantAccessException: If the caller has no tenant
            DuplicateRecordException: If the tenant already has a reading for that date
        """
        context.require(Permission.WRITE_DATA)
        reading = Reading(
            user_id=context.user_id,
            tenant_id=context.require_tenant(),
            reading_value=data.reading_value,
            reading_date=data.reading_date,
            notes=data.notes,
        )
        try:
            reading = self.reading_repo.create(reading)
        except IntegrityError:
            self.db.rollback()
            raise DuplicateRecordException(
                f"A reading for {data.reading_date.isoformat()} already exists"
            )

        logger.info(
            "Reading %s created in tenant %s by user %s",
            reading.id, reading.tenant_id, context.user_id,
        )
        return reading

    def list_readings(self, context: TenantContext, month: Optional[str] = None) -> list[Reading]:
        tenant_id, all_tenants = read_scope(context)
        start_date, end_date = month_bounds(month) if month else (None, None)
        return self.reading_repo.get_with_filters(
            tenant_id, start_date=start_date, end_date=end_date, all_tenants=all_tenants
        )

    def delete_reading(self, reading_id: int, context: TenantContext) -> int:
        """
        Raises:
            NotFoundOrDeniedException: If the reading is missing or belongs to another tenant
        """
        context.require(Permission.WRITE_DATA)
        deleted = self.reading_repo.delete_by_id_and_tenant(reading_id, context.require_tenant())
        if not deleted:
            raise NotFoundOrDeniedException(f"Reading {reading_id} not found or access denied")

        logger.info(
            "Reading %s deleted from tenant %s by user %s",
            reading_id, context.tenant_id, context.user_id,
        )
        return reading_id
