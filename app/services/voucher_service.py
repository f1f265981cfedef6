import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.dates import month_bounds
from app.core.exceptions import DuplicateRecordException, NotFoundOrDeniedException
from app.core.permissions import Permission, read_scope
from app.models.tenant_context import TenantContext
from app.models.voucher import Voucher
from app.repositories.voucher_repository import VoucherRepository
from app.schemas.voucher_schemas import VoucherCreate

logger = logging.getLogger(__name__)


class VoucherService:
    """Service layer for voucher business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.voucher_repo = VoucherRepository(db)

    def create_voucher(self, data: VoucherCreate, context: TenantContext) -> Voucher:
        """
        Record a voucher purchase in the caller's tenant.

        Args:
            data: Voucher fields (validated by the schema)
            context: Tenant context; tenant_id is taken from here, never from input

        Returns:
            Created voucher

        Raises:
            NoTenantAccessException: If the caller has no tenant
            DuplicateRecordException: If the token number already exists in the tenant
        """
        context.require(Permission.WRITE_DATA)
        voucher = Voucher(
            user_id=context.user_id,
            tenant_id=context.require_tenant(),
            token_number=data.token_number.strip(),
            purchase_date=data.purchase_date,
            amount=data.amount,
            kwh_amount=data.kwh_amount,
            vat_amount=data.vat_amount,
            notes=data.notes,
        )
        try:
            voucher = self.voucher_repo.create(voucher)
        except IntegrityError:
            self.db.rollback()
            raise DuplicateRecordException(
                f"Voucher with token {data.token_number.strip()} already exists"
            )

        logger.info(
            "Voucher %s created in tenant %s by user %s",
            voucher.id, voucher.tenant_id, context.user_id,
        )
        return voucher

    def list_vouchers(self, context: TenantContext, month: Optional[str] = None) -> list[Voucher]:
        """
        List the tenant's vouchers, newest purchase first.

        Args:
            context: Tenant context
            month: Optional 'YYYY-MM' filter on purchase_date
        """
        tenant_id, all_tenants = read_scope(context)
        start_date, end_date = month_bounds(month) if month else (None, None)
        return self.voucher_repo.get_with_filters(
            tenant_id, start_date=start_date, end_date=end_date, all_tenants=all_tenants
        )

    def delete_voucher(self, voucher_id: int, context: TenantContext) -> int:
        """
        Delete a voucher of the caller's tenant. Any member may delete.

        Raises:
            NotFoundOrDeniedException: If the voucher is missing or belongs to another tenant
        """
        context.require(Permission.WRITE_DATA)
        deleted = self.voucher_repo.delete_by_id_and_tenant(voucher_id, context.require_tenant())
        if not deleted:
            raise NotFoundOrDeniedException(f"Voucher {voucher_id} not found or access denied")

        logger.info(
            "Voucher %s deleted from tenant %s by user %s",
            voucher_id, context.tenant_id, context.user_id,
        )
        return voucher_id
