# backend/app/services/gift_voucher_service.py
"""
Gift voucher lookup and redemption.

Vouchers are minted by the checkout webhook. Redemption is one conditional
UPDATE guarded on status and expiry, so of two concurrent redemptions of the
same code exactly one succeeds.
"""

from datetime import datetime
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.enums import GiftVoucherStatus
from ..core.exceptions import (
    VoucherExpiredException,
    VoucherNotActiveException,
    VoucherNotFoundException,
)
from ..core.timezone_utils import ensure_utc, utc_now
from ..models.gift_voucher import GiftVoucher
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from .audit_service import AuditService
from .base import BaseService

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


class GiftVoucherService(BaseService):
    def __init__(self, db: Session, audit_service: Optional[AuditService] = None):
        super().__init__(db)
        self.voucher_repository = RepositoryFactory.create_gift_voucher_repository(db)
        self.audit_service = audit_service or AuditService(db)

    @BaseService.measure_operation("get_voucher")
    def get_by_code(self, code: str) -> GiftVoucher:
        normalized = normalize_code(code)
        voucher = self.voucher_repository.get_by_code(normalized)
        if voucher is None:
            raise VoucherNotFoundException(normalized)
        return voucher

    @BaseService.measure_operation("redeem_voucher")
    def redeem(self, code: str, user_id: str, now: Optional[datetime] = None) -> GiftVoucher:
        """
        Redeem ``code`` for ``user_id``.

        Raises:
            VoucherNotFoundException: no voucher carries the code
            VoucherNotActiveException: already redeemed or marked expired
            VoucherExpiredException: still active but past its expiry
        """
        now = now or utc_now()
        normalized = normalize_code(code)

        with self.transaction():
            redeemed = self.voucher_repository.redeem(normalized, user_id, now)
            if redeemed:
                voucher = self.voucher_repository.get_by_code(normalized)
                self.audit_service.record(
                    "gift_voucher.redeemed",
                    "gift_voucher",
                    voucher.id if voucher else None,
                    actor_id=user_id,
                    details={"code": normalized},
                )

        if not redeemed:
            raise self._rejection(normalized, now)

        prometheus_metrics.record_voucher_redemption("redeemed")
        self.logger.info("Gift voucher %s redeemed by user %s", normalized, user_id)
        return voucher

    def _rejection(self, code: str, now: datetime) -> Exception:
        """Explain why the guarded update touched no row."""
        voucher = self.voucher_repository.get_by_code(code)
        if voucher is None:
            error: Exception = VoucherNotFoundException(code)
            outcome = "NOT_FOUND"
        elif voucher.status != GiftVoucherStatus.ACTIVE.value:
            error = VoucherNotActiveException(code, voucher.status)
            outcome = "VOUCHER_NOT_ACTIVE"
        else:
            expires_at = ensure_utc(voucher.expires_at)
            error = VoucherExpiredException(code, expires_at.isoformat() if expires_at else "")
            outcome = "VOUCHER_EXPIRED"
        prometheus_metrics.record_voucher_redemption(outcome)
        self.logger.info("Gift voucher %s not redeemed at %s: %s", code, now.isoformat(), outcome)
        return error
