# backend/app/repositories/ledger_repository.py
"""
Repositories for the best-effort ledgers and one-off purchases.

Payment transactions and audit entries are side records; gift vouchers are
keyed by the provider payment intent so a replayed checkout cannot mint a
second voucher.
"""

from datetime import datetime
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.enums import GiftVoucherStatus
from ..models.audit_log import AuditLog
from ..models.gift_voucher import GiftVoucher
from ..models.payment_transaction import PaymentTransaction
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class PaymentTransactionRepository(BaseRepository[PaymentTransaction]):
    def __init__(self, db: Session):
        super().__init__(db, PaymentTransaction)

    def list_for_user(self, user_id: str, limit: int = 50) -> List[PaymentTransaction]:
        query = (
            self._build_query()
            .filter(PaymentTransaction.user_id == user_id)
            .order_by(PaymentTransaction.created_at.desc())
            .limit(limit)
        )
        return self._execute_query(query)


class GiftVoucherRepository(BaseRepository[GiftVoucher]):
    def __init__(self, db: Session):
        super().__init__(db, GiftVoucher)

    def get_by_code(self, code: str) -> Optional[GiftVoucher]:
        return self.find_one_by(code=code)

    def get_by_payment_intent(self, payment_intent_id: str) -> Optional[GiftVoucher]:
        return self.find_one_by(stripe_payment_intent_id=payment_intent_id)

    def redeem(self, code: str, user_id: str, now: datetime) -> bool:
        """
        Mark an active, unexpired voucher as redeemed by ``user_id``.

        Returns False when no row qualified; the caller re-reads the voucher
        to tell a missing code from a spent or expired one.
        """
        affected = self._conditional_update(
            GiftVoucher.code == code,
            GiftVoucher.status == GiftVoucherStatus.ACTIVE.value,
            GiftVoucher.expires_at >= now,
            status=GiftVoucherStatus.REDEEMED.value,
            redeemed_at=now,
            redeemed_by_user_id=user_id,
        )
        return affected == 1


class AuditLogRepository(BaseRepository[AuditLog]):
    def __init__(self, db: Session):
        super().__init__(db, AuditLog)
