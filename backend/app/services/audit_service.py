# backend/app/services/audit_service.py
"""
Best-effort side records: audit log entries and payment transactions.

Each write runs inside its own SAVEPOINT. A failure rolls back only that
savepoint and is logged; it never aborts the caller's primary operation.
"""

from decimal import Decimal
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import RepositoryException
from ..models.audit_log import AuditLog
from ..models.payment_transaction import PaymentTransaction
from ..repositories.factory import RepositoryFactory
from .base import BaseService

logger = logging.getLogger(__name__)


class AuditService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_audit_log_repository(db)

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        *,
        actor_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[AuditLog]:
        try:
            with self.repository.savepoint():
                return self.repository.create(
                    action=action,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    actor_id=actor_id,
                    details=details or {},
                )
        except (SQLAlchemyError, RepositoryException) as exc:
            self.logger.warning(
                "Audit log write failed for %s %s/%s: %s", action, entity_type, entity_id, exc
            )
            return None


class PaymentLedgerService(BaseService):
    def __init__(self, db: Session):
        super().__init__(db)
        self.repository = RepositoryFactory.create_payment_transaction_repository(db)

    @staticmethod
    def amount_from_minor_units(amount_total: Optional[int]) -> Decimal:
        """Provider amounts arrive in cents."""
        return (Decimal(int(amount_total or 0)) / Decimal(100)).quantize(Decimal("0.01"))

    def record_transaction(
        self,
        *,
        user_id: Optional[str],
        transaction_type: str,
        status: str,
        amount_total: Optional[int] = None,
        currency: Optional[str] = None,
        stripe_payment_intent_id: Optional[str] = None,
        stripe_invoice_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
        membership_id: Optional[str] = None,
        booking_id: Optional[str] = None,
        gift_voucher_id: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Optional[PaymentTransaction]:
        try:
            with self.repository.savepoint():
                return self.repository.create(
                    user_id=user_id,
                    amount=self.amount_from_minor_units(amount_total),
                    currency=(currency or settings.stripe_currency).lower(),
                    transaction_type=transaction_type,
                    status=status,
                    stripe_payment_intent_id=stripe_payment_intent_id,
                    stripe_invoice_id=stripe_invoice_id,
                    subscription_id=subscription_id,
                    membership_id=membership_id,
                    booking_id=booking_id,
                    gift_voucher_id=gift_voucher_id,
                    description=description,
                )
        except (SQLAlchemyError, RepositoryException) as exc:
            self.logger.warning(
                "Payment transaction write failed (%s/%s) for user %s: %s",
                transaction_type,
                status,
                user_id,
                exc,
            )
            return None
