"""Gift voucher redemption: status and expiry guards, single winner under races."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
import threading

import pytest

from app.core.enums import GiftVoucherStatus
from app.core.exceptions import (
    DomainException,
    VoucherExpiredException,
    VoucherNotActiveException,
    VoucherNotFoundException,
)
from app.models.audit_log import AuditLog
from app.models.gift_voucher import GiftVoucher
from app.services.gift_voucher_service import GiftVoucherService
from tests.factories import booking_builders


def _voucher(db, voucher_id) -> GiftVoucher:
    db.expire_all()
    return db.get(GiftVoucher, voucher_id)


class TestLookup:
    def test_code_lookup_is_case_insensitive(self, db):
        purchaser = booking_builders.create_user(db)
        voucher = booking_builders.create_gift_voucher(db, purchaser, code="HEAL-ABCDE12345")

        found = GiftVoucherService(db).get_by_code("  heal-abcde12345 ")

        assert found.id == voucher.id

    def test_unknown_code(self, db):
        with pytest.raises(VoucherNotFoundException) as exc_info:
            GiftVoucherService(db).get_by_code("HEAL-MISSING000")

        assert exc_info.value.code == "NOT_FOUND"
        assert exc_info.value.status_code == 404


class TestRedeem:
    def test_redeem_marks_voucher_and_records_redeemer(self, db):
        purchaser = booking_builders.create_user(db)
        redeemer = booking_builders.create_user(db)
        voucher = booking_builders.create_gift_voucher(db, purchaser, amount=Decimal("80.00"))
        db.commit()
        now = datetime.now(timezone.utc)

        result = GiftVoucherService(db).redeem(voucher.code, redeemer.id, now=now)

        assert result.amount == Decimal("80.00")
        stored = _voucher(db, voucher.id)
        assert stored.status == GiftVoucherStatus.REDEEMED.value
        assert stored.redeemed_by_user_id == redeemer.id
        assert stored.redeemed_at is not None
        audit = db.query(AuditLog).filter(AuditLog.action == "gift_voucher.redeemed").one()
        assert audit.entity_id == voucher.id
        assert audit.actor_id == redeemer.id

    def test_second_redemption_is_rejected(self, db):
        purchaser = booking_builders.create_user(db)
        voucher = booking_builders.create_gift_voucher(db, purchaser)
        db.commit()
        service = GiftVoucherService(db)
        service.redeem(voucher.code, purchaser.id)

        with pytest.raises(VoucherNotActiveException) as exc_info:
            service.redeem(voucher.code, purchaser.id)

        assert exc_info.value.code == "VOUCHER_NOT_ACTIVE"
        assert exc_info.value.status_code == 409
        assert exc_info.value.details["status"] == GiftVoucherStatus.REDEEMED.value

    def test_expired_voucher_is_rejected_and_left_active(self, db):
        purchaser = booking_builders.create_user(db)
        voucher = booking_builders.create_gift_voucher(
            db, purchaser, expires_at=datetime.now(timezone.utc) - timedelta(days=1)
        )
        db.commit()

        with pytest.raises(VoucherExpiredException) as exc_info:
            GiftVoucherService(db).redeem(voucher.code, purchaser.id)

        assert exc_info.value.code == "VOUCHER_EXPIRED"
        assert exc_info.value.status_code == 422
        stored = _voucher(db, voucher.id)
        assert stored.status == GiftVoucherStatus.ACTIVE.value
        assert stored.redeemed_by_user_id is None

    def test_voucher_marked_expired_is_not_active(self, db):
        purchaser = booking_builders.create_user(db)
        voucher = booking_builders.create_gift_voucher(
            db, purchaser, status=GiftVoucherStatus.EXPIRED.value
        )
        db.commit()

        with pytest.raises(VoucherNotActiveException):
            GiftVoucherService(db).redeem(voucher.code, purchaser.id)

    def test_unknown_code(self, db):
        user = booking_builders.create_user(db)
        db.commit()

        with pytest.raises(VoucherNotFoundException):
            GiftVoucherService(db).redeem("HEAL-NOPE000000", user.id)

    def test_concurrent_redemptions_have_one_winner(self, db, session_factory):
        purchaser = booking_builders.create_user(db)
        redeemers = [booking_builders.create_user(db) for _ in range(4)]
        voucher = booking_builders.create_gift_voucher(db, purchaser)
        db.commit()

        barrier = threading.Barrier(len(redeemers))
        outcomes: list[str] = []
        outcomes_lock = threading.Lock()

        def attempt(user_id: str) -> None:
            session = session_factory()
            try:
                barrier.wait(timeout=10)
                GiftVoucherService(session).redeem(voucher.code, user_id)
                result = "redeemed"
            except DomainException as exc:
                result = exc.code
            finally:
                session.close()
            with outcomes_lock:
                outcomes.append(result)

        threads = [threading.Thread(target=attempt, args=(user.id,)) for user in redeemers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert sorted(outcomes) == ["VOUCHER_NOT_ACTIVE"] * 3 + ["redeemed"]
        stored = _voucher(db, voucher.id)
        assert stored.status == GiftVoucherStatus.REDEEMED.value
        assert stored.redeemed_by_user_id in {user.id for user in redeemers}
