from datetime import datetime, timedelta, timezone
from decimal import Decimal

from app.core.enums import GiftVoucherStatus
from app.models.gift_voucher import GiftVoucher
from tests.factories import booking_builders
from tests.factories.booking_builders import auth_headers


def test_lookup_is_public(client, db):
    purchaser = booking_builders.create_user(db)
    voucher = booking_builders.create_gift_voucher(db, purchaser, code="HEAL-LOOKUP0001")
    db.commit()

    response = client.get("/api/v1/vouchers/heal-lookup0001")

    assert response.status_code == 200
    body = response.json()
    assert body["code"] == voucher.code
    assert body["status"] == GiftVoucherStatus.ACTIVE.value
    assert Decimal(str(body["amount"])) == Decimal("50.00")
    assert body["redeemed_at"] is None


def test_lookup_unknown_code(client):
    response = client.get("/api/v1/vouchers/HEAL-UNKNOWN000")

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_redeem_requires_identity(client, db):
    purchaser = booking_builders.create_user(db)
    voucher = booking_builders.create_gift_voucher(db, purchaser)
    db.commit()

    response = client.post(f"/api/v1/vouchers/{voucher.code}/redeem")

    assert response.status_code == 401
    assert response.json()["code"] == "UNAUTHORIZED"


def test_redeem_then_replay(client, db, member):
    purchaser = booking_builders.create_user(db)
    voucher = booking_builders.create_gift_voucher(db, purchaser, amount=Decimal("120.00"))
    db.commit()
    headers = auth_headers(member["user"])

    first = client.post(f"/api/v1/vouchers/{voucher.code}/redeem", headers=headers)
    again = client.post(f"/api/v1/vouchers/{voucher.code}/redeem", headers=headers)

    assert first.status_code == 200
    assert first.json()["success"] is True
    assert Decimal(str(first.json()["amount"])) == Decimal("120.00")
    assert again.status_code == 409
    assert again.json()["code"] == "VOUCHER_NOT_ACTIVE"
    db.expire_all()
    stored = db.get(GiftVoucher, voucher.id)
    assert stored.redeemed_by_user_id == member["user"].id


def test_redeem_expired_voucher(client, db, member):
    purchaser = booking_builders.create_user(db)
    voucher = booking_builders.create_gift_voucher(
        db, purchaser, expires_at=datetime.now(timezone.utc) - timedelta(minutes=5)
    )
    db.commit()

    response = client.post(
        f"/api/v1/vouchers/{voucher.code}/redeem", headers=auth_headers(member["user"])
    )

    assert response.status_code == 422
    assert response.json()["code"] == "VOUCHER_EXPIRED"
