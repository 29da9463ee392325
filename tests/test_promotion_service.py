"""Promotion administration and user-side validation."""
from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError as SchemaError

from checkout.data.models import OrderModel, PromotionModel, PromotionRedemptionModel
from checkout.domain.errors import (
    DuplicatePromoCodeError,
    PromoAlreadyRedeemedError,
    PromoExhaustedError,
    PromoExpiredError,
    PromoNotFoundError,
    ValidationError,
)
from checkout.domain.schemas import PromotionCreate, PromotionUpdate
from checkout.services.order_service import OrderService
from checkout.services.promotion_service import PromotionService
from tests.conftest import NOW, add_paid_order, add_promotion


@pytest.fixture
def promos(db, clock):
    return PromotionService(db, clock)


def _create(code="SPRING", **overrides):
    data = dict(
        code=code,
        description="spring sale",
        discount_type="percent",
        discount_value="15",
        max_uses=10,
        starts_at=NOW - timedelta(days=1),
        expires_at=NOW + timedelta(days=7),
    )
    data.update(overrides)
    return PromotionCreate(**data)


def test_create_normalizes_code(promos):
    promo = promos.create(_create(code=" spring "))
    assert promo["code"] == "SPRING"
    assert promo["discount_type"] == "PERCENT"
    assert promo["discount_value"] == Decimal("15.00")
    assert promo["used_count"] == 0


def test_create_duplicate_code(promos):
    promos.create(_create())
    with pytest.raises(DuplicatePromoCodeError):
        promos.create(_create(code="spring"))


def test_create_schema_rejects_bad_input():
    with pytest.raises(SchemaError):
        _create(expires_at=NOW - timedelta(days=5))
    with pytest.raises(SchemaError):
        _create(discount_value="150")
    with pytest.raises(SchemaError):
        _create(discount_type="BOGO")


def test_partial_update(promos):
    created = promos.create(_create())
    updated = promos.update(created["id"], PromotionUpdate(max_uses=50, description=None))
    assert updated["max_uses"] == 50
    assert updated["description"] is None
    assert updated["code"] == "SPRING"


def test_update_rejects_nulls_and_bad_window(promos):
    created = promos.create(_create())
    with pytest.raises(SchemaError):
        PromotionUpdate(code=None)
    with pytest.raises(ValidationError):
        promos.update(created["id"], PromotionUpdate(expires_at=NOW - timedelta(days=3)))


def test_update_missing(promos, db):
    with pytest.raises(PromoNotFoundError):
        promos.update(123, PromotionUpdate(max_uses=1))


def test_validate_code(promos, db, users):
    add_promotion(db, "OK")
    add_promotion(db, "OLD", starts_at=NOW - timedelta(days=9), expires_at=NOW - timedelta(days=1))
    add_promotion(db, "FULL", max_uses=1, used_count=1)
    used = add_promotion(db, "USED")
    order = add_paid_order(db, users["alice"], promotion_id=used.id)
    db.add(PromotionRedemptionModel(promotion_id=used.id, user_id=users["alice"], order_id=order.id, redeemed_at=NOW))
    db.commit()

    assert promos.validate_code(users["alice"], "ok")["code"] == "OK"
    with pytest.raises(PromoNotFoundError):
        promos.validate_code(users["alice"], "NOPE")
    with pytest.raises(PromoExpiredError):
        promos.validate_code(users["alice"], "OLD")
    with pytest.raises(PromoExhaustedError):
        promos.validate_code(users["alice"], "FULL")
    with pytest.raises(PromoAlreadyRedeemedError):
        promos.validate_code(users["alice"], "USED")
    assert promos.validate_code(users["bob"], "USED")["code"] == "USED"


def test_list_active_and_search(promos, db):
    add_promotion(db, "SUMMER")
    add_promotion(db, "WINTER")
    add_promotion(db, "OLD", starts_at=NOW - timedelta(days=9), expires_at=NOW - timedelta(days=1))

    assert sorted(p["code"] for p in promos.list_active()) == ["SUMMER", "WINTER"]
    assert [p["code"] for p in promos.list_active("summ")] == ["SUMMER"]

    page = promos.list_promotions(page=1, page_size=2)
    assert page["total"] == 3
    assert len(page["items"]) == 2
    assert promos.list_promotions(active_only=True)["total"] == 2


def test_deactivate(promos, db, clock):
    created = promos.create(_create())
    result = promos.deactivate(created["id"])
    assert result["expires_at"] == clock()
    clock.advance(seconds=1)
    with pytest.raises(PromoExpiredError):
        promos.validate_code(1, "SPRING")


def test_delete_unredeemed_promotion_detaches_drafts(promos, db, catalog, clock, users):
    created = promos.create(_create())
    orders = OrderService(db, catalog, clock)
    draft = orders.create_draft(users["alice"])
    orders.apply_promotion(draft["id"], users["alice"], "SPRING")

    result = promos.delete_or_deactivate(created["id"])

    assert result == {"id": created["id"], "deleted": True, "soft_deactivated": False}
    db.expire_all()
    assert db.get(PromotionModel, created["id"]) is None
    assert db.get(OrderModel, draft["id"]).promotion_id is None


def test_delete_redeemed_promotion_only_expires(promos, db, users):
    created = promos.create(_create())
    order = add_paid_order(db, users["bob"], promotion_id=created["id"])
    db.add(PromotionRedemptionModel(promotion_id=created["id"], user_id=users["bob"], order_id=order.id, redeemed_at=NOW))
    db.commit()

    result = promos.delete_or_deactivate(created["id"])

    assert result["deleted"] is False
    assert result["soft_deactivated"] is True
    assert len(promos.list_redemptions(created["id"])) == 1
    assert [r["code"] for r in promos.list_my_redemptions(users["bob"])] == ["SPRING"]


def test_window_without_offset_is_read_as_utc():
    promo = _create(starts_at="2024-01-01T00:00:00Z", expires_at="2024-02-01T00:00:00")
    assert promo.expires_at.utcoffset() == timedelta(0)
    with pytest.raises(SchemaError):
        _create(starts_at="2024-03-01T00:00:00Z", expires_at="2024-02-01T00:00:00")


def test_update_keeps_percent_cap(promos):
    created = promos.create(_create())
    with pytest.raises(ValidationError):
        promos.update(created["id"], PromotionUpdate(discount_value="150"))
    assert promos.get(created["id"])["discount_value"] == Decimal("15.00")

    fixed = promos.create(_create(code="BIGFIXED", discount_type="FIXED", discount_value="150"))
    with pytest.raises(ValidationError):
        promos.update(fixed["id"], PromotionUpdate(discount_type="PERCENT"))
    assert promos.get(fixed["id"])["discount_type"] == "FIXED"


def test_update_mixed_offsets(promos):
    created = promos.create(_create())
    updated = promos.update(created["id"], PromotionUpdate(expires_at="2099-01-01T00:00:00"))
    assert updated["expires_at"].utcoffset() == timedelta(0)
