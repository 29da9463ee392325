"""Users, library, sales report and the administrative reset."""
from datetime import timedelta
from decimal import Decimal

import pytest

from checkout.data.models import (
    LedgerEntryModel,
    LibraryEntryModel,
    OrderModel,
    PromotionModel,
    PromotionRedemptionModel,
    UserModel,
    WalletAccountModel,
)
from checkout.domain.errors import UserNotFoundError
from checkout.domain.schemas import UserCreate
from checkout.services.admin_service import AdminService
from checkout.services.library_service import LibraryService
from checkout.services.payment_service import PaymentService
from checkout.services.report_service import ReportService
from checkout.services.user_service import UserService
from tests.conftest import NOW, add_promotion


def test_create_user_opens_wallet(db):
    svc = UserService(db)
    user = svc.create_user(UserCreate(id=10, name="dave"))
    assert (user.id, user.name) == (10, "dave")
    assert db.get(WalletAccountModel, 10).balance == Decimal("0.00")

    # idempotent: same id returns the existing user
    again = svc.create_user(UserCreate(id=10, name="other"))
    assert again.name == "dave"
    assert db.query(UserModel).count() == 1
    assert svc.get_user(10).name == "dave"
    with pytest.raises(UserNotFoundError):
        svc.get_user(11)


def test_library_lists_newest_first(db, catalog, notifier, clock, users):
    payments = PaymentService(db, catalog, notifier, clock)
    payments.buy_now(users["alice"], [1])
    payments.buy_now(users["alice"], [2, 4])

    library = LibraryService(db).list_library(users["alice"])
    assert [e["game_id"] for e in library] == [4, 2, 1]
    assert library[-1]["name"] == "Hollow Knight"
    assert LibraryService(db).list_library(users["bob"]) == []


def test_top_sellers(db, catalog, notifier, clock, users):
    payments = PaymentService(db, catalog, notifier, clock)
    payments.buy_now(users["alice"], [1, 2])
    payments.buy_now(users["bob"], [1])
    clock.advance(days=1)
    payments.buy_now(users["bob"], [2])

    report = ReportService(db).top_sellers()
    assert [(r["game_id"], r["sold_count"]) for r in report] == [(2, 2), (1, 2)]
    assert report[0]["total_revenue"] == Decimal("39.98")
    assert report[1]["name"] == "Hollow Knight"

    first_day = ReportService(db).top_sellers(NOW.date())
    assert [(r["game_id"], r["sold_count"]) for r in first_day] == [(1, 2), (2, 1)]
    assert ReportService(db).top_sellers(NOW.date() + timedelta(days=5)) == []


def test_top_sellers_ignores_drafts(db, users):
    db.add(OrderModel(user_id=users["alice"], status="DRAFT", total_before=0, total_after=0, created_at=NOW))
    db.commit()
    assert ReportService(db).top_sellers() == []


def test_reset_wipes_purchase_state(db, catalog, notifier, clock, users):
    add_promotion(db, "TENOFF")
    payments = PaymentService(db, catalog, notifier, clock)
    payments.buy_now(users["alice"], [1, 2], "TENOFF")

    counts = AdminService(db).reset()

    assert counts["redemptions"] == 1
    assert counts["library_entries"] == 2
    assert counts["ledger_entries"] == 1
    assert counts["cart_lines"] == 2
    assert counts["orders"] == 1
    assert counts["wallets_reset"] == 3
    assert counts["promotions_reset"] == 1

    for model in (PromotionRedemptionModel, LibraryEntryModel, LedgerEntryModel, OrderModel):
        assert db.query(model).count() == 0
    assert {w.balance for w in db.query(WalletAccountModel)} == {Decimal("0.00")}
    assert db.query(PromotionModel).one().used_count == 0
    assert db.query(UserModel).count() == 3
