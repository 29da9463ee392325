"""Pytest fixtures: in-memory SQLite, fake catalog, recording notifier, fixed clock."""

import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

# must be set before checkout.utils.settings is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

from checkout.data.database import Base, SessionLocal, engine  # noqa: E402
from checkout.data.models import OrderModel, PromotionModel, UserModel, WalletAccountModel  # noqa: E402
from checkout.domain.errors import GameNotFoundError  # noqa: E402
from checkout.services.catalog_client import CatalogClient, CatalogGame  # noqa: E402

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

GAMES = {
    1: ("Hollow Knight", "14.99"),
    2: ("Celeste", "19.99"),
    3: ("Disco Elysium", "40.00"),
    4: ("Hades", "24.99"),
    5: ("Outer Wilds", "25.01"),
}


class FakeCatalog(CatalogClient):
    """Catalog without HTTP, fetch_games keeps the real all-or-nothing behaviour."""

    def __init__(self, games=None):
        super().__init__(base_url="http://catalog.test")
        self.games = dict(GAMES if games is None else games)
        self.calls: list[int] = []

    def fetch_game(self, game_id: int) -> CatalogGame:
        self.calls.append(game_id)
        if game_id not in self.games:
            raise GameNotFoundError(f"Game not found: {game_id}", details={"missing": [game_id]})
        name, price = self.games[game_id]
        return CatalogGame(id=game_id, name=name, price=Decimal(price))


class RecordingNotifier:
    def __init__(self):
        self.sent: list[tuple[int, int, Decimal]] = []

    def send_order_paid_notification(self, user_id, order_id, charged):
        self.sent.append((user_id, order_id, charged))


class Clock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


def add_user(db, user_id: int, balance: str = "0.00", name: str | None = None) -> None:
    db.add(UserModel(id=user_id, name=name or f"user{user_id}"))
    db.add(WalletAccountModel(user_id=user_id, balance=Decimal(balance)))
    db.commit()


def add_promotion(
    db,
    code: str,
    discount_type: str = "PERCENT",
    value: str = "10.00",
    max_uses: int = 0,
    used_count: int = 0,
    starts_at: datetime = NOW - timedelta(days=1),
    expires_at: datetime = NOW + timedelta(days=1),
) -> PromotionModel:
    promo = PromotionModel(
        code=code,
        description=f"{code} promo",
        discount_type=discount_type,
        discount_value=Decimal(value),
        max_uses=max_uses,
        used_count=used_count,
        starts_at=starts_at,
        expires_at=expires_at,
        created_at=NOW - timedelta(days=2),
    )
    db.add(promo)
    db.commit()
    return promo


@pytest.fixture
def users(db):
    """alice (1) with 100.00, bob (2) with 50.00, carol (3) broke."""
    add_user(db, 1, "100.00", "alice")
    add_user(db, 2, "50.00", "bob")
    add_user(db, 3, "0.00", "carol")
    return {"alice": 1, "bob": 2, "carol": 3}


def add_paid_order(db, user_id: int, paid_at: datetime = NOW, promotion_id: int | None = None) -> OrderModel:
    order = OrderModel(
        user_id=user_id,
        status="PAID",
        promotion_id=promotion_id,
        total_before=Decimal("0.00"),
        total_after=Decimal("0.00"),
        created_at=paid_at,
        paid_at=paid_at,
    )
    db.add(order)
    db.commit()
    return order
