# checkout/data/seed.py
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from checkout.data.database import SessionLocal, init_db
from checkout.data.models import PromotionModel, UserModel, WalletAccountModel
from checkout.data.models.promotion import PERCENT, FIXED
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


def seed():
    """Demo users with funded wallets and two promotions. Only seeds an empty database."""
    init_db()
    db = SessionLocal()
    try:
        if db.query(UserModel).first():
            return
        now = datetime.now(timezone.utc)
        for user_id, name, balance in ((1, "alice", "100.00"), (2, "bob", "50.00"), (3, "admin", "0.00")):
            db.add(UserModel(id=user_id, name=name))
            db.add(WalletAccountModel(user_id=user_id, balance=Decimal(balance)))
        db.add(PromotionModel(
            code="WELCOME10", description="10% off", discount_type=PERCENT,
            discount_value=Decimal("10.00"), max_uses=0,
            starts_at=now, expires_at=now + timedelta(days=30),
        ))
        db.add(PromotionModel(
            code="FIVEOFF", description="5.00 off, first 100 buyers", discount_type=FIXED,
            discount_value=Decimal("5.00"), max_uses=100,
            starts_at=now, expires_at=now + timedelta(days=7),
        ))
        db.commit()
        logger.info("Seeded demo users and promotions")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
