from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, DateTime, Numeric, CheckConstraint

from checkout.data.database import Base

PERCENT = "PERCENT"
FIXED = "FIXED"


class PromotionModel(Base):
    __tablename__ = "promotions"
    __table_args__ = (
        CheckConstraint("used_count >= 0", name="ck_promotion_used_nonneg"),
    )

    id = Column(Integer, primary_key=True)
    code = Column(String(64), nullable=False, unique=True)
    description = Column(String, nullable=True)

    discount_type = Column(String(7), nullable=False)  # PERCENT, FIXED
    discount_value = Column(Numeric(10, 2), nullable=False)
    max_uses = Column(Integer, nullable=False, default=0)  # 0 = unlimited
    used_count = Column(Integer, nullable=False, default=0)

    starts_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
