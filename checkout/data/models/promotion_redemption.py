from datetime import datetime, timezone

from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint

from checkout.data.database import Base


class PromotionRedemptionModel(Base):
    __tablename__ = "promotion_redemptions"
    # one redemption per account per promotion, ever
    __table_args__ = (UniqueConstraint("promotion_id", "user_id", name="u_redemption_promotion_user"),)

    id = Column(Integer, primary_key=True)
    promotion_id = Column(Integer, ForeignKey("promotions.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    redeemed_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
