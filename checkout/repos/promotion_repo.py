# checkout/repos/promotion_repo.py
from datetime import datetime

from sqlalchemy import select, func, or_, update
from sqlalchemy.orm import Session

from checkout.data.models.order import OrderModel, DRAFT
from checkout.data.models.promotion import PromotionModel
from checkout.data.models.promotion_redemption import PromotionRedemptionModel


class PromotionRepo:
    def __init__(self, db: Session):
        self.db = db

    def get(self, promotion_id: int) -> PromotionModel | None:
        return self.db.get(PromotionModel, promotion_id)

    def get_by_code(self, code: str) -> PromotionModel | None:
        stmt = select(PromotionModel).where(PromotionModel.code == code.strip().upper())
        return self.db.execute(stmt).scalar_one_or_none()

    def get_for_update(self, promotion_id: int) -> PromotionModel | None:
        stmt = (
            select(PromotionModel)
            .where(PromotionModel.id == promotion_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def add(self, promotion: PromotionModel) -> PromotionModel:
        self.db.add(promotion)
        self.db.flush()
        return promotion

    def delete(self, promotion: PromotionModel) -> None:
        self.db.delete(promotion)
        self.db.flush()

    def search(
        self,
        q: str | None,
        active_at: datetime | None,
        offset: int,
        limit: int,
    ) -> tuple[list[PromotionModel], int]:
        stmt = select(PromotionModel)
        if q:
            pattern = f"%{q}%"
            stmt = stmt.where(or_(PromotionModel.code.ilike(pattern), PromotionModel.description.ilike(pattern)))
        if active_at is not None:
            stmt = stmt.where(PromotionModel.starts_at <= active_at, PromotionModel.expires_at >= active_at)

        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        rows = self.db.execute(
            stmt.order_by(PromotionModel.created_at.desc(), PromotionModel.id.desc()).offset(offset).limit(limit)
        ).scalars().all()
        return list(rows), total

    # ---- redemptions ----

    def get_redemption(self, promotion_id: int, user_id: int) -> PromotionRedemptionModel | None:
        stmt = select(PromotionRedemptionModel).where(
            PromotionRedemptionModel.promotion_id == promotion_id,
            PromotionRedemptionModel.user_id == user_id,
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def count_redemptions(self, promotion_id: int) -> int:
        stmt = select(func.count(PromotionRedemptionModel.id)).where(
            PromotionRedemptionModel.promotion_id == promotion_id
        )
        return self.db.execute(stmt).scalar_one()

    def add_redemption(self, redemption: PromotionRedemptionModel) -> PromotionRedemptionModel:
        # flush so a (promotion_id, user_id) duplicate fails inside the caller's unit
        self.db.add(redemption)
        self.db.flush()
        return redemption

    def list_redemptions_by_promotion(self, promotion_id: int) -> list[PromotionRedemptionModel]:
        stmt = (
            select(PromotionRedemptionModel)
            .where(PromotionRedemptionModel.promotion_id == promotion_id)
            .order_by(PromotionRedemptionModel.redeemed_at.desc(), PromotionRedemptionModel.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_redemptions_by_user(self, user_id: int) -> list[tuple[PromotionRedemptionModel, PromotionModel]]:
        stmt = (
            select(PromotionRedemptionModel, PromotionModel)
            .join(PromotionModel, PromotionModel.id == PromotionRedemptionModel.promotion_id)
            .where(PromotionRedemptionModel.user_id == user_id)
            .order_by(PromotionRedemptionModel.redeemed_at.desc(), PromotionRedemptionModel.id.desc())
        )
        return [(r, p) for r, p in self.db.execute(stmt).all()]

    def detach_from_drafts(self, promotion_id: int) -> int:
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.promotion_id == promotion_id, OrderModel.status == DRAFT)
            .values(promotion_id=None)
        )
        return result.rowcount
