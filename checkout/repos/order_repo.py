# checkout/repos/order_repo.py
from datetime import datetime

from sqlalchemy import select, delete, func
from sqlalchemy.orm import Session

from checkout.data.models.order import OrderModel, DRAFT
from checkout.data.models.cart_line import CartLineModel
from checkout.data.models.promotion import PromotionModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def get_order_for_update(self, order_id: int) -> OrderModel | None:
        # SELECT ... FOR UPDATE, first lock of every mutating transaction
        stmt = (
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_latest_draft(self, user_id: int) -> OrderModel | None:
        stmt = (
            select(OrderModel)
            .where(OrderModel.user_id == user_id, OrderModel.status == DRAFT)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .limit(1)
        )
        return self.db.execute(stmt).scalars().first()

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def list_orders(self, user_id: int, status: str | None = None) -> list[tuple[OrderModel, int]]:
        items_count = (
            select(func.count(CartLineModel.id))
            .where(CartLineModel.order_id == OrderModel.id)
            .correlate(OrderModel)
            .scalar_subquery()
        )
        stmt = select(OrderModel, items_count).where(OrderModel.user_id == user_id)
        if status:
            stmt = stmt.where(OrderModel.status == status)
        stmt = stmt.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        return [(order, count) for order, count in self.db.execute(stmt).all()]

    def delete_order(self, order_id: int) -> None:
        self.db.execute(delete(CartLineModel).where(CartLineModel.order_id == order_id))
        self.db.execute(delete(OrderModel).where(OrderModel.id == order_id))

    # ---- cart lines ----

    def get_lines(self, order_id: int) -> list[CartLineModel]:
        stmt = select(CartLineModel).where(CartLineModel.order_id == order_id).order_by(CartLineModel.id)
        return list(self.db.execute(stmt).scalars().all())

    def add_line(self, line: CartLineModel) -> CartLineModel:
        # flush right away so the (order_id, game_id) unique constraint fires here
        self.db.add(line)
        self.db.flush()
        return line

    def delete_line(self, order_id: int, game_id: int) -> int:
        result = self.db.execute(
            delete(CartLineModel).where(
                CartLineModel.order_id == order_id,
                CartLineModel.game_id == game_id,
            )
        )
        return result.rowcount

    def draft_ids_with_expired_promotion(self, now: datetime) -> list[int]:
        stmt = (
            select(OrderModel.id)
            .join(PromotionModel, PromotionModel.id == OrderModel.promotion_id)
            .where(
                OrderModel.status == DRAFT,
                (PromotionModel.expires_at < now) | (PromotionModel.starts_at > now),
            )
            .order_by(OrderModel.id)
        )
        return list(self.db.execute(stmt).scalars().all())
