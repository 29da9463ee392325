# checkout/services/report_service.py
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Dict, List

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from checkout.data.models.cart_line import CartLineModel
from checkout.data.models.order import OrderModel, PAID
from checkout.utils.money import round2


class ReportService:
    def __init__(self, db: Session):
        self.db = db

    def top_sellers(self, day: date | None = None, limit: int = 5) -> List[Dict[str, Any]]:
        """Best selling games over PAID orders, optionally for one UTC calendar day of paid_at."""
        sold_count = func.count(CartLineModel.id)
        revenue = func.sum(CartLineModel.unit_price)
        stmt = (
            select(
                CartLineModel.game_id,
                func.max(CartLineModel.game_name),
                sold_count,
                revenue,
                func.min(OrderModel.paid_at),
                func.max(OrderModel.paid_at),
            )
            .join(OrderModel, OrderModel.id == CartLineModel.order_id)
            .where(OrderModel.status == PAID, OrderModel.paid_at.is_not(None))
            .group_by(CartLineModel.game_id)
            .order_by(sold_count.desc(), revenue.desc(), CartLineModel.game_id.asc())
            .limit(limit)
        )
        if day is not None:
            start = datetime.combine(day, time.min, tzinfo=timezone.utc)
            stmt = stmt.where(OrderModel.paid_at >= start, OrderModel.paid_at < start + timedelta(days=1))

        return [
            {
                "game_id": game_id,
                "name": name,
                "sold_count": int(count),
                "total_revenue": round2(total or 0),
                "first_paid_at": first_paid,
                "last_paid_at": last_paid,
            }
            for game_id, name, count, total, first_paid, last_paid in self.db.execute(stmt).all()
        ]
