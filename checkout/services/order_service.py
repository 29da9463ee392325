# checkout/services/order_service.py
from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from checkout.data.database import unit_of_work, set_lock_timeout
from checkout.data.models.cart_line import CartLineModel
from checkout.data.models.order import OrderModel, DRAFT
from checkout.domain.errors import (
    AlreadyInCartError,
    ItemNotFoundError,
    NotDraftError,
    OrderNotFoundError,
    PromoExpiredError,
    PromoNotFoundError,
    UserNotFoundError,
)
from checkout.repos.order_repo import OrderRepo
from checkout.repos.promotion_repo import PromotionRepo
from checkout.repos.user_repo import UserRepo
from checkout.services.catalog_client import CatalogClient
from checkout.services.ownership_guard import OwnershipGuard
from checkout.services.pricing import Totals, calculate_totals, promotion_is_active
from checkout.utils.money import ZERO, round2, utcnow
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Cart / order state machine: DRAFT (mutable) -> PAID (terminal).
    commands (create, add, remove, promo, delete) run as one transaction each,
    with the order row locked; queries only read.
    """

    def __init__(self, db: Session, catalog_client: CatalogClient | None = None, clock=utcnow):
        self.db = db
        self.repo = OrderRepo(db)
        self.promotions = PromotionRepo(db)
        self.users = UserRepo(db)
        self.guard = OwnershipGuard(db)
        self.catalog = catalog_client
        self.clock = clock

    #query
    def get_order(self, order_id: int, user_id: int) -> Dict[str, Any]:
        order = self._load_owned(order_id, user_id)
        return self.to_dict(order)

    def list_orders(self, user_id: int, status: str | None = None) -> List[Dict[str, Any]]:
        rows = self.repo.list_orders(user_id, status)
        return [
            {
                "id": order.id,
                "status": order.status,
                "promotion_id": order.promotion_id,
                "total_before": round2(order.total_before),
                "total_after": round2(order.total_after),
                "items_count": count,
                "created_at": order.created_at,
                "paid_at": order.paid_at,
            }
            for order, count in rows
        ]

    #commands
    def create_draft(self, user_id: int) -> Dict[str, Any]:
        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            # user row lock serializes concurrent create_draft calls of one user
            if not self.users.get_user_for_update(user_id):
                raise UserNotFoundError()

            existing = self.repo.get_latest_draft(user_id)
            if existing:
                logger.info(f"User {user_id} already has draft order {existing.id}")
                order = existing
            else:
                order = self.repo.create_order(
                    OrderModel(
                        user_id=user_id,
                        status=DRAFT,
                        total_before=ZERO,
                        total_after=ZERO,
                        created_at=self.clock(),
                    )
                )
                logger.info(f"Created draft order {order.id} for user {user_id}")
        return self.to_dict(order)

    def add_item(self, order_id: int, user_id: int, game_id: int) -> Dict[str, Any]:
        # cheap checks first, then the catalog call, no lock is held across it
        self._ensure_draft(self._load_owned(order_id, user_id))
        game = self.catalog.fetch_game(game_id)

        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            order = self.lock_draft(order_id, user_id)
            self.guard.ensure_not_owned(user_id, {game_id: game["name"]})
            try:
                self.repo.add_line(
                    CartLineModel(
                        order_id=order.id,
                        game_id=game_id,
                        game_name=game["name"],
                        unit_price=round2(game["price"]),
                    )
                )
            except IntegrityError as e:
                # unique (order_id, game_id): first insert wins
                raise AlreadyInCartError(details={"game_id": game_id}) from e
            self.recalculate_totals(order, self.clock())

        logger.info(f"Game {game_id} added to order {order_id} at {round2(game['price'])}")
        return self.to_dict(order)

    def remove_item(self, order_id: int, user_id: int, game_id: int) -> Dict[str, Any]:
        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            order = self.lock_draft(order_id, user_id)
            if self.repo.delete_line(order.id, game_id) == 0:
                raise ItemNotFoundError(details={"game_id": game_id})
            self.recalculate_totals(order, self.clock())

        logger.info(f"Game {game_id} removed from order {order_id}")
        return self.to_dict(order)

    def apply_promotion(self, order_id: int, user_id: int, code: str) -> Dict[str, Any]:
        """
        Attach a promotion by code if its time window holds now.
        The usage cap is deliberately not checked here, only at payment, so an
        attached code never reserves a use.
        """
        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            order = self.lock_draft(order_id, user_id)
            promo = self.promotions.get_by_code(code)
            if not promo:
                raise PromoNotFoundError(details={"code": code})

            now = self.clock()
            if not promotion_is_active(promo, now):
                raise PromoExpiredError(details={"code": promo.code})

            order.promotion_id = promo.id
            self.recalculate_totals(order, now)

        logger.info(f"Promotion {promo.code} attached to order {order_id}")
        return self.to_dict(order)

    def clear_promotion(self, order_id: int, user_id: int) -> Dict[str, Any]:
        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            order = self.lock_draft(order_id, user_id)
            order.promotion_id = None
            self.recalculate_totals(order, self.clock())

        logger.info(f"Promotion cleared from order {order_id}")
        return self.to_dict(order)

    def recalculate(self, order_id: int, user_id: int) -> Dict[str, Any]:
        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            order = self.lock_draft(order_id, user_id)
            self.recalculate_totals(order, self.clock())
        return self.to_dict(order)

    def delete_draft(self, order_id: int, user_id: int) -> None:
        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            order = self.lock_draft(order_id, user_id)
            self.repo.delete_order(order.id)

        logger.info(f"Draft order {order_id} deleted")

    # ---- shared with the payment executor and the expiry task ----

    def lock_draft(self, order_id: int, user_id: int) -> OrderModel:
        order = self.repo.get_order_for_update(order_id)
        return self._ensure_draft(self._ensure_owned(order, user_id))

    def recalculate_totals(self, order: OrderModel, now: datetime) -> Totals:
        """
        Recompute and store totals from the current lines.
        A promotion that is no longer inside its window is detached (self-heal),
        the order then costs the plain subtotal.
        """
        lines = self.repo.get_lines(order.id)
        promo = self.promotions.get(order.promotion_id) if order.promotion_id else None
        totals = calculate_totals([line.unit_price for line in lines], promo, now)

        if order.promotion_id and not totals.promotion_applied:
            logger.info(f"Promotion {order.promotion_id} no longer active, detaching from order {order.id}")
            order.promotion_id = None

        order.total_before = totals.total_before
        order.total_after = totals.total_after
        self.db.flush()
        return totals

    def to_dict(self, order: OrderModel) -> Dict[str, Any]:
        lines = self.repo.get_lines(order.id)
        promo = self.promotions.get(order.promotion_id) if order.promotion_id else None
        total_before = round2(order.total_before)
        total_after = round2(order.total_after)
        return {
            "id": order.id,
            "user_id": order.user_id,
            "status": order.status,
            "promotion_id": order.promotion_id,
            "promotion_code": promo.code if promo else None,
            "total_before": total_before,
            "discount": round2(total_before - total_after),
            "total_after": total_after,
            "created_at": order.created_at,
            "paid_at": order.paid_at,
            "items": [
                {
                    "game_id": line.game_id,
                    "name": line.game_name,
                    "unit_price": round2(line.unit_price),
                }
                for line in lines
            ],
        }

    def _load_owned(self, order_id: int, user_id: int) -> OrderModel:
        return self._ensure_owned(self.repo.get_order(order_id), user_id)

    @staticmethod
    def _ensure_owned(order: OrderModel | None, user_id: int) -> OrderModel:
        # someone else's order looks exactly like a missing one
        if not order or order.user_id != user_id:
            raise OrderNotFoundError()
        return order

    @staticmethod
    def _ensure_draft(order: OrderModel) -> OrderModel:
        if order.status != DRAFT:
            raise NotDraftError(f"Order {order.id} is already {order.status.lower()}")
        return order
