# checkout/services/payment_service.py
from decimal import Decimal
from typing import Any, Dict, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from checkout.data.database import unit_of_work, set_lock_timeout
from checkout.data.models.cart_line import CartLineModel
from checkout.data.models.order import OrderModel, DRAFT, PAID
from checkout.data.models.promotion_redemption import PromotionRedemptionModel
from checkout.domain.errors import (
    AccountNotFoundError,
    EmptyCartError,
    EmptyGameListError,
    InsufficientFundsError,
    PromoAlreadyRedeemedError,
    PromoExhaustedError,
)
from checkout.repos.library_repo import LibraryRepo
from checkout.repos.order_repo import OrderRepo
from checkout.repos.promotion_repo import PromotionRepo
from checkout.repos.wallet_repo import WalletRepo
from checkout.services.catalog_client import CatalogClient
from checkout.services.notification_service import NotificationService
from checkout.services.order_service import OrderService
from checkout.services.ownership_guard import OwnershipGuard
from checkout.services.pricing import has_uses_left, promotion_is_active
from checkout.services.wallet_service import WalletService
from checkout.utils.money import ZERO, round2, utcnow
from checkout.utils.settings import PROMO_EXHAUSTED_POLICY
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

PROMO_EXPIRED = "PROMO_EXPIRED"
PROMO_EXHAUSTED = "PROMO_EXHAUSTED"
PROMO_CODE_IGNORED = "PROMO_CODE_IGNORED"

POLICY_CHARGE_FULL_PRICE = "charge_full_price"
POLICY_REJECT = "reject"


def normalize_game_ids(game_ids: Iterable[int]) -> list[int]:
    """Positive ids only, duplicates dropped, first occurrence order kept."""
    seen: dict[int, None] = {}
    for game_id in game_ids:
        if isinstance(game_id, int) and not isinstance(game_id, bool) and game_id > 0:
            seen.setdefault(game_id, None)
    return list(seen)


class PaymentService:
    """
    Settlement executor.

    pay() and buy_now() each run as exactly one transaction. Locks are taken in a
    fixed order: order row, wallet row, promotion row. Any failure rolls back
    the debit, the status flip, the library grant and the redemption together.
    """

    def __init__(
        self,
        db: Session,
        catalog_client: CatalogClient | None = None,
        notifier: NotificationService | None = None,
        clock=utcnow,
        promo_exhausted_policy: str = PROMO_EXHAUSTED_POLICY,
    ):
        self.db = db
        self.catalog = catalog_client
        self.notifier = notifier or NotificationService()
        self.clock = clock
        self.promo_exhausted_policy = promo_exhausted_policy

        self.orders = OrderService(db, catalog_client, clock)
        self.wallet = WalletService(db, clock)
        self.order_repo = OrderRepo(db)
        self.promotions = PromotionRepo(db)
        self.library = LibraryRepo(db)
        self.wallet_repo = WalletRepo(db)
        self.guard = OwnershipGuard(db)

    def pay(self, order_id: int, user_id: int) -> Dict[str, Any]:
        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            # 1. lock + load, must be the caller's DRAFT
            order = self.orders.lock_draft(order_id, user_id)
            charged, notice = self._settle(order, user_id, note=f"Pay order #{order.id}")

        return self._finish(order, user_id, charged, notice)

    def buy_now(self, user_id: int, game_ids: Iterable[int], promo_code: str | None = None) -> Dict[str, Any]:
        """Create a DRAFT, fill it, attach the code if usable and pay, all in one transaction."""
        ids = normalize_game_ids(game_ids)
        if not ids:
            raise EmptyGameListError()
        if not self.wallet_repo.get_account(user_id):
            raise AccountNotFoundError()

        # catalog round trips before any lock is taken
        games = self.catalog.fetch_games(ids)

        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            # fail before creating anything if a game is already owned
            self.guard.ensure_not_owned(user_id, {gid: games[gid]["name"] for gid in ids})

            now = self.clock()
            order = self.order_repo.create_order(
                OrderModel(user_id=user_id, status=DRAFT, total_before=ZERO, total_after=ZERO, created_at=now)
            )
            for gid in ids:
                self.order_repo.add_line(
                    CartLineModel(
                        order_id=order.id,
                        game_id=gid,
                        game_name=games[gid]["name"],
                        unit_price=round2(games[gid]["price"]),
                    )
                )

            code_notice = None
            if promo_code:
                promo = self.promotions.get_by_code(promo_code)
                if promo and promotion_is_active(promo, now):
                    order.promotion_id = promo.id
                else:
                    logger.info(f"Buy-now code {promo_code!r} unknown or outside its window, ignored")
                    code_notice = PROMO_CODE_IGNORED

            self.db.flush()
            order = self.orders.lock_draft(order.id, user_id)
            charged, notice = self._settle(order, user_id, note=f"Buy-now order #{order.id}")

        return self._finish(order, user_id, charged, notice or code_notice)

    def _settle(self, order: OrderModel, user_id: int, note: str) -> tuple[Decimal, str | None]:
        """Steps 2..10 of a payment, caller holds the order lock and owns the transaction."""
        notice = None

        # 2. non-empty cart
        lines = self.order_repo.get_lines(order.id)
        if not lines:
            raise EmptyCartError()

        # 3. never trust the cached totals
        now = self.clock()
        attached = order.promotion_id
        totals = self.orders.recalculate_totals(order, now)
        if attached and order.promotion_id is None:
            notice = PROMO_EXPIRED

        # 4. wallet row lock. Every purchase of this user takes it, so a concurrent
        # one has committed its library rows by the time the ownership check runs
        account = self.wallet.lock_account(user_id)
        self.guard.ensure_not_owned(user_id, {line.game_id: line.game_name for line in lines})

        # 5. early funds check
        if account.balance < totals.total_after:
            raise InsufficientFundsError(
                details={"balance": str(round2(account.balance)), "required": str(totals.total_after)}
            )

        # 6. promotion row lock, window and cap re-validated under the lock
        promo = None
        if order.promotion_id:
            promo = self.promotions.get_for_update(order.promotion_id)
            if promo is None or not promotion_is_active(promo, now):
                notice = PROMO_EXPIRED
                promo = None
            elif not has_uses_left(promo):
                if self.promo_exhausted_policy == POLICY_REJECT:
                    raise PromoExhaustedError(details={"code": promo.code})
                logger.info(f"Promotion {promo.code} exhausted, order {order.id} continues at full price")
                notice = PROMO_EXHAUSTED
                promo = None
            elif self.promotions.get_redemption(promo.id, user_id):
                raise PromoAlreadyRedeemedError(details={"code": promo.code})

            if promo is None:
                order.promotion_id = None
                totals = self.orders.recalculate_totals(order, now)

        # 7. debit, the primitive re-checks funds against the final total
        charged = totals.total_after
        if charged > ZERO:
            self.wallet.apply_debit(account, charged, note, order_id=order.id)

        # 8. terminal state
        order.status = PAID
        order.paid_at = now

        # 9. ownership, conflicts ignored in case a concurrent purchase got there first
        self.library.grant(user_id, [(line.game_id, line.game_name) for line in lines], order_id=order.id)

        # 10. redemption + usage counter, still under the promotion lock
        if promo is not None:
            try:
                self.promotions.add_redemption(
                    PromotionRedemptionModel(promotion_id=promo.id, user_id=user_id, order_id=order.id, redeemed_at=now)
                )
            except IntegrityError as e:
                raise PromoAlreadyRedeemedError(details={"code": promo.code}) from e
            promo.used_count = promo.used_count + 1

        self.db.flush()
        return charged, notice

    def _finish(self, order: OrderModel, user_id: int, charged: Decimal, notice: str | None) -> Dict[str, Any]:
        logger.info(f"Order {order.id} paid by user {user_id}, charged {charged}")
        self.notifier.send_order_paid_notification(user_id, order.id, charged)
        return {
            "order": self.orders.to_dict(order),
            "charged": charged,
            "promotion_notice": notice,
        }
