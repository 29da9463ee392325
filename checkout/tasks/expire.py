# checkout/tasks/expire.py
from checkout.celery_worker import celery_app
from checkout.data.database import SessionLocal
from checkout.domain.errors import CheckoutError
from checkout.repos.order_repo import OrderRepo
from checkout.services.order_service import OrderService
from checkout.utils.money import utcnow
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


def detach_expired_promotions(db, clock=utcnow) -> list[int]:
    """
    Run the self-healing recalculation on every DRAFT whose promotion window is over.
    One transaction per order, an order paid or deleted meanwhile is skipped.
    """
    service = OrderService(db, clock=clock)
    healed: list[int] = []

    order_ids = OrderRepo(db).draft_ids_with_expired_promotion(clock())
    db.rollback()  # end the read transaction before locking rows one by one
    logger.info(f"Found {len(order_ids)} drafts with an expired promotion")

    for order_id in order_ids:
        order = OrderRepo(db).get_order(order_id)
        if order is None:
            continue
        try:
            service.recalculate(order_id, order.user_id)
            healed.append(order_id)
        except CheckoutError as e:
            logger.warning(f"Skipping order {order_id}: {e.message}")
    return healed


@celery_app.task(name="checkout.tasks.expire.detach_expired_promotions_task")
def detach_expired_promotions_task():
    logger.info("Detach expired promotions task started")

    db = SessionLocal()
    try:
        healed = detach_expired_promotions(db)
        return {"healed": healed}
    finally:
        db.close()
