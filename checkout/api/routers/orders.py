# checkout/api/routers/orders.py
from typing import List, Literal

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from checkout.api.deps import Identity, get_catalog_client, get_identity, get_notifier
from checkout.data.database import get_db
from checkout.domain.schemas import (
    BuyNowIn,
    ItemIn,
    OrderOut,
    OrderSummaryOut,
    PaymentOut,
    PromoCodeIn,
)
from checkout.services.catalog_client import CatalogClient
from checkout.services.notification_service import NotificationService
from checkout.services.order_service import OrderService
from checkout.services.payment_service import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


def get_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
) -> OrderService:
    return OrderService(db, catalog)


def get_payment_service(
    db: Session = Depends(get_db),
    catalog: CatalogClient = Depends(get_catalog_client),
    notifier: NotificationService = Depends(get_notifier),
) -> PaymentService:
    return PaymentService(db, catalog, notifier)


@router.post("/", response_model=OrderOut)
def create_draft(
    identity: Identity = Depends(get_identity),
    svc: OrderService = Depends(get_service),
):
    """Return the caller's DRAFT, creating an empty one if there is none."""
    return svc.create_draft(identity.user_id)


@router.get("/", response_model=List[OrderSummaryOut])
def list_orders(
    status: Literal["DRAFT", "PAID"] | None = Query(default=None),
    identity: Identity = Depends(get_identity),
    svc: OrderService = Depends(get_service),
):
    return svc.list_orders(identity.user_id, status)


@router.post("/buy", response_model=PaymentOut, status_code=201)
def buy_now(
    payload: BuyNowIn,
    identity: Identity = Depends(get_identity),
    svc: PaymentService = Depends(get_payment_service),
):
    return svc.buy_now(identity.user_id, payload.games, payload.promo_code)


@router.get("/{order_id}", response_model=OrderOut)
def get_order(
    order_id: int,
    identity: Identity = Depends(get_identity),
    svc: OrderService = Depends(get_service),
):
    return svc.get_order(order_id, identity.user_id)


@router.delete("/{order_id}", status_code=204)
def delete_draft(
    order_id: int,
    identity: Identity = Depends(get_identity),
    svc: OrderService = Depends(get_service),
):
    svc.delete_draft(order_id, identity.user_id)
    return Response(status_code=204)


@router.post("/{order_id}/items", response_model=OrderOut)
def add_item(
    order_id: int,
    payload: ItemIn,
    identity: Identity = Depends(get_identity),
    svc: OrderService = Depends(get_service),
):
    return svc.add_item(order_id, identity.user_id, payload.game_id)


@router.delete("/{order_id}/items/{game_id}", response_model=OrderOut)
def remove_item(
    order_id: int,
    game_id: int,
    identity: Identity = Depends(get_identity),
    svc: OrderService = Depends(get_service),
):
    return svc.remove_item(order_id, identity.user_id, game_id)


@router.post("/{order_id}/promotion", response_model=OrderOut)
def apply_promotion(
    order_id: int,
    payload: PromoCodeIn,
    identity: Identity = Depends(get_identity),
    svc: OrderService = Depends(get_service),
):
    return svc.apply_promotion(order_id, identity.user_id, payload.code)


@router.delete("/{order_id}/promotion", response_model=OrderOut)
def clear_promotion(
    order_id: int,
    identity: Identity = Depends(get_identity),
    svc: OrderService = Depends(get_service),
):
    return svc.clear_promotion(order_id, identity.user_id)


@router.post("/{order_id}/recalculate", response_model=OrderOut)
def recalculate(
    order_id: int,
    identity: Identity = Depends(get_identity),
    svc: OrderService = Depends(get_service),
):
    return svc.recalculate(order_id, identity.user_id)


@router.post("/{order_id}/pay", response_model=PaymentOut)
def pay(
    order_id: int,
    identity: Identity = Depends(get_identity),
    svc: PaymentService = Depends(get_payment_service),
):
    return svc.pay(order_id, identity.user_id)
