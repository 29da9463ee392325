# checkout/api/routers/promotions.py
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from checkout.api.deps import Identity, get_identity, require_admin
from checkout.data.database import get_db
from checkout.domain.schemas import (
    MyRedemptionOut,
    PromoCodeIn,
    PromotionCreate,
    PromotionDeleteOut,
    PromotionOut,
    PromotionPageOut,
    PromotionUpdate,
    RedemptionOut,
)
from checkout.services.promotion_service import PromotionService

router = APIRouter(prefix="/promotions", tags=["promotions"])


def get_service(db: Session = Depends(get_db)) -> PromotionService:
    return PromotionService(db)


# ---- user ----

@router.post("/validate", response_model=PromotionOut)
def validate_code(
    payload: PromoCodeIn,
    identity: Identity = Depends(get_identity),
    svc: PromotionService = Depends(get_service),
):
    return svc.validate_code(identity.user_id, payload.code)


@router.get("/active", response_model=List[PromotionOut])
def list_active(q: str | None = Query(default=None), svc: PromotionService = Depends(get_service)):
    return svc.list_active(q)


@router.get("/me/redemptions", response_model=List[MyRedemptionOut])
def my_redemptions(identity: Identity = Depends(get_identity), svc: PromotionService = Depends(get_service)):
    return svc.list_my_redemptions(identity.user_id)


# ---- admin ----

@router.post("/", response_model=PromotionOut, status_code=201, dependencies=[Depends(require_admin)])
def create_promotion(payload: PromotionCreate, svc: PromotionService = Depends(get_service)):
    return svc.create(payload)


@router.get("/", response_model=PromotionPageOut, dependencies=[Depends(require_admin)])
def list_promotions(
    q: str | None = Query(default=None),
    active_only: bool = Query(default=False),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    svc: PromotionService = Depends(get_service),
):
    return svc.list_promotions(q, active_only, page, page_size)


@router.get("/{promotion_id}", response_model=PromotionOut, dependencies=[Depends(require_admin)])
def get_promotion(promotion_id: int, svc: PromotionService = Depends(get_service)):
    return svc.get(promotion_id)


@router.patch("/{promotion_id}", response_model=PromotionOut, dependencies=[Depends(require_admin)])
def update_promotion(promotion_id: int, payload: PromotionUpdate, svc: PromotionService = Depends(get_service)):
    return svc.update(promotion_id, payload)


@router.post("/{promotion_id}/deactivate", response_model=PromotionOut, dependencies=[Depends(require_admin)])
def deactivate_promotion(promotion_id: int, svc: PromotionService = Depends(get_service)):
    return svc.deactivate(promotion_id)


@router.delete("/{promotion_id}", response_model=PromotionDeleteOut, dependencies=[Depends(require_admin)])
def delete_promotion(promotion_id: int, svc: PromotionService = Depends(get_service)):
    return svc.delete_or_deactivate(promotion_id)


@router.get("/{promotion_id}/redemptions", response_model=List[RedemptionOut], dependencies=[Depends(require_admin)])
def list_redemptions(promotion_id: int, svc: PromotionService = Depends(get_service)):
    return svc.list_redemptions(promotion_id)
