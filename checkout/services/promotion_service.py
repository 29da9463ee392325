# checkout/services/promotion_service.py
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from checkout.data.database import unit_of_work
from checkout.data.models.promotion import PromotionModel
from checkout.domain.errors import (
    DuplicatePromoCodeError,
    PromoAlreadyRedeemedError,
    PromoExhaustedError,
    PromoExpiredError,
    PromoNotFoundError,
    ValidationError,
)
from checkout.domain.schemas import PromotionCreate, PromotionUpdate, check_promotion_rules
from checkout.repos.promotion_repo import PromotionRepo
from checkout.services.pricing import has_uses_left, promotion_is_active
from checkout.utils.money import round2, utcnow
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


class PromotionService:
    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.repo = PromotionRepo(db)
        self.clock = clock

    # ---- user side ----

    def validate_code(self, user_id: int, code: str) -> Dict[str, Any]:
        """
        Read-only preview of whether a code would apply for this user right now.
        Nothing is reserved, the payment re-checks everything under lock.
        """
        promo = self._by_code(code)
        if not promotion_is_active(promo, self.clock()):
            raise PromoExpiredError(details={"code": promo.code})
        if not has_uses_left(promo):
            raise PromoExhaustedError(details={"code": promo.code})
        if self.repo.get_redemption(promo.id, user_id):
            raise PromoAlreadyRedeemedError(details={"code": promo.code})
        return self.to_dict(promo)

    def list_active(self, q: str | None = None) -> List[Dict[str, Any]]:
        promos, _ = self.repo.search(q, active_at=self.clock(), offset=0, limit=MAX_PAGE_SIZE)
        return [self.to_dict(p) for p in promos]

    def list_my_redemptions(self, user_id: int) -> List[Dict[str, Any]]:
        return [
            {
                "id": r.id,
                "promotion_id": p.id,
                "code": p.code,
                "description": p.description,
                "order_id": r.order_id,
                "redeemed_at": r.redeemed_at,
            }
            for r, p in self.repo.list_redemptions_by_user(user_id)
        ]

    # ---- admin ----

    def create(self, payload: PromotionCreate) -> Dict[str, Any]:
        with unit_of_work(self.db):
            try:
                promo = self.repo.add(
                    PromotionModel(
                        code=payload.code,
                        description=payload.description,
                        discount_type=payload.discount_type,
                        discount_value=payload.discount_value,
                        max_uses=payload.max_uses,
                        used_count=0,
                        starts_at=payload.starts_at,
                        expires_at=payload.expires_at,
                        created_at=self.clock(),
                    )
                )
            except IntegrityError as e:
                raise DuplicatePromoCodeError(details={"code": payload.code}) from e

        logger.info(f"Promotion {promo.code} created ({promo.discount_type} {promo.discount_value})")
        return self.to_dict(promo)

    def update(self, promotion_id: int, payload: PromotionUpdate) -> Dict[str, Any]:
        changes = payload.model_dump(exclude_unset=True)
        with unit_of_work(self.db):
            promo = self._get(promotion_id)
            for field, value in changes.items():
                setattr(promo, field, value)
            # the merged row must satisfy the same rules as a new promotion
            try:
                check_promotion_rules(
                    promo.discount_type, Decimal(str(promo.discount_value)), promo.starts_at, promo.expires_at
                )
            except ValueError as e:
                raise ValidationError(str(e), details={"fields": sorted(changes)}) from e
            try:
                self.db.flush()
            except IntegrityError as e:
                raise DuplicatePromoCodeError(details={"code": changes.get("code")}) from e

        logger.info(f"Promotion {promotion_id} updated: {sorted(changes)}")
        return self.to_dict(promo)

    def get(self, promotion_id: int) -> Dict[str, Any]:
        return self.to_dict(self._get(promotion_id))

    def list_promotions(
        self,
        q: str | None = None,
        active_only: bool = False,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        page = max(1, page)
        page_size = min(MAX_PAGE_SIZE, max(1, page_size))
        promos, total = self.repo.search(
            q,
            active_at=self.clock() if active_only else None,
            offset=(page - 1) * page_size,
            limit=page_size,
        )
        return {
            "items": [self.to_dict(p) for p in promos],
            "total": total,
            "page": page,
            "page_size": page_size,
        }

    def deactivate(self, promotion_id: int) -> Dict[str, Any]:
        with unit_of_work(self.db):
            promo = self._get(promotion_id)
            promo.expires_at = self.clock()
        logger.info(f"Promotion {promo.code} deactivated")
        return self.to_dict(promo)

    def delete_or_deactivate(self, promotion_id: int) -> Dict[str, Any]:
        """Never-redeemed promotions are deleted, redeemed ones only expire now."""
        with unit_of_work(self.db):
            promo = self._get(promotion_id)
            if self.repo.count_redemptions(promo.id) > 0:
                promo.expires_at = self.clock()
                deleted = False
            else:
                self.repo.detach_from_drafts(promo.id)
                self.repo.delete(promo)
                deleted = True

        logger.info(f"Promotion {promotion_id} {'deleted' if deleted else 'soft-deactivated'}")
        return {"id": promotion_id, "deleted": deleted, "soft_deactivated": not deleted}

    def list_redemptions(self, promotion_id: int) -> List[Dict[str, Any]]:
        self._get(promotion_id)
        return [
            {
                "id": r.id,
                "promotion_id": r.promotion_id,
                "user_id": r.user_id,
                "order_id": r.order_id,
                "redeemed_at": r.redeemed_at,
            }
            for r in self.repo.list_redemptions_by_promotion(promotion_id)
        ]

    def _get(self, promotion_id: int) -> PromotionModel:
        promo = self.repo.get(promotion_id)
        if not promo:
            raise PromoNotFoundError()
        return promo

    def _by_code(self, code: str) -> PromotionModel:
        promo = self.repo.get_by_code(code)
        if not promo:
            raise PromoNotFoundError(details={"code": code})
        return promo

    @staticmethod
    def to_dict(promo: PromotionModel) -> Dict[str, Any]:
        return {
            "id": promo.id,
            "code": promo.code,
            "description": promo.description,
            "discount_type": promo.discount_type,
            "discount_value": round2(promo.discount_value),
            "max_uses": promo.max_uses,
            "used_count": promo.used_count,
            "starts_at": promo.starts_at,
            "expires_at": promo.expires_at,
        }
