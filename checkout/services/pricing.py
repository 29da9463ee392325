# checkout/services/pricing.py
"""
Pricing & promotion engine.

Pure functions only: no session, no clock. Callers pass the cart prices, the
attached promotion (or None) and the current time, and persist the result.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Iterable

from checkout.data.models.promotion import PromotionModel, PERCENT, FIXED
from checkout.utils.money import ZERO, round2, as_utc


@dataclass(frozen=True)
class Totals:
    total_before: Decimal
    discount: Decimal
    total_after: Decimal
    promotion_applied: bool


def promotion_is_active(promo: PromotionModel, now: datetime) -> bool:
    """starts_at <= now <= expires_at, both ends inclusive."""
    now = as_utc(now)
    return as_utc(promo.starts_at) <= now <= as_utc(promo.expires_at)


def has_uses_left(promo: PromotionModel) -> bool:
    return promo.max_uses == 0 or promo.used_count < promo.max_uses


def compute_discount(subtotal: Decimal, promo: PromotionModel) -> Decimal:
    value = Decimal(str(promo.discount_value or 0))
    if promo.discount_type == PERCENT:
        discount = subtotal * value / Decimal(100)
    elif promo.discount_type == FIXED:
        discount = value
    else:
        raise ValueError(f"Unknown discount type: {promo.discount_type}")
    # clamp to [0, subtotal]
    return min(max(discount, ZERO), subtotal)


def calculate_totals(
    prices: Iterable[Decimal],
    promo: PromotionModel | None,
    now: datetime,
) -> Totals:
    subtotal = round2(sum((Decimal(str(p)) for p in prices), ZERO))

    if promo is None or not promotion_is_active(promo, now):
        return Totals(subtotal, ZERO, subtotal, False)

    discount = round2(compute_discount(subtotal, promo))
    return Totals(subtotal, discount, round2(subtotal - discount), True)
