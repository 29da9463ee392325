# checkout/domain/schemas.py
import json
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, List, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator

from checkout.utils.money import as_utc, parse_amount


def _positive_amount(value: Any) -> Decimal:
    amount = parse_amount(value)
    if amount is None:
        raise ValueError("amount must be > 0 with at most 2 decimals")
    return amount


PositiveAmount = Annotated[Decimal, BeforeValidator(_positive_amount)]


# ---------- users ----------

class UserCreate(BaseModel):
    """Schema for creating a user (the wallet account is opened with it)."""

    id: int = Field(..., gt=0, description="User id from the identity provider")
    name: str = Field(..., min_length=1, max_length=100)


class UserRead(BaseModel):
    id: int
    name: str

    model_config = ConfigDict(from_attributes=True)


# ---------- cart / orders ----------

class ItemIn(BaseModel):
    """Schema for adding a game to the cart."""

    game_id: int = Field(..., gt=0)


class PromoCodeIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("code must not be blank")
        return v


class BuyNowIn(BaseModel):
    """
    games accepts a list, a single id, a JSON array string or "1,3,5".
    Non-positive and repeated ids are dropped.
    """

    games: List[int]
    promo_code: str | None = Field(default=None, max_length=64)

    @field_validator("games", mode="before")
    @classmethod
    def parse_games(cls, v: Any) -> List[int]:
        if isinstance(v, int):
            v = [v]
        elif isinstance(v, str):
            try:
                parsed = json.loads(v)
            except ValueError:
                parsed = v.split(",")
            v = parsed if isinstance(parsed, list) else [parsed]
        if not isinstance(v, list):
            raise ValueError("games must be a list of ids")

        ids: List[int] = []
        for raw in v:
            try:
                game_id = int(str(raw).strip())
            except ValueError:
                continue
            if game_id > 0 and game_id not in ids:
                ids.append(game_id)
        return ids

    @field_validator("promo_code")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip().upper() or None


class CartItemOut(BaseModel):
    game_id: int
    name: str
    unit_price: Decimal


class OrderOut(BaseModel):
    id: int
    user_id: int
    status: str
    promotion_id: int | None = None
    promotion_code: str | None = None
    total_before: Decimal
    discount: Decimal
    total_after: Decimal
    created_at: datetime
    paid_at: datetime | None = None
    items: List[CartItemOut]


class OrderSummaryOut(BaseModel):
    id: int
    status: str
    promotion_id: int | None = None
    total_before: Decimal
    total_after: Decimal
    items_count: int
    created_at: datetime
    paid_at: datetime | None = None


class PaymentOut(BaseModel):
    order: OrderOut
    charged: Decimal
    promotion_notice: str | None = None


# ---------- wallet ----------

class AmountIn(BaseModel):
    """Schema for top-up / withdraw."""

    amount: PositiveAmount
    note: str | None = Field(default=None, max_length=255)


class TransferIn(BaseModel):
    to_user_id: int = Field(..., gt=0)
    amount: PositiveAmount
    note: str | None = Field(default=None, max_length=255)


class BalanceOut(BaseModel):
    user_id: int
    balance: Decimal


class LedgerEntryOut(BaseModel):
    id: int
    user_id: int
    order_id: int | None = None
    type: str
    amount: Decimal
    balance_after: Decimal
    note: str | None = None
    created_at: datetime


class LedgerPageOut(BaseModel):
    items: List[LedgerEntryOut]
    total: int
    page: int
    page_size: int


class TransferOut(BaseModel):
    amount: Decimal
    source: LedgerEntryOut
    target: LedgerEntryOut


# ---------- promotions ----------

DiscountType = Literal["PERCENT", "FIXED"]


def check_promotion_rules(
    discount_type: str,
    discount_value: Decimal,
    starts_at: datetime,
    expires_at: datetime,
) -> None:
    """Shared by create and update, raises ValueError on the first broken rule."""
    if as_utc(expires_at) < as_utc(starts_at):
        raise ValueError("expires_at must not be before starts_at")
    if discount_type == "PERCENT" and discount_value > 100:
        raise ValueError("PERCENT discount_value must be <= 100")


class PromotionCreate(BaseModel):
    """Full schema: every field required except description and max_uses."""

    code: str = Field(..., min_length=1, max_length=64)
    description: str | None = None
    discount_type: DiscountType
    discount_value: Decimal = Field(..., gt=0)
    max_uses: int = Field(default=0, ge=0, description="0 = unlimited")
    starts_at: datetime
    expires_at: datetime

    @field_validator("discount_type", mode="before")
    @classmethod
    def upper_type(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("starts_at", "expires_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        # a timestamp without offset is read as UTC
        return as_utc(v)

    @model_validator(mode="after")
    def check_window(self) -> "PromotionCreate":
        check_promotion_rules(self.discount_type, self.discount_value, self.starts_at, self.expires_at)
        return self


class PromotionUpdate(BaseModel):
    """Partial schema: only the fields that are sent get updated."""

    code: str | None = Field(default=None, min_length=1, max_length=64)
    description: str | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, gt=0)
    max_uses: int | None = Field(default=None, ge=0)
    starts_at: datetime | None = None
    expires_at: datetime | None = None

    @field_validator("discount_type", mode="before")
    @classmethod
    def upper_type(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str | None) -> str | None:
        return v.strip().upper() if v is not None else None

    @field_validator("starts_at", "expires_at")
    @classmethod
    def to_utc(cls, v: datetime | None) -> datetime | None:
        return as_utc(v) if v is not None else None

    @model_validator(mode="after")
    def reject_nulls(self) -> "PromotionUpdate":
        # description may be cleared, the rest may only be omitted
        for name in self.model_fields_set - {"description"}:
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class PromotionOut(BaseModel):
    id: int
    code: str
    description: str | None = None
    discount_type: str
    discount_value: Decimal
    max_uses: int
    used_count: int
    starts_at: datetime
    expires_at: datetime


class PromotionPageOut(BaseModel):
    items: List[PromotionOut]
    total: int
    page: int
    page_size: int


class PromotionDeleteOut(BaseModel):
    id: int
    deleted: bool
    soft_deactivated: bool


class RedemptionOut(BaseModel):
    id: int
    promotion_id: int
    user_id: int
    order_id: int
    redeemed_at: datetime


class MyRedemptionOut(BaseModel):
    id: int
    promotion_id: int
    code: str
    description: str | None = None
    order_id: int
    redeemed_at: datetime


# ---------- library / reports / admin ----------

class LibraryEntryOut(BaseModel):
    game_id: int
    name: str | None = None
    order_id: int | None = None
    acquired_at: datetime


class TopSellerOut(BaseModel):
    game_id: int
    name: str | None = None
    sold_count: int
    total_revenue: Decimal
    first_paid_at: datetime | None = None
    last_paid_at: datetime | None = None


class ResetOut(BaseModel):
    redemptions: int
    library_entries: int
    ledger_entries: int
    cart_lines: int
    orders: int
    wallets_reset: int
    promotions_reset: int
