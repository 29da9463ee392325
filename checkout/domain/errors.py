# checkout/domain/errors.py
from typing import Any


class CheckoutError(Exception):
    """Base error: message, machine readable code, http status, optional details."""

    status_code = 500
    code = "ERROR"
    default_message = "Checkout error"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


# ---- validation: rejected before any lock is taken ----

class ValidationError(CheckoutError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid input"


class InvalidAmountError(ValidationError):
    code = "INVALID_AMOUNT"
    default_message = "Amount must be a positive value with at most 2 decimals"


class SelfTransferError(ValidationError):
    code = "SELF_TRANSFER"
    default_message = "Cannot transfer to the same account"


class EmptyGameListError(ValidationError):
    code = "EMPTY_GAME_LIST"
    default_message = "At least one game is required"


# ---- not found ----

class NotFoundError(CheckoutError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class OrderNotFoundError(NotFoundError):
    code = "ORDER_NOT_FOUND"
    default_message = "Order not found"


class GameNotFoundError(NotFoundError):
    code = "GAME_NOT_FOUND"
    default_message = "Game not found"


class PromoNotFoundError(NotFoundError):
    code = "PROMO_NOT_FOUND"
    default_message = "Promotion not found"


class AccountNotFoundError(NotFoundError):
    code = "ACCOUNT_NOT_FOUND"
    default_message = "Wallet account not found"


class ItemNotFoundError(NotFoundError):
    code = "ITEM_NOT_FOUND"
    default_message = "Game is not in the cart"


class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"
    default_message = "User not found"


# ---- conflicts: raised inside the transaction, full rollback ----

class ConflictError(CheckoutError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Conflict"


class NotDraftError(ConflictError):
    code = "NOT_DRAFT"
    default_message = "Order is already paid"


class AlreadyOwnedError(ConflictError):
    code = "ALREADY_OWNED"
    default_message = "Game already in library"

    def __init__(self, names: list[str]):
        self.names = names
        super().__init__(
            f"Already owned: {', '.join(names)}",
            details={"games": names},
        )


class AlreadyInCartError(ConflictError):
    code = "ALREADY_IN_CART"
    default_message = "Game is already in the cart"


class EmptyCartError(ConflictError):
    code = "EMPTY_CART"
    default_message = "Cart is empty"


class InsufficientFundsError(ConflictError):
    code = "INSUFFICIENT_FUNDS"
    default_message = "Insufficient wallet balance"


class PromoExpiredError(ConflictError):
    code = "PROMO_EXPIRED"
    default_message = "Promotion is expired or not started yet"


class PromoExhaustedError(ConflictError):
    code = "PROMO_EXHAUSTED"
    default_message = "Promotion has no uses left"


class PromoAlreadyRedeemedError(ConflictError):
    code = "PROMO_ALREADY_REDEEMED"
    default_message = "Promotion already redeemed by this account"


class DuplicatePromoCodeError(ConflictError):
    code = "DUPLICATE_PROMO_CODE"
    default_message = "Promotion code must be unique"


# ---- access / system ----

class PermissionDeniedError(CheckoutError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


class PersistenceError(CheckoutError):
    status_code = 503
    code = "PERSISTENCE_ERROR"
    default_message = "Storage unavailable, nothing was changed"
