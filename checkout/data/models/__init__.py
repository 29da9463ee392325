#import all models so SQLAlchemy registers them in Base.metadata

from checkout.data.models.user import UserModel
from checkout.data.models.wallet_account import WalletAccountModel
from checkout.data.models.ledger_entry import LedgerEntryModel
from checkout.data.models.promotion import PromotionModel
from checkout.data.models.order import OrderModel
from checkout.data.models.cart_line import CartLineModel
from checkout.data.models.promotion_redemption import PromotionRedemptionModel
from checkout.data.models.library_entry import LibraryEntryModel

__all__ = [
    "UserModel",
    "WalletAccountModel",
    "LedgerEntryModel",
    "PromotionModel",
    "OrderModel",
    "CartLineModel",
    "PromotionRedemptionModel",
    "LibraryEntryModel",
]
