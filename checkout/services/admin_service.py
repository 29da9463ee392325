# checkout/services/admin_service.py
from typing import Dict

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from checkout.data.database import unit_of_work
from checkout.data.models.cart_line import CartLineModel
from checkout.data.models.ledger_entry import LedgerEntryModel
from checkout.data.models.library_entry import LibraryEntryModel
from checkout.data.models.order import OrderModel
from checkout.data.models.promotion import PromotionModel
from checkout.data.models.promotion_redemption import PromotionRedemptionModel
from checkout.data.models.wallet_account import WalletAccountModel
from checkout.utils.money import ZERO
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class AdminService:
    def __init__(self, db: Session):
        self.db = db

    def reset(self) -> Dict[str, int]:
        """
        Wipe all purchase state in one transaction: children before parents,
        wallets back to zero, promotion counters back to zero.
        Users, wallet accounts and promotions themselves stay.
        """
        counts: Dict[str, int] = {}
        with unit_of_work(self.db):
            for name, model in (
                ("redemptions", PromotionRedemptionModel),
                ("library_entries", LibraryEntryModel),
                ("ledger_entries", LedgerEntryModel),
                ("cart_lines", CartLineModel),
                ("orders", OrderModel),
            ):
                counts[name] = self.db.execute(delete(model).execution_options(synchronize_session=False)).rowcount
            counts["wallets_reset"] = self.db.execute(
                update(WalletAccountModel).values(balance=ZERO).execution_options(synchronize_session=False)
            ).rowcount
            counts["promotions_reset"] = self.db.execute(
                update(PromotionModel).values(used_count=0).execution_options(synchronize_session=False)
            ).rowcount
        self.db.expire_all()

        logger.warning(f"System reset: {counts}")
        return counts
