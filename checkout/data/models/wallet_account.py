#checkout/data/models/wallet_account.py
from sqlalchemy import Column, Integer, ForeignKey, Numeric, CheckConstraint

from checkout.data.database import Base


class WalletAccountModel(Base):
    __tablename__ = "wallet_accounts"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_wallet_balance_nonneg"),
    )

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
