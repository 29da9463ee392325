# checkout/services/wallet_service.py
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict

from sqlalchemy.orm import Session

from checkout.data.database import unit_of_work, set_lock_timeout
from checkout.data.models.ledger_entry import LedgerEntryModel, CREDIT, DEBIT
from checkout.data.models.wallet_account import WalletAccountModel
from checkout.domain.errors import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    SelfTransferError,
)
from checkout.repos.wallet_repo import WalletRepo
from checkout.utils.money import ZERO, parse_amount, round2, utcnow
from checkout.utils.logging import get_logger

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100


class WalletService:
    """
    Wallet ledger: running balance plus an append-only ledger.
    Balance and ledger rows are always written in the same transaction and only
    while the account row is locked.
    """

    def __init__(self, db: Session, clock=utcnow):
        self.db = db
        self.repo = WalletRepo(db)
        self.clock = clock

    #query
    def balance(self, user_id: int) -> Dict[str, Any]:
        account = self.repo.get_account(user_id)
        if not account:
            raise AccountNotFoundError()
        return {"user_id": account.user_id, "balance": round2(account.balance)}

    def list_entries(
        self,
        user_id: int,
        page: int = 1,
        page_size: int = 20,
        sort: str = "desc",
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> Dict[str, Any]:
        if not self.repo.get_account(user_id):
            raise AccountNotFoundError()
        page = max(1, page)
        page_size = min(MAX_PAGE_SIZE, max(1, page_size))
        entries, total = self.repo.list_entries(
            user_id,
            offset=(page - 1) * page_size,
            limit=page_size,
            ascending=sort.lower() == "asc",
            start=start,
            end=end,
        )
        return {
            "items": [self.entry_to_dict(e) for e in entries],
            "total": total,
            "page": page,
            "page_size": page_size,
        }

    #commands
    def open_account(self, user_id: int) -> WalletAccountModel:
        """Runs inside the caller's transaction (user creation)."""
        return self.repo.create_account(WalletAccountModel(user_id=user_id, balance=ZERO))

    def credit(self, user_id: int, amount, note: str | None = None) -> Dict[str, Any]:
        value = self._validate_amount(amount)
        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            account = self.lock_account(user_id)
            entry = self.apply_credit(account, value, note)
        return self.entry_to_dict(entry)

    def debit(self, user_id: int, amount, note: str | None = None) -> Dict[str, Any]:
        value = self._validate_amount(amount)
        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            account = self.lock_account(user_id)
            entry = self.apply_debit(account, value, note)
        return self.entry_to_dict(entry)

    def top_up(self, user_id: int, amount, note: str | None = None) -> Dict[str, Any]:
        return self.credit(user_id, amount, note or "Top up")

    def withdraw(self, user_id: int, amount, note: str | None = None) -> Dict[str, Any]:
        return self.debit(user_id, amount, note or "Withdraw")

    def transfer(self, from_user_id: int, to_user_id: int, amount, note: str | None = None) -> Dict[str, Any]:
        value = self._validate_amount(amount)
        if from_user_id == to_user_id:
            raise SelfTransferError()

        with unit_of_work(self.db):
            set_lock_timeout(self.db)
            # ascending user id, same order for A->B and B->A so they cannot deadlock
            locked = {uid: self.lock_account(uid) for uid in sorted((from_user_id, to_user_id))}
            source, target = locked[from_user_id], locked[to_user_id]

            debit_entry = self.apply_debit(source, value, note or f"Transfer to user {to_user_id}")
            credit_entry = self.apply_credit(target, value, note or f"Transfer from user {from_user_id}")

        logger.info(f"Transferred {value} from user {from_user_id} to user {to_user_id}")
        return {
            "amount": value,
            "source": self.entry_to_dict(debit_entry),
            "target": self.entry_to_dict(credit_entry),
        }

    # ---- primitives, the caller owns the transaction and the row lock ----

    def lock_account(self, user_id: int) -> WalletAccountModel:
        account = self.repo.get_account_for_update(user_id)
        if not account:
            raise AccountNotFoundError(f"Wallet account not found for user {user_id}")
        return account

    def apply_credit(
        self,
        account: WalletAccountModel,
        amount: Decimal,
        note: str | None,
        order_id: int | None = None,
    ) -> LedgerEntryModel:
        account.balance = round2(account.balance + amount)
        return self._append(account, CREDIT, amount, note, order_id)

    def apply_debit(
        self,
        account: WalletAccountModel,
        amount: Decimal,
        note: str | None,
        order_id: int | None = None,
    ) -> LedgerEntryModel:
        new_balance = round2(account.balance - amount)
        if new_balance < ZERO:
            logger.warning(
                f"Debit of {amount} rejected for user {account.user_id}, balance {round2(account.balance)}"
            )
            raise InsufficientFundsError(
                details={"balance": str(round2(account.balance)), "required": str(amount)}
            )
        account.balance = new_balance
        return self._append(account, DEBIT, amount, note, order_id)

    def _append(
        self,
        account: WalletAccountModel,
        entry_type: str,
        amount: Decimal,
        note: str | None,
        order_id: int | None,
    ) -> LedgerEntryModel:
        entry = self.repo.add_entry(
            LedgerEntryModel(
                user_id=account.user_id,
                order_id=order_id,
                type=entry_type,
                amount=amount,
                balance_after=account.balance,
                note=note,
                created_at=self.clock(),
            )
        )
        logger.info(f"{entry_type} {amount} user {account.user_id}, balance now {account.balance}")
        return entry

    @staticmethod
    def _validate_amount(amount) -> Decimal:
        value = parse_amount(amount)
        if value is None:
            raise InvalidAmountError(details={"amount": str(amount)})
        return value

    @staticmethod
    def entry_to_dict(entry: LedgerEntryModel) -> Dict[str, Any]:
        return {
            "id": entry.id,
            "user_id": entry.user_id,
            "order_id": entry.order_id,
            "type": entry.type,
            "amount": round2(entry.amount),
            "balance_after": round2(entry.balance_after),
            "note": entry.note,
            "created_at": entry.created_at,
        }
