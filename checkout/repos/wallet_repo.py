# checkout/repos/wallet_repo.py
from datetime import datetime

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from checkout.data.models.wallet_account import WalletAccountModel
from checkout.data.models.ledger_entry import LedgerEntryModel


class WalletRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_account(self, user_id: int) -> WalletAccountModel | None:
        return self.db.get(WalletAccountModel, user_id)

    def get_account_for_update(self, user_id: int) -> WalletAccountModel | None:
        stmt = (
            select(WalletAccountModel)
            .where(WalletAccountModel.user_id == user_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def create_account(self, account: WalletAccountModel) -> WalletAccountModel:
        self.db.add(account)
        self.db.flush()
        return account

    def add_entry(self, entry: LedgerEntryModel) -> LedgerEntryModel:
        self.db.add(entry)
        self.db.flush()
        return entry

    def list_entries(
        self,
        user_id: int,
        offset: int,
        limit: int,
        ascending: bool = False,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> tuple[list[LedgerEntryModel], int]:
        stmt = select(LedgerEntryModel).where(LedgerEntryModel.user_id == user_id)
        if start is not None:
            stmt = stmt.where(LedgerEntryModel.created_at >= start)
        if end is not None:
            stmt = stmt.where(LedgerEntryModel.created_at <= end)

        total = self.db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        if ascending:
            ordering = (LedgerEntryModel.created_at.asc(), LedgerEntryModel.id.asc())
        else:
            ordering = (LedgerEntryModel.created_at.desc(), LedgerEntryModel.id.desc())
        rows = self.db.execute(stmt.order_by(*ordering).offset(offset).limit(limit)).scalars().all()
        return list(rows), total
