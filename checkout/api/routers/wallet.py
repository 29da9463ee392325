# checkout/api/routers/wallet.py
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from checkout.api.deps import Identity, get_identity
from checkout.data.database import get_db
from checkout.domain.errors import PermissionDeniedError
from checkout.domain.schemas import (
    AmountIn,
    BalanceOut,
    LedgerEntryOut,
    LedgerPageOut,
    TransferIn,
    TransferOut,
)
from checkout.services.wallet_service import WalletService

router = APIRouter(prefix="/wallet", tags=["wallet"])


def get_service(db: Session = Depends(get_db)) -> WalletService:
    return WalletService(db)


def _target_user(identity: Identity, user_id: int | None) -> int:
    # own wallet, or any wallet for an admin
    target = user_id if user_id is not None else identity.user_id
    if target != identity.user_id and not identity.is_admin:
        raise PermissionDeniedError()
    return target


@router.get("/balance", response_model=BalanceOut)
def my_balance(identity: Identity = Depends(get_identity), svc: WalletService = Depends(get_service)):
    return svc.balance(identity.user_id)


@router.get("/balance/{user_id}", response_model=BalanceOut)
def user_balance(
    user_id: int,
    identity: Identity = Depends(get_identity),
    svc: WalletService = Depends(get_service),
):
    return svc.balance(_target_user(identity, user_id))


@router.get("/entries", response_model=LedgerPageOut)
def list_entries(
    user_id: int | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    sort: Literal["asc", "desc"] = Query(default="desc"),
    start: datetime | None = Query(default=None),
    end: datetime | None = Query(default=None),
    identity: Identity = Depends(get_identity),
    svc: WalletService = Depends(get_service),
):
    return svc.list_entries(_target_user(identity, user_id), page, page_size, sort, start, end)


@router.post("/top-up", response_model=LedgerEntryOut, status_code=201)
def top_up(payload: AmountIn, identity: Identity = Depends(get_identity), svc: WalletService = Depends(get_service)):
    return svc.top_up(identity.user_id, payload.amount, payload.note)


@router.post("/withdraw", response_model=LedgerEntryOut, status_code=201)
def withdraw(payload: AmountIn, identity: Identity = Depends(get_identity), svc: WalletService = Depends(get_service)):
    return svc.withdraw(identity.user_id, payload.amount, payload.note)


@router.post("/transfer", response_model=TransferOut, status_code=201)
def transfer(payload: TransferIn, identity: Identity = Depends(get_identity), svc: WalletService = Depends(get_service)):
    return svc.transfer(identity.user_id, payload.to_user_id, payload.amount, payload.note)
