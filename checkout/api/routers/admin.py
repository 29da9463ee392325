from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from checkout.api.deps import require_admin
from checkout.data.database import get_db
from checkout.domain.schemas import ResetOut
from checkout.services.admin_service import AdminService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/reset", response_model=ResetOut)
def reset(db: Session = Depends(get_db)):
    return AdminService(db).reset()
