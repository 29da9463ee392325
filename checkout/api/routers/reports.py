from datetime import date
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from checkout.data.database import get_db
from checkout.domain.schemas import TopSellerOut
from checkout.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get("/top-sellers", response_model=List[TopSellerOut])
def top_sellers(
    day: date | None = Query(default=None, alias="date", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    return ReportService(db).top_sellers(day)
