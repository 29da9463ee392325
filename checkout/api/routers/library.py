from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from checkout.api.deps import Identity, get_identity
from checkout.data.database import get_db
from checkout.domain.schemas import LibraryEntryOut
from checkout.services.library_service import LibraryService

router = APIRouter(prefix="/library", tags=["library"])


@router.get("/", response_model=List[LibraryEntryOut])
def my_library(identity: Identity = Depends(get_identity), db: Session = Depends(get_db)):
    return LibraryService(db).list_library(identity.user_id)
