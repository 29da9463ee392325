# checkout/services/library_service.py
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from checkout.repos.library_repo import LibraryRepo


class LibraryService:
    def __init__(self, db: Session):
        self.repo = LibraryRepo(db)

    def list_library(self, user_id: int) -> List[Dict[str, Any]]:
        return [
            {
                "game_id": e.game_id,
                "name": e.game_name,
                "order_id": e.order_id,
                "acquired_at": e.acquired_at,
            }
            for e in self.repo.list_library(user_id)
        ]
