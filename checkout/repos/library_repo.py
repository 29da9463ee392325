# checkout/repos/library_repo.py
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from checkout.data.models.library_entry import LibraryEntryModel


class LibraryRepo:
    def __init__(self, db: Session):
        self.db = db

    def find_owned(self, user_id: int, game_ids: Iterable[int]) -> list[int]:
        ids = list(game_ids)
        if not ids:
            return []
        stmt = (
            select(LibraryEntryModel.game_id)
            .where(LibraryEntryModel.user_id == user_id, LibraryEntryModel.game_id.in_(ids))
            .order_by(LibraryEntryModel.game_id)
        )
        return list(self.db.execute(stmt).scalars().all())

    def grant(self, user_id: int, games: list[tuple[int, str]], order_id: int | None = None) -> None:
        """INSERT ... ON CONFLICT (user_id, game_id) DO NOTHING for every game."""
        if not games:
            return
        rows = [
            {"user_id": user_id, "game_id": game_id, "game_name": name, "order_id": order_id}
            for game_id, name in games
        ]
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(LibraryEntryModel).values(rows)
        elif dialect == "sqlite":
            stmt = sqlite.insert(LibraryEntryModel).values(rows)
        else:
            raise NotImplementedError(f"Unsupported dialect for library grants: {dialect}")
        self.db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id", "game_id"]))

    def list_library(self, user_id: int) -> list[LibraryEntryModel]:
        stmt = (
            select(LibraryEntryModel)
            .where(LibraryEntryModel.user_id == user_id)
            .order_by(LibraryEntryModel.id.desc())
        )
        return list(self.db.execute(stmt).scalars().all())
