# checkout/services/ownership_guard.py
from typing import Mapping

from sqlalchemy.orm import Session

from checkout.domain.errors import AlreadyOwnedError
from checkout.repos.library_repo import LibraryRepo
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class OwnershipGuard:
    """
    Duplicate purchase guard.
    Checked when a game goes into the cart (fast feedback) and again under the
    order lock at payment, ownership can change in between.
    """

    def __init__(self, db: Session):
        self.repo = LibraryRepo(db)

    def ensure_not_owned(self, user_id: int, games: Mapping[int, str]) -> None:
        """games maps game_id -> display name, the whole batch is rejected on any match."""
        owned = self.repo.find_owned(user_id, games.keys())
        if owned:
            names = [games[game_id] for game_id in owned]
            logger.warning(f"User {user_id} already owns {owned}, rejecting batch")
            raise AlreadyOwnedError(names)
