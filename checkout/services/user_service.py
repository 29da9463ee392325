from sqlalchemy.orm import Session

from checkout.data.database import unit_of_work
from checkout.data.models.user import UserModel
from checkout.domain.errors import UserNotFoundError
from checkout.repos.user_repo import UserRepo
from checkout.domain.schemas import UserCreate, UserRead
from checkout.services.wallet_service import WalletService


class UserService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepo(db)
        self.wallet = WalletService(db)

    def create_user(self, payload: UserCreate) -> UserRead:
        existing = self.repo.get_user(payload.id)
        if existing:
            return UserRead(id=existing.id, name=existing.name)

        # user and wallet account are created together
        with unit_of_work(self.db):
            created = self.repo.create_user(UserModel(id=payload.id, name=payload.name))
            self.wallet.open_account(created.id)
        return UserRead(id=created.id, name=created.name)

    def get_user(self, user_id: int) -> UserRead:
        user = self.repo.get_user(user_id)
        if not user:
            raise UserNotFoundError()
        return UserRead(id=user.id, name=user.name)
