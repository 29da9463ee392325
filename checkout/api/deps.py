# checkout/api/deps.py
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException

from checkout.domain.errors import PermissionDeniedError
from checkout.services.catalog_client import CatalogClient
from checkout.services.notification_service import NotificationService

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: str = ROLE_USER

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def get_identity(
    x_user_id: int | None = Header(default=None),
    x_user_role: str = Header(default=ROLE_USER),
) -> Identity:
    """The gateway authenticates the caller, its headers are trusted as-is."""
    if x_user_id is None or x_user_id <= 0:
        raise HTTPException(status_code=401, detail="Missing or invalid X-User-Id")
    return Identity(user_id=x_user_id, role=x_user_role.upper())


def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_admin:
        raise PermissionDeniedError("Admin only")
    return identity


def get_catalog_client() -> CatalogClient:
    return CatalogClient()


def get_notifier() -> NotificationService:
    return NotificationService()
