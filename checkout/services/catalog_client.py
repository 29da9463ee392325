# checkout/services/catalog_client.py
from decimal import Decimal
from typing import TypedDict

import requests

from checkout.domain.errors import GameNotFoundError
from checkout.utils.retry import http_retry
from checkout.utils.settings import CATALOG_SERVICE_URL, CATALOG_TIMEOUT_SECONDS
from checkout.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogGame(TypedDict):
    id: int
    name: str
    price: Decimal


class CatalogClient:
    """Read-only client of the catalog service: game id -> {price, name}."""

    def __init__(self, base_url: str | None = None, timeout: int | None = None):
        self.base_url = (base_url or CATALOG_SERVICE_URL).rstrip("/")
        self.timeout = timeout or CATALOG_TIMEOUT_SECONDS
        self.session = requests.Session()

    @http_retry()
    def _get(self, game_id: int) -> requests.Response:
        url = f"{self.base_url}/games/{game_id}"
        logger.info(f"CatalogClient GET {url}")
        resp = self.session.get(url, timeout=self.timeout)
        if resp.status_code != 404:
            resp.raise_for_status()
        return resp

    def fetch_game(self, game_id: int) -> CatalogGame:
        resp = self._get(game_id)
        if resp.status_code == 404:
            raise GameNotFoundError(f"Game not found: {game_id}", details={"missing": [game_id]})
        data = resp.json()
        return CatalogGame(
            id=int(data["id"]),
            name=str(data["name"]),
            price=Decimal(str(data["price"])),
        )

    def fetch_games(self, game_ids: list[int]) -> dict[int, CatalogGame]:
        """All or nothing: any unknown id fails the whole lookup, naming every missing id."""
        found: dict[int, CatalogGame] = {}
        missing: list[int] = []
        for game_id in game_ids:
            try:
                found[game_id] = self.fetch_game(game_id)
            except GameNotFoundError:
                missing.append(game_id)
        if missing:
            raise GameNotFoundError(
                f"Games not found: {', '.join(str(g) for g in missing)}",
                details={"missing": missing},
            )
        return found
