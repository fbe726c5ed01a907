"""Faction territory client"""

from kingpin_gateway.config import settings
from kingpin_gateway.infrastructure.clients.base import CollaboratorClient


class FactionClient(CollaboratorClient):
    name = "factions"

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        super().__init__(base_url or settings.faction_api_base, timeout)

    async def add_territory_score(self, account_id: int, activity: str) -> None:
        await self._post(
            f"/factions/members/{account_id}/territory-score",
            {"activity": activity},
        )
