"""Mission and achievement progress client"""

from kingpin_gateway.config import settings
from kingpin_gateway.infrastructure.clients.base import CollaboratorClient


class ProgressClient(CollaboratorClient):
    name = "progress"

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        super().__init__(base_url or settings.progress_api_base, timeout)

    async def increment_progress(self, account_id: int, objective_key: str, amount: int) -> None:
        await self._post(
            f"/progress/{account_id}/increment",
            {"objective": objective_key, "amount": amount},
        )

    async def set_progress(self, account_id: int, objective_key: str, value: int) -> None:
        await self._post(
            f"/progress/{account_id}/set",
            {"objective": objective_key, "value": value},
        )
