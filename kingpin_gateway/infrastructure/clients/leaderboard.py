"""Leaderboard service client"""

from kingpin_gateway.config import settings
from kingpin_gateway.infrastructure.clients.base import CollaboratorClient


class LeaderboardClient(CollaboratorClient):
    """Reports robbery attempts to the leaderboard snapshot service"""

    name = "leaderboard"

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        super().__init__(base_url or settings.leaderboard_api_base, timeout)

    async def record_rob_attempt(
        self, account_id: int, success: bool, wealth_delta: int, experience_delta: int
    ) -> None:
        await self._post(
            f"/leaderboard/{account_id}/rob-attempts",
            {
                "success": success,
                "wealth_delta": wealth_delta,
                "experience_delta": experience_delta,
            },
        )

    async def check_record(self, account_id: int, record_type: str, value: int) -> None:
        """Offer a value for a hall-of-fame record; the service keeps the best one"""
        await self._post(
            f"/records/{record_type}",
            {"account_id": account_id, "value": value},
        )
