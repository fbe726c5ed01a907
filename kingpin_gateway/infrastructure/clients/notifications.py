"""Player notification client"""

from typing import Optional

from kingpin_gateway.config import settings
from kingpin_gateway.infrastructure.clients.base import CollaboratorClient


class NotificationClient(CollaboratorClient):
    """Tells defenders they were robbed or fought a robber off"""

    name = "notifications"

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        super().__init__(base_url or settings.notification_api_base, timeout)

    async def notify_robbed(
        self, account_id: int, attacker_name: str, amount_lost: int, item_lost_name: Optional[str] = None
    ) -> None:
        await self._post(
            f"/notifications/{account_id}",
            {
                "type": "rob_victim",
                "attacker_name": attacker_name,
                "amount_lost": amount_lost,
                "item_lost_name": item_lost_name,
            },
        )

    async def notify_defended(self, account_id: int, attacker_name: str) -> None:
        await self._post(
            f"/notifications/{account_id}",
            {"type": "rob_defended", "attacker_name": attacker_name},
        )
