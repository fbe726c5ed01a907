"""Public activity feed (chat webhook) client"""

from kingpin_gateway.config import settings
from kingpin_gateway.infrastructure.clients.base import CollaboratorClient

TIER_COLORS = {
    "common": 0x9E9E9E,
    "uncommon": 0x4CAF50,
    "rare": 0x2196F3,
    "legendary": 0xFF9800,
}


class FeedClient(CollaboratorClient):
    """Posts major events (item thefts) to the public feed webhook"""

    name = "feed"

    def __init__(self, webhook_url: str | None = None, timeout: float | None = None):
        super().__init__(webhook_url or settings.feed_webhook_url, timeout)

    async def post_item_theft(self, attacker_name: str, defender_name: str, item_name: str, item_tier: str) -> None:
        await self._post(
            "",
            {
                "embeds": [
                    {
                        "title": "Item Stolen!",
                        "description": f"**{attacker_name}** stole **{item_name}** from **{defender_name}**",
                        "color": TIER_COLORS.get(item_tier, TIER_COLORS["common"]),
                        "fields": [{"name": "Tier", "value": item_tier.title(), "inline": True}],
                    }
                ]
            },
        )
