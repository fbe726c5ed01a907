"""Shared HTTP plumbing for collaborator services"""

from typing import Any, Dict

import httpx

from kingpin_gateway.config import settings
from kingpin_gateway.domain.exceptions import CollaboratorError
from kingpin_gateway.infrastructure.observability.metrics import collaborator_latency_histogram


class CollaboratorClient:
    """
    JSON-over-HTTP client for a best-effort collaborator.

    One attempt per call: the side-effect propagator never retries
    synchronously, failed calls are dead-lettered instead.
    """

    name = "collaborator"

    def __init__(self, base_url: str, timeout: float | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds

    async def _post(self, path: str, payload: Dict[str, Any]) -> None:
        """
        POST a JSON payload.

        Raises:
            CollaboratorError: On timeout, network or HTTP errors
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                with collaborator_latency_histogram.labels(collaborator=self.name).time():
                    response = await client.post(f"{self.base_url}{path}", json=payload)
                    response.raise_for_status()
            except httpx.TimeoutException as e:
                raise CollaboratorError(f"{self.name} timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise CollaboratorError(f"{self.name} error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise CollaboratorError(f"{self.name} unreachable: {e}") from e
