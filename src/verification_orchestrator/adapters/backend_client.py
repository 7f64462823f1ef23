"""Verification backend API client."""

import logging
from dataclasses import dataclass

import httpx

from verification_orchestrator.domain.errors import PersistenceError

logger = logging.getLogger(__name__)

# The backend is typically exposed through an ngrok tunnel during development.
_DEFAULT_HEADERS = {"ngrok-skip-browser-warning": "true"}


@dataclass
class HttpxVerificationBackend:
    """HTTPX-backed client for the verification backend."""

    base_url: str
    http_client: httpx.AsyncClient
    health_timeout: float = 5
    persist_timeout: float = 15

    @classmethod
    def create(
        cls, base_url: str, health_timeout: float = 5, persist_timeout: float = 15
    ) -> "HttpxVerificationBackend":
        """Create a backend client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(headers=_DEFAULT_HEADERS),
            health_timeout=health_timeout,
            persist_timeout=persist_timeout,
        )

    async def check_health(self) -> bool:
        """Return True when the health endpoint answers with a 2xx status."""
        url = f"{self.base_url}/health"
        try:
            response = await self.http_client.get(url, timeout=self.health_timeout)
        except httpx.HTTPError as exc:
            logger.warning("Backend health check failed: %s", exc)
            return False
        if not response.is_success:
            logger.warning(
                "Backend health check responded with status %s", response.status_code
            )
            return False
        return True

    async def persist(
        self, session_correlation_id: str, claim_metadata: dict[str, object]
    ) -> None:
        """Record a verified claim; raise PersistenceError on any failure."""
        url = f"{self.base_url}/verify"
        payload = {
            "sessionCorrelationId": session_correlation_id,
            "claimMetadata": claim_metadata,
        }
        try:
            response = await self.http_client.post(
                url, json=payload, timeout=self.persist_timeout
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise PersistenceError(
                f"Backend responded with status {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise PersistenceError(f"Backend request failed: {exc}") from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
