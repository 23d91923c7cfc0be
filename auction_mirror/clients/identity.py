"""Display name → player identifier lookups."""

from __future__ import annotations

import httpx
import structlog

from ..config import IdentityConfig
from ..errors import NotFoundError, UpstreamError


def normalise_identifier(value: str) -> str:
    return value.replace("-", "").strip().lower()


class IdentityClient:
    """Resolve a player's display name to the identifier used by the feed."""

    def __init__(
        self,
        config: IdentityConfig,
        client: httpx.Client | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.config = config
        self._client = client or httpx.Client(follow_redirects=True, timeout=config.timeout)
        self._owns_client = client is None
        self.logger = logger or structlog.get_logger("auction_mirror.identity")

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def resolve(self, display_name: str) -> str:
        name = display_name.strip()
        if not name:
            raise NotFoundError("Display name cannot be empty")
        url = f"{self.config.url.rstrip('/')}/{name}"
        try:
            response = self._client.get(url, timeout=self.config.timeout)
        except httpx.TimeoutException as exc:
            raise UpstreamError(f"Identity lookup timed out for {name}", timed_out=True) from exc
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Identity lookup failed for {name}: {exc}") from exc

        if response.status_code in (204, 404):
            raise NotFoundError(f"No player named {name}")
        if response.status_code >= 400:
            raise UpstreamError(
                f"Identity lookup returned {response.status_code} for {name}",
                status_code=response.status_code,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(f"Malformed identity response for {name}") from exc
        raw_id = payload.get("id") if isinstance(payload, dict) else None
        if not raw_id:
            raise NotFoundError(f"No player named {name}")
        identifier = normalise_identifier(str(raw_id))
        self.logger.debug("identity_resolved", name=name, identifier=identifier)
        return identifier


__all__ = ["IdentityClient", "normalise_identifier"]
