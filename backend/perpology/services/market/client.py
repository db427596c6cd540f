"""Market feed HTTP client: lowest level, sends GET only. No parsing beyond JSON."""
import logging
from typing import Any

import httpx

from perpology.core.errors import UpstreamUnavailable
from perpology.services.market.config import MarketConfig

logger = logging.getLogger(__name__)

STATUS_UNAVAILABLE_FOR_LEGAL_REASONS = 451


class MarketHttpClient:
    """GET JSON from public market feeds. Raises UpstreamUnavailable on transport, status or decode failure."""

    def __init__(self, config: MarketConfig | None = None, transport: httpx.BaseTransport | None = None) -> None:
        self._config = config or MarketConfig()
        self._transport = transport

    @property
    def config(self) -> MarketConfig:
        return self._config

    def get_json(self, url: str, params: dict[str, Any] | None = None, *, source: str = "market") -> Any:
        try:
            with httpx.Client(timeout=self._config.timeout, transport=self._transport) as c:
                r = c.get(url, params=params)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"{source} request failed: {e}") from e
        if r.status_code == STATUS_UNAVAILABLE_FOR_LEGAL_REASONS:
            logger.warning("%s API restricted in this region (451) for %s", source, url)
            raise UpstreamUnavailable(f"{source} restricted", details={"status": r.status_code})
        if not r.is_success:
            raise UpstreamUnavailable(
                f"{source} API error: {r.status_code}",
                details={"status": r.status_code, "body": (r.text[:500] if r.text else None)},
            )
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamUnavailable(f"{source} returned invalid JSON") from e
