"""
Dependencies for the market agent (injected at run time).
"""
from typing import Any, Optional

from perpology.services.market import MarketDataGateway


class MarketDeps:
    """Deps passed to the market agent: the market gateway, this message's market context and tool round-trips."""

    def __init__(self, gateway: MarketDataGateway, market_context: Optional[dict[str, Any]] = None):
        self.gateway = gateway
        self.market_context = market_context
        # Incremented by get_live_prices; the tool is hidden once the per-message limit is reached.
        self.price_lookups = 0
