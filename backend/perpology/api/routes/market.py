"""
Market endpoints: live snapshot, TradingView chart embed and market overview.
"""
import re
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from perpology.api.deps import get_market_gateway
from perpology.core.errors import ValidationError
from perpology.services.market import MarketDataGateway

router = APIRouter()

_SYMBOL_RE = re.compile(r"^[A-Za-z0-9]{1,15}$")


def _symbol(symbol: str) -> str:
    if not _SYMBOL_RE.match(symbol or ""):
        raise ValidationError("Symbol must be 1-15 letters or digits, e.g. BTC")
    return symbol.upper()


@router.get("/symbol/{symbol}")
async def symbol_snapshot(
    symbol: str,
    gateway: MarketDataGateway = Depends(get_market_gateway),
) -> dict[str, Any]:
    """Price and indicator snapshot; data is null when every feed is unavailable."""
    data = await run_in_threadpool(gateway.snapshot, _symbol(symbol))
    return {"success": True, "data": data}


@router.get("/chart/{symbol}")
def chart(symbol: str, gateway: MarketDataGateway = Depends(get_market_gateway)) -> dict[str, Any]:
    return {"success": True, "data": gateway.chart(_symbol(symbol))}


@router.get("/overview")
async def overview(gateway: MarketDataGateway = Depends(get_market_gateway)) -> dict[str, Any]:
    return {"success": True, "data": await run_in_threadpool(gateway.market_overview)}
