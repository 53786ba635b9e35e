"""
Polymarket Gamma API market provider.

Fetches market snapshots by condition id and lists active markets by
volume. Endpoint: https://gamma-api.polymarket.com/markets
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple
import json
import logging

import requests

from polyengine.models import NO, YES, MarketSnapshot

logger = logging.getLogger(__name__)


class MarketProvider(Protocol):
    """Source of market snapshots for the strategies."""

    def get_market(self, market_id: str) -> Optional[MarketSnapshot]:
        ...

    def list_market_ids(self, limit: int = 20, min_volume: float = 0) -> List[str]:
        ...


def _parse_json_list(value: Any) -> List[Any]:
    """Gamma encodes outcomes and prices as JSON strings."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        return []
    return parsed if isinstance(parsed, list) else []


def _parse_end_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable endDate: {value}")
        return None
    # Date-only and offset-less values are UTC
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _extract_prices(raw: Dict[str, Any]) -> Tuple[float, ...]:
    """outcomePrices, else bid/ask midpoint for the first outcome."""
    prices = [float(p) for p in _parse_json_list(raw.get("outcomePrices"))]
    if prices:
        return tuple(prices)
    bid, ask = raw.get("bestBid"), raw.get("bestAsk")
    if bid is not None and ask is not None:
        return ((float(bid) + float(ask)) / 2,)
    return ()


def snapshot_from_gamma(raw: Dict[str, Any], market_id: Optional[str] = None) -> MarketSnapshot:
    """Build a MarketSnapshot from one Gamma market payload."""
    outcomes = tuple(str(o).upper() for o in _parse_json_list(raw.get("outcomes"))) or (YES, NO)
    volume = raw.get("volume24hr")
    if volume is None:
        volume = raw.get("volume", 0)
    return MarketSnapshot(
        id=market_id or raw.get("conditionId") or str(raw.get("id", "")),
        question=raw.get("question", ""),
        outcomes=outcomes,
        prices=_extract_prices(raw),
        volume_24h=float(volume or 0),
        end_date=_parse_end_date(raw.get("endDate")),
        rules=raw.get("description"),
    )


class GammaMarketProvider:
    """
    Market snapshots from the Gamma API.

    Network errors propagate so the strategy layer can log and skip the
    market; inactive or unknown markets return None.
    """

    GAMMA_API_BASE = "https://gamma-api.polymarket.com"

    def __init__(
        self,
        base_url: str = GAMMA_API_BASE,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "polyengine/1.0",
            "Accept": "application/json",
        })

    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        resp = self.session.get(f"{self._base_url}{path}", params=params, timeout=self._timeout)
        resp.raise_for_status()
        return resp.json()

    def get_market(self, market_id: str) -> Optional[MarketSnapshot]:
        """Fetch one market by condition id."""
        data = self._get("/markets", {"condition_ids": market_id})
        if not data:
            logger.debug(f"Market {market_id[:10]}... not found")
            return None
        raw = data[0]
        if not raw.get("active", False) or raw.get("closed", False):
            logger.debug(f"Market {market_id[:10]}... inactive")
            return None
        return snapshot_from_gamma(raw, market_id)

    def list_market_ids(self, limit: int = 20, min_volume: float = 0) -> List[str]:
        """Active markets ordered by volume, filtered by a volume floor."""
        data = self._get("/markets", {
            "active": "true",
            "closed": "false",
            "order": "volume",
            "ascending": "false",
            "limit": limit,
        })
        ids = [
            m["conditionId"]
            for m in data
            if m.get("conditionId") and float(m.get("volume") or 0) > min_volume
        ]
        logger.info(f"Discovered {len(ids)} active markets (limit={limit}, min_volume={min_volume})")
        return ids
