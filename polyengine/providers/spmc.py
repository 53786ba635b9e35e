"""
SPMC index composition provider.

Endpoint: GET {api_url}/api/v1/groups/{index_id}

The response lists markets with a weight (or allocation); weights are
normalized to sum to 1.0 and non-positive weights dropped. Responses
are cached for an hour.
"""

from typing import Any, Callable, Dict, Optional, Protocol, Tuple
import logging
import time

import requests

from polyengine.models import IndexComposition, IndexMember

logger = logging.getLogger(__name__)


class IndexProvider(Protocol):
    def get_index(self, index_id: str) -> Optional[IndexComposition]:
        ...


def composition_from_spmc(index_id: str, data: Dict[str, Any]) -> IndexComposition:
    """Parse an SPMC group payload into a normalized composition."""
    members = []
    for market in data.get("markets") or []:
        market_id = market.get("market_id") or market.get("id")
        weight = float(market.get("weight") or market.get("allocation") or 0)
        if not market_id or weight <= 0:
            continue
        title = market.get("market_title") or market.get("title") or market.get("name")
        members.append(IndexMember(str(market_id), weight, title))

    name = data.get("title") or data.get("name") or f"Index {index_id}"
    return IndexComposition(index_id, tuple(members), name).normalized()


class SpmcIndexProvider:
    """Index compositions from the SPMC API."""

    CACHE_SECONDS = 60 * 60

    def __init__(
        self,
        api_url: str = "https://api.spmc.dev",
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": "polyengine/1.0",
        })
        self._clock = clock
        self._cache: Dict[str, Tuple[float, IndexComposition]] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_index(self, index_id: str) -> Optional[IndexComposition]:
        """Fetch (or return the cached) composition; None on any failure."""
        cached = self._cache.get(index_id)
        if cached and self._clock() - cached[0] < self.CACHE_SECONDS:
            logger.debug(f"Returning cached index {index_id}")
            return cached[1]

        logger.info(f"Fetching index {index_id} from SPMC API")
        try:
            resp = self.session.get(
                f"{self._api_url}/api/v1/groups/{index_id}",
                timeout=self._timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching index composition {index_id}: {e}")
            return None

        index = composition_from_spmc(index_id, data)
        logger.info(f"Fetched index {index_id} with {len(index.members)} markets")
        self._cache[index_id] = (self._clock(), index)
        return index
