"""Tests for the Gamma market provider and the SPMC index provider."""

from datetime import datetime, timezone

import pytest
import requests

from mocks.fake_providers import FakeResponse, FakeSession
from polyengine.providers import GammaMarketProvider, SpmcIndexProvider
from polyengine.providers.gamma import snapshot_from_gamma
from polyengine.providers.spmc import composition_from_spmc

MARKETS_URL = "https://gamma-api.polymarket.com/markets"
GROUP_URL = "https://api.spmc.dev/api/v1/groups/7"


def gamma_market(**overrides):
    raw = {
        "conditionId": "0xabc",
        "question": "Will the Fed cut interest rates in 2025?",
        "outcomes": "[\"Yes\", \"No\"]",
        "outcomePrices": "[\"0.2\", \"0.8\"]",
        "volume24hr": 12345.6,
        "volume": 999999,
        "endDate": "2025-06-02T12:00:00Z",
        "active": True,
        "closed": False,
        "description": "Resolves YES if the FOMC lowers the target range.",
    }
    raw.update(overrides)
    return raw


class TestSnapshotFromGamma:
    def test_json_string_fields(self):
        market = snapshot_from_gamma(gamma_market())

        assert market.id == "0xabc"
        assert market.outcomes == ("YES", "NO")
        assert market.prices == (0.2, 0.8)
        assert market.volume_24h == 12345.6
        assert market.end_date == datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)
        assert market.rules.startswith("Resolves YES")

    def test_bid_ask_midpoint(self):
        market = snapshot_from_gamma(gamma_market(outcomePrices=None, bestBid="0.3", bestAsk="0.4"))

        assert market.prices == (pytest.approx(0.35),)
        assert market.price_for(1) == pytest.approx(0.65)

    def test_defaults(self):
        market = snapshot_from_gamma(
            {"conditionId": "0xdef", "outcomePrices": [0.5, 0.5], "volume": "2500"},
        )

        assert market.outcomes == ("YES", "NO")
        assert market.volume_24h == 2500.0
        assert market.end_date is None

    def test_date_only_end_date_is_utc(self):
        market = snapshot_from_gamma(gamma_market(endDate="2025-11-05"))

        assert market.end_date == datetime(2025, 11, 5, tzinfo=timezone.utc)
        assert market.hours_to_expiry(datetime(2025, 11, 4, tzinfo=timezone.utc)) == pytest.approx(24.0)

    def test_bad_end_date_ignored(self):
        assert snapshot_from_gamma(gamma_market(endDate="soon")).end_date is None


class TestGammaMarketProvider:
    """Tests for GammaMarketProvider against a fake session."""

    def test_get_market(self):
        session = FakeSession({MARKETS_URL: FakeResponse([gamma_market()])})
        provider = GammaMarketProvider(session=session)

        market = provider.get_market("0xabc")

        assert market.question.startswith("Will the Fed")
        assert session.calls[0]["params"] == {"condition_ids": "0xabc"}
        assert session.calls[0]["timeout"] == 30
        assert session.headers["User-Agent"] == "polyengine/1.0"

    @pytest.mark.parametrize("overrides", [{"active": False}, {"closed": True}])
    def test_inactive_market_is_none(self, overrides):
        session = FakeSession({MARKETS_URL: FakeResponse([gamma_market(**overrides)])})
        assert GammaMarketProvider(session=session).get_market("0xabc") is None

    def test_unknown_market_is_none(self):
        session = FakeSession({MARKETS_URL: FakeResponse([])})
        assert GammaMarketProvider(session=session).get_market("0xabc") is None

    def test_http_error_propagates(self):
        session = FakeSession({MARKETS_URL: FakeResponse({}, 500)})
        with pytest.raises(requests.HTTPError):
            GammaMarketProvider(session=session).get_market("0xabc")

    def test_list_market_ids_filters_volume(self):
        listing = [
            {"conditionId": "0xbig", "volume": "150000"},
            {"conditionId": "0xsmall", "volume": "20000"},
            {"conditionId": None, "volume": "900000"},
        ]
        session = FakeSession({MARKETS_URL: FakeResponse(listing)})

        ids = GammaMarketProvider(session=session).list_market_ids(limit=5, min_volume=50_000)

        assert ids == ["0xbig"]
        assert session.calls[0]["params"]["limit"] == 5
        assert session.calls[0]["params"]["order"] == "volume"


class TestSpmcIndexProvider:
    """Tests for SpmcIndexProvider."""

    payload = {
        "title": "Lib Out",
        "markets": [
            {"market_id": "A", "weight": 3, "market_title": "Market A"},
            {"id": "B", "allocation": 1},
            {"market_id": "C", "weight": 0},
        ],
    }

    def test_composition_normalized(self):
        index = composition_from_spmc("7", self.payload)

        assert index.name == "Lib Out"
        assert [(m.market_id, m.weight) for m in index.members] == [("A", 0.75), ("B", 0.25)]
        assert index.members[0].title == "Market A"

    def test_default_name(self):
        assert composition_from_spmc("7", {"markets": []}).name == "Index 7"

    def test_fetch_and_cache(self):
        clock = [1000.0]
        session = FakeSession({GROUP_URL: FakeResponse(self.payload)})
        provider = SpmcIndexProvider(session=session, clock=lambda: clock[0])

        first = provider.get_index("7")
        second = provider.get_index("7")

        assert first == second
        assert len(session.calls) == 1

        clock[0] += SpmcIndexProvider.CACHE_SECONDS
        provider.get_index("7")
        assert len(session.calls) == 2

    def test_clear_cache(self):
        session = FakeSession({GROUP_URL: FakeResponse(self.payload)})
        provider = SpmcIndexProvider(session=session)

        provider.get_index("7")
        provider.clear_cache()
        provider.get_index("7")

        assert len(session.calls) == 2

    def test_network_error_is_none(self):
        session = FakeSession(error=requests.ConnectionError("down"))
        assert SpmcIndexProvider(session=session).get_index("7") is None

    def test_http_error_is_none_and_not_cached(self):
        session = FakeSession()
        provider = SpmcIndexProvider(session=session)

        assert provider.get_index("7") is None
        assert provider.get_index("7") is None
        assert len(session.calls) == 2
