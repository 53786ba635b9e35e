"""
Tests for the trading strategies.

Uses in-memory market, news and index providers; no network calls.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from mocks.fake_providers import FakeIndexProvider, FakeMarketProvider, FakeNewsProvider
from polyengine.config import (
    EngineConfig,
    ExpiringMarketsConfig,
    IndexStrategyConfig,
    InteractiveConfig,
    ThresholdConfig,
)
from polyengine.models import (
    BUY,
    NO,
    SELL,
    YES,
    AllocationTarget,
    IndexComposition,
    IndexMember,
    MarketSnapshot,
    NewsArticle,
)
from polyengine.news.service import NewsSignalService
from polyengine.strategies import (
    BaseStrategy,
    ExpiringMarketsStrategy,
    IndexStrategy,
    InteractiveStrategy,
    StrategyManager,
    ThresholdStrategy,
    create_strategies,
    price_signal,
    volume_signal,
)

from conftest import NOW, make_market, make_position


def bearish_articles():
    return [
        NewsArticle(
            title=f"Fed warns of recession risk {i}",
            description="Officials see crisis as interest rates decline across the economy.",
        )
        for i in range(4)
    ]


def threshold_strategy(markets, news_service=None, **config):
    provider = FakeMarketProvider(markets)
    config.setdefault("market_ids", tuple(m.id for m in markets))
    strategy = ThresholdStrategy(
        ThresholdConfig(**config),
        market_provider=provider,
        news_service=news_service,
    )
    return strategy, provider


class TestBaseStrategy:
    """Tests for the shared scan helpers."""

    def test_risk_score_components(self):
        market = make_market(volume=10_000, hours_to_expiry=12)
        assert BaseStrategy._risk_score(market, 0.05, now=NOW) == 1.0

        safe = make_market(volume=200_000, hours_to_expiry=24 * 7)
        assert BaseStrategy._risk_score(safe, 0.2, now=NOW) == 0.0
        assert BaseStrategy._risk_score(safe, 0.05, now=NOW) == pytest.approx(0.4)

    def test_skips_markets_already_held(self):
        markets = [make_market("0xheld", 0.1), make_market("0xfree", 0.1)]
        strategy, provider = threshold_strategy(markets, use_news_signals=False)

        opportunities = strategy.find_opportunities({"0xheld": make_position("0xheld", 50)})

        assert provider.fetched == ["0xfree"]
        assert [o.market_id for o in opportunities] == ["0xfree"]

    def test_failing_market_is_skipped(self, caplog):
        markets = [make_market("0xgood", 0.1)]
        provider = FakeMarketProvider(markets, fail_ids=["0xbad"])
        strategy = ThresholdStrategy(
            ThresholdConfig(market_ids=("0xbad", "0xgood"), use_news_signals=False),
            market_provider=provider,
        )

        with caplog.at_level(logging.ERROR):
            opportunities = strategy.find_opportunities({})

        assert [o.market_id for o in opportunities] == ["0xgood"]
        assert "Error fetching market 0xbad" in caplog.text

    def test_discovery_when_no_watchlist(self):
        provider = FakeMarketProvider([make_market("0xa", 0.1)])
        strategy = ThresholdStrategy(ThresholdConfig(use_news_signals=False), market_provider=provider)

        opportunities = strategy.find_opportunities({})

        assert provider.list_calls == [{"limit": 20, "min_volume": 50_000}]
        assert len(opportunities) == 1

    def test_parallel_scan_keeps_market_order(self):
        markets = [make_market(f"0x{i}", 0.1) for i in range(6)]
        provider = FakeMarketProvider(markets)
        strategy = ThresholdStrategy(
            ThresholdConfig(market_ids=tuple(m.id for m in markets), use_news_signals=False),
            market_provider=provider,
            max_workers=4,
        )

        opportunities = strategy.find_opportunities({})

        assert [o.market_id for o in opportunities] == [m.id for m in markets]

    def test_disabled_strategy_finds_nothing(self):
        strategy, provider = threshold_strategy([make_market("0xa", 0.1)], use_news_signals=False)
        strategy.disable()

        assert strategy.find_opportunities({}) == []
        assert provider.fetched == []
        strategy.enable()
        assert strategy.is_active()


class TestThresholdStrategy:
    """Tests for ThresholdStrategy."""

    def test_edge_equal_to_min_edge_does_not_qualify(self):
        strategy, _ = threshold_strategy([], use_news_signals=False)
        assert strategy.analyze_market(make_market(yes_price=0.15)) == []

    def test_cheap_yes(self):
        strategy, _ = threshold_strategy([], use_news_signals=False)

        opportunities = strategy.analyze_market(make_market(yes_price=0.14))

        assert len(opportunities) == 1
        opp = opportunities[0]
        assert opp.outcome == YES
        assert opp.side == BUY
        assert opp.current_price == pytest.approx(0.14)
        assert opp.predicted_probability == pytest.approx(0.3)
        assert opp.confidence == 0.8
        assert opp.expected_value == pytest.approx(16 * 0.8)
        assert opp.signals == ("Price edge: YES at 14.0%",)
        assert opp.strategy_name == "threshold"

    def test_expensive_yes_buys_no_once(self):
        strategy, _ = threshold_strategy([], use_news_signals=False)

        opportunities = strategy.analyze_market(make_market(yes_price=0.9))

        assert len(opportunities) == 1
        opp = opportunities[0]
        assert opp.outcome == NO
        assert opp.current_price == pytest.approx(0.1)
        assert "(YES expensive)" in opp.signals[0]

    def test_mid_price_has_no_opportunity(self):
        strategy, _ = threshold_strategy([], use_news_signals=False)
        assert strategy.analyze_market(make_market(yes_price=0.5)) == []

    def test_news_confirmation(self, bullish_fed_articles):
        news = NewsSignalService(FakeNewsProvider(bullish_fed_articles))
        strategy, _ = threshold_strategy([], news_service=news)

        opportunities = strategy.analyze_market(make_market(yes_price=0.1))

        assert len(opportunities) == 1
        opp = opportunities[0]
        assert opp.confidence == pytest.approx(0.95)
        assert any(s.startswith("News: Fed signals") for s in opp.signals)
        assert any("supporting YES" in s for s in opp.signals)

    def test_conflicting_news_rejects(self):
        news = NewsSignalService(FakeNewsProvider(bearish_articles()))
        strategy, _ = threshold_strategy([], news_service=news)

        assert strategy.analyze_market(make_market(yes_price=0.1)) == []

    def test_news_disabled_ignores_service(self, bullish_fed_articles):
        provider = FakeNewsProvider(bullish_fed_articles)
        strategy, _ = threshold_strategy([], news_service=NewsSignalService(provider), use_news_signals=False)

        opportunities = strategy.analyze_market(make_market(yes_price=0.1))

        assert opportunities[0].confidence == 0.8
        assert provider.queries == []

    def test_naive_end_date_treated_as_utc(self):
        market = MarketSnapshot(
            id="0xnaive",
            question="Will the Fed cut interest rates in 2025?",
            prices=(0.05, 0.95),
            volume_24h=200_000,
            end_date=datetime.now() + timedelta(days=3),
        )
        strategy, _ = threshold_strategy([market], use_news_signals=False)

        opportunities = strategy.find_opportunities({})

        assert [o.outcome for o in opportunities] == [YES]
        assert opportunities[0].risk_score == 0.0


class TestInteractiveStrategy:
    """Tests for InteractiveStrategy and its signal functions."""

    def test_price_signal(self):
        assert price_signal(0.1) == 0.8
        assert price_signal(0.3) == 0.65
        assert price_signal(0.5) == 0.5
        assert price_signal(0.7) == 0.35
        assert price_signal(0.9) == 0.2

    def test_volume_signal(self):
        assert volume_signal(2_000_000) == 0.9
        assert volume_signal(600_000) == 0.75
        assert volume_signal(200_000) == 0.6
        assert volume_signal(60_000) == 0.5
        assert volume_signal(50_000) == 0.3

    def test_cheap_liquid_outcome(self):
        strategy = InteractiveStrategy()

        opportunities = strategy.analyze_market(make_market(yes_price=0.1, volume=600_000))

        assert len(opportunities) == 1
        opp = opportunities[0]
        assert opp.outcome == YES
        # 0.8 * 0.4 + 0.75 * 0.3 + 0.5 * 0.3
        assert opp.predicted_probability == pytest.approx(0.695)
        # 0.5 + 0.195 * 0.3 + 0.2 (volume) + 0.1 (price extreme)
        assert opp.confidence == pytest.approx(0.8585)
        assert opp.signals[0] == "Price signal: 80.0%"
        assert opp.signals[1] == "Volume: $600k (signal: 75%)"

    def test_low_score_flips_to_complement(self):
        strategy = InteractiveStrategy(InteractiveConfig(min_confidence=0.6))

        opportunities = strategy.analyze_market(make_market(yes_price=0.85, volume=50_000))

        assert len(opportunities) == 1
        opp = opportunities[0]
        assert opp.outcome == NO
        assert opp.current_price == pytest.approx(0.15)
        assert opp.predicted_probability == pytest.approx(0.68)

    def test_low_volume_skipped(self):
        strategy = InteractiveStrategy()
        assert strategy.analyze_market(make_market(yes_price=0.1, volume=10_000)) == []

    def test_top_results_ranked(self):
        markets = [make_market(f"0x{i:02d}", 0.1, volume=600_000) for i in range(12)]
        markets.append(make_market("0xbest", 0.1, volume=1_500_000))
        provider = FakeMarketProvider(markets)
        strategy = InteractiveStrategy(
            InteractiveConfig(market_ids=tuple(m.id for m in markets)),
            market_provider=provider,
        )

        opportunities = strategy.find_opportunities({})

        assert len(opportunities) == 10
        assert opportunities[0].market_id == "0xbest"
        ranks = [o.rank_score for o in opportunities]
        assert ranks == sorted(ranks, reverse=True)

    def test_news_sentiment_included(self, bullish_fed_articles):
        news = NewsSignalService(FakeNewsProvider(bullish_fed_articles))
        strategy = InteractiveStrategy(news_service=news)

        opp = strategy.analyze_market(make_market(yes_price=0.1, volume=600_000))[0]

        assert "News sentiment: 70% (4 articles)" in opp.signals
        assert sum(1 for s in opp.signals if s.startswith("News: ")) == 2


class TestExpiringMarketsStrategy:
    """Tests for ExpiringMarketsStrategy."""

    @pytest.fixture
    def strategy(self):
        return ExpiringMarketsStrategy(clock=lambda: NOW)

    def test_near_certain_outcome(self, strategy):
        opportunities = strategy.analyze_market(make_market(yes_price=0.97, hours_to_expiry=24))

        assert len(opportunities) == 1
        opp = opportunities[0]
        assert opp.outcome == YES
        # price confidence 0.4, time confidence 0.5
        assert opp.confidence == pytest.approx(0.45)
        assert opp.expected_value == pytest.approx(3.0)
        assert opp.risk_score == pytest.approx(0.03)
        assert opp.predicted_probability == 0.99
        assert opp.signals[0] == "Expiring in 24.0 hours"

    def test_complement_of_cheap_outcome(self, strategy):
        market = MarketSnapshot(
            id="0xsingle",
            question="Will it rain?",
            prices=(0.03,),
            volume_24h=20_000,
            end_date=NOW + timedelta(hours=12),
        )

        opportunities = strategy.analyze_market(market)

        assert [o.outcome for o in opportunities] == [NO]
        assert opportunities[0].current_price == pytest.approx(0.97)
        assert opportunities[0].signals[1] == "NO price: 97.0% (YES at 3.0%)"

    @pytest.mark.parametrize("hours", [72, 1])
    def test_outside_window(self, strategy, hours):
        assert strategy.analyze_market(make_market(yes_price=0.97, hours_to_expiry=hours)) == []

    def test_low_volume(self, strategy):
        assert strategy.analyze_market(make_market(yes_price=0.97, volume=5_000, hours_to_expiry=24)) == []

    def test_no_end_date(self, strategy):
        market = MarketSnapshot(id="0x1", question="Q", prices=(0.97, 0.03), volume_24h=50_000)
        assert strategy.analyze_market(market) == []

    def test_naive_end_date(self, strategy):
        market = MarketSnapshot(
            id="0xnaive",
            question="Q",
            prices=(0.97, 0.03),
            volume_24h=50_000,
            end_date=NOW.replace(tzinfo=None) + timedelta(hours=24),
        )

        opportunities = strategy.analyze_market(market)

        assert opportunities[0].signals[0] == "Expiring in 24.0 hours"

    def test_min_probability_of_one(self):
        strategy = ExpiringMarketsStrategy(ExpiringMarketsConfig(min_probability=1.0), clock=lambda: NOW)
        opportunities = strategy.analyze_market(make_market(yes_price=1.0, hours_to_expiry=24))
        assert opportunities[0].confidence == pytest.approx(0.75)


class TestIndexStrategy:
    """Tests for IndexStrategy."""

    @pytest.fixture
    def setup(self):
        index = IndexComposition("idx", (IndexMember("0xa", 1), IndexMember("0xb", 1)))
        markets = [make_market("0xa", 0.4), make_market("0xb", 0.6), make_market("0xc", 0.2)]
        provider = FakeMarketProvider(markets)
        strategy = IndexStrategy(
            IndexStrategyConfig(enabled=True, index_id="idx"),
            index_provider=FakeIndexProvider({"idx": index}),
            market_provider=provider,
        )
        strategy.set_available_balance(Decimal("70"))
        positions = {
            "0xa": make_position("0xa", 100),
            "0xc": make_position("0xc", 30, outcome_id=NO),
        }
        return strategy, positions

    def test_rebalance_and_exit(self, setup):
        strategy, positions = setup

        opportunities = strategy.find_opportunities(positions)

        by_market = {o.market_id: o for o in opportunities}
        assert set(by_market) == {"0xb", "0xc"}

        buy = by_market["0xb"]
        assert buy.side == BUY
        assert buy.outcome == YES
        assert buy.confidence == 0.9
        assert buy.current_price == pytest.approx(0.6)
        assert buy.signals == ("Index rebalancing: BUY $100.00 to match idx allocation (50.0% target)",)

        exit_ = by_market["0xc"]
        assert exit_.side == SELL
        assert exit_.outcome == NO
        assert exit_.confidence == 0.95
        assert exit_.predicted_probability == 0.0

    def test_reports_held_markets(self, setup):
        strategy, positions = setup
        opportunities = strategy.find_opportunities(positions)
        assert any(o.market_id in positions for o in opportunities)

    def test_missing_index(self):
        strategy = IndexStrategy(
            IndexStrategyConfig(enabled=True, index_id="missing"),
            index_provider=FakeIndexProvider(),
            market_provider=FakeMarketProvider(),
        )
        assert strategy.find_opportunities({}) == []

    def test_market_fetch_failure_skipped(self, setup):
        strategy, positions = setup
        strategy._market_provider.fail_ids.add("0xb")

        opportunities = strategy.find_opportunities(positions)

        assert [o.market_id for o in opportunities] == ["0xc"]

    def test_deviation(self):
        alloc = AllocationTarget("0xa", 0.5, Decimal("100"), Decimal("90"), Decimal("10"), BUY)
        assert IndexStrategy.deviation(alloc) == pytest.approx(0.1)


class BrokenStrategy(BaseStrategy):
    def __init__(self):
        super().__init__("broken", "Always fails", config=None)

    def find_opportunities(self, open_positions):
        raise RuntimeError("boom")

    def analyze_market(self, market):
        return []


class TestStrategyManager:
    """Tests for StrategyManager."""

    def test_error_is_logged_and_others_still_run(self, caplog):
        good, _ = threshold_strategy([make_market("0xa", 0.1)], use_news_signals=False)
        manager = StrategyManager([BrokenStrategy(), good])

        with caplog.at_level(logging.ERROR):
            opportunities = manager.find_all({})

        assert len(opportunities) == 1
        assert "Strategy broken error: boom" in caplog.text

    def test_add_get_remove(self):
        manager = StrategyManager()
        strategy = ExpiringMarketsStrategy()
        manager.add_strategy(strategy)

        assert manager.get_strategy("expiring_markets") is strategy
        assert manager.remove_strategy("expiring_markets")
        assert not manager.remove_strategy("expiring_markets")
        assert manager.strategies == []

    def test_enabled_strategies(self):
        on = ExpiringMarketsStrategy()
        off = InteractiveStrategy(InteractiveConfig(enabled=False))
        manager = StrategyManager([on, off])
        assert manager.enabled_strategies == [on]


class TestFactory:
    def test_default_strategies(self):
        names = [s.name for s in create_strategies(EngineConfig())]
        assert names == ["threshold", "interactive", "expiring_markets"]

    def test_index_needs_provider(self):
        config = EngineConfig(index=IndexStrategyConfig(enabled=True, index_id="1"))

        without = [s.name for s in create_strategies(config)]
        with_provider = [s.name for s in create_strategies(config, index_provider=FakeIndexProvider())]

        assert "index" not in without
        assert with_provider[-1] == "index"
