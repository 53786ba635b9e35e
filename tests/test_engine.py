"""
Tests for the DecisionEngine composition root.

Markets are built far from expiry so the short-expiry risk component
does not depend on the wall clock.
"""

from decimal import Decimal

import pytest

from mocks.fake_providers import FakeIndexProvider, FakeMarketProvider
from polyengine.config import (
    EngineConfig,
    ExpiringMarketsConfig,
    IndexStrategyConfig,
    InteractiveConfig,
    ThresholdConfig,
    TradingConfig,
)
from polyengine.engine import DecisionEngine, EngineStats, positions_by_market
from polyengine.models import BUY, SELL, YES, IndexComposition, IndexMember
from polyengine.strategies import IndexStrategy

from conftest import make_market, make_position

FAR = 24 * 365 * 100


def threshold_only(market_ids, trading=None) -> EngineConfig:
    return EngineConfig(
        threshold=ThresholdConfig(market_ids=tuple(market_ids), use_news_signals=False),
        interactive=InteractiveConfig(enabled=False),
        expiring=ExpiringMarketsConfig(enabled=False),
        trading=trading or TradingConfig(),
    )


def cheap_markets(count):
    return [make_market(f"0xm{i}", 0.1, hours_to_expiry=FAR) for i in range(count)]


class TestPositionsByMarket:
    def test_accepts_list_mapping_and_none(self):
        position = make_position("0xa", 10)
        assert positions_by_market(None) == {}
        assert positions_by_market([position]) == {"0xa": position}
        assert positions_by_market({"0xa": position}) == {"0xa": position}


class TestScan:
    """Tests for DecisionEngine.scan."""

    def test_ranked_and_deduplicated(self):
        market = make_market("0xm", 0.1, volume=600_000, hours_to_expiry=FAR)
        config = EngineConfig(
            threshold=ThresholdConfig(market_ids=("0xm",), use_news_signals=False),
            interactive=InteractiveConfig(market_ids=("0xm",), use_news_signals=False),
            expiring=ExpiringMarketsConfig(enabled=False),
        )
        engine = DecisionEngine(config, market_provider=FakeMarketProvider([market]))

        opportunities = engine.scan()

        # Both strategies like YES; the higher ranked interactive one wins
        assert len(opportunities) == 1
        assert opportunities[0].strategy_name == "interactive"
        assert engine.stats.scans == 1
        assert engine.stats.opportunities_found == 1

    def test_sorted_by_rank(self):
        markets = [
            make_market("0xsmall", 0.14, hours_to_expiry=FAR),
            make_market("0xbig", 0.05, hours_to_expiry=FAR),
        ]
        engine = DecisionEngine(
            threshold_only([m.id for m in markets]),
            market_provider=FakeMarketProvider(markets),
        )

        opportunities = engine.scan()

        assert [o.market_id for o in opportunities] == ["0xbig", "0xsmall"]

    def test_held_markets_skipped(self):
        markets = cheap_markets(2)
        engine = DecisionEngine(
            threshold_only([m.id for m in markets]),
            market_provider=FakeMarketProvider(markets),
        )

        opportunities = engine.scan([make_position("0xm0", 25)])

        assert [o.market_id for o in opportunities] == ["0xm1"]

    def test_available_balance_reaches_index_strategy(self):
        config = EngineConfig(
            threshold=ThresholdConfig(enabled=False),
            interactive=InteractiveConfig(enabled=False),
            expiring=ExpiringMarketsConfig(enabled=False),
            index=IndexStrategyConfig(enabled=True, index_id="idx"),
        )
        engine = DecisionEngine(
            config,
            market_provider=FakeMarketProvider(),
            index_provider=FakeIndexProvider(),
        )

        engine.scan(available_balance=Decimal("250"))

        strategy = engine.strategies.get_strategy("index")
        assert isinstance(strategy, IndexStrategy)
        assert strategy.available_balance == Decimal("250")


class TestDecide:
    """Tests for DecisionEngine.decide."""

    def test_approves_and_sizes(self):
        markets = cheap_markets(1)
        engine = DecisionEngine(threshold_only(["0xm0"]), market_provider=FakeMarketProvider(markets))

        decisions = engine.decide()

        assert len(decisions) == 1
        decision = decisions[0]
        assert decision.should_trade
        assert decision.outcome == YES
        # kelly 0.2 / 0.9 * 0.25 * 100 = 5.55
        assert decision.size == Decimal("5")
        assert engine.stats.trades_approved == 1

    def test_daily_trade_cap(self):
        markets = cheap_markets(3)
        engine = DecisionEngine(
            threshold_only([m.id for m in markets], TradingConfig(max_daily_trades=2)),
            market_provider=FakeMarketProvider(markets),
        )

        decisions = engine.decide()

        assert [d.should_trade for d in decisions] == [True, True, False]
        assert decisions[2].size == Decimal("0")
        assert decisions[2].reasoning.endswith(". Trade limit reached")
        assert engine.stats.trades_capped == 1
        assert engine.stats.trades_rejected == 1

    def test_open_position_cap(self):
        markets = cheap_markets(3)
        held = [make_position("0xother1", 20), make_position("0xother2", 20)]
        engine = DecisionEngine(
            threshold_only([m.id for m in markets], TradingConfig(max_open_positions=3)),
            market_provider=FakeMarketProvider(markets),
        )

        decisions = engine.decide(held)

        assert sum(d.should_trade for d in decisions) == 1

    def test_portfolio_risk_adjustment(self):
        markets = cheap_markets(1)
        held = [make_position(f"0xheld{i}", 20) for i in range(3)]
        engine = DecisionEngine(threshold_only(["0xm0"]), market_provider=FakeMarketProvider(markets))

        decision = engine.decide(held, portfolio_value=Decimal("10"))[0]

        # 80 * 0.9 (large position) * 0.85 (3 positions)
        assert decision.confidence == pytest.approx(0.612)
        assert not decision.should_trade

    def test_no_strategies(self):
        config = EngineConfig(
            threshold=ThresholdConfig(enabled=False),
            interactive=InteractiveConfig(enabled=False),
            expiring=ExpiringMarketsConfig(enabled=False),
        )
        engine = DecisionEngine(config)
        assert engine.decide() == []


class TestPlanRebalance:
    """Tests for DecisionEngine.plan_rebalance."""

    @pytest.fixture
    def engine(self):
        return DecisionEngine(EngineConfig(
            threshold=ThresholdConfig(enabled=False),
            interactive=InteractiveConfig(enabled=False),
            expiring=ExpiringMarketsConfig(enabled=False),
        ))

    def test_orders_sell_then_buy(self, engine):
        index = IndexComposition("idx", (IndexMember("0xa", 1), IndexMember("0xb", 1)))
        positions = [make_position("0xa", 100), make_position("0xc", 30)]

        result, orders = engine.plan_rebalance(index, positions, Decimal("70"), market_prices={"0xb": 0.5})

        assert result.needs_rebalance
        assert [(o.side, o.market_id, o.amount) for o in orders] == [
            (SELL, "0xc", Decimal("30")),
            (BUY, "0xb", Decimal("100.0")),
        ]
        assert orders[1].estimated_shares == Decimal("200")
        assert engine.stats.rebalance_orders == 2

    def test_balanced_portfolio_has_no_orders(self, engine):
        index = IndexComposition("idx", (IndexMember("0xa", 1), IndexMember("0xb", 1)))
        positions = [make_position("0xa", 50), make_position("0xb", 50)]

        result, orders = engine.plan_rebalance(index, positions, Decimal("0"))

        assert not result.needs_rebalance
        assert orders == []
        assert engine.stats.rebalances_planned == 1


class TestEngineStats:
    def test_to_dict(self):
        stats = EngineStats(scans=2, trades_approved=1)
        data = stats.to_dict()
        assert data["scans"] == 2
        assert data["trades_approved"] == 1
        assert data["runtime_seconds"] >= 0
