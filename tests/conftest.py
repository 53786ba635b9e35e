"""Shared fixtures for decision engine tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from polyengine.models import NewsArticle, Position, MarketSnapshot

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_market(
    market_id: str = "0xmarket1",
    yes_price: float = 0.5,
    volume: float = 200_000,
    hours_to_expiry: float = 24 * 30,
    question: str = "Will the Fed cut interest rates in 2025?",
) -> MarketSnapshot:
    """Binary market snapshot expiring relative to NOW."""
    return MarketSnapshot(
        id=market_id,
        question=question,
        outcomes=("YES", "NO"),
        prices=(yes_price, round(1 - yes_price, 6)),
        volume_24h=volume,
        end_date=NOW + timedelta(hours=hours_to_expiry),
    )


def make_position(market_id: str, amount: float, outcome_id: str = "YES") -> Position:
    return Position(market_id=market_id, outcome_id=outcome_id, amount=Decimal(str(amount)))


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def market_factory():
    return make_market


@pytest.fixture
def position_factory():
    return make_position


@pytest.fixture
def bullish_fed_articles():
    """Fed articles that are relevant to a rate-cut market and clearly positive."""
    return [
        NewsArticle(
            title=f"Fed signals interest rate cut as inflation eases {i}",
            description="Federal Reserve officials see strong growth and a rally in the stock market, "
                        "with gains and a robust recovery expected in 2025.",
            url=f"https://example.com/fed-{i}",
            source="Example Wire",
        )
        for i in range(4)
    ]
