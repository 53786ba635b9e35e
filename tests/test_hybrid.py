"""Tests for hybrid price + news confidence."""

import pytest

from polyengine.models import BEARISH, BULLISH, NEUTRAL, NO, YES, NewsSignal, ScoredArticle
from polyengine.scoring.hybrid import (
    ALIGNED,
    OPPOSED,
    HybridConfidenceScorer,
    signal_alignment,
)


def make_signal(signal: str, confidence: float, articles: int = 3) -> NewsSignal:
    scored = tuple(
        ScoredArticle(f"Headline {i}", "", "", "", None, "neutral", 0.7)
        for i in range(articles)
    )
    return NewsSignal("Will the Fed cut rates?", signal, confidence, scored)


@pytest.fixture
def scorer():
    return HybridConfidenceScorer()


class TestComponents:
    def test_alignment(self):
        assert signal_alignment(BULLISH, YES) == ALIGNED
        assert signal_alignment(BULLISH, NO) == OPPOSED
        assert signal_alignment(BEARISH, NO) == ALIGNED
        assert signal_alignment(BEARISH, YES) == OPPOSED
        assert signal_alignment(NEUTRAL, YES) == NEUTRAL

    def test_price_confidence(self, scorer):
        assert scorer.price_confidence(0.1) == pytest.approx(0.9)
        assert scorer.price_confidence(0.3) == pytest.approx(0.95)
        assert scorer.price_confidence(-0.5) == 0.0

    def test_news_confidence(self, scorer):
        bullish = make_signal(BULLISH, 0.8)
        assert scorer.news_confidence(bullish, YES) == pytest.approx(0.8)
        assert scorer.news_confidence(bullish, NO) == pytest.approx(0.2)
        assert scorer.news_confidence(make_signal(NEUTRAL, 0.5), YES) == 0.5
        assert scorer.news_confidence(NewsSignal.empty("q"), YES) == 0.5


class TestCombine:
    """Tests for HybridConfidenceScorer.combine."""

    def test_agreement_bonus(self, scorer):
        result = scorer.combine(0.1, make_signal(BULLISH, 0.8), YES)

        # (0.9 * 0.6 + 0.8 * 0.4) * 1.1
        assert result.combined_confidence == pytest.approx(0.946)
        assert result.should_trade
        assert "supporting YES" in result.reasoning
        assert "Trade approved" in result.reasoning
        assert len(result.supporting_articles) == 3

    def test_conflict_penalty(self, scorer):
        result = scorer.combine(0.1, make_signal(BULLISH, 0.8), NO)

        assert result.news_confidence == pytest.approx(0.2)
        assert result.combined_confidence == pytest.approx(0.62 * 0.9)
        assert not result.should_trade
        assert "contrarian" in result.reasoning
        assert "Below minimum confidence threshold" in result.reasoning

    def test_no_news_strong_price(self, scorer):
        result = scorer.combine(0.15, NewsSignal.empty("q"), YES)

        # Penalty floors at the conflict boundary: (0.9 * 0.6 + 0.5 * 0.4) * 0.95
        assert result.combined_confidence == pytest.approx(0.703)
        assert result.should_trade
        assert "No recent news found" in result.reasoning

    def test_strong_news_needs_enough_articles(self, scorer):
        with_support = scorer.combine(0.02, make_signal(BULLISH, 0.95, articles=3), YES)
        thin = scorer.combine(0.02, make_signal(BULLISH, 0.95, articles=2), YES)

        assert with_support.combined_confidence == pytest.approx(0.728)
        assert with_support.should_trade
        assert not thin.should_trade
        assert "Price edge too small" in thin.reasoning

    def test_combined_never_exceeds_max(self, scorer):
        result = scorer.combine(0.5, make_signal(BULLISH, 0.95), YES)
        assert result.combined_confidence <= scorer.config.max_confidence

    @pytest.mark.parametrize("signal,confidence,outcome", [
        (BULLISH, 0.8, YES),
        (BULLISH, 0.8, NO),
        (BEARISH, 0.9, YES),
        (NEUTRAL, 0.5, YES),
        (BULLISH, 0.0, YES),
    ])
    def test_monotone_in_price_edge(self, scorer, signal, confidence, outcome):
        """More edge never lowers the combined confidence for fixed news."""
        news = make_signal(signal, confidence)
        previous = -1.0
        for step in range(0, 41):
            edge = step * 0.005
            combined = scorer.combine(edge, news, outcome).combined_confidence
            assert combined >= previous - 1e-12, f"dropped at edge {edge}"
            previous = combined

    def test_monotone_without_news(self, scorer):
        news = NewsSignal.empty("q")
        values = [scorer.combine(step * 0.005, news, YES).combined_confidence for step in range(41)]
        assert all(b >= a - 1e-12 for a, b in zip(values, values[1:]))
