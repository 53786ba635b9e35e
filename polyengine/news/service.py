"""
News Signal Service

Turns a market question into a directional news signal:

1. Extract keywords from the question/rules and build a search query
2. Fetch articles from the configured provider (cached per query)
3. Score each article for category relevance, keyword relevance and
   lexical sentiment; keep the most relevant ones
4. Aggregate relevance-weighted sentiment into bullish/bearish/neutral

Provider failures and empty results degrade to a neutral signal with
zero confidence; nothing here raises on missing news.
"""

from collections import OrderedDict
from typing import Callable, List, Optional, Tuple
import logging
import threading
import time

from polyengine.config import NewsCategory, NewsConfig
from polyengine.models import (
    BEARISH,
    BULLISH,
    NEGATIVE,
    NEUTRAL,
    POSITIVE,
    NewsArticle,
    NewsSignal,
    ScoredArticle,
)
from polyengine.news.keywords import MarketKeywordExtractor, contains_term
from polyengine.news.sources import NewsProvider

logger = logging.getLogger(__name__)

HEADLINES_CACHE_KEY = "latest_headlines"


class NewsSignalService:
    """
    News-driven market signal generator.

    Owns a bounded, time-limited cache of provider responses keyed by
    search query. The cache is guarded by a lock so one service can be
    shared by strategies scanning markets on worker threads.
    """

    def __init__(
        self,
        provider: Optional[NewsProvider],
        config: Optional[NewsConfig] = None,
        extractor: Optional[MarketKeywordExtractor] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the news signal service.

        Args:
            provider: Article source; None disables news (neutral signals)
            config: News configuration
            extractor: Keyword extractor (defaults to one built from config topics)
            clock: Seconds counter used for cache expiry
        """
        self._provider = provider
        self._config = config or NewsConfig()
        self._extractor = extractor or MarketKeywordExtractor(self._config.topic_keywords)
        self._clock = clock
        self._cache: "OrderedDict[str, Tuple[float, List[NewsArticle]]]" = OrderedDict()
        self._lock = threading.Lock()

        if provider is None:
            logger.warning("No news provider configured - news signals will be neutral")

    @property
    def config(self) -> NewsConfig:
        return self._config

    @property
    def is_available(self) -> bool:
        return self._provider is not None

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    # ------------------------------------------------------------------
    # Article scoring
    # ------------------------------------------------------------------

    def categorize(self, text: str) -> List[NewsCategory]:
        """Enabled categories with at least one keyword present in `text`."""
        return [
            category
            for category in self._config.enabled_categories
            if any(contains_term(text, kw, whole_word=True) for kw in category.keywords)
        ]

    @staticmethod
    def category_relevance(categories: List[NewsCategory]) -> float:
        """Average category weight, boosted for matching several categories."""
        if not categories:
            return 0.0
        avg_weight = sum(c.weight for c in categories) / len(categories)
        breadth_bonus = min(1.0, len(categories) / 3)
        return min(1.0, avg_weight * 0.7 + breadth_bonus * 0.3)

    def analyze_sentiment(self, text: str) -> str:
        """
        Lexical sentiment: one side must lead the other by more than one word.
        """
        positive = sum(1 for w in self._config.positive_words if contains_term(text, w, whole_word=True))
        negative = sum(1 for w in self._config.negative_words if contains_term(text, w, whole_word=True))
        if positive > negative + 1:
            return POSITIVE
        if negative > positive + 1:
            return NEGATIVE
        return NEUTRAL

    # ------------------------------------------------------------------
    # Retrieval
    # ------------------------------------------------------------------

    def _cached(self, key: str) -> Optional[List[NewsArticle]]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            stored_at, articles = entry
            if self._clock() - stored_at >= self._config.cache_seconds:
                del self._cache[key]
                return None
            return articles

    def _store(self, key: str, articles: List[NewsArticle]) -> None:
        with self._lock:
            if key not in self._cache and len(self._cache) >= self._config.max_cache_size:
                self._cache.popitem(last=False)
            self._cache[key] = (self._clock(), articles)

    def search(self, query: str) -> List[NewsArticle]:
        """Raw articles for a query; provider errors yield an empty list."""
        if self._provider is None or not query:
            return []

        key = f"search:{query}"
        cached = self._cached(key)
        if cached is not None:
            logger.debug(f"News cache hit for: {query}")
            return cached

        try:
            articles = list(self._provider.search(query))
        except Exception as e:
            logger.error(f"Failed to search news for \"{query}\": {e}")
            return []

        self._store(key, articles)
        return articles

    def get_latest_headlines(self) -> List[ScoredArticle]:
        """Recent headlines that clear the category relevance threshold."""
        if self._provider is None:
            return []

        articles = self._cached(HEADLINES_CACHE_KEY)
        if articles is None:
            try:
                articles = list(self._provider.top_headlines())
            except Exception as e:
                logger.error(f"Failed to fetch latest headlines: {e}")
                return []
            self._store(HEADLINES_CACHE_KEY, articles)

        scored = []
        for article in articles:
            if not article.title or not article.description:
                continue
            categories = self.categorize(article.text)
            relevance = self.category_relevance(categories)
            if relevance < self._config.relevance_threshold:
                continue
            scored.append(self._score(article, relevance, categories))
        logger.info(f"Fetched {len(scored)} relevant headlines")
        return scored

    def _score(
        self,
        article: NewsArticle,
        relevance: float,
        categories: List[NewsCategory],
    ) -> ScoredArticle:
        return ScoredArticle(
            title=article.title,
            description=article.description,
            url=article.url,
            source=article.source,
            published_at=article.published_at,
            sentiment=self.analyze_sentiment(article.text),
            relevance_score=relevance,
            categories=tuple(c.name for c in categories),
        )

    # ------------------------------------------------------------------
    # Signal aggregation
    # ------------------------------------------------------------------

    def get_market_signal(self, question: str, rules: Optional[str] = None) -> NewsSignal:
        """
        Directional news signal for a market.

        Articles must clear both the category relevance threshold and the
        keyword relevance threshold. Zero survivors -> neutral, confidence 0.
        """
        cfg = self._config
        keywords = self._extractor.extract(question, rules)
        query = self._extractor.build_search_query(keywords)

        relevant: List[ScoredArticle] = []
        for article in self.search(query):
            if not article.title or not article.description:
                continue
            text = article.text
            categories = self.categorize(text)
            if self.category_relevance(categories) < cfg.relevance_threshold:
                continue
            keyword_relevance = self._extractor.relevance_score(text, keywords)
            if keyword_relevance < cfg.keyword_relevance_threshold:
                continue
            relevant.append(self._score(article, keyword_relevance, categories))

        relevant.sort(key=lambda a: a.relevance_score, reverse=True)
        relevant = relevant[: cfg.max_relevant_articles]

        if not relevant:
            logger.debug(f"No relevant news for \"{question[:50]}\"")
            return NewsSignal.empty(question)

        total_weight = sum(a.relevance_score for a in relevant)
        positive = sum(a.relevance_score for a in relevant if a.sentiment == POSITIVE)
        negative = sum(a.relevance_score for a in relevant if a.sentiment == NEGATIVE)
        positive_ratio = positive / total_weight
        negative_ratio = negative / total_weight

        if positive_ratio > cfg.signal_ratio_threshold:
            signal, confidence = BULLISH, positive_ratio
        elif negative_ratio > cfg.signal_ratio_threshold:
            signal, confidence = BEARISH, negative_ratio
        else:
            signal, confidence = NEUTRAL, cfg.neutral_confidence

        avg_relevance = total_weight / len(relevant)
        count_bonus = min(cfg.max_article_bonus, len(relevant) * cfg.article_bonus)
        confidence = min(cfg.max_confidence, confidence * avg_relevance + count_bonus)

        logger.info(
            f"News signal for \"{question[:50]}\": {signal} ({confidence * 100:.1f}% confidence)"
        )
        logger.info(
            f"  Based on {len(relevant)} relevant articles with avg relevance {avg_relevance:.2f}"
        )

        return NewsSignal(
            market_question=question,
            signal=signal,
            confidence=confidence,
            articles=tuple(relevant[: cfg.max_signal_articles]),
        )
