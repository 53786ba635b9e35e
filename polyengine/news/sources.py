"""
News providers.

The signal service only depends on the NewsProvider protocol; the
NewsAPI adapter is the one concrete source shipped with the engine.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Protocol
import logging
import os

from newsapi import NewsApiClient

from polyengine.config import NewsSourceConfig
from polyengine.models import NewsArticle

logger = logging.getLogger(__name__)


class NewsProvider(Protocol):
    """Anything that can turn a search string into raw articles."""

    def search(self, query: str, since: Optional[datetime] = None) -> List[NewsArticle]:
        ...

    def top_headlines(self) -> List[NewsArticle]:
        ...


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unparseable article timestamp: {value}")
        return None


def _to_article(raw: Dict[str, Any]) -> NewsArticle:
    source = raw.get("source") or {}
    return NewsArticle(
        title=raw.get("title") or "",
        description=raw.get("description") or "",
        url=raw.get("url") or "",
        source=source.get("name", "") if isinstance(source, dict) else str(source),
        published_at=_parse_timestamp(raw.get("publishedAt")),
    )


class NewsApiProvider:
    """
    NewsAPI (newsapi.org) adapter.

    Errors from the client propagate; the signal service decides how to
    degrade.
    """

    HEADLINE_CATEGORIES = ("business", "technology", "sports", "general")

    def __init__(
        self,
        api_key: str,
        source_config: Optional[NewsSourceConfig] = None,
        language: str = "en",
        search_days_back: int = 7,
        client: Optional[Any] = None,
    ):
        """
        Initialize the NewsAPI adapter.

        Args:
            api_key: NewsAPI key
            source_config: Source limits (max articles per request)
            language: Article language filter
            search_days_back: How far back searches look
            client: Pre-built NewsApiClient (tests inject a fake)
        """
        self._client = client or NewsApiClient(api_key=api_key)
        self._max_articles = source_config.max_articles if source_config else 100
        self._language = language
        self._days_back = search_days_back

    @classmethod
    def from_env(
        cls,
        source_config: Optional[NewsSourceConfig] = None,
        search_days_back: int = 7,
    ) -> Optional["NewsApiProvider"]:
        """Build from NEWS_API_KEY (or NEWSAPI_API_KEY); None when unset."""
        env_var = source_config.api_key_env_var if source_config else "NEWS_API_KEY"
        api_key = os.getenv(env_var) or os.getenv("NEWSAPI_API_KEY")
        if not api_key:
            logger.warning(f"NewsAPI enabled but {env_var} not set - news signals disabled")
            return None
        logger.info("Enabled news source: NewsAPI")
        return cls(api_key, source_config=source_config, search_days_back=search_days_back)

    def search(self, query: str, since: Optional[datetime] = None) -> List[NewsArticle]:
        """Search everything NewsAPI has for `query`, most relevant first."""
        since = since or datetime.now(timezone.utc) - timedelta(days=self._days_back)
        logger.info(f"Searching NewsAPI for: {query}")
        response = self._client.get_everything(
            q=query,
            language=self._language,
            sort_by="relevancy",
            page_size=min(50, self._max_articles),
            from_param=since.strftime("%Y-%m-%dT%H:%M:%S"),
        )
        return [_to_article(a) for a in response.get("articles", [])]

    def top_headlines(self) -> List[NewsArticle]:
        """Latest headlines across the categories prediction markets care about."""
        articles: List[NewsArticle] = []
        page_size = max(1, self._max_articles // len(self.HEADLINE_CATEGORIES))
        for category in self.HEADLINE_CATEGORIES:
            response = self._client.get_top_headlines(
                category=category,
                language=self._language,
                page_size=page_size,
            )
            articles.extend(_to_article(a) for a in response.get("articles", []))
        logger.info(f"Fetched {len(articles)} headlines from NewsAPI")
        return articles
