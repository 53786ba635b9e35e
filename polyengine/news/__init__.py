"""
News analysis for market signals.

- keywords: market keyword extraction and article relevance
- sources: news provider protocol and the NewsAPI adapter
- service: cached retrieval and signal aggregation
"""

from polyengine.news.keywords import (
    ExtractedKeywords,
    MarketKeywordExtractor,
    contains_term,
)
from polyengine.news.sources import NewsApiProvider, NewsProvider
from polyengine.news.service import NewsSignalService

__all__ = [
    # Keywords
    "ExtractedKeywords",
    "MarketKeywordExtractor",
    "contains_term",
    # Sources
    "NewsApiProvider",
    "NewsProvider",
    # Service
    "NewsSignalService",
]
