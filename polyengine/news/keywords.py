"""
Market Keyword Extraction

Pulls entities, topics, timeframes and action verbs out of a market
question (and optional resolution rules) to build a news search query
and to score how closely an article matches the market.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple
import logging
import re

from polyengine.config import DEFAULT_TOPIC_KEYWORDS

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset({
    "the", "be", "to", "of", "and", "a", "in", "that", "have", "i",
    "it", "for", "not", "on", "with", "he", "as", "you", "do", "at",
    "this", "but", "his", "by", "from", "will", "or", "what", "go",
    "can", "than", "if", "their", "said", "an", "each", "she", "which",
    "there", "been", "may", "after", "other", "into", "any", "before",
})

_PROPER_NOUN = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")
_ACRONYM = re.compile(r"\b(?:US|USA|UK|EU|UN|NATO|OPEC|IMF|WHO|CDC|FDA|EPA)\b")
_INSTITUTION = re.compile(r"\b(?:Fed|Federal Reserve|Congress|Senate|White House)\b")

_TIME_PATTERNS = (
    re.compile(r"\b20\d{2}\b"),
    re.compile(
        r"\b(?:January|February|March|April|May|June|July|August|"
        r"September|October|November|December)\b"
    ),
    re.compile(r"\b(?:Q[1-4]|H[12])\s*20\d{2}\b", re.IGNORECASE),
    re.compile(r"\b(?:next|this|last)\s+(?:week|month|year|quarter)\b", re.IGNORECASE),
)

_ACTION = re.compile(r"\b(?:will|shall|might|could|would|should)\s+(\w+)\b", re.IGNORECASE)

# Relevance points per matched keyword kind
ENTITY_POINTS = 3
TOPIC_POINTS = 2
TIMEFRAME_POINTS = 1
MIN_RELEVANCE_DENOMINATOR = 10
MAX_SIGNIFICANT_WORDS = 10


def contains_term(text: str, term: str, whole_word: bool = False) -> bool:
    """
    Case-insensitive term lookup anchored at a word start.

    With whole_word the term must also end on a word boundary, so
    "up" does not match "update".
    """
    pattern = r"\b" + re.escape(term.lower())
    if whole_word:
        pattern += r"\b"
    return re.search(pattern, text.lower()) is not None


def _unique(items: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(items))


@dataclass(frozen=True, slots=True)
class ExtractedKeywords:
    entities: Tuple[str, ...] = ()       # Named entities (Fed, US, Trump)
    topics: Tuple[str, ...] = ()         # Topic keywords (recession, rate)
    timeframes: Tuple[str, ...] = ()     # Time references (2025, January, Q1 2025)
    actions: Tuple[str, ...] = ()        # Verbs after modals (cut, raise, win)
    all: Tuple[str, ...] = ()            # Everything above, lowercased, deduplicated

    @property
    def max_relevance_points(self) -> int:
        return (
            len(self.entities) * ENTITY_POINTS
            + len(self.topics) * TOPIC_POINTS
            + len(self.timeframes) * TIMEFRAME_POINTS
        )


class MarketKeywordExtractor:
    """
    Keyword extraction and article relevance scoring for one topic list.

    Stateless apart from its configured topic keywords, so a single
    instance can be shared across threads.
    """

    def __init__(self, topic_keywords: Sequence[str] = DEFAULT_TOPIC_KEYWORDS):
        self._topic_keywords = tuple(topic_keywords)

    def extract(self, market_title: str, market_rules: Optional[str] = None) -> ExtractedKeywords:
        """Extract keywords from a market question and its rules text."""
        original = f"{market_title} {market_rules or ''}".strip()
        lower = original.lower()

        entities = _unique(self._entities(original))
        timeframes = _unique(
            m.group(0).strip() for pattern in _TIME_PATTERNS for m in pattern.finditer(original)
        )
        topics = tuple(kw for kw in self._topic_keywords if contains_term(lower, kw))
        actions = _unique(m.group(1).lower() for m in _ACTION.finditer(original))

        words = [
            w for w in re.split(r"\W+", lower)
            if len(w) > 2 and w not in STOP_WORDS and w.isalpha()
        ]

        combined = _unique(
            k.lower()
            for k in (*entities, *topics, *timeframes, *actions, *words[:MAX_SIGNIFICANT_WORDS])
        )

        logger.debug(f"Extracted keywords from \"{market_title[:50]}\"")
        logger.debug(f"  Entities: {', '.join(entities)}")
        logger.debug(f"  Topics: {', '.join(topics)}")
        logger.debug(f"  Timeframes: {', '.join(timeframes)}")

        return ExtractedKeywords(
            entities=entities,
            topics=topics,
            timeframes=timeframes,
            actions=actions,
            all=combined,
        )

    @staticmethod
    def _entities(text: str) -> List[str]:
        found: List[str] = []
        for match in _PROPER_NOUN.finditer(text):
            # "Will Trump" -> "Trump"; a lone "Will" is dropped
            words = match.group(0).split()
            while words and words[0].lower() in STOP_WORDS:
                words.pop(0)
            if words:
                found.append(" ".join(words))
        found.extend(m.group(0) for m in _ACRONYM.finditer(text))
        found.extend(m.group(0) for m in _INSTITUTION.finditer(text))
        return found

    @staticmethod
    def build_search_query(keywords: ExtractedKeywords) -> str:
        """Prefer entities and topics; fall back to any keywords."""
        priority = [*keywords.entities[:2], *keywords.topics[:2]]
        if not priority:
            return " ".join(keywords.all[:3])
        return " ".join(priority)

    @staticmethod
    def relevance_score(article_text: str, keywords: ExtractedKeywords) -> float:
        """
        Keyword overlap between an article and a market, in [0, 1].

        Entities score 3 points, topics 2 and timeframes 1; the total is
        divided by max(10, maximum possible points).
        """
        max_points = keywords.max_relevance_points
        if max_points == 0:
            return 0.0

        text = article_text.lower()
        score = 0
        matches = 0
        for terms, points in (
            (keywords.entities, ENTITY_POINTS),
            (keywords.topics, TOPIC_POINTS),
            (keywords.timeframes, TIMEFRAME_POINTS),
        ):
            for term in terms:
                if contains_term(text, term):
                    score += points
                    matches += 1

        normalized = min(1.0, score / max(MIN_RELEVANCE_DENOMINATOR, max_points))
        logger.debug(f"Relevance score: {normalized:.2f} ({matches} keyword matches)")
        return normalized
