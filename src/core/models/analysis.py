#!/usr/bin/env python3
"""
Analysis result data models.

Contains the normalized classifier output and the per-post result that is
persisted once per post.
"""

from datetime import datetime, timezone
from typing import List, Dict, Any
from dataclasses import dataclass, field

SENTIMENTS = ('positive', 'negative', 'neutral')
MAX_TOPICS = 5
MIN_SCORE = -1.0
MAX_SCORE = 1.0
DEFAULT_SUMMARY = 'No summary available'


@dataclass
class ClassificationResult:
    """Normalized sentiment classification of one piece of text."""
    sentiment: str
    sentiment_score: float
    key_topics: List[str]
    summary: str

    def __post_init__(self):
        """Validate and clean data."""
        if self.sentiment not in SENTIMENTS:
            self.sentiment = 'neutral'
        self.sentiment_score = max(MIN_SCORE, min(MAX_SCORE, float(self.sentiment_score)))
        self.key_topics = list(self.key_topics)[:MAX_TOPICS]
        self.summary = (self.summary or '').strip() or DEFAULT_SUMMARY


@dataclass
class AnalysisResult:
    """Sentiment analysis attached to exactly one post."""
    post_id: str
    sentiment: str
    sentiment_score: float
    key_topics: List[str]
    summary: str
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_classification(cls, post_id: str, result: ClassificationResult) -> 'AnalysisResult':
        return cls(
            post_id=post_id,
            sentiment=result.sentiment,
            sentiment_score=result.sentiment_score,
            key_topics=list(result.key_topics),
            summary=result.summary,
        )

    def to_row(self) -> Dict[str, Any]:
        """Row payload for the sentiment_analysis table."""
        return {
            'post_id': self.post_id,
            'sentiment': self.sentiment,
            'sentiment_score': self.sentiment_score,
            'key_topics': self.key_topics,
            'summary': self.summary,
            'analyzed_at': self.analyzed_at.isoformat(),
        }
