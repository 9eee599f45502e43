#!/usr/bin/env python3
"""
System health data models.

Contains health events (append-only metric records) and the aggregate
statistics the health evaluator reads.
"""

from datetime import datetime, timezone
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from .post import _parse_datetime_safe

HEALTHY = 'healthy'
WARNING = 'warning'
ERROR = 'error'

# Metric names written by the engine
METRIC_ANALYSIS = 'sentiment_analysis'
METRIC_ANALYSIS_ERROR = 'sentiment_analysis_error'
METRIC_INGEST = 'post_ingest'
METRIC_INGEST_ERROR = 'post_ingest_error'
METRIC_CLEANUP = 'database_cleanup'
METRIC_CLEANUP_ERROR = 'database_cleanup_error'


@dataclass
class HealthEvent:
    """A single recorded metric."""
    metric_name: str
    metric_value: Dict[str, Any]
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'HealthEvent':
        return cls(
            metric_name=row.get('metric_name') or '',
            metric_value=row.get('metric_value') or {},
            recorded_at=_parse_datetime_safe(row.get('recorded_at')) or datetime.now(timezone.utc),
        )

    def to_row(self) -> Dict[str, Any]:
        return {
            'metric_name': self.metric_name,
            'metric_value': self.metric_value,
            'recorded_at': self.recorded_at.isoformat(),
        }


@dataclass
class SystemStats:
    """Aggregate counts over posts and analyses."""
    total_posts: int = 0
    total_analyzed: int = 0
    posts_today: int = 0
    avg_sentiment_score: Optional[float] = None
    last_post_time: Optional[datetime] = None
    last_analysis_time: Optional[datetime] = None

    @property
    def has_data(self) -> bool:
        return self.total_posts > 0 or self.total_analyzed > 0

    @property
    def has_unanalyzed_posts(self) -> bool:
        return self.total_posts > self.total_analyzed

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'SystemStats':
        avg = row.get('avg_sentiment_score')
        return cls(
            total_posts=int(row.get('total_posts') or 0),
            total_analyzed=int(row.get('total_analyzed') or 0),
            posts_today=int(row.get('posts_today') or 0),
            avg_sentiment_score=float(avg) if avg is not None else None,
            last_post_time=_parse_datetime_safe(row.get('last_post_time')),
            last_analysis_time=_parse_datetime_safe(row.get('last_analysis_time')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_posts': self.total_posts,
            'total_analyzed': self.total_analyzed,
            'posts_today': self.posts_today,
            'avg_sentiment_score': self.avg_sentiment_score,
            'last_post_time': self.last_post_time.isoformat() if self.last_post_time else None,
            'last_analysis_time': self.last_analysis_time.isoformat() if self.last_analysis_time else None,
        }
