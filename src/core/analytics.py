#!/usr/bin/env python3
"""
Sentiment analytics.

Aggregates analyzed posts into the sentiment distribution, the most common
post topics and extracted keywords, and a per-day sentiment timeline.
"""

import logging
from collections import Counter
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional

from .clock import Clock
from .models.analysis import SENTIMENTS
from .models.post import _parse_datetime_safe

logger = logging.getLogger(__name__)

TOPIC_SAMPLE_SIZE = 500
TOP_TOPICS = 10
TOP_KEYWORDS = 20
TIMELINE_DAYS = 7


def count_topics(rows: Iterable[Dict[str, Any]],
                 top_topics: int = TOP_TOPICS,
                 top_keywords: int = TOP_KEYWORDS) -> Dict[str, List[Dict[str, Any]]]:
    """
    Most frequent post topics and key topics.

    Ties keep the order in which values were first seen.
    """
    topics: Counter = Counter()
    keywords: Counter = Counter()
    for row in rows:
        if row.get('topic'):
            topics[row['topic']] += 1
        for keyword in row.get('key_topics') or []:
            keywords[keyword] += 1

    return {
        'top_topics': [{'topic': topic, 'count': count}
                       for topic, count in topics.most_common(top_topics)],
        'top_keywords': [{'keyword': keyword, 'count': count}
                         for keyword, count in keywords.most_common(top_keywords)],
    }


def _empty_day(date: str) -> Dict[str, Any]:
    day = {'date': date, 'total': 0, 'scores': []}
    for label in SENTIMENTS:
        day[label] = 0
    return day


def build_timeline(rows: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Per-day label counts and mean score, oldest day first."""
    days: Dict[str, Dict[str, Any]] = {}
    for row in rows:
        created_at = _parse_datetime_safe(row.get('created_at'))
        if created_at is None:
            continue

        date = created_at.date().isoformat()
        day = days.setdefault(date, _empty_day(date))
        sentiment = row.get('sentiment')
        if sentiment in SENTIMENTS:
            day[sentiment] += 1
        day['total'] += 1
        if row.get('sentiment_score') is not None:
            day['scores'].append(float(row['sentiment_score']))

    timeline = []
    for date in sorted(days):
        day = days[date]
        scores = day.pop('scores')
        day['avg_score'] = sum(scores) / len(scores) if scores else 0.0
        timeline.append(day)
    return timeline


class AnalyticsService:
    """Builds the analytics report from a record store."""

    def __init__(self, store, clock: Optional[Clock] = None,
                 topic_sample_size: int = TOPIC_SAMPLE_SIZE,
                 timeline_days: int = TIMELINE_DAYS):
        self.store = store
        self.clock = clock or Clock()
        self.topic_sample_size = topic_sample_size
        self.timeline_days = timeline_days

    def get_report(self) -> Dict[str, Any]:
        """
        Sentiment distribution, top topics and keywords, and the daily timeline.

        Raises:
            RecordStoreError: If the distribution cannot be read
        """
        now = self.clock.now()
        distribution = self.store.get_sentiment_distribution() or []

        try:
            topic_rows = self.store.list_analyzed_topics(self.topic_sample_size)
        except Exception as e:
            logger.warning(f"Failed to get analyzed topics: {e}")
            topic_rows = []

        try:
            timeline_rows = self.store.list_sentiment_timeline(now - timedelta(days=self.timeline_days))
        except Exception as e:
            logger.warning(f"Failed to get sentiment timeline: {e}")
            timeline_rows = []

        report: Dict[str, Any] = {'sentiment_distribution': distribution}
        report.update(count_topics(topic_rows))
        report['timeline'] = build_timeline(timeline_rows)
        report['timestamp'] = now.isoformat()
        return report
