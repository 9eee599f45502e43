#!/usr/bin/env python3
"""
Post ingestion workflow.

Sanitizes scraped candidates, drops short and duplicate posts, stores the
rest in batches and records a post_ingest health event.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional

from .deduplication import ContentDeduplicator
from .models.health import HealthEvent, METRIC_INGEST, METRIC_INGEST_ERROR
from .models.post import CandidatePost
from .validation import SecurityValidator

logger = logging.getLogger(__name__)

# First matching keyword group wins
TOPIC_KEYWORDS = [
    (('election', 'vote', 'campaign'), 'elections'),
    (('corruption', 'scandal', 'bribery'), 'corruption'),
    (('infrastructure', 'build', 'project'), 'infrastructure'),
    (('education', 'school', 'student'), 'education'),
    (('health', 'hospital', 'medical'), 'healthcare'),
    (('economy', 'jobs', 'unemployment'), 'economy'),
    (('law', 'bill', 'legislation'), 'legislation'),
]
DEFAULT_TOPIC = 'general'


def extract_topic(content: str, fallback: Optional[str] = None) -> str:
    """Keyword-based topic label for a post."""
    lowered = content.lower()
    for keywords, label in TOPIC_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return label
    return fallback or DEFAULT_TOPIC


@dataclass
class IngestionResult:
    """Outcome of one ingestion call."""
    scraped: int = 0
    stored: int = 0
    duplicates: int = 0
    filtered: int = 0
    failed_batches: int = 0
    messages: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        return 'success' if self.failed_batches == 0 else 'partial_success'

    @property
    def message(self) -> str:
        if self.scraped == 0:
            return 'No posts found.'
        return (f"Received {self.scraped} posts. Stored {self.stored} new posts, "
                f"skipped {self.duplicates} duplicates.")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'scraped': self.scraped,
            'stored': self.stored,
            'duplicates': self.duplicates,
            'filtered': self.filtered,
            'message': self.message,
        }


class IngestionService:
    """Stores new, unique posts from scraped candidates."""

    def __init__(self,
                 store,
                 deduplicator: Optional[ContentDeduplicator] = None,
                 validator: Optional[SecurityValidator] = None,
                 batch_size: int = 50,
                 min_post_length: int = 20):
        self.store = store
        self.deduplicator = deduplicator or ContentDeduplicator()
        self.validator = validator or SecurityValidator()
        self.batch_size = batch_size
        self.min_post_length = min_post_length

    def prepare(self, candidates: Iterable[CandidatePost]) -> List[CandidatePost]:
        """Sanitize content, fill in topics and drop posts that are too short."""
        prepared = []
        for candidate in candidates:
            content = self.validator.sanitize_text(candidate.content)
            if len(content) <= self.min_post_length:
                continue
            if candidate.source_url and not self.validator.validate_url(candidate.source_url):
                candidate = replace(candidate, source_url=None)
            prepared.append(replace(
                candidate,
                content=content,
                topic=candidate.topic or extract_topic(content),
            ))
        return prepared

    def ingest(self, candidates: List[CandidatePost]) -> IngestionResult:
        """
        Ingest a batch of scraped posts.

        Raises:
            RecordStoreError: If existing content cannot be looked up
        """
        result = IngestionResult(scraped=len(candidates))
        if not candidates:
            result.messages.append(result.message)
            return result

        try:
            prepared = self.prepare(candidates)
            result.filtered = len(candidates) - len(prepared)
            logger.info(f"Prepared {len(prepared)} posts (filtered {result.filtered} of {len(candidates)})")

            existing = self.store.find_existing_contents([post.content for post in prepared]) if prepared else set()
            dedup = self.deduplicator.partition_new(prepared, existing)
            result.duplicates = dedup.duplicates_found

            for batch in self._batches(dedup.new):
                try:
                    result.stored += self.store.insert_posts(batch)
                except Exception as e:
                    logger.error(f"Batch insert of {len(batch)} posts failed: {e}")
                    result.failed_batches += 1
                    result.messages.append(f"Batch insert failed: {e}")
        except Exception as e:
            logger.error(f"Ingestion failed: {e}")
            self._log_error_event(e)
            raise

        result.messages.append(result.message)
        self._log_event(result)
        return result

    def _batches(self, posts: List[CandidatePost]):
        for i in range(0, len(posts), self.batch_size):
            yield posts[i:i + self.batch_size]

    def _log_event(self, result: IngestionResult) -> None:
        value = {
            'items_received': result.scraped,
            'items_stored': result.stored,
            'duplicates_skipped': result.duplicates,
            'filtered': result.filtered,
            'status': result.status,
        }
        try:
            self.store.append_health_event(HealthEvent(METRIC_INGEST, value))
        except Exception as e:
            logger.error(f"Failed to log ingest health event: {e}")

    def _log_error_event(self, error: Exception) -> None:
        try:
            self.store.append_health_event(HealthEvent(
                METRIC_INGEST_ERROR,
                {'error': str(error), 'status': 'failed'}
            ))
        except Exception as log_error:
            logger.error(f"Failed to log error: {log_error}")
