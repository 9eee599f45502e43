#!/usr/bin/env python3
"""
Content Deduplicator

Exact-content duplicate detection for ingestion. Equality is plain string
equality of the content (case-sensitive, no normalization); near-duplicate
detection is not attempted.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def _default_content(item: Any) -> str:
    if isinstance(item, str):
        return item
    return item.content


class DeduplicationResult(Generic[T]):
    """Results from deduplication process with detailed metrics."""

    def __init__(self):
        """Initialize empty deduplication result."""
        self.new: List[T] = []
        self.duplicates: List[T] = []
        self.original_count = 0
        self.existing_matches = 0   # duplicates of already-stored content
        self.in_batch_matches = 0   # repeats within the candidate batch
        self.processing_time = 0.0

    @property
    def unique_count(self) -> int:
        return len(self.new)

    @property
    def duplicates_found(self) -> int:
        return len(self.duplicates)

    @property
    def duplicate_rate(self) -> float:
        """Calculate duplicate rate as percentage."""
        if self.original_count == 0:
            return 0.0
        return (self.duplicates_found / self.original_count) * 100

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for serialization."""
        return {
            'original_count': self.original_count,
            'unique_count': self.unique_count,
            'duplicates_found': self.duplicates_found,
            'existing_matches': self.existing_matches,
            'in_batch_matches': self.in_batch_matches,
            'duplicate_rate': self.duplicate_rate,
            'processing_time': self.processing_time
        }


class ContentDeduplicator:
    """Splits candidates into unseen content and duplicates."""

    def __init__(self, content_of: Optional[Callable[[Any], str]] = None):
        """
        Args:
            content_of: Extracts the content string from a candidate. Defaults
                to the item itself for strings, else its ``content`` attribute.
        """
        self.content_of = content_of or _default_content

    def partition_new(self, candidates: Iterable[T],
                      existing_contents: Optional[Iterable[str]] = None) -> DeduplicationResult[T]:
        """
        Keep candidates whose content is neither stored nor repeated earlier in the batch.

        Args:
            candidates: Items in input order
            existing_contents: Content already present in the store

        Returns:
            Result whose ``new`` and ``duplicates`` preserve input order
        """
        start_time = datetime.now()
        result: DeduplicationResult[T] = DeduplicationResult()
        existing: Set[str] = set(existing_contents or ())
        seen: Set[str] = set()

        for candidate in candidates:
            result.original_count += 1
            content = self.content_of(candidate)

            if content in existing:
                result.existing_matches += 1
                result.duplicates.append(candidate)
            elif content in seen:
                result.in_batch_matches += 1
                result.duplicates.append(candidate)
            else:
                seen.add(content)
                result.new.append(candidate)

        result.processing_time = (datetime.now() - start_time).total_seconds()

        if result.original_count:
            logger.info(f"Deduplication completed: {result.original_count} → {result.unique_count} "
                        f"({result.existing_matches} already stored, {result.in_batch_matches} repeated in batch)")
        return result
