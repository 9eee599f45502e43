#!/usr/bin/env python3
"""
Deduplication package.

Exact-content duplicate detection for ingestion and retrospective cleanup
of stored posts.
"""

from .deduplicator import ContentDeduplicator, DeduplicationResult
from .cleanup import CleanupPlan, CleanupReport, DuplicateCleaner, plan_duplicate_removal

__all__ = [
    'ContentDeduplicator',
    'DeduplicationResult',
    'CleanupPlan',
    'CleanupReport',
    'DuplicateCleaner',
    'plan_duplicate_removal',
]
