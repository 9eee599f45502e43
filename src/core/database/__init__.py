#!/usr/bin/env python3
"""
Database package.

Direct PostgreSQL record store plus backend selection.
"""

import logging

from .connection_manager import ConnectionManager
from .post_service import PostService
from .analysis_service import AnalysisService
from .health_service import HealthService
from .database_facade import PostgresRecordStore

logger = logging.getLogger(__name__)


def get_database(config=None):
    """
    Create the record store selected by DATABASE_BACKEND.

    Args:
        config: Application Config (defaults to the global config)

    Returns:
        RecordStore implementation

    Raises:
        RecordStoreConnectionError: If the backend cannot be reached
    """
    if config is None:
        from ..config import get_config
        config = get_config()

    backend = config.database.backend
    if backend == 'postgres':
        logger.info("Using direct PostgreSQL connection")
        return PostgresRecordStore(config)

    from ..supabase_adapter import SupabaseRecordStore
    logger.info("Using Supabase REST API")
    return SupabaseRecordStore(config)


__all__ = [
    'ConnectionManager',
    'PostService',
    'AnalysisService',
    'HealthService',
    'PostgresRecordStore',
    'get_database',
]
