#!/usr/bin/env python3
"""
Database Connection Manager

Owns the single psycopg connection used by the PostgreSQL record store:
opens it lazily, re-opens it after the server drops it and scopes
multi-row writes in transactions.
"""

import logging
import time
import psycopg
from psycopg.rows import dict_row
from typing import Optional, Dict, Any
from contextlib import contextmanager

from ..exceptions import RecordStoreConnectionError

logger = logging.getLogger(__name__)

# Supabase transaction pooler
POOLER_PORT = 6543


def build_connection_string(supabase_url: str, password: Optional[str]) -> str:
    """Pooler connection string for a Supabase project URL."""
    if not supabase_url.startswith('https://'):
        raise RecordStoreConnectionError('postgres', ValueError(f"Invalid Supabase URL format: {supabase_url}"))
    if not password:
        raise RecordStoreConnectionError('postgres', ValueError("SUPABASE_DB_PASSWORD is not set"))

    host = supabase_url.replace('https://', '').rstrip('/')
    return f"postgresql://postgres:{password}@{host}:{POOLER_PORT}/postgres?sslmode=require"


class ConnectionManager:
    """Single autocommit connection with reconnect-on-failure."""

    def __init__(self, config, connect: bool = True):
        """
        Args:
            config: DatabaseConfig
            connect: Open the connection now instead of on first use
        """
        self.config = config
        self.connection: Optional[psycopg.Connection] = None
        self.reconnects = 0
        if connect:
            self._connect()

    def _connect(self) -> None:
        conninfo = build_connection_string(self.config.supabase_url, self.config.supabase_db_password)
        try:
            self.connection = psycopg.connect(
                conninfo,
                row_factory=dict_row,
                autocommit=True,
                connect_timeout=self.config.connection_timeout
            )
        except psycopg.Error as e:
            raise RecordStoreConnectionError('postgres', e)
        logger.debug("Database connection established")

    def ensure_connection(self) -> psycopg.Connection:
        """Return a live connection, reconnecting if it was closed or broken."""
        if self.connection is None or self.connection.closed or self.connection.broken:
            if self.connection is not None:
                self.reconnects += 1
                logger.warning("Database connection lost, reconnecting")
            self._connect()
        return self.connection

    @contextmanager
    def get_cursor(self):
        """Cursor on the shared connection (autocommit)."""
        connection = self.ensure_connection()
        with connection.cursor() as cursor:
            yield cursor

    @contextmanager
    def transaction(self):
        """Cursor inside a transaction; rolled back if the block raises."""
        connection = self.ensure_connection()
        with connection.transaction():
            with connection.cursor() as cursor:
                yield cursor

    def close(self) -> None:
        if self.connection is not None and not self.connection.closed:
            self.connection.close()
            logger.debug("Database connection closed")

    def health_check(self) -> Dict[str, Any]:
        """Round-trip a trivial query and report latency and server version."""
        started = time.monotonic()
        try:
            with self.get_cursor() as cursor:
                cursor.execute("SELECT version() AS version")
                row = cursor.fetchone()
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {'connected': False, 'backend': 'postgres', 'error': str(e)}

        return {
            'connected': True,
            'backend': 'postgres',
            'version': row['version'],
            'latency_ms': round((time.monotonic() - started) * 1000, 1),
            'reconnects': self.reconnects,
        }
