"""
PostgreSQL Record Store

Reads full table snapshots with psycopg2. A dotted collection name
("schema.table") overrides the configured schema.
"""

import logging
from typing import Any, Dict, List, Tuple

import psycopg2
from psycopg2 import sql
from psycopg2.extras import RealDictCursor

from recordsync.reconciliation.errors import StoreError
from recordsync.stores.base import RecordStore

logger = logging.getLogger(__name__)


class PostgresStore(RecordStore):
    """Relational store backed by PostgreSQL."""

    kind = "postgres"
    default_identity_fields = ("id",)
    driver_errors = (psycopg2.Error,)

    def __init__(self, config):
        super().__init__(config)
        self.conn = None

    def connect(self) -> None:
        logger.info(f"Connecting to PostgreSQL at {self.config.host}:{self.config.resolved_port}")
        try:
            self.conn = psycopg2.connect(
                host=self.config.host,
                port=self.config.resolved_port,
                dbname=self.config.database,
                user=self.config.username,
                password=self.config.password,
                connect_timeout=self.config.connect_timeout
            )
        except psycopg2.Error as e:
            raise StoreError(f"Cannot connect to PostgreSQL at {self.config.host}: {e}") from e

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
            logger.debug("PostgreSQL connection closed")

    def _fetch(self, collection: str) -> List[Dict[str, Any]]:
        if self.conn is None:
            raise StoreError("PostgreSQL store is not connected")

        schema, table = self.split_collection(collection)
        query = sql.SQL("SELECT * FROM {}.{}").format(sql.Identifier(schema), sql.Identifier(table))

        with self.conn.cursor(cursor_factory=RealDictCursor) as cursor:
            cursor.execute(query)
            return [dict(row) for row in cursor.fetchall()]

    def split_collection(self, collection: str) -> Tuple[str, str]:
        if "." in collection:
            schema, table = collection.split(".", 1)
            return schema, table
        return self.config.schema, collection
