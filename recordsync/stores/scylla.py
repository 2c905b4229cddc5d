"""
ScyllaDB / Cassandra Record Store

Reads full table snapshots through the DataStax driver. A dotted collection
name ("keyspace.table") overrides the configured keyspace.
"""

import logging
import re
from typing import Any, Dict, List, Tuple

from cassandra import DriverException
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import Cluster, NoHostAvailable

from recordsync.reconciliation.errors import ConfigurationError, StoreError
from recordsync.stores.base import RecordStore

logger = logging.getLogger(__name__)

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class ScyllaStore(RecordStore):
    """Wide-column store backed by ScyllaDB or Cassandra."""

    kind = "scylla"
    driver_errors = (DriverException, NoHostAvailable)

    def __init__(self, config):
        super().__init__(config)
        self.cluster = None
        self.session = None

    def connect(self) -> None:
        logger.info(f"Connecting to ScyllaDB at {self.config.host}:{self.config.resolved_port}")

        auth_provider = None
        if self.config.username:
            auth_provider = PlainTextAuthProvider(
                username=self.config.username,
                password=self.config.password
            )

        self.cluster = Cluster(
            [self.config.host],
            port=self.config.resolved_port,
            auth_provider=auth_provider,
            connect_timeout=self.config.connect_timeout
        )
        try:
            self.session = self.cluster.connect(self.config.keyspace)
        except (DriverException, NoHostAvailable) as e:
            self.close()
            raise StoreError(f"Cannot connect to ScyllaDB at {self.config.host}: {e}") from e

    def close(self) -> None:
        if self.cluster is not None:
            self.cluster.shutdown()
            self.cluster = None
            self.session = None
            logger.debug("ScyllaDB cluster shut down")

    def _fetch(self, collection: str) -> List[Dict[str, Any]]:
        if self.session is None:
            raise StoreError("ScyllaDB store is not connected")

        keyspace, table = self.split_collection(collection)
        result = self.session.execute(f"SELECT * FROM {keyspace}.{table}")

        return [dict(row._asdict()) for row in result]

    def split_collection(self, collection: str) -> Tuple[str, str]:
        if "." in collection:
            keyspace, table = collection.split(".", 1)
        else:
            keyspace, table = self.config.keyspace, collection

        for name in (keyspace, table):
            if not name or not IDENTIFIER.match(name):
                raise ConfigurationError(f"Invalid ScyllaDB identifier {name!r} in '{collection}'")

        return keyspace, table
