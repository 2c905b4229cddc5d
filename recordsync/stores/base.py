"""
Record Store Interface

One implementation per store kind, selected once at startup from the store
configuration. A store instance wraps a single connection and is meant to be
used as a context manager so the connection is closed on every exit path.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Type

from recordsync.config import StoreConfig

logger = logging.getLogger(__name__)


@dataclass
class FetchResult:
    """Store snapshot for one collection."""

    success: bool
    data: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


class RecordStore(ABC):
    """
    Base class for store adapters.

    Subclasses set:
    - kind: store kind name used in configuration
    - default_identity_fields: store-assigned identifier fields
    - driver_errors: driver exception types turned into unsuccessful fetches
    """

    kind: str = ""
    default_identity_fields: Tuple[str, ...] = ()
    driver_errors: Tuple[Type[BaseException], ...] = ()

    def __init__(self, config: StoreConfig):
        self.config = config
        if config.identity_fields is not None:
            self.identity_fields = tuple(config.identity_fields)
        else:
            self.identity_fields = self.default_identity_fields

    @abstractmethod
    def connect(self) -> None:
        """
        Open the connection.

        Raises:
            StoreError: If the store cannot be reached
        """

    @abstractmethod
    def close(self) -> None:
        """Close the connection. Safe to call more than once."""

    @abstractmethod
    def _fetch(self, collection: str) -> List[Dict[str, Any]]:
        """Read every record of a collection."""

    def fetch_records(self, collection: str) -> FetchResult:
        """
        Fetch the full snapshot of a collection.

        Driver errors are logged and reported as an unsuccessful result.

        Args:
            collection: Collection (table) identifier

        Returns:
            FetchResult
        """
        try:
            rows = self._fetch(collection)
        except self.driver_errors as e:
            logger.error(f"Failed to fetch records from {self.kind} collection {collection}: {e}")
            return FetchResult(success=False, error=str(e))

        logger.info(f"Fetched {len(rows)} records from {self.kind} collection {collection}")
        return FetchResult(success=True, data=rows)

    def __enter__(self) -> "RecordStore":
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
