"""
Store adapters.

Usage:
    from recordsync.stores import create_store

    with create_store(config.store) as store:
        result = store.fetch_records("hulu.scope")
"""

from recordsync.stores.base import FetchResult, RecordStore
from recordsync.stores.factory import create_store, resolve_credentials

__all__ = [
    "FetchResult",
    "RecordStore",
    "create_store",
    "resolve_credentials",
]
