"""
Store Factory

Picks the store implementation for the configured kind and resolves its
credentials (environment overrides, then Vault when a secret path is set).
"""

import logging
from dataclasses import replace
from typing import Callable, Dict, Optional, Type

from recordsync.config import StoreConfig
from recordsync.reconciliation.errors import ConfigurationError
from recordsync.stores.base import RecordStore
from recordsync.stores.postgres import PostgresStore
from recordsync.stores.scylla import ScyllaStore
from recordsync.utils.vault_client import VaultClient

logger = logging.getLogger(__name__)

STORE_TYPES: Dict[str, Type[RecordStore]] = {
    PostgresStore.kind: PostgresStore,
    ScyllaStore.kind: ScyllaStore,
}


def resolve_credentials(
    config: StoreConfig,
    vault_client_factory: Callable[[], VaultClient] = VaultClient
) -> StoreConfig:
    """
    Apply environment overrides and Vault credentials to a store config.

    Args:
        config: Store configuration as loaded from YAML
        vault_client_factory: Builds the Vault client (injected in tests)

    Returns:
        Store configuration with credentials filled in
    """
    config = config.with_env_overrides()

    if not config.vault_path:
        return config

    with vault_client_factory() as vault:
        credentials = vault.get_store_credentials(config.vault_path)

    port: Optional[int] = int(credentials["port"]) if "port" in credentials else config.port

    return replace(
        config,
        username=credentials["username"],
        password=credentials["password"],
        host=credentials.get("host", config.host),
        port=port
    )


def create_store(config: StoreConfig) -> RecordStore:
    """
    Build an unconnected store for the configured kind.

    Raises:
        ConfigurationError: If the kind is unknown
    """
    store_type = STORE_TYPES.get(config.kind)
    if store_type is None:
        raise ConfigurationError(f"No store implementation for kind '{config.kind}'")

    return store_type(config)
