"""
Configuration Loader

Loads the YAML run configuration once into immutable dataclasses. Structural
problems (unknown store kind, unnamed collection, malformed document) raise
ConfigurationError here; key spec emptiness is left to the engine so that it
fails only the affected collection.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from recordsync.reconciliation.errors import ConfigurationError

logger = logging.getLogger(__name__)

STORE_KINDS = ("postgres", "scylla")
DATA_TYPES = ("string", "number", "boolean", "date")

DEFAULT_PORTS = {"postgres": 5432, "scylla": 9042}


@dataclass(frozen=True)
class ColumnConfig:
    """
    Maps one spreadsheet column onto a record field.

    Attributes:
        column_name: Field name in the produced record
        header_name: Header text to look up (case and whitespace insensitive)
        column_index: 1-based column position, overrides header lookup
        default_value: Used for blank cells, or as a constant without header_name
        data_type: string, number, boolean or date
    """

    column_name: str
    header_name: Optional[str] = None
    column_index: Optional[int] = None
    default_value: Any = None
    data_type: str = "string"


@dataclass(frozen=True)
class FileMapping:
    filename: str
    sheet_name: str
    columns: Tuple[ColumnConfig, ...]
    header_index: int = 1


@dataclass(frozen=True)
class ExcludeRule:
    """Rows whose raw value in column_name is one of values are dropped."""

    column_name: str
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class CollectionConfig:
    name: str
    dedup_keys: Tuple[str, ...]
    compare_keys: Tuple[str, ...]
    mapping: Tuple[FileMapping, ...] = ()
    exact_match_fields: Tuple[str, ...] = ()
    exclude_records: Tuple[ExcludeRule, ...] = ()
    empty_values: Mapping[str, Tuple[Any, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class StoreConfig:
    kind: str = "postgres"
    host: str = "localhost"
    port: Optional[int] = None
    database: Optional[str] = None
    schema: str = "public"
    keyspace: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    identity_fields: Optional[Tuple[str, ...]] = None
    connect_timeout: int = 10
    vault_path: Optional[str] = None

    @property
    def resolved_port(self) -> int:
        return self.port or DEFAULT_PORTS[self.kind]

    def with_env_overrides(self) -> "StoreConfig":
        """Apply RECORDSYNC_STORE_* environment variables."""
        return replace(
            self,
            host=os.getenv("RECORDSYNC_STORE_HOST", self.host),
            username=os.getenv("RECORDSYNC_STORE_USER", self.username),
            password=os.getenv("RECORDSYNC_STORE_PASSWORD", self.password)
        )


@dataclass(frozen=True)
class AppConfig:
    store: StoreConfig
    collections: Tuple[CollectionConfig, ...]
    data_sheets_directory: str = "DataSheets"
    reports_directory: str = "Reports"
    workers: int = 1

    def get_collection(self, name: str) -> CollectionConfig:
        for collection in self.collections:
            if collection.name == name:
                return collection
        raise ConfigurationError(
            f"Unknown collection '{name}'. "
            f"Configured: {[c.name for c in self.collections]}"
        )


def load_config(path: Union[str, Path]) -> AppConfig:
    """
    Load and validate a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        AppConfig

    Raises:
        ConfigurationError: If the file is missing, unparsable or malformed
    """
    config_path = Path(path)

    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, "r") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    config = parse_config(raw)
    logger.info(f"Loaded configuration from {config_path}: {len(config.collections)} collections")
    return config


def parse_config(raw: Any) -> AppConfig:
    """Build an AppConfig from an already-parsed document."""
    if not isinstance(raw, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    store = _parse_store(raw.get("store") or {})

    collections_raw = raw.get("collections")
    if not isinstance(collections_raw, list) or not collections_raw:
        raise ConfigurationError("Configuration must define a non-empty 'collections' list")

    collections = tuple(_parse_collection(entry, i) for i, entry in enumerate(collections_raw))

    names = [c.name for c in collections]
    duplicated = sorted({n for n in names if names.count(n) > 1})
    if duplicated:
        raise ConfigurationError(f"Duplicate collection names: {duplicated}")

    runtime = raw.get("runtime") or {}
    workers = _as_int(runtime.get("workers", 1), "runtime.workers")
    if workers < 1:
        raise ConfigurationError("runtime.workers must be at least 1")

    return AppConfig(
        store=store,
        collections=collections,
        data_sheets_directory=str(raw.get("data_sheets_directory", "DataSheets")),
        reports_directory=str(raw.get("reports_directory", "Reports")),
        workers=workers
    )


def _parse_store(raw: Mapping[str, Any]) -> StoreConfig:
    if not isinstance(raw, dict):
        raise ConfigurationError("'store' must be a mapping")

    kind = str(raw.get("kind", "postgres")).lower()
    if kind not in STORE_KINDS:
        raise ConfigurationError(f"Unknown store kind '{kind}'. Must be one of {list(STORE_KINDS)}")

    identity_fields = raw.get("identity_fields")

    return StoreConfig(
        kind=kind,
        host=str(raw.get("host", "localhost")),
        port=_as_int(raw["port"], "store.port") if raw.get("port") is not None else None,
        database=raw.get("database"),
        schema=str(raw.get("schema", "public")),
        keyspace=raw.get("keyspace"),
        username=raw.get("username"),
        password=raw.get("password"),
        identity_fields=_as_names(identity_fields, "store.identity_fields") if identity_fields is not None else None,
        connect_timeout=_as_int(raw.get("connect_timeout", 10), "store.connect_timeout"),
        vault_path=raw.get("vault_path")
    )


def _parse_collection(raw: Any, index: int) -> CollectionConfig:
    if not isinstance(raw, dict):
        raise ConfigurationError(f"collections[{index}] must be a mapping")

    name = raw.get("name")
    if not name or not isinstance(name, str):
        raise ConfigurationError(f"collections[{index}] is missing a 'name'")

    dedup_keys = _as_names(raw.get("dedup_keys") or [], f"{name}.dedup_keys")
    if "compare_keys" in raw:
        compare_keys = _as_names(raw["compare_keys"] or [], f"{name}.compare_keys")
    else:
        compare_keys = dedup_keys

    empty_values = raw.get("empty_values") or {}
    if not isinstance(empty_values, dict):
        raise ConfigurationError(f"{name}.empty_values must be a mapping of field -> values")

    return CollectionConfig(
        name=name,
        dedup_keys=dedup_keys,
        compare_keys=compare_keys,
        mapping=tuple(_parse_file_mapping(m, name) for m in raw.get("mapping") or []),
        exact_match_fields=_as_names(raw.get("exact_match_fields") or [], f"{name}.exact_match_fields"),
        exclude_records=tuple(_parse_exclude_rule(r, name) for r in raw.get("exclude_records") or []),
        empty_values={str(k): tuple(_as_list(v)) for k, v in empty_values.items()}
    )


def _parse_file_mapping(raw: Any, collection: str) -> FileMapping:
    if not isinstance(raw, dict) or not raw.get("filename") or not raw.get("sheet_name"):
        raise ConfigurationError(f"{collection}: every mapping needs 'filename' and 'sheet_name'")

    columns = raw.get("columns") or []
    if not columns:
        raise ConfigurationError(f"{collection}: mapping for {raw['filename']} has no columns")

    header_index = _as_int(raw.get("header_index", 1), f"{collection}.header_index")
    if header_index < 1:
        raise ConfigurationError(f"{collection}: header_index is 1-based")

    return FileMapping(
        filename=str(raw["filename"]),
        sheet_name=str(raw["sheet_name"]),
        columns=tuple(_parse_column(c, collection) for c in columns),
        header_index=header_index
    )


def _parse_column(raw: Any, collection: str) -> ColumnConfig:
    if not isinstance(raw, dict) or not raw.get("column_name"):
        raise ConfigurationError(f"{collection}: every column needs a 'column_name'")

    data_type = str(raw.get("data_type", "string")).lower()
    if data_type not in DATA_TYPES:
        raise ConfigurationError(
            f"{collection}.{raw['column_name']}: unknown data_type '{data_type}'"
        )

    column_index = raw.get("column_index")

    return ColumnConfig(
        column_name=str(raw["column_name"]),
        header_name=raw.get("header_name"),
        column_index=_as_int(column_index, f"{collection}.column_index") if column_index is not None else None,
        default_value=raw.get("default_value"),
        data_type=data_type
    )


def _parse_exclude_rule(raw: Any, collection: str) -> ExcludeRule:
    if not isinstance(raw, dict) or not raw.get("column_name"):
        raise ConfigurationError(f"{collection}: exclude rules need 'column_name' and 'values'")
    return ExcludeRule(column_name=str(raw["column_name"]), values=tuple(_as_list(raw.get("values"))))


def _as_names(value: Any, label: str) -> Tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) and v for v in value):
        raise ConfigurationError(f"{label} must be a list of field names")
    return tuple(value)


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _as_int(value: Any, label: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{label} must be an integer, got {value!r}") from e


def config_to_dict(config: AppConfig) -> Dict[str, Any]:
    """Render a configuration for display, masking the store password."""
    store = {
        "kind": config.store.kind,
        "host": config.store.host,
        "port": config.store.resolved_port,
        "database": config.store.database,
        "schema": config.store.schema,
        "keyspace": config.store.keyspace,
        "username": config.store.username,
        "password": "***" if config.store.password else None,
        "vault_path": config.store.vault_path,
    }
    return {
        "store": store,
        "data_sheets_directory": config.data_sheets_directory,
        "reports_directory": config.reports_directory,
        "workers": config.workers,
        "collections": [
            {
                "name": c.name,
                "dedup_keys": list(c.dedup_keys),
                "compare_keys": list(c.compare_keys),
                "exact_match_fields": list(c.exact_match_fields),
                "files": [m.filename for m in c.mapping],
            }
            for c in config.collections
        ],
    }
