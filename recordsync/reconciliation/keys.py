"""
Composite Key Builder

Builds canonical composite keys from records and owns the value
normalization shared by deduplication, grouping and field comparison.
"""

import logging
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence
from uuid import UUID

from recordsync.reconciliation.errors import ComparisonError, ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_DELIMITER = "|"
EMPTY = ""


def require_key_spec(key_spec: Optional[Sequence[str]], purpose: str = "key") -> tuple:
    """
    Validate a composite key spec.

    Args:
        key_spec: Ordered field names
        purpose: Used in the error message ("dedup", "compare", ...)

    Returns:
        The key spec as a tuple

    Raises:
        ConfigurationError: If the spec is missing, empty or not a list of names
    """
    if key_spec is None or isinstance(key_spec, (str, bytes)) or len(key_spec) == 0:
        raise ConfigurationError(f"A non-empty {purpose} key spec is required, got {key_spec!r}")

    for field in key_spec:
        if not isinstance(field, str) or not field:
            raise ConfigurationError(f"Invalid field name {field!r} in {purpose} key spec")

    return tuple(key_spec)


class KeyBuilder:
    """
    Derives deterministic composite keys from records.

    None, absent and empty-string values are indistinguishable. Strings are
    trimmed and lowercased so incidental casing or whitespace never splits
    a key.
    """

    def __init__(
        self,
        delimiter: str = DEFAULT_DELIMITER,
        empty_values: Optional[Mapping] = None
    ):
        """
        Initialize the key builder.

        Args:
            delimiter: Separator between key parts; must not occur in business data
            empty_values: Optional mapping of field name to raw values that the
                caller wants treated as empty for that field (e.g. {"Count": [0, "0"]})
        """
        if not delimiter:
            raise ConfigurationError("Key delimiter must be a non-empty string")

        self.delimiter = delimiter
        self.empty_values: Dict[str, tuple] = {
            field: tuple(values) for field, values in (empty_values or {}).items()
        }
        logger.debug(f"Initialized KeyBuilder with delimiter '{delimiter}'")

    def build_key(self, record: Mapping, key_spec: Sequence[str]) -> str:
        """
        Build the composite key for a record.

        Args:
            record: Record mapping
            key_spec: Ordered, non-empty list of field names

        Returns:
            Canonical key string

        Raises:
            ConfigurationError: If the key spec is empty
            ComparisonError: If the record or a key value has an unsupported shape
        """
        fields = require_key_spec(key_spec)
        self._require_mapping(record)

        return self.delimiter.join(
            self.normalize_field(field, record.get(field)) for field in fields
        )

    def is_empty(self, field: str, value: Any) -> bool:
        """Check a raw value against None, the empty string and the field's empty values."""
        if value is None or (isinstance(value, str) and value == EMPTY):
            return True
        return field in self.empty_values and self._is_listed(value, self.empty_values[field])

    def normalize_field(self, field: str, value: Any) -> str:
        """Normalize a value, honouring the per-field empty values."""
        if field in self.empty_values and self._is_listed(value, self.empty_values[field]):
            return EMPTY
        try:
            return self.normalize_value(value)
        except ComparisonError as e:
            raise ComparisonError(f"Field '{field}': {e}") from e

    def normalize_value(self, value: Any) -> str:
        """
        Normalize a single scalar value.

        Handles:
        - None / empty string -> ""
        - strings -> trimmed, lowercased
        - booleans -> "true" / "false"
        - integral floats and Decimals -> no fractional part
        - dates, datetimes -> ISO format
        - UUID -> canonical string

        Raises:
            ComparisonError: For lists, dicts, sets and other non-scalars
        """
        if value is None:
            return EMPTY

        if isinstance(value, str):
            return value.strip().lower()

        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return "true" if value else "false"

        if isinstance(value, int):
            return str(value)

        if isinstance(value, float):
            if value.is_integer():
                return str(int(value))
            return repr(value)

        if isinstance(value, Decimal):
            if value.is_finite() and value == value.to_integral_value():
                return str(int(value))
            return str(value.normalize())

        if isinstance(value, (datetime, date)):
            return value.isoformat().lower()

        if isinstance(value, UUID):
            return str(value)

        raise ComparisonError(
            f"Cannot normalize value of type {type(value).__name__}: {value!r}"
        )

    def _is_listed(self, value: Any, candidates: tuple) -> bool:
        for candidate in candidates:
            # True == 1 in Python; keep booleans and numbers apart
            if isinstance(candidate, bool) != isinstance(value, bool):
                continue
            if value == candidate:
                return True
        return False

    @staticmethod
    def _require_mapping(record: Any) -> None:
        if not isinstance(record, Mapping):
            raise ComparisonError(
                f"Expected a record mapping, got {type(record).__name__}"
            )
