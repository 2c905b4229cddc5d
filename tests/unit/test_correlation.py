"""
Unit tests for correlation module.
"""

import logging
import uuid

import pytest

from recordsync.utils.correlation import (
    CorrelationContext,
    clear_correlation_id,
    correlation_id_filter,
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
    setup_correlation_logging,
)


class TestCorrelationIdGeneration:
    """Test correlation ID generation functions."""

    def test_generate_correlation_id_returns_valid_uuid(self):
        """Test that generated correlation ID is a valid UUID."""
        correlation_id = generate_correlation_id()

        assert isinstance(correlation_id, str)
        assert str(uuid.UUID(correlation_id)) == correlation_id

    def test_generate_correlation_id_returns_unique_values(self):
        """Test that multiple generated IDs are unique."""
        ids = {generate_correlation_id() for _ in range(5)}

        assert len(ids) == 5


class TestCorrelationIdContext:
    """Test correlation ID context management."""

    def setup_method(self):
        clear_correlation_id()

    def teardown_method(self):
        clear_correlation_id()

    def test_get_correlation_id_returns_none_when_not_set(self):
        """Test that get returns None when ID is not set."""
        assert get_correlation_id() is None

    def test_set_and_get_correlation_id(self):
        """Test setting and retrieving correlation ID."""
        set_correlation_id("run-123")

        assert get_correlation_id() == "run-123"

    @pytest.mark.parametrize("bad_id", ["", None, 12345])
    def test_set_correlation_id_rejects_invalid_values(self, bad_id):
        """Test that empty or non-string IDs raise ValueError."""
        with pytest.raises(ValueError, match="non-empty string"):
            set_correlation_id(bad_id)

    def test_clear_correlation_id(self):
        """Test clearing correlation ID."""
        set_correlation_id("run-123")
        clear_correlation_id()

        assert get_correlation_id() is None


class TestCorrelationContext:
    """Test CorrelationContext context manager."""

    def setup_method(self):
        clear_correlation_id()

    def teardown_method(self):
        clear_correlation_id()

    def test_context_creates_new_id(self):
        """Test that context manager creates and then clears an ID."""
        with CorrelationContext() as correlation_id:
            assert correlation_id
            assert get_correlation_id() == correlation_id

        assert get_correlation_id() is None

    def test_context_uses_prefix(self):
        """Test that a generated ID carries the collection prefix."""
        with CorrelationContext(prefix="hulu.scope") as correlation_id:
            prefix, _, generated = correlation_id.partition(":")

            assert prefix == "hulu.scope"
            assert uuid.UUID(generated)

    def test_context_uses_provided_id(self):
        """Test that context manager uses provided ID."""
        with CorrelationContext("custom-id") as correlation_id:
            assert correlation_id == "custom-id"

    def test_context_restores_previous_id(self):
        """Test that nested contexts restore the outer ID on exit."""
        with CorrelationContext("outer"):
            with CorrelationContext("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"

        assert get_correlation_id() is None

    def test_context_restores_on_exception(self):
        """Test that the ID is restored even when the block raises."""
        set_correlation_id("outer-run")

        with pytest.raises(RuntimeError):
            with CorrelationContext("failing"):
                raise RuntimeError("boom")

        assert get_correlation_id() == "outer-run"


class TestCorrelationLogging:
    """Test the logging filter."""

    def setup_method(self):
        clear_correlation_id()

    def teardown_method(self):
        clear_correlation_id()

    def _record(self):
        return logging.LogRecord("recordsync", logging.INFO, __file__, 1, "message", None, None)

    def test_filter_adds_current_id(self):
        """Test that the filter tags records with the current ID."""
        record = self._record()

        with CorrelationContext("run-42"):
            assert correlation_id_filter(record) is True

        assert record.correlation_id == "run-42"

    def test_filter_uses_placeholder_without_id(self):
        """Test that records outside a context get N/A."""
        record = self._record()
        correlation_id_filter(record)

        assert record.correlation_id == "N/A"

    def test_setup_correlation_logging_attaches_filter(self):
        """Test that the filter is attached to the handler."""
        handler = logging.StreamHandler()
        setup_correlation_logging(handler)

        assert correlation_id_filter in handler.filters
