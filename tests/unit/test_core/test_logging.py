"""
Unit tests for specgraph.core.context and specgraph.core.logging_config.
"""

import io
import json
import logging

import pytest

from specgraph.core.context import (
    generate_correlation_id,
    get_correlation_id,
    get_operation,
    sync_request_context,
)
from specgraph.core.logging_config import ROOT_LOGGER, configure_logging


@pytest.fixture
def restore_root_logger():
    logger = logging.getLogger(ROOT_LOGGER)
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


class TestRequestContext:
    def test_generated_ids(self):
        corr_id = generate_correlation_id("cli")
        assert corr_id.startswith("cli_")
        assert len(corr_id) == len("cli_") + 12

    def test_context_is_scoped(self):
        assert get_correlation_id() == ""
        with sync_request_context(operation="graph.cycles") as ctx:
            assert get_correlation_id() == ctx.correlation_id
            assert get_operation() == "graph.cycles"
            assert ctx.operation == "graph.cycles"
        assert get_correlation_id() == ""
        assert get_operation() == ""

    def test_nested_contexts_restore(self):
        with sync_request_context(correlation_id="outer"):
            with sync_request_context(correlation_id="inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"


class TestConfigureLogging:
    def test_structured_output_carries_context(self, restore_root_logger):
        stream = io.StringIO()
        configure_logging(level="debug", format="structured", stream=stream)
        with sync_request_context(correlation_id="req_abc", operation="validate"):
            logging.getLogger("specgraph.core.validation").debug(
                "Validated %d spec(s)", 3, extra={"spec_id": "1"}
            )

        entry = json.loads(stream.getvalue().strip())
        assert entry["level"] == "DEBUG"
        assert entry["logger"] == "specgraph.core.validation"
        assert entry["message"] == "Validated 3 spec(s)"
        assert entry["correlation_id"] == "req_abc"
        assert entry["operation"] == "validate"
        assert entry["extra"] == {"spec_id": "1"}

    def test_human_output(self, restore_root_logger):
        stream = io.StringIO()
        configure_logging(level=logging.INFO, format="human", stream=stream)
        with sync_request_context(correlation_id="req_xyz"):
            logging.getLogger("specgraph.core.cycles").warning("Found %d cycle(s)", 2)
        line = stream.getvalue().strip()
        assert "[WARNING] [req_xyz] core.cycles: Found 2 cycle(s)" in line

    def test_level_filters(self, restore_root_logger):
        stream = io.StringIO()
        configure_logging(level="WARNING", format="human", stream=stream)
        logging.getLogger("specgraph.tests").info("quiet")
        assert stream.getvalue() == ""

    def test_reconfigure_replaces_handler(self, restore_root_logger):
        configure_logging(stream=io.StringIO())
        configure_logging(stream=io.StringIO())
        assert len(logging.getLogger(ROOT_LOGGER).handlers) == 1
