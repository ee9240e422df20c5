"""Tests for service layer structured logging."""

import logging

from pcb_tracker.services.logging_utils import get_service_logger, log_operation


class TestLoggingUtilities:
    """Tests for logging utility functions."""

    def test_get_service_logger_returns_logger(self):
        logger = get_service_logger("test_module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "pcb_tracker.services.test_module"

    def test_get_service_logger_extracts_module_name(self):
        logger = get_service_logger("pcb_tracker.services.production_service")
        assert logger.name == "pcb_tracker.services.production_service"

    def test_log_operation_logs_at_info_level(self, caplog):
        logger = get_service_logger("test")

        with caplog.at_level(logging.INFO):
            log_operation(logger, operation="test_op", outcome="success", entity_id=123)

        assert "test_op: success" in caplog.text
        assert caplog.records[-1].levelno == logging.INFO

    def test_log_operation_logs_at_custom_level(self, caplog):
        logger = get_service_logger("test")

        with caplog.at_level(logging.DEBUG):
            log_operation(
                logger,
                operation="debug_op",
                outcome="debug_outcome",
                level=logging.DEBUG,
            )

        assert "debug_op: debug_outcome" in caplog.text

    def test_log_operation_includes_extra_context(self, caplog):
        logger = get_service_logger("test")

        with caplog.at_level(logging.INFO):
            log_operation(
                logger,
                operation="create_production_entry",
                outcome="success",
                production_entry_id=42,
                pcb_id=7,
            )

        record = caplog.records[-1]
        assert record.operation == "create_production_entry"
        assert record.outcome == "success"
        assert record.production_entry_id == 42
        assert record.pcb_id == 7
