"""
Unit tests for structured logging
"""
import json
import logging

import pytest

from payroll_audit.observability.logger import (
    AuditJsonFormatter,
    configure_logging,
    get_logger,
    log_operation,
    setup_logger,
)


@pytest.mark.unit
class TestLogger:

    def test_json_output(self, capsys):
        logger = setup_logger("payroll_audit.test_json", level="INFO", format_type="json")

        logger.info("salary changed", extra={"employee_id": 6})

        record = json.loads(capsys.readouterr().out.strip())
        assert record["message"] == "salary changed"
        assert record["level"] == "INFO"
        assert record["logger"] == "payroll_audit.test_json"
        assert record["employee_id"] == 6

    def test_level_filtering(self, capsys):
        logger = setup_logger("payroll_audit.test_level", level="warning", format_type="text")

        logger.info("hidden")
        logger.warning("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out

    def test_get_logger_reuses_handlers(self):
        first = get_logger("payroll_audit.test_reuse")
        second = get_logger("payroll_audit.test_reuse")

        assert first is second
        assert len(second.handlers) == 1

    def test_configure_logging_reaches_package_loggers(self):
        logger = get_logger("payroll_audit.test_configure")

        configure_logging(level="ERROR", format_type="text", prefix="payroll_audit.test_configure")

        assert logger.level == logging.ERROR
        assert not isinstance(logger.handlers[0].formatter, AuditJsonFormatter)
        assert len(logger.handlers) == 1

    def test_log_operation_failure(self, capsys):
        logger = setup_logger("payroll_audit.test_operation", level="INFO", format_type="json")

        with pytest.raises(ValueError):
            with log_operation("Updating salary", logger=logger, employee_id=6):
                raise ValueError("negative salary")

        lines = [json.loads(line) for line in capsys.readouterr().out.strip().splitlines() if line.startswith("{")]
        assert lines[0]["message"] == "Starting: Updating salary"
        assert lines[-1]["status"] == "error"
        assert lines[-1]["error_type"] == "ValueError"
        assert lines[-1]["employee_id"] == 6
