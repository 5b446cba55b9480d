"""
Tests for logger functionality.
"""

import pytest
from jinder.logger import StructuredLogger, get_logger, reset_logger


class TestStructuredLogger:
    """Test structured logging functionality."""

    def test_logger_creation(self, tmp_path):
        """Logger should be created with default settings."""
        logger = StructuredLogger(
            name="test",
            level="INFO",
            log_dir=tmp_path,
            enable_console=False,
        )

        assert logger.logger.name == "test"
        assert logger.metrics["requests_total"] == 0
        assert logger.metrics["operations"] == {}

    def test_log_methods(self, tmp_path):
        """All log level methods should work."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        # Should not raise exceptions
        logger.debug("Debug message")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")
        logger.critical("Critical message")

    def test_log_with_context(self, tmp_path):
        """Context is appended as JSON, non-serializable values stringified."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.info("Job created", job_id="abc", path=tmp_path)

        content = next(tmp_path.glob("jinder_*.log")).read_text()
        assert 'Job created | Context: {"job_id": "abc"' in content
        assert str(tmp_path) in content

    def test_exception_includes_traceback(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)

        try:
            raise RuntimeError("boom")
        except RuntimeError:
            logger.exception("Unhandled error", operation="list")

        content = next(tmp_path.glob("jinder_*.log")).read_text()
        assert "Traceback" in content
        assert "RuntimeError: boom" in content

    def test_metrics_tracking(self, tmp_path):
        """Metrics should be tracked correctly."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.record_request("create")
        logger.record_success("create")

        logger.record_request("get")
        logger.record_failure("get", "not_found")

        metrics = logger.get_metrics()

        assert metrics["requests_total"] == 2
        assert metrics["requests_successful"] == 1
        assert metrics["requests_failed"] == 1
        assert metrics["errors_by_kind"]["not_found"] == 1

        assert metrics["operations"]["create"] == {
            "attempts": 1,
            "successes": 1,
            "failures": 0,
            "success_rate": 1.0,
        }
        assert metrics["operations"]["get"]["success_rate"] == 0.0

    def test_success_rate_calculation(self, tmp_path):
        """Success rate should be calculated correctly."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        # 3 attempts, 2 successes = 66.7% success rate
        for _ in range(3):
            logger.record_request("list")

        logger.record_success("list")
        logger.record_success("list")

        metrics = logger.get_metrics()
        success_rate = metrics["operations"]["list"]["success_rate"]

        assert success_rate == pytest.approx(0.667, rel=0.01)

    def test_get_metrics_returns_copy(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)
        logger.record_request("list")

        metrics = logger.get_metrics()
        metrics["operations"]["list"]["attempts"] = 99

        assert logger.metrics["operations"]["list"]["attempts"] == 1

    def test_metrics_summary(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False)
        logger.record_request("delete")
        logger.record_failure("delete", "not_found")

        logger.log_metrics_summary()

        content = next(tmp_path.glob("jinder_*.log")).read_text()
        assert "Requests: 0/1 (0.0% success)" in content
        assert "delete: 0/1" in content
        assert "not_found: 1" in content

    def test_log_file_creation(self, tmp_path):
        """Log file should be created in specified directory."""
        logger = StructuredLogger(
            name="test",
            log_dir=tmp_path,
            enable_console=False,
        )

        logger.info("Test message")

        # Check that a log file was created
        log_files = list(tmp_path.glob("jinder_*.log"))
        assert len(log_files) == 1

        # Check that message was written
        log_content = log_files[0].read_text()
        assert "Test message" in log_content

    def test_file_output_disabled(self, tmp_path):
        logger = StructuredLogger(name="test", log_dir=tmp_path, enable_console=False, enable_file=False)
        logger.info("Nowhere")
        assert list(tmp_path.glob("*.log")) == []


class TestGlobalLogger:
    """Test global logger singleton."""

    def test_get_logger_singleton(self, tmp_path):
        """get_logger should return same instance."""
        reset_logger()  # Start fresh

        logger1 = get_logger(log_dir=tmp_path, enable_console=False)
        logger2 = get_logger()

        assert logger1 is logger2

    def test_reset_logger(self, tmp_path):
        """reset_logger should create new instance."""
        reset_logger()

        logger1 = get_logger(log_dir=tmp_path, enable_console=False)
        logger1.record_request("list")

        reset_logger()

        logger2 = get_logger(log_dir=tmp_path, enable_console=False)

        # Should be different instance with fresh metrics
        assert logger2 is not logger1
        assert logger2.metrics["requests_total"] == 0
