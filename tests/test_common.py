"""
Tests for common module (errors, logging, resources).
"""

import pytest
import json
import logging
import threading
import time


class TestExceptions:
    """Tests for exception hierarchy."""

    def test_store_error_basic(self):
        """Test basic StoreError."""
        from common.exceptions import StoreError

        error = StoreError("Something failed")
        assert str(error) == "[StoreError] Something failed"
        assert error.code == "StoreError"

    def test_store_error_with_details(self):
        """Test StoreError with details."""
        from common.exceptions import StoreError

        cause = OSError("disk")
        error = StoreError(
            "Operation failed",
            code="OP_FAILED",
            details={"field": "value"},
            cause=cause,
        )

        assert error.code == "OP_FAILED"
        assert error.details == {"field": "value"}
        assert "details:" in str(error)
        assert str(error).endswith("caused by: disk")

    def test_subscription_error(self):
        """Test SubscriptionError keeps the raw reason as its message."""
        from common.exceptions import SubscriptionError

        cause = RuntimeError("403")
        error = SubscriptionError("apps", "permission-denied", cause=cause)

        assert error.message == "permission-denied"
        assert error.code == "SUBSCRIPTION_FAILED"
        assert error.details["collection"] == "apps"
        assert error.cause is cause

    def test_image_load_error(self):
        """Test ImageLoadError records the URL."""
        from common.exceptions import ImageLoadError

        error = ImageLoadError("https://cdn/x.png", "timeout")
        assert error.code == "IMAGE_LOAD_FAILED"
        assert error.details["url"] == "https://cdn/x.png"

    def test_config_errors(self):
        """Test config errors share a base."""
        from common.exceptions import ConfigError, InvalidConfigError

        error = InvalidConfigError("grid_columns", 0, "too small")
        assert isinstance(error, ConfigError)
        assert error.code == "INVALID_CONFIG"
        assert error.details["field"] == "grid_columns"


class TestErrorMessage:
    """Tests for user-facing error text."""

    def test_prefers_message_attribute(self):
        from common.exceptions import error_message

        class ApiError(Exception):
            def __init__(self):
                super().__init__("403 Missing or insufficient permissions.")
                self.message = "Missing or insufficient permissions."

        assert error_message(ApiError()) == "Missing or insufficient permissions."

    def test_falls_back_to_str(self):
        from common.exceptions import error_message

        assert error_message(ValueError("bad data")) == "bad data"

    def test_empty_exception(self):
        from common.exceptions import error_message

        assert error_message(TimeoutError()) == "TimeoutError"


class TestDecorators:
    """Tests for error handling decorators."""

    def test_handle_errors_returns_default(self):
        """Test @handle_errors returns default on exception."""
        from common.decorators import handle_errors

        @handle_errors(ValueError, default="fallback")
        def failing_func():
            raise ValueError("test error")

        result = failing_func()
        assert result == "fallback"

    def test_handle_errors_passes_through(self):
        """Test @handle_errors passes through on success."""
        from common.decorators import handle_errors

        @handle_errors(ValueError, default="fallback")
        def working_func():
            return "success"

        result = working_func()
        assert result == "success"

    def test_handle_errors_ignores_other_types(self):
        """Test @handle_errors only catches the listed types."""
        from common.decorators import handle_errors

        @handle_errors(ValueError, default="fallback")
        def failing_func():
            raise KeyError("other")

        with pytest.raises(KeyError):
            failing_func()

    def test_handle_errors_logs_under_caller_module(self, caplog):
        from common.decorators import handle_errors
        from common.exceptions import ImageLoadError

        @handle_errors(ImageLoadError, default=None)
        def fetch_icon():
            raise ImageLoadError("https://cdn/x.png", "timeout")

        with caplog.at_level(logging.DEBUG):
            assert fetch_icon() is None

        record = caplog.records[-1]
        assert record.name == __name__
        assert record.levelno == logging.WARNING
        assert record.exc_info is None
        assert "fetch_icon fell back to None" in record.getMessage()
        assert "IMAGE_LOAD_FAILED: Failed to load image: timeout" in record.getMessage()

    def test_handle_errors_traceback_at_error_level(self, caplog):
        from common.decorators import handle_errors

        @handle_errors(ValueError, default=0, log_level=logging.ERROR)
        def parse():
            raise ValueError("bad")

        with caplog.at_level(logging.DEBUG):
            assert parse() == 0

        assert caplog.records[-1].exc_info is not None
        assert "ValueError: bad" in caplog.records[-1].getMessage()

    def test_timed_decorator(self, caplog):
        """Test @timed logs execution time."""
        from common.decorators import timed

        @timed("slow work")
        def slow_func():
            time.sleep(0.01)
            return "done"

        with caplog.at_level(logging.DEBUG):
            result = slow_func()

        assert result == "done"
        assert "slow work took" in caplog.text
        assert caplog.records[-1].name == __name__

    def test_timed_logs_on_failure(self, caplog):
        from common.decorators import timed

        @timed("doomed")
        def failing():
            raise RuntimeError("nope")

        with caplog.at_level(logging.DEBUG):
            with pytest.raises(RuntimeError):
                failing()

        assert "doomed took" in caplog.text


class TestLogging:
    """Tests for logging configuration."""

    @pytest.fixture(autouse=True)
    def restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_setup_logging_creates_handlers(self):
        """Test setup_logging configures handlers."""
        from common.logging_config import setup_logging

        setup_logging(level=logging.DEBUG)

        root = logging.getLogger()
        assert len(root.handlers) >= 1
        assert root.level == logging.DEBUG

    def test_setup_logging_accepts_names(self):
        from common.logging_config import setup_logging

        setup_logging(level="warning")
        assert logging.getLogger().level == logging.WARNING

    def test_setup_logging_json_file(self, tmp_path):
        """Test JSON file logs are one object per line."""
        from common.logging_config import setup_logging, get_logger

        log_file = tmp_path / "logs" / "store.log"
        setup_logging(level=logging.INFO, log_file=log_file, json_logs=True)

        get_logger("apkstore.test", collection="apps").info("Subscribed")
        logging.getLogger("apkstore.test").info("Plain")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = log_file.read_text().strip().splitlines()
        tagged, plain = json.loads(lines[-2]), json.loads(lines[-1])
        assert tagged["message"] == "Subscribed"
        assert tagged["context"] == {"collection": "apps"}
        assert "context" not in plain

    def test_console_format_shows_context(self):
        from common.logging_config import ConsoleFormatter

        record = logging.LogRecord("apkstore.sync", logging.INFO, __file__, 1,
                                   "Subscribed", None, None)
        record.context = {"collection": "apps", "generation": 2}

        line = ConsoleFormatter().format(record)
        assert line == "INFO apkstore.sync: Subscribed [collection=apps generation=2]"
        assert record.levelname == "INFO"

    def test_parse_level_rejects_unknown(self):
        from common.logging_config import parse_level

        with pytest.raises(ValueError):
            parse_level("chatty")


class TestContextLogger:
    """Tests for per-logger structured context."""

    def test_records_carry_context(self, caplog):
        from common.logging_config import get_logger

        log = get_logger("apkstore.test", collection="apps")
        with caplog.at_level(logging.INFO):
            log.info("Subscribed")

        assert caplog.records[-1].name == "apkstore.test"
        assert caplog.records[-1].context == {"collection": "apps"}

    def test_bind_merges_context(self, caplog):
        from common.logging_config import get_logger

        base = get_logger("apkstore.test", collection="apps")
        bound = base.bind(generation=3)
        with caplog.at_level(logging.INFO):
            bound.info("Subscribed")
            base.info("Again")

        first, second = caplog.records[-2:]
        assert first.context == {"collection": "apps", "generation": 3}
        assert second.context == {"collection": "apps"}

    def test_other_threads_untagged(self, caplog):
        """Context stays on the adapter, not on global logging state."""
        from common.logging_config import get_logger

        log = get_logger("apkstore.test", collection="apps")
        started, release = threading.Event(), threading.Event()

        def hold():
            log.info("Holding")
            started.set()
            release.wait(2)

        with caplog.at_level(logging.INFO):
            holder = threading.Thread(target=hold)
            holder.start()
            started.wait(2)
            other = threading.Thread(target=lambda: logging.getLogger("apkstore.other").info("Elsewhere"))
            other.start()
            other.join()
            release.set()
            holder.join()

        elsewhere = [r for r in caplog.records if r.getMessage() == "Elsewhere"]
        assert len(elsewhere) == 1
        assert not hasattr(elsewhere[0], "context")


class TestResources:
    """Tests for resource management."""

    def test_managed_resource_acquires(self):
        """Test ManagedResource acquires on first use."""
        from common.resources import ManagedResource

        acquire_count = 0

        def acquire():
            nonlocal acquire_count
            acquire_count += 1
            return {"connection": True}

        released = []
        resource = ManagedResource(
            acquire=acquire,
            release=released.append,
        )

        assert resource.get()["connection"] is True
        assert resource.release() is True

        assert acquire_count == 1
        assert released == [{"connection": True}]

    def test_managed_resource_reuses(self):
        """Test ManagedResource reuses an active resource."""
        from common.resources import ManagedResource

        resource = ManagedResource(acquire=object, release=lambda r: None)

        assert resource.get() is resource.get()

    def test_release_runs_once(self):
        """Test release only runs for the first caller."""
        from common.resources import ManagedResource

        released = []
        resource = ManagedResource(acquire=object, release=released.append)
        resource.get()

        assert resource.release() is True
        assert resource.release() is False
        assert len(released) == 1

    def test_release_from_many_threads(self):
        """Test concurrent releases still release once."""
        from common.resources import ManagedResource

        released = []
        resource = ManagedResource(acquire=object, release=released.append)
        resource.get()
        barrier = threading.Barrier(10)

        def worker():
            barrier.wait()
            resource.release()

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(released) == 1

    def test_failed_acquire_stays_inactive(self):
        from common.resources import ManagedResource

        def acquire():
            raise ConnectionError("offline")

        resource = ManagedResource(acquire=acquire, release=lambda r: None)
        with pytest.raises(ConnectionError):
            resource.get()
        assert resource.release() is False

    def test_cleanup_registry(self):
        """Test CleanupRegistry executes callbacks."""
        from common.resources import CleanupRegistry

        cleanup_called = []

        registry = CleanupRegistry()
        registry.register(lambda: cleanup_called.append(1))
        registry.register(lambda: cleanup_called.append(2))

        registry.cleanup_all()

        # Should be called in reverse order
        assert cleanup_called == [2, 1]

    def test_cleanup_registry_survives_failures(self):
        from common.resources import CleanupRegistry

        called = []

        def broken():
            raise RuntimeError("boom")

        registry = CleanupRegistry()
        registry.register(lambda: called.append("first"))
        registry.register(broken)
        registry.cleanup_all()

        assert called == ["first"]
