"""
Unit tests for logger utilities.

Covers ContextAwareLogger formatting and the buffered AzureQueueHandler.
"""

import json
import logging
from unittest.mock import Mock, patch

from requirement_sync_core.context.tenant_context import tenant_context
from requirement_sync_core.utils.logger import (
    AzureQueueHandler,
    ContextAwareLogger,
    TenantContextFilter,
    configure_logging,
    get_logger,
)


def _record(msg="hello", **attrs) -> logging.LogRecord:
    record = logging.LogRecord(
        name="function.sync",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestContextAwareLogger:
    def setup_method(self):
        self.mock_logger = Mock(spec=logging.Logger)
        self.context_logger = ContextAwareLogger(self.mock_logger)

    def test_message_without_extras(self):
        self.context_logger.info("Import finished")
        self.mock_logger.info.assert_called_once_with("Import finished", extra={})

    def test_extras_appended_to_message(self):
        extra = {"objects": 3, "rejected": 1}
        self.context_logger.warning("Import finished", extra=extra)
        self.mock_logger.warning.assert_called_once_with(
            "Import finished | objects=3 | rejected=1", extra=extra
        )

    def test_set_level(self):
        self.context_logger.set_level(logging.DEBUG)
        self.mock_logger.setLevel.assert_called_once_with(logging.DEBUG)


class TestTenantContextFilter:
    def test_adds_tenant_id(self):
        record = _record()
        with tenant_context("tenant-a"):
            assert TenantContextFilter().filter(record) is True
        assert record.tenant_id == "tenant-a"

    def test_no_tenant(self):
        record = _record()
        TenantContextFilter().filter(record)
        assert not hasattr(record, "tenant_id")


class TestAzureQueueHandler:
    def test_build_entry(self):
        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true")
        entry = handler.build_entry(_record(objects=2, tenant_id="tenant-a"))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "function.sync"
        assert entry["message"] == "hello"
        assert entry["tenant_id"] == "tenant-a"
        assert entry["context"] == {"objects": 2}

    def test_buffers_until_batch_size(self):
        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true", batch_size=2)
        with patch("requirement_sync_core.utils.logger.QueueClient") as queue_client_cls:
            handler.emit(_record("first"))
            queue_client_cls.from_connection_string.assert_not_called()

            handler.emit(_record("second"))

        queue_client = queue_client_cls.from_connection_string.return_value
        queue_client_cls.from_connection_string.assert_called_once_with(
            conn_str="UseDevelopmentStorage=true", queue_name="logs-queue"
        )
        sent = [json.loads(c.args[0])["message"] for c in queue_client.send_message.call_args_list]
        assert sent == ["first", "second"]
        assert handler.log_buffer == []

    def test_flush_without_connection_keeps_nothing_sent(self):
        handler = AzureQueueHandler(connection_string="")
        handler.connection_string = ""
        handler.log_buffer.append({"message": "kept"})
        with patch("requirement_sync_core.utils.logger.QueueClient") as queue_client_cls:
            handler.flush()
        queue_client_cls.from_connection_string.assert_not_called()
        assert handler.log_buffer == [{"message": "kept"}]

    def test_send_failure_does_not_raise(self):
        handler = AzureQueueHandler(connection_string="UseDevelopmentStorage=true")
        handler.log_buffer.append({"message": "lost"})
        with patch("requirement_sync_core.utils.logger.QueueClient") as queue_client_cls:
            queue_client_cls.from_connection_string.side_effect = RuntimeError("unreachable")
            handler.flush()
        assert handler.log_buffer == [{"message": "lost"}]


class TestConfigureLogging:
    def test_console_only_by_default(self):
        logger = configure_logging("import_requirements", log_level="DEBUG", enable_queue=False)

        assert get_logger() is logger
        handlers = logger.logger.handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert logger.logger.level == logging.DEBUG

    def test_queue_handler_when_enabled(self):
        logger = configure_logging(
            "connection_changed",
            enable_queue=True,
            connection_string="UseDevelopmentStorage=true",
        )
        queue_handlers = [h for h in logger.logger.handlers if isinstance(h, AzureQueueHandler)]
        assert len(queue_handlers) == 1
        assert queue_handlers[0].queue_name == "logs-queue"

        for handler in queue_handlers:
            handler.log_buffer.clear()
            logger.logger.removeHandler(handler)

    def test_package_logger_without_configuration(self):
        logger = get_logger()
        assert logger.logger.name == "requirement_sync_core"
