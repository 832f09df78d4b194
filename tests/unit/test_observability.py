"""Tests for observability/logger.py and observability/metrics.py"""
import io
import json
import logging
import sys


class TestStructuredFormatter:
    def _get_record(self, msg, level=logging.INFO, exc_info=None, extra_fields=None):
        record = logging.LogRecord(
            name="test",
            level=level,
            pathname="",
            lineno=0,
            msg=msg,
            args=(),
            exc_info=exc_info,
        )
        if extra_fields is not None:
            record.extra_fields = extra_fields
        return record

    def test_basic_format(self):
        from scaler.observability.logger import StructuredFormatter

        result = json.loads(StructuredFormatter().format(self._get_record("hello")))
        assert result["message"] == "hello"
        assert result["level"] == "INFO"
        assert result["logger"] == "test"
        assert "ts" in result

    def test_extra_fields_merged(self):
        from scaler.observability.logger import StructuredFormatter

        record = self._get_record("msg", extra_fields={"op": "sign", "status_code": 403})
        result = json.loads(StructuredFormatter().format(record))
        assert result["op"] == "sign"
        assert result["status_code"] == 403

    def test_exception_info_included(self):
        from scaler.observability.logger import StructuredFormatter

        try:
            raise ValueError("test error")
        except ValueError:
            exc_info = sys.exc_info()
        record = self._get_record("error msg", exc_info=exc_info)
        result = json.loads(StructuredFormatter().format(record))
        assert "ValueError" in result["exception"]

    def test_signed_url_query_is_redacted(self):
        from scaler.observability.logger import StructuredFormatter

        record = self._get_record(
            "m", extra_fields={"url": "https://transform.scaler.pics/t/x?sig=abc123"}
        )
        result = json.loads(StructuredFormatter().format(record))
        assert result["url"] == "https://transform.scaler.pics/t/x?<redacted>"

    def test_token_fields_are_masked(self):
        from scaler.observability.logger import StructuredFormatter

        record = self._get_record(
            "m", extra_fields={"accessToken": "eyJ.payload.sig", "op": "refresh"}
        )
        output = StructuredFormatter().format(record)
        assert "eyJ.payload.sig" not in output
        assert json.loads(output)["op"] == "refresh"

    def test_extra_fields_not_mutated(self):
        from scaler.observability.logger import StructuredFormatter

        fields = {"url": "https://a.example/p?sig=1"}
        StructuredFormatter().format(self._get_record("m", extra_fields=fields))
        assert fields == {"url": "https://a.example/p?sig=1"}

    def test_non_serialisable_extra_uses_str(self):
        from scaler.observability.logger import StructuredFormatter

        record = self._get_record("m", extra_fields={"obj": object()})
        result = json.loads(StructuredFormatter().format(record))
        assert result["obj"].startswith("<object object")


class TestGetLogger:
    def test_default_name(self):
        from scaler.observability.logger import get_logger

        assert get_logger().name == "scaler"

    def test_idempotent_handlers(self):
        from scaler.observability.logger import get_logger

        a = get_logger("scaler.test_idem")
        b = get_logger("scaler.test_idem")
        assert a is b
        assert len(a.handlers) == 1

    def test_writes_json_to_stream(self):
        from scaler.observability.logger import get_logger

        stream = io.StringIO()
        log = get_logger("scaler.test_stream", level="info", stream=stream)
        log.debug("hidden")
        log.info("visible", extra={"extra_fields": {"outputs": 2}})
        lines = stream.getvalue().strip().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["outputs"] == 2


class TestMetricsHook:
    def test_noop_satisfies_protocol(self):
        from scaler.observability import MetricsHook, NoopMetricsHook

        hook = NoopMetricsHook()
        assert isinstance(hook, MetricsHook)
        hook.increment("scaler.requests_total", tags={"op": "sign"})
        hook.timing("scaler.request_duration_ms", 1.5)
        hook.gauge("g", 1.0)

    def test_recording_hook_satisfies_protocol(self, metrics):
        from scaler.observability import MetricsHook

        assert isinstance(metrics, MetricsHook)
