"""Tests for structured logging."""

import asyncio
import json
import logging
from collections.abc import Iterator

import pytest

from mediakeeper.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg: str = "hello", exc_info=None) -> logging.LogRecord:  # type: ignore[no-untyped-def]
    record = logging.LogRecord(
        name="mediakeeper.test",
        level=logging.ERROR,
        pathname=__file__,
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    CorrelationIdFilter().filter(record)
    return record


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self) -> None:
        assert set_correlation_id("run-123") == "run-123"
        assert get_correlation_id() == "run-123"

    def test_set_correlation_id_generates_id_when_none(self) -> None:
        result = set_correlation_id(None)
        assert len(result) == 12
        assert get_correlation_id() == result

    async def test_ids_do_not_leak_between_tasks(self) -> None:
        set_correlation_id("outer")

        async def worker(name: str) -> str:
            set_correlation_id(name)
            await asyncio.sleep(0)
            return get_correlation_id()

        results = await asyncio.gather(worker("a"), worker("b"))

        assert results == ["a", "b"]
        assert get_correlation_id() == "outer"

    def test_filter_adds_id_to_record(self) -> None:
        set_correlation_id("abc")
        assert _record().correlation_id == "abc"  # type: ignore[attr-defined]


class TestFormatters:
    def test_compact_formatter_appends_correlation_id(self) -> None:
        set_correlation_id("cid-1")
        formatter = CompactExceptionFormatter(fmt="%(levelname)s %(message)s")
        assert formatter.format(_record()) == "ERROR hello [cid-1]"

    def test_compact_formatter_shows_root_cause_first(self) -> None:
        try:
            try:
                raise ConnectionError("refused")
            except ConnectionError as e:
                raise RuntimeError("indexer unreachable") from e
        except RuntimeError as e:
            exc_info = (type(e), e, e.__traceback__)

        text = CompactExceptionFormatter().formatException(exc_info)
        lines = [line for line in text.splitlines() if line.startswith("╰─►")]
        assert lines == [
            "╰─► ConnectionError: refused",
            "╰─► RuntimeError: indexer unreachable",
        ]

    def test_json_formatter_fields(self) -> None:
        set_correlation_id("cid-json")
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        payload = json.loads(formatter.format(_record("task done")))

        assert payload["message"] == "task done"
        assert payload["level"] == "ERROR"
        assert payload["logger"] == "mediakeeper.test"
        assert payload["line"] == 42
        assert payload["correlation_id"] == "cid-json"


@pytest.mark.usefixtures("restore_root_logger")
class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self) -> None:
        configure_logging(log_level="DEBUG", json_format=False)
        assert logging.getLogger("test").getEffectiveLevel() <= logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(log_level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_json_format_uses_json_formatter(self) -> None:
        configure_logging(log_level="INFO", json_format=True)
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, CustomJsonFormatter)

    def test_reconfiguring_does_not_duplicate_handlers(self) -> None:
        configure_logging()
        configure_logging()
        assert len(logging.getLogger().handlers) == 1

    def test_third_party_loggers_are_quieted(self) -> None:
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
