from __future__ import annotations

import logging

from logging_config import ContextualFormatter


def _record(message: str, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord("services.poller", logging.WARNING, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_attempt_is_printed_with_its_limit() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record("Poll attempt failed", attempt=2, max_attempts=3, reason="boom"))

    assert line == "Poll attempt failed | attempt=2/3 reason=boom"


def test_max_attempts_alone_and_elapsed_time() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    failed = formatter.format(_record("Poll failed after retries", max_attempts=3, reading_count=0))
    succeeded = formatter.format(_record("Poll succeeded", attempt=1, reading_count=4, elapsed_ms=12))

    assert failed == "Poll failed after retries | max_attempts=3 reading_count=0"
    assert succeeded == "Poll succeeded | attempt=1 reading_count=4 elapsed=12ms"


def test_record_without_context_is_left_alone() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    assert formatter.format(_record("Polling started")) == "WARNING Polling started"
