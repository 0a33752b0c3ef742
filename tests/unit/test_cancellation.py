"""Unit tests for the run-wide cancellation token."""

from __future__ import annotations

import threading
import time

from bulletin_rag.ingestion.cancellation import CancellationToken


def test_no_deadline() -> None:
    token = CancellationToken()
    assert token.cancelled is False
    assert token.remaining() is None
    assert token.timeout(60.0) == 60.0


def test_cancel() -> None:
    token = CancellationToken()
    token.cancel()
    assert token.cancelled is True
    assert token.wait(10) is True


def test_deadline_caps_timeouts() -> None:
    token = CancellationToken(deadline_seconds=2.0)
    assert token.timeout(60.0) <= 2.0
    assert token.timeout(0.5) == 0.5


def test_expired_deadline_counts_as_cancelled() -> None:
    token = CancellationToken(deadline_seconds=0)
    assert token.cancelled is True
    assert token.remaining() == 0.0


def test_wait_wakes_on_cancel() -> None:
    token = CancellationToken()
    threading.Timer(0.05, token.cancel).start()

    started = time.monotonic()
    assert token.wait(5.0) is True
    assert time.monotonic() - started < 2.0


def test_zero_wait_does_not_block() -> None:
    assert CancellationToken().wait(0) is False
