"""Tests for progress reporting and cancellation primitives."""

import threading

import pytest

from vocalis.core.progress import CancellationToken, PassProgress, ProgressReporter
from vocalis.utils.errors import AnalysisCancelledError


class TestCancellationToken:

    def test_initially_clear(self):
        token = CancellationToken()

        assert token.is_cancelled is False
        token.raise_if_cancelled("pitch")

    def test_cancel(self):
        token = CancellationToken()
        token.cancel()

        assert token.is_cancelled is True
        with pytest.raises(AnalysisCancelledError) as exc_info:
            token.raise_if_cancelled("pitch")
        assert exc_info.value.analyzer_name == "pitch"

    def test_cancel_from_other_thread(self):
        token = CancellationToken()
        t = threading.Thread(target=token.cancel)
        t.start()
        t.join()

        assert token.is_cancelled


class TestProgressReporter:

    def test_drops_regressions(self):
        values = []
        reporter = ProgressReporter(values.append)
        for v in (0.0, 0.3, 0.2, 0.5, 0.5, 0.4, 1.0):
            reporter.report(v)

        assert values == [0.0, 0.3, 0.5, 0.5, 1.0]

    def test_clamps(self):
        values = []
        reporter = ProgressReporter(values.append)
        reporter.report(-0.5)
        reporter.report(1.5)

        assert values == [0.0, 1.0]

    def test_phase_scaling(self):
        values = []
        reporter = ProgressReporter(values.append)
        first = reporter.phase(0.0, 0.5)
        second = reporter.phase(0.5, 1.0)

        first(0.5)
        first(1.0)
        second(0.0)
        second(0.5)

        assert values == pytest.approx([0.25, 0.5, 0.5, 0.75])

    def test_without_callback(self):
        reporter = ProgressReporter()
        reporter.report(0.4)

        assert reporter.last_reported == pytest.approx(0.4)


class TestPassProgress:

    def test_throttles_to_step(self):
        values = []
        tracker = PassProgress(values.append, total=100)
        for position in range(1, 101):
            tracker.advance(position)

        assert 9 <= len(values) <= 10
        assert values[0] == pytest.approx(0.1)
        assert all(b - a >= 0.1 - 1e-9 for a, b in zip(values, values[1:]))

    def test_finish_always_reports(self):
        values = []
        tracker = PassProgress(values.append, total=0)
        tracker.advance(10)
        tracker.finish()

        assert values == [1.0]

    def test_never_exceeds_one(self):
        values = []
        tracker = PassProgress(values.append, total=10)
        tracker.advance(50)

        assert values == [1.0]
