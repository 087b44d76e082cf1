"""Tests for the cache-aside analyze-recording use case."""

import asyncio
from unittest.mock import MagicMock

import pytest

from vocalis.core.cache import AnalysisCache
from vocalis.core.models import MIDINote, RecordingId, ScaleSettings
from vocalis.core.use_case import (
    AnalyzeRecordingUseCase,
    create_analyze_recording_use_case,
)
from vocalis.utils.config import get_default_config
from vocalis.utils.errors import AnalysisCancelledError, FFTSetupError


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_analyzer(analysis_result):
    """Analyzer mock returning the fixture result's two series."""
    analyzer = MagicMock()
    series = (analysis_result.pitch_data, analysis_result.spectrogram_data)
    analyzer.analyze.return_value = series
    analyzer.analyze_file.return_value = series
    return analyzer


@pytest.fixture
def use_case(mock_analyzer):
    uc = AnalyzeRecordingUseCase(analyzer=mock_analyzer, cache=AnalysisCache())
    yield uc
    uc.shutdown()


# ---------------------------------------------------------------------------
# Cache-aside behavior
# ---------------------------------------------------------------------------


class TestCacheAside:

    def test_miss_runs_analyzer_once(self, use_case, mock_analyzer, short_sine):
        recording_id = RecordingId.new()
        result = use_case.execute(recording_id, short_sine)

        mock_analyzer.analyze.assert_called_once()
        assert use_case.cache.get(recording_id) is result

    def test_hit_skips_analyzer(self, use_case, mock_analyzer, short_sine):
        recording_id = RecordingId.new()
        first = use_case.execute(recording_id, short_sine)
        second = use_case.execute(recording_id, short_sine)

        assert second is first
        assert mock_analyzer.analyze.call_count == 1

    def test_hit_reports_completion_only(self, use_case, short_sine):
        recording_id = RecordingId.new()
        use_case.execute(recording_id, short_sine)

        values = []
        use_case.execute(recording_id, short_sine, on_progress=values.append)

        assert values == [1.0]

    def test_distinct_recordings_analyzed_separately(self, use_case, mock_analyzer, short_sine):
        use_case.execute(RecordingId.new(), short_sine)
        use_case.execute(RecordingId.new(), short_sine)

        assert mock_analyzer.analyze.call_count == 2

    def test_scale_settings_passthrough(self, use_case, short_sine):
        settings = ScaleSettings(MIDINote(60), MIDINote(72))
        result = use_case.execute(RecordingId.new(), short_sine, scale_settings=settings)

        assert result.scale_settings is settings


class TestFailures:

    def test_failure_not_cached(self, use_case, mock_analyzer, short_sine):
        recording_id = RecordingId.new()
        mock_analyzer.analyze.side_effect = FFTSetupError("bad size", 8191)

        with pytest.raises(FFTSetupError):
            use_case.execute(recording_id, short_sine)

        assert recording_id not in use_case.cache
        assert use_case.cache.count == 0

    def test_retry_after_failure(self, use_case, mock_analyzer, analysis_result, short_sine):
        recording_id = RecordingId.new()
        series = (analysis_result.pitch_data, analysis_result.spectrogram_data)
        mock_analyzer.analyze.side_effect = [AnalysisCancelledError("pitch"), series]

        with pytest.raises(AnalysisCancelledError):
            use_case.execute(recording_id, short_sine)
        use_case.execute(recording_id, short_sine)

        assert mock_analyzer.analyze.call_count == 2
        assert recording_id in use_case.cache

    def test_unsupported_source(self, use_case):
        with pytest.raises(TypeError):
            use_case.execute(RecordingId.new(), 42)


class TestSampleSources:

    def test_path_source(self, use_case, mock_analyzer, tmp_path):
        path = tmp_path / "take.wav"
        use_case.execute(RecordingId.new(), str(path))

        mock_analyzer.analyze_file.assert_called_once()
        assert mock_analyzer.analyze_file.call_args.args[0] == path

    def test_callable_resolved_on_miss_only(self, use_case, short_sine):
        recording_id = RecordingId.new()
        source = MagicMock(return_value=short_sine)

        use_case.execute(recording_id, source)
        use_case.execute(recording_id, source)

        source.assert_called_once_with()

    def test_forwards_progress_and_token(self, use_case, mock_analyzer, short_sine):
        callback = MagicMock()
        token = MagicMock()
        use_case.execute(RecordingId.new(), short_sine, on_progress=callback, cancel_token=token)

        kwargs = mock_analyzer.analyze.call_args.kwargs
        assert kwargs['on_progress'] is callback
        assert kwargs['cancel_token'] is token


class TestAsync:

    def test_execute_async(self, use_case, mock_analyzer, short_sine):
        recording_id = RecordingId.new()

        result = asyncio.run(use_case.execute_async(recording_id, short_sine))

        assert use_case.cache.get(recording_id) is result
        mock_analyzer.analyze.assert_called_once()

    def test_concurrent_distinct_recordings(self, use_case, mock_analyzer, short_sine):
        ids = [RecordingId.new() for _ in range(3)]

        async def run_all():
            return await asyncio.gather(
                *(use_case.execute_async(rid, short_sine) for rid in ids)
            )

        results = asyncio.run(run_all())

        assert len(results) == 3
        assert all(rid in use_case.cache for rid in ids)

    def test_context_manager_shuts_down(self, mock_analyzer, short_sine):
        with AnalyzeRecordingUseCase(mock_analyzer, AnalysisCache()) as uc:
            asyncio.run(uc.execute_async(RecordingId.new(), short_sine))
            assert uc._executor is not None

        assert uc._executor is None


class TestEndToEnd:

    def test_real_analysis_cached(self, short_sine):
        config = get_default_config()
        config['cache']['capacity'] = 2

        with create_analyze_recording_use_case(config) as uc:
            recording_id = RecordingId.new()
            first = uc.execute(recording_id, short_sine)
            second = uc.execute(recording_id, short_sine)

        assert second is first
        assert not first.pitch_data.is_empty
        assert uc.cache.capacity == 2
