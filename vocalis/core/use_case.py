"""
Analyze-recording use case.

The single place where caching policy meets analysis: look the recording up
in the cache, and only on a miss run the analyzer and store its result.
"""

import asyncio
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Optional, Union

from vocalis.core.cache import AnalysisCache, create_analysis_cache
from vocalis.core.engine import AudioFileAnalyzer, create_audio_file_analyzer
from vocalis.core.models import AnalysisResult, RecordingId, SampleBuffer
from vocalis.core.progress import CancellationToken, ProgressCallback
from vocalis.utils.logging import create_logger_with_context

# A buffer, an audio file path, or a zero-argument callable producing a buffer.
# Paths and callables are only resolved on a cache miss.
SampleSource = Union[SampleBuffer, str, "os.PathLike[str]", Callable[[], SampleBuffer]]


class AnalyzeRecordingUseCase:
    """
    Cache-aside analysis of one recording.

    A failed analysis raises the analyzer's error unchanged and leaves the
    cache untouched.
    """

    def __init__(
        self,
        analyzer: AudioFileAnalyzer,
        cache: AnalysisCache,
        max_workers: int = 2,
    ):
        self.analyzer = analyzer
        self.cache = cache
        self.max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self.logger = logging.getLogger('use_case')

    def execute(
        self,
        recording_id: RecordingId,
        sample_source: SampleSource,
        scale_settings: Optional[Any] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AnalysisResult:
        """
        Return the analysis of ``recording_id``, computing it on a cache miss.

        Args:
            recording_id: Cache key of the recording
            sample_source: Where to get samples if analysis is needed
            scale_settings: Passthrough stored unchanged in the result
            on_progress: Progress callback; a cache hit reports 1.0 only
            cancel_token: Cancels an in-flight analysis at a window boundary
        """
        log = create_logger_with_context('use_case', {'recording_id': str(recording_id)})
        log.info(f"Starting analysis for recording: {recording_id}")

        cached = self.cache.get(recording_id)
        if cached is not None:
            log.info(f"Cache hit for recording: {recording_id}")
            if on_progress is not None:
                on_progress(1.0)
            return cached

        log.info("Cache miss - analyzing recording")

        if isinstance(sample_source, SampleBuffer):
            pitch_data, spectrogram_data = self.analyzer.analyze(
                sample_source, on_progress=on_progress, cancel_token=cancel_token
            )
        elif isinstance(sample_source, (str, os.PathLike)):
            pitch_data, spectrogram_data = self.analyzer.analyze_file(
                Path(sample_source), on_progress=on_progress, cancel_token=cancel_token
            )
        elif callable(sample_source):
            pitch_data, spectrogram_data = self.analyzer.analyze(
                sample_source(), on_progress=on_progress, cancel_token=cancel_token
            )
        else:
            raise TypeError(
                f"Unsupported sample source: {type(sample_source).__name__}"
            )

        result = AnalysisResult(
            pitch_data=pitch_data,
            spectrogram_data=spectrogram_data,
            scale_settings=scale_settings,
        )
        self.cache.set(recording_id, result)

        log.info(f"Analysis completed for recording: {recording_id}")
        return result

    async def execute_async(
        self,
        recording_id: RecordingId,
        sample_source: SampleSource,
        scale_settings: Optional[Any] = None,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AnalysisResult:
        """
        Run ``execute`` on a worker thread without blocking the event loop.

        ``on_progress`` is called from the worker thread; use
        ``loop.call_soon_threadsafe`` inside it to reach the loop.
        """
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self._get_executor(),
            lambda: self.execute(
                recording_id,
                sample_source,
                scale_settings=scale_settings,
                on_progress=on_progress,
                cancel_token=cancel_token,
            ),
        )

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="vocalis-analysis"
            )
        return self._executor

    def shutdown(self) -> None:
        """Shutdown the worker pool gracefully."""
        if self._executor is not None:
            self.logger.info("Shutting down analysis workers")
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "AnalyzeRecordingUseCase":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()


def create_analyze_recording_use_case(config: dict) -> AnalyzeRecordingUseCase:
    """
    Factory function wiring analyzer and cache from configuration.
    """
    return AnalyzeRecordingUseCase(
        analyzer=create_audio_file_analyzer(config),
        cache=create_analysis_cache(config.get('cache', {})),
        max_workers=config.get('performance', {}).get('max_workers', 2),
    )
