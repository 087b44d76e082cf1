"""
Analysis engine for the Vocalis analysis engine.

AudioFileAnalyzer runs the pitch pass and then the spectrogram pass over a
single buffer and folds their progress into one 0 -> 1 stream.
"""

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from vocalis.analyzers.pitch import PitchTracker, create_pitch_tracker
from vocalis.analyzers.spectrogram import SpectrogramBuilder, create_spectrogram_builder
from vocalis.core.analyzer_base import Analyzer
from vocalis.core.loader import AudioLoader, create_audio_loader
from vocalis.core.models import PitchAnalysisData, SampleBuffer, SpectrogramData
from vocalis.core.progress import CancellationToken, ProgressCallback, ProgressReporter

# Share of overall progress covered by the pitch pass
PITCH_PHASE_END = 0.5


class AudioFileAnalyzer:
    """
    Orchestrates the two analysis passes.

    Design:
    - Dependency Injection: any Analyzer implementation can stand in for
      either pass, as can the loader
    - Sequential passes: pitch fills [0, 0.5] of progress, spectrogram [0.5, 1]
    - Errors from either pass propagate unchanged
    """

    def __init__(
        self,
        pitch_tracker: Optional[Analyzer[PitchAnalysisData]] = None,
        spectrogram_builder: Optional[Analyzer[SpectrogramData]] = None,
        loader: Optional[AudioLoader] = None,
    ):
        self.pitch_tracker = pitch_tracker or PitchTracker()
        self.spectrogram_builder = spectrogram_builder or SpectrogramBuilder()
        self.loader = loader or AudioLoader()
        self.logger = logging.getLogger('engine')

    def analyze(
        self,
        buffer: SampleBuffer,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Tuple[PitchAnalysisData, SpectrogramData]:
        """
        Analyze a decoded mono buffer.

        Args:
            buffer: Samples to analyze; borrowed for the duration of the call
            on_progress: Called serially with monotonic values in [0, 1]
            cancel_token: Checked at every window boundary of both passes

        Returns:
            (pitch contour, spectrogram)

        Raises:
            BufferAllocationError, FFTSetupError, AnalysisCancelledError
        """
        start_time = time.perf_counter()
        reporter = ProgressReporter(on_progress)
        reporter.report(0.0)

        self.logger.info(
            f"Starting analysis: {len(buffer)} samples, duration: {buffer.duration:.2f}s"
        )

        pitch_data = self.pitch_tracker.analyze(
            buffer,
            progress=reporter.phase(0.0, PITCH_PHASE_END),
            cancel_token=cancel_token,
        )

        spectrogram_data = self.spectrogram_builder.analyze(
            buffer,
            progress=reporter.phase(PITCH_PHASE_END, 1.0),
            cancel_token=cancel_token,
        )

        reporter.report(1.0)

        elapsed = time.perf_counter() - start_time
        self.logger.info(f"Analysis complete in {elapsed:.3f}s")

        return pitch_data, spectrogram_data

    def analyze_file(
        self,
        file_path: Path,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Tuple[PitchAnalysisData, SpectrogramData]:
        """
        Decode ``file_path`` through the loader, then analyze it.

        Raises:
            DecodeError, UnsupportedFormatError: If the file cannot be decoded
        """
        self.logger.info(f"Loading audio: {file_path}")
        buffer = self.loader.load(Path(file_path))
        return self.analyze(buffer, on_progress=on_progress, cancel_token=cancel_token)


def create_audio_file_analyzer(config: Dict[str, Any]) -> AudioFileAnalyzer:
    """
    Factory function to create a fully configured analyzer.

    Args:
        config: Configuration dict (see vocalis.utils.config)
    """
    return AudioFileAnalyzer(
        pitch_tracker=create_pitch_tracker(config.get('pitch', {})),
        spectrogram_builder=create_spectrogram_builder(config.get('spectrogram', {})),
        loader=create_audio_loader(config.get('audio', {})),
    )
