"""
YIN pitch tracker for the Vocalis analysis engine.

Produces a sparse pitch contour: windows that are silent, aperiodic or out
of the vocal range simply contribute no point.

Based on: "YIN, a fundamental frequency estimator for speech and music"
(de Cheveigne & Kawahara, 2002).
"""

from typing import Iterator, Optional, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from vocalis.core.analyzer_base import BaseAnalyzer, hop_samples
from vocalis.core.models import (
    REFERENCE_SAMPLE_RATE,
    PitchAnalysisData,
    PitchPoint,
    SampleBuffer,
)
from vocalis.core.progress import CancellationToken, PassProgress, ProgressCallback
from vocalis.utils.errors import ConfigurationError

WINDOW_SIZE: int = 2048  # samples
HOP_INTERVAL: float = 0.05  # seconds
MIN_FREQUENCY: float = 80.0  # Hz
MAX_FREQUENCY: float = 1000.0  # Hz
YIN_THRESHOLD: float = 0.25
SILENCE_THRESHOLD: float = 0.0001  # RMS


class PitchTracker(BaseAnalyzer[PitchAnalysisData]):
    """
    YIN fundamental-frequency estimator over fixed windows.

    Windows of ``window_size`` samples start every ``hop_interval`` seconds;
    a window that does not fit entirely in the buffer is not analyzed.
    """

    def __init__(
        self,
        window_size: int = WINDOW_SIZE,
        hop_interval: float = HOP_INTERVAL,
        min_frequency: float = MIN_FREQUENCY,
        max_frequency: float = MAX_FREQUENCY,
        threshold: float = YIN_THRESHOLD,
        silence_threshold: float = SILENCE_THRESHOLD,
    ):
        super().__init__("pitch", "1.0.0")

        if window_size < 4:
            raise ConfigurationError(
                f"Pitch window size must be at least 4 samples, got {window_size}",
                config_key="pitch.window_size",
            )
        if hop_interval <= 0:
            raise ConfigurationError(
                f"Pitch hop interval must be positive, got {hop_interval}",
                config_key="pitch.hop_interval",
            )
        if not 0 < min_frequency < max_frequency:
            raise ConfigurationError(
                f"Invalid pitch range: {min_frequency}-{max_frequency} Hz",
                config_key="pitch.min_frequency",
            )

        self.window_size = window_size
        self.hop_interval = hop_interval
        self.min_frequency = min_frequency
        self.max_frequency = max_frequency
        self.threshold = threshold
        self.silence_threshold = silence_threshold

    def detect(
        self,
        buffer: SampleBuffer,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[PitchPoint]:
        """
        Lazily yield pitch points in timestamp order.

        The generator is single-pass; progress is reported as it is consumed.
        """
        samples = buffer.samples
        sample_rate = buffer.sample_rate
        total = len(samples)
        hop = hop_samples(sample_rate, self.hop_interval)
        if hop <= 0:
            raise ConfigurationError(
                f"Hop interval {self.hop_interval}s is shorter than one sample "
                f"at {sample_rate} Hz",
                config_key="pitch.hop_interval",
            )

        tracker = PassProgress(progress, total)
        position = 0

        while position + self.window_size <= total:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(self.name)

            estimate = self.estimate(
                samples[position:position + self.window_size], sample_rate
            )
            if estimate is not None:
                frequency, confidence = estimate
                yield PitchPoint(
                    timestamp=position / sample_rate,
                    frequency=frequency,
                    confidence=confidence,
                )

            position += hop
            tracker.advance(position)

        tracker.finish()

    def estimate(
        self,
        window: np.ndarray,
        sample_rate: int = REFERENCE_SAMPLE_RATE,
    ) -> Optional[Tuple[float, float]]:
        """
        Run YIN on a single window.

        Returns:
            (frequency, confidence), or None when the window is silent, no
            period crosses the threshold, the dip is flat, or the frequency is
            out of range.
        """
        x = np.asarray(window, dtype=np.float64)
        half = x.shape[0] // 2
        if half < 2:
            return None

        rms = float(np.sqrt(np.mean(x * x)))
        if rms <= self.silence_threshold:
            return None

        cmndf = cumulative_mean_normalized_difference(difference_function(x, half))

        tau_min = int(sample_rate / self.max_frequency)
        tau_max = int(sample_rate / self.min_frequency)
        if not 0 < tau_min < tau_max < cmndf.shape[0]:
            return None

        candidates = np.flatnonzero(cmndf[tau_min:tau_max] < self.threshold)
        if candidates.size == 0:
            return None

        # Descend to the bottom of the first dip below threshold
        tau = tau_min + int(candidates[0])
        while tau + 1 < tau_max and cmndf[tau + 1] < cmndf[tau]:
            tau += 1

        s0, s1, s2 = (float(v) for v in cmndf[tau - 1:tau + 2])
        denominator = 2.0 * (2.0 * s1 - s2 - s0)
        if denominator == 0.0:
            # A flat dip has no vertex to refine
            return None
        period = tau + (s2 - s0) / denominator

        if period <= 0.0:
            return None

        frequency = sample_rate / period
        confidence = 1.0 - min(float(cmndf[tau]), 1.0)

        if not self.min_frequency <= frequency <= self.max_frequency:
            return None

        return frequency, confidence

    def _analyze_impl(
        self,
        buffer: SampleBuffer,
        progress: Optional[ProgressCallback],
        cancel_token: Optional[CancellationToken],
    ) -> PitchAnalysisData:
        data = PitchAnalysisData.from_points(
            self.detect(buffer, progress, cancel_token)
        )
        self._log_summary(buffer, data)
        return data

    def _log_summary(self, buffer: SampleBuffer, data: PitchAnalysisData) -> None:
        hop = hop_samples(buffer.sample_rate, self.hop_interval)
        total_windows = len(buffer) // hop if hop > 0 else 0
        detected = data.data_point_count
        rate = detected / total_windows * 100.0 if total_windows and detected else 0.0

        self.logger.info(
            f"Pitch analysis: {detected}/{total_windows} windows detected ({rate:.1f}%)"
        )
        if data.is_empty:
            self.logger.warning(
                "No pitch data detected - audio might be too quiet or contain no vocal content"
            )
        else:
            avg_confidence = float(np.mean(data.confidences))
            self.logger.info(
                f"Frequency range: {min(data.frequencies):.1f}Hz - "
                f"{max(data.frequencies):.1f}Hz, avg confidence: {avg_confidence:.2f}"
            )


def difference_function(x: np.ndarray, half: int) -> np.ndarray:
    """d(tau) = sum_{i<half} (x[i] - x[i + tau])^2 for tau in [0, half)."""
    lagged = sliding_window_view(x, half)[:half]
    delta = x[:half] - lagged
    return np.einsum('ij,ij->i', delta, delta)


def cumulative_mean_normalized_difference(diff: np.ndarray) -> np.ndarray:
    """YIN's CMNDF; 1 at tau = 0 and wherever the running sum is zero."""
    cmndf = np.ones_like(diff)
    if diff.shape[0] < 2:
        return cmndf

    running = np.cumsum(diff[1:])
    taus = np.arange(1, diff.shape[0], dtype=diff.dtype)
    positive = running > 0
    cmndf[1:][positive] = diff[1:][positive] * taus[positive] / running[positive]
    return cmndf


def create_pitch_tracker(config: Optional[dict] = None) -> PitchTracker:
    """
    Factory function to create PitchTracker from the "pitch" config section.
    """
    if config is None:
        config = {}

    return PitchTracker(
        window_size=config.get('window_size', WINDOW_SIZE),
        hop_interval=config.get('hop_interval', HOP_INTERVAL),
        min_frequency=config.get('min_frequency', MIN_FREQUENCY),
        max_frequency=config.get('max_frequency', MAX_FREQUENCY),
        threshold=config.get('threshold', YIN_THRESHOLD),
        silence_threshold=config.get('silence_threshold', SILENCE_THRESHOLD),
    )
