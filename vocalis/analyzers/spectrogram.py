"""
Spectrogram builder for the Vocalis analysis engine.

Hann-windowed FFT frames, peak-held onto a fixed linear frequency axis.
"""

from typing import NamedTuple, Optional, Protocol, Tuple

import librosa
import numpy as np

from vocalis.core.analyzer_base import BaseAnalyzer, hop_samples
from vocalis.core.models import SampleBuffer, SpectrogramData
from vocalis.core.progress import CancellationToken, PassProgress, ProgressCallback
from vocalis.utils.errors import ConfigurationError, FFTSetupError

WINDOW_SIZE: int = 8192  # samples; ~5.38 Hz native resolution at 44.1 kHz
HOP_INTERVAL: float = 0.05  # seconds
BIN_COUNT: int = 1200
MAX_FREQUENCY: float = 6000.0  # Hz; 5 Hz per output bin


class FFTTransform(Protocol):
    """
    Forward transform used by SpectrogramBuilder.

    ``setup`` is called once per build and must raise FFTSetupError if the
    size cannot be handled. ``magnitudes`` returns |X[k]| for the first
    ``window_size // 2`` bins of a windowed frame.
    """

    def setup(self, window_size: int) -> None:
        ...

    def magnitudes(self, frame: np.ndarray) -> np.ndarray:
        ...


class NumpyFFT:
    """Real-input FFT backed by numpy.fft."""

    def __init__(self) -> None:
        self._size: Optional[int] = None

    def setup(self, window_size: int) -> None:
        if window_size < 2 or window_size % 2:
            raise FFTSetupError(
                f"Failed to create FFT setup for window size {window_size}",
                window_size=window_size,
            )
        self._size = window_size

    def magnitudes(self, frame: np.ndarray) -> np.ndarray:
        if self._size is None:
            raise FFTSetupError("FFT used before setup")
        spectrum = np.fft.rfft(frame, n=self._size)
        return np.abs(spectrum[: self._size // 2])


class _RebinPlan(NamedTuple):
    """Index plan for peak-hold rebinning of one native resolution."""

    valid: np.ndarray  # bool mask of output bins that receive a value
    starts: np.ndarray  # native start index of each valid output bin
    stop: int  # native end index of the last valid output bin


class SpectrogramBuilder(BaseAnalyzer[SpectrogramData]):
    """
    Dense magnitude spectrogram on a fixed frequency axis.

    Frames of ``window_size`` samples start every ``hop_interval`` seconds;
    the trailing partial frame is discarded. Magnitudes are linear amplitude.
    """

    def __init__(
        self,
        window_size: int = WINDOW_SIZE,
        hop_interval: float = HOP_INTERVAL,
        bin_count: int = BIN_COUNT,
        max_frequency: float = MAX_FREQUENCY,
        transform: Optional[FFTTransform] = None,
    ):
        super().__init__("spectrogram", "1.0.0")

        if hop_interval <= 0:
            raise ConfigurationError(
                f"Spectrogram hop interval must be positive, got {hop_interval}",
                config_key="spectrogram.hop_interval",
            )
        if bin_count < 1 or max_frequency <= 0:
            raise ConfigurationError(
                f"Invalid spectrogram axis: {bin_count} bins up to {max_frequency} Hz",
                config_key="spectrogram.bin_count",
            )

        self.window_size = window_size
        self.hop_interval = hop_interval
        self.bin_count = bin_count
        self.max_frequency = max_frequency
        self.transform: FFTTransform = transform or NumpyFFT()

        self.bin_width = max_frequency / bin_count
        self.frequency_bins: Tuple[float, ...] = tuple(
            float(f)
            for f in np.arange(bin_count) * self.bin_width + self.bin_width / 2
        )

    def build(
        self,
        buffer: SampleBuffer,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> SpectrogramData:
        """Build the spectrogram of ``buffer``."""
        return self.analyze(buffer, progress, cancel_token)

    def rebin(self, magnitudes: np.ndarray, sample_rate: int) -> np.ndarray:
        """
        Peak-hold native FFT magnitudes onto the output axis.

        Output bin i takes the max over native bins
        [int(i * w / r), int((i + 1) * w / r)) where w is the output bin width
        and r the native resolution; empty or out-of-range bins are 0.
        """
        plan = self._rebin_plan(sample_rate, magnitudes.shape[0])
        return self._peak_hold(plan, magnitudes)

    def _peak_hold(self, plan: _RebinPlan, magnitudes: np.ndarray) -> np.ndarray:
        row = np.zeros(self.bin_count, dtype=np.float32)
        if plan.starts.size:
            # Valid bins are contiguous, so each segment ends where the next starts
            row[plan.valid] = np.maximum.reduceat(magnitudes[:plan.stop], plan.starts)
        return row

    def _rebin_plan(self, sample_rate: int, native_count: int) -> _RebinPlan:
        native_resolution = sample_rate / self.window_size
        edges = np.arange(self.bin_count + 1, dtype=np.float64) * self.bin_width
        indices = (edges / native_resolution).astype(np.int64)
        starts, ends = indices[:-1], indices[1:]

        valid = (ends <= native_count) & (ends > starts)
        stop = int(ends[valid][-1]) if valid.any() else 0
        return _RebinPlan(valid=valid, starts=starts[valid], stop=stop)

    def _analyze_impl(
        self,
        buffer: SampleBuffer,
        progress: Optional[ProgressCallback],
        cancel_token: Optional[CancellationToken],
    ) -> SpectrogramData:
        self.transform.setup(self.window_size)

        samples = buffer.samples
        sample_rate = buffer.sample_rate
        total = len(samples)
        hop = hop_samples(sample_rate, self.hop_interval)
        if hop <= 0:
            raise ConfigurationError(
                f"Hop interval {self.hop_interval}s is shorter than one sample "
                f"at {sample_rate} Hz",
                config_key="spectrogram.hop_interval",
            )

        window = librosa.filters.get_window("hann", self.window_size, fftbins=True)
        plan = self._rebin_plan(sample_rate, self.window_size // 2)

        timestamps = []
        rows = []
        tracker = PassProgress(progress, total)
        position = 0

        while position + self.window_size <= total:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled(self.name)

            frame = samples[position:position + self.window_size] * window
            magnitudes = self.transform.magnitudes(frame)

            timestamps.append(position / sample_rate)
            rows.append(self._peak_hold(plan, magnitudes))

            position += hop
            tracker.advance(position)

        tracker.finish()

        if rows:
            matrix = np.vstack(rows)
        else:
            matrix = np.zeros((0, self.bin_count), dtype=np.float32)

        self.logger.info(
            f"Spectrogram analysis: {len(timestamps)} time frames, "
            f"{self.bin_count} frequency bins"
        )

        return SpectrogramData(
            timestamps=tuple(timestamps),
            frequency_bins=self.frequency_bins,
            magnitudes=matrix,
        )


def create_spectrogram_builder(
    config: Optional[dict] = None,
    transform: Optional[FFTTransform] = None,
) -> SpectrogramBuilder:
    """
    Factory function to create SpectrogramBuilder from the "spectrogram"
    config section.
    """
    if config is None:
        config = {}

    return SpectrogramBuilder(
        window_size=config.get('window_size', WINDOW_SIZE),
        hop_interval=config.get('hop_interval', HOP_INTERVAL),
        bin_count=config.get('bin_count', BIN_COUNT),
        max_frequency=config.get('max_frequency', MAX_FREQUENCY),
        transform=transform,
    )
