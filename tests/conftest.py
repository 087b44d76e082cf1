"""Shared fixtures for the vocal analysis tests."""

import logging

import numpy as np
import pytest

from vocalis.core.models import (
    AnalysisResult,
    PitchAnalysisData,
    SampleBuffer,
    SpectrogramData,
)

SAMPLE_RATE = 44100


# ---------------------------------------------------------------------------
# Signal helpers
# ---------------------------------------------------------------------------

def make_sine(
    frequency: float,
    duration: float = 1.0,
    sample_rate: int = SAMPLE_RATE,
    amplitude: float = 0.5,
) -> np.ndarray:
    """Pure sine tone as float32 samples."""
    t = np.arange(int(duration * sample_rate)) / sample_rate
    return (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)


def make_result(frame_count: int = 2, bin_count: int = 4) -> AnalysisResult:
    """Small hand-built AnalysisResult for cache and use-case tests."""
    pitch = PitchAnalysisData(
        timestamps=(0.0, 0.05),
        frequencies=(440.0, 441.0),
        confidences=(0.9, 0.95),
        target_notes=(None, None),
    )
    spectrogram = SpectrogramData(
        timestamps=tuple(i * 0.05 for i in range(frame_count)),
        frequency_bins=tuple(i * 5.0 + 2.5 for i in range(bin_count)),
        magnitudes=np.ones((frame_count, bin_count), dtype=np.float32),
    )
    return AnalysisResult(pitch_data=pitch, spectrogram_data=spectrogram)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sine_440():
    """One second of A4 at 44.1 kHz."""
    return SampleBuffer(make_sine(440.0), SAMPLE_RATE)


@pytest.fixture
def short_sine():
    """Half a second of A4; enough windows for both passes."""
    return SampleBuffer(make_sine(440.0, duration=0.5), SAMPLE_RATE)


@pytest.fixture
def silence():
    """One second of digital silence."""
    return SampleBuffer(np.zeros(SAMPLE_RATE, dtype=np.float32), SAMPLE_RATE)


@pytest.fixture
def empty_buffer():
    return SampleBuffer(np.zeros(0, dtype=np.float32), SAMPLE_RATE)


@pytest.fixture
def analysis_result():
    return make_result()


@pytest.fixture
def restore_root_logging():
    """Undo handler changes made by setup_logging()."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def sine_factory():
    """The make_sine helper, for tests that need custom tones."""
    return make_sine


@pytest.fixture
def result_factory():
    """The make_result helper, for tests that need several distinct results."""
    return make_result
