"""
Analysis passes over a complete sample buffer.
"""

from vocalis.analyzers.pitch import PitchTracker, create_pitch_tracker
from vocalis.analyzers.spectrogram import (
    FFTTransform,
    NumpyFFT,
    SpectrogramBuilder,
    create_spectrogram_builder,
)

__all__ = [
    "PitchTracker",
    "create_pitch_tracker",
    "FFTTransform",
    "NumpyFFT",
    "SpectrogramBuilder",
    "create_spectrogram_builder",
]
