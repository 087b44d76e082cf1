"""
Core module containing data models, caching, and the analysis engine.

Uses lazy imports for modules with heavy dependencies (librosa, soundfile).
"""

# Models are lightweight - import directly
from vocalis.core.models import (
    SampleBuffer,
    MIDINote,
    PitchPoint,
    PitchAnalysisData,
    SpectrogramData,
    ScaleSettings,
    RecordingId,
    AnalysisResult,
    validate_confidence,
)
from vocalis.core.cache import AnalysisCache, create_analysis_cache
from vocalis.core.progress import CancellationToken, ProgressReporter

__all__ = [
    # Models (always available)
    "SampleBuffer",
    "MIDINote",
    "PitchPoint",
    "PitchAnalysisData",
    "SpectrogramData",
    "ScaleSettings",
    "RecordingId",
    "AnalysisResult",
    "validate_confidence",
    "AnalysisCache",
    "create_analysis_cache",
    "CancellationToken",
    "ProgressReporter",
    # Heavy modules (lazy loaded)
    "AudioLoader",
    "create_audio_loader",
    "AudioFileAnalyzer",
    "create_audio_file_analyzer",
    "AnalyzeRecordingUseCase",
    "create_analyze_recording_use_case",
]


def __getattr__(name: str):
    """Lazy load modules with heavy dependencies."""
    if name in ("AudioLoader", "create_audio_loader"):
        from vocalis.core import loader
        return getattr(loader, name)
    elif name in ("AudioFileAnalyzer", "create_audio_file_analyzer"):
        from vocalis.core import engine
        return getattr(engine, name)
    elif name in ("AnalyzeRecordingUseCase", "create_analyze_recording_use_case"):
        from vocalis.core import use_case
        return getattr(use_case, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
