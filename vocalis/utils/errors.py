"""
Custom exceptions for the Vocalis analysis engine.

This module defines a hierarchy of exceptions for the structural failures
that can abort an analysis call. "Nothing detected" outcomes (silence, no
pitch in a window, an empty buffer) are never represented as exceptions.
"""

from typing import Optional, Any


class VocalAnalysisError(Exception):
    """Base exception for all vocal analysis errors."""

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class AudioLoadError(VocalAnalysisError):
    """Raised when an audio file cannot be turned into a sample buffer."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        super().__init__(message, details={"file_path": file_path})
        self.file_path = file_path


class DecodeError(AudioLoadError):
    """Raised when the audio decoder cannot read the file contents."""


class UnsupportedFormatError(AudioLoadError):
    """Raised when audio format is not supported."""

    def __init__(self, message: str, format: Optional[str] = None):
        super().__init__(message)
        self.format = format
        self.details = {"format": format}


class AnalysisError(VocalAnalysisError):
    """Raised when an analysis pass fails."""

    def __init__(
        self,
        message: str,
        analyzer_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.analyzer_name = analyzer_name
        self.original_error = original_error
        self.details = {
            "analyzer_name": analyzer_name,
            "original_error": str(original_error) if original_error else None,
        }


class BufferAllocationError(AnalysisError):
    """Raised when a sample buffer cannot be materialized."""

    def __init__(self, message: str = "Failed to allocate audio buffer"):
        super().__init__(message, analyzer_name="engine")


class NoChannelDataError(AnalysisError):
    """Raised when a buffer carries no channel data."""

    def __init__(self, message: str = "No channel data available in audio buffer"):
        super().__init__(message, analyzer_name="engine")


class FFTSetupError(AnalysisError):
    """Raised when the FFT primitive cannot be set up for a window size."""

    def __init__(self, message: str, window_size: Optional[int] = None):
        super().__init__(message, analyzer_name="spectrogram")
        self.window_size = window_size
        self.details["window_size"] = window_size


class AnalysisCancelledError(AnalysisError):
    """Raised when a cancellation token is observed at a window boundary."""

    def __init__(self, analyzer_name: Optional[str] = None):
        super().__init__("Analysis was cancelled", analyzer_name=analyzer_name)


class ConfigurationError(VocalAnalysisError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        super().__init__(message)
        self.config_key = config_key
        self.details = {"config_key": config_key}


class ScaleSettingsError(VocalAnalysisError):
    """Raised when practice scale settings fail validation."""

    def __init__(self, message: str, field_name: Optional[str] = None):
        super().__init__(message, details={"field": field_name})
        self.field_name = field_name
