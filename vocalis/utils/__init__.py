"""
Utility modules for configuration, logging, and error handling.
"""

from vocalis.utils.errors import (
    VocalAnalysisError,
    AudioLoadError,
    DecodeError,
    UnsupportedFormatError,
    AnalysisError,
    BufferAllocationError,
    NoChannelDataError,
    FFTSetupError,
    AnalysisCancelledError,
    ConfigurationError,
    ScaleSettingsError,
)
from vocalis.utils.logging import get_logger, setup_logging, JSONFormatter
from vocalis.utils.config import ConfigManager, load_config, get_default_config

__all__ = [
    "VocalAnalysisError",
    "AudioLoadError",
    "DecodeError",
    "UnsupportedFormatError",
    "AnalysisError",
    "BufferAllocationError",
    "NoChannelDataError",
    "FFTSetupError",
    "AnalysisCancelledError",
    "ConfigurationError",
    "ScaleSettingsError",
    "get_logger",
    "setup_logging",
    "JSONFormatter",
    "ConfigManager",
    "load_config",
    "get_default_config",
]
