"""Tests for the exception hierarchy."""

import pytest

from vocalis.utils.errors import (
    AnalysisCancelledError,
    AnalysisError,
    AudioLoadError,
    BufferAllocationError,
    ConfigurationError,
    DecodeError,
    FFTSetupError,
    NoChannelDataError,
    ScaleSettingsError,
    UnsupportedFormatError,
    VocalAnalysisError,
)


class TestHierarchy:

    @pytest.mark.parametrize("error_type", [
        BufferAllocationError,
        NoChannelDataError,
        AnalysisCancelledError,
    ])
    def test_analysis_errors(self, error_type):
        error = error_type()

        assert isinstance(error, AnalysisError)
        assert isinstance(error, VocalAnalysisError)

    def test_fft_setup(self):
        error = FFTSetupError("cannot set up", window_size=8191)

        assert isinstance(error, AnalysisError)
        assert error.analyzer_name == "spectrogram"
        assert error.details["window_size"] == 8191

    def test_load_errors(self):
        assert isinstance(DecodeError("bad"), AudioLoadError)
        assert isinstance(UnsupportedFormatError("bad", format=".txt"), AudioLoadError)

    def test_others(self):
        assert isinstance(ConfigurationError("bad"), VocalAnalysisError)
        assert isinstance(ScaleSettingsError("bad"), VocalAnalysisError)


class TestMessages:

    def test_details_in_str(self):
        error = AudioLoadError("Cannot load", file_path="/tmp/x.wav")

        assert "Cannot load" in str(error)
        assert "/tmp/x.wav" in str(error)

    def test_no_details(self):
        assert str(VocalAnalysisError("plain")) == "plain"

    def test_original_error_kept(self):
        cause = RuntimeError("boom")
        error = AnalysisError("failed", analyzer_name="pitch", original_error=cause)

        assert error.original_error is cause
        assert error.details["original_error"] == "boom"

    def test_cancelled_message(self):
        error = AnalysisCancelledError("spectrogram")

        assert error.analyzer_name == "spectrogram"
        assert "cancelled" in error.message
