"""Tests for AudioLoader decoding files into sample buffers."""

import logging

import numpy as np
import pytest
import soundfile as sf

from vocalis.core.loader import AudioLoader, create_audio_loader
from vocalis.utils.errors import (
    AudioLoadError,
    DecodeError,
    UnsupportedFormatError,
)


@pytest.fixture
def wav_file(tmp_path, sine_factory):
    path = tmp_path / "take.wav"
    sf.write(str(path), sine_factory(440.0, duration=0.5), 44100)
    return path


class TestLoad:

    def test_mono_wav(self, wav_file):
        buffer = AudioLoader().load(wav_file)

        assert buffer.sample_rate == 44100
        assert len(buffer) == 22050
        assert buffer.samples.dtype == np.float32

    def test_stereo_is_downmixed(self, tmp_path, sine_factory):
        path = tmp_path / "stereo.wav"
        tone = sine_factory(440.0, duration=0.25)
        sf.write(str(path), np.stack([tone, tone], axis=1), 44100)

        buffer = AudioLoader().load(path)

        assert buffer.samples.ndim == 1
        assert len(buffer) == len(tone)

    def test_resampled_to_target(self, tmp_path, sine_factory):
        path = tmp_path / "low.wav"
        sf.write(str(path), sine_factory(440.0, duration=0.5, sample_rate=22050), 22050)

        buffer = AudioLoader().load(path)

        assert buffer.sample_rate == 44100
        assert len(buffer) == pytest.approx(22050, abs=2)

    def test_hot_float_samples_pass_through(self, tmp_path, sine_factory, caplog):
        path = tmp_path / "hot.wav"
        samples = sine_factory(440.0, duration=0.25, amplitude=1.5)
        sf.write(str(path), samples, 44100, subtype="FLOAT")

        with caplog.at_level(logging.WARNING, logger="loader"):
            buffer = AudioLoader().load(path)

        assert float(np.max(np.abs(buffer.samples))) > 1.4
        np.testing.assert_allclose(buffer.samples, samples, atol=1e-6)
        assert any("above full scale" in r.getMessage() for r in caplog.records)


class TestValidation:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AudioLoader().load(tmp_path / "absent.wav")

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("not audio")

        with pytest.raises(UnsupportedFormatError) as exc_info:
            AudioLoader().load(path)
        assert exc_info.value.format == ".txt"

    def test_too_large(self, wav_file):
        with pytest.raises(AudioLoadError):
            AudioLoader(max_file_size=10).load(wav_file)

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "broken.wav"
        path.write_bytes(b"definitely not a RIFF header" * 10)

        with pytest.raises(DecodeError):
            AudioLoader().load(path)


class TestRecordingId:

    def test_stable_for_same_content(self, wav_file, tmp_path):
        copy = tmp_path / "copy.wav"
        copy.write_bytes(wav_file.read_bytes())
        loader = AudioLoader()

        assert loader.recording_id(wav_file) == loader.recording_id(copy)

    def test_differs_for_different_content(self, wav_file, tmp_path, sine_factory):
        other = tmp_path / "other.wav"
        sf.write(str(other), sine_factory(220.0, duration=0.5), 44100)
        loader = AudioLoader()

        assert loader.recording_id(wav_file) != loader.recording_id(other)


class TestHelpers:

    def test_duration(self, wav_file):
        assert AudioLoader().get_duration(wav_file) == pytest.approx(0.5)

    def test_duration_of_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.wav"
        path.write_bytes(b"junk")

        assert AudioLoader().get_duration(path) == 0.0

    def test_factory(self):
        loader = create_audio_loader({"target_sample_rate": 22050, "supported_formats": [".wav"]})

        assert loader.target_sr == 22050
        assert loader.supported_suffixes == {".wav"}
