"""
Audio loader for the Vocalis analysis engine.

Decodes audio files into mono SampleBuffers at the analysis sample rate.
This is the boundary to file I/O; the analysis passes only ever see buffers.
"""

import hashlib
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import librosa
import numpy as np
import soundfile as sf

from vocalis.core.models import REFERENCE_SAMPLE_RATE, RecordingId, SampleBuffer
from vocalis.utils.errors import (
    AudioLoadError,
    BufferAllocationError,
    DecodeError,
    UnsupportedFormatError,
)

SUPPORTED_FORMATS = ('.wav', '.aif', '.aiff', '.flac', '.mp3', '.m4a', '.caf')
MAX_FILE_SIZE: int = 524288000  # 500 MB

# Namespace for recording ids derived from file contents
RECORDING_NAMESPACE = uuid.UUID("5b0e7f0e-2f53-4d8e-9a55-7c3f6f1c9d21")

logger = logging.getLogger("loader")


class AudioLoader:
    """
    Loads audio files and creates SampleBuffer instances.

    Multi-channel files are down-mixed to mono and everything is resampled
    to ``target_sr``. Stateless and safe to share between threads.
    """

    def __init__(
        self,
        target_sr: int = REFERENCE_SAMPLE_RATE,
        max_file_size: int = MAX_FILE_SIZE,
        supported_formats: Iterable[str] = SUPPORTED_FORMATS,
    ):
        self.target_sr = target_sr
        self.max_file_size = max_file_size
        self.supported_suffixes = {s.lower() for s in supported_formats}

    def load(self, file_path: Path) -> SampleBuffer:
        """
        Load an audio file as a mono SampleBuffer.

        Raises:
            FileNotFoundError: File doesn't exist
            UnsupportedFormatError: File format not supported
            AudioLoadError: File exceeds the size limit
            DecodeError: The decoder could not read the file
            BufferAllocationError: The decoded samples could not be held in memory
        """
        file_path = Path(file_path)

        self._validate_file(file_path)
        self._log_metadata(file_path)

        samples = self._load_audio_data(file_path)
        samples = self._validate_audio_data(samples, file_path)

        buffer = SampleBuffer(samples=samples, sample_rate=self.target_sr)
        logger.info(
            f"File loaded: {len(buffer)} samples, duration: {buffer.duration:.2f}s"
        )
        return buffer

    def recording_id(self, file_path: Path) -> RecordingId:
        """Stable RecordingId derived from the file's SHA-256."""
        digest = self._compute_file_hash(Path(file_path))
        return RecordingId(uuid.uuid5(RECORDING_NAMESPACE, digest))

    def get_duration(self, file_path: Path) -> float:
        """Duration in seconds read from the file header, 0.0 if unreadable."""
        try:
            with sf.SoundFile(str(file_path)) as f:
                return f.frames / f.samplerate
        except (sf.LibsndfileError, RuntimeError, OSError) as e:
            logger.warning(f"Could not get duration for {file_path}: {e}")
            return 0.0

    def _validate_file(self, file_path: Path) -> None:
        """Validate file exists, has supported format, and is within size limit."""
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        suffix = file_path.suffix.lower()
        if suffix not in self.supported_suffixes:
            raise UnsupportedFormatError(
                f"Format {suffix} not supported. "
                f"Supported formats: {', '.join(sorted(self.supported_suffixes))}",
                format=suffix
            )

        file_size = file_path.stat().st_size
        if file_size > self.max_file_size:
            raise AudioLoadError(
                f"File too large: {file_size / 1024 / 1024:.1f} MB. "
                f"Maximum: {self.max_file_size / 1024 / 1024:.1f} MB",
                file_path=str(file_path)
            )

    def _log_metadata(self, file_path: Path) -> Dict[str, Any]:
        """Read header metadata for logging; not every format has one."""
        try:
            with sf.SoundFile(str(file_path)) as f:
                metadata = {
                    'sample_rate': f.samplerate,
                    'subtype': f.subtype,
                    'channels': f.channels,
                }
        except (sf.LibsndfileError, RuntimeError, OSError) as e:
            logger.debug(f"No soundfile metadata for {file_path}: {e}")
            return {}

        logger.info(
            f"Loading audio: {metadata['sample_rate']} Hz, "
            f"{metadata['channels']} ch, {metadata['subtype']}"
        )
        return metadata

    def _load_audio_data(self, file_path: Path) -> np.ndarray:
        """Decode, down-mix to mono and resample to the target rate."""
        try:
            samples, _ = librosa.load(
                str(file_path),
                sr=self.target_sr,
                mono=True,
                dtype=np.float32
            )
        except MemoryError as e:
            raise BufferAllocationError(
                f"Failed to allocate audio buffer for {file_path}"
            ) from e
        except Exception as e:
            raise DecodeError(
                f"Failed to decode audio data from {file_path}: {e}",
                file_path=str(file_path)
            ) from e

        return samples

    def _validate_audio_data(
        self, samples: np.ndarray, file_path: Path
    ) -> np.ndarray:
        """Warn on silence or clipping; samples are never rescaled. Empty audio is valid."""
        if samples.size == 0:
            logger.warning(f"Audio file contains no samples: {file_path}")
            return samples

        rms = float(np.sqrt(np.mean(samples ** 2)))
        if rms < 1e-6:
            logger.warning(f"Audio appears to be silent: {file_path}")

        max_abs = float(np.max(np.abs(samples)))
        if max_abs > 1.0:
            logger.warning(
                f"Audio peaks above full scale (max: {max_abs:.2f}): {file_path}"
            )

        return samples

    def _compute_file_hash(self, file_path: Path) -> str:
        """Compute SHA-256 hash of file content."""
        sha256 = hashlib.sha256()

        with open(file_path, 'rb') as f:
            for chunk in iter(lambda: f.read(8192), b''):
                sha256.update(chunk)

        return sha256.hexdigest()


def create_audio_loader(config: Optional[Dict[str, Any]] = None) -> AudioLoader:
    """
    Factory function to create AudioLoader from the "audio" config section.
    """
    if config is None:
        config = {}

    return AudioLoader(
        target_sr=config.get('target_sample_rate', REFERENCE_SAMPLE_RATE),
        max_file_size=config.get('max_file_size', MAX_FILE_SIZE),
        supported_formats=config.get('supported_formats', SUPPORTED_FORMATS),
    )
