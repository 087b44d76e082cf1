"""
Core data models for the Vocalis analysis engine.

Immutable domain models for sample buffers, pitch and spectrogram series,
and the combined analysis result.
"""

from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import numpy as np

from vocalis.utils.errors import NoChannelDataError, ScaleSettingsError

REFERENCE_SAMPLE_RATE: int = 44100  # Hz

NOTE_NAMES = ['C', 'C#', 'D', 'D#', 'E', 'F', 'F#', 'G', 'G#', 'A', 'A#', 'B']


@dataclass(frozen=True)
class SampleBuffer:
    """
    Decoded mono PCM samples at a known sample rate.

    The array is copied into a contiguous, read-only float32 array so the
    analyzer can borrow it without the caller mutating it mid-analysis.
    """

    samples: np.ndarray
    sample_rate: int = REFERENCE_SAMPLE_RATE

    def __post_init__(self) -> None:
        data = np.asarray(self.samples, dtype=np.float32)

        if data.ndim == 2:
            if data.shape[0] == 0:
                raise NoChannelDataError()
            if data.shape[0] > 1:
                raise ValueError(
                    f"SampleBuffer is mono only, got {data.shape[0]} channels"
                )
            data = data[0]
        elif data.ndim != 1:
            raise ValueError(f"SampleBuffer expects 1-D samples, got {data.ndim}-D")

        if self.sample_rate <= 0:
            raise ValueError(f"Sample rate must be positive, got {self.sample_rate}")

        data = np.array(data, dtype=np.float32, order='C', copy=True)
        data.setflags(write=False)
        object.__setattr__(self, 'samples', data)

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return len(self) / self.sample_rate


@dataclass(frozen=True)
class MIDINote:
    """MIDI note number (0-127)."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value <= 127:
            raise ValueError(f"MIDI note value {self.value} is out of range (0-127)")

    def __lt__(self, other: "MIDINote") -> bool:
        return self.value < other.value

    def __le__(self, other: "MIDINote") -> bool:
        return self.value <= other.value

    @property
    def note_name(self) -> str:
        """Scientific pitch notation, e.g. "A4"."""
        return f"{NOTE_NAMES[self.value % 12]}{self.value // 12 - 1}"

    @property
    def frequency(self) -> float:
        """Equal-tempered frequency with A4 = 440 Hz."""
        return 440.0 * 2.0 ** ((self.value - 69) / 12.0)

    @classmethod
    def from_frequency(cls, frequency: float) -> "MIDINote":
        """Nearest MIDI note to ``frequency`` (clamped to 0-127)."""
        if frequency <= 0:
            raise ValueError(f"Frequency must be positive, got {frequency}")
        number = round(69 + 12 * math.log2(frequency / 440.0))
        return cls(min(127, max(0, number)))


@dataclass(frozen=True)
class PitchPoint:
    """One detected pitch in the contour."""

    timestamp: float  # seconds
    frequency: float  # Hz
    confidence: float  # [0.0, 1.0]
    target_note: Optional[MIDINote] = None

    def __post_init__(self) -> None:
        validate_confidence(self.confidence)


@dataclass(frozen=True)
class PitchAnalysisData:
    """
    Sparse pitch contour stored as parallel sequences.

    All four sequences have equal length. ``target_notes`` is filled in later
    by whoever knows the practice scale; the engine leaves every slot None.
    """

    timestamps: Tuple[float, ...] = ()
    frequencies: Tuple[float, ...] = ()
    confidences: Tuple[float, ...] = ()
    target_notes: Tuple[Optional[MIDINote], ...] = ()

    def __post_init__(self) -> None:
        for name in ('timestamps', 'frequencies', 'confidences', 'target_notes'):
            object.__setattr__(self, name, tuple(getattr(self, name)))

        lengths = {
            len(self.timestamps),
            len(self.frequencies),
            len(self.confidences),
            len(self.target_notes),
        }
        if len(lengths) > 1:
            raise ValueError(
                "PitchAnalysisData sequences must have equal length, got "
                f"timestamps={len(self.timestamps)}, "
                f"frequencies={len(self.frequencies)}, "
                f"confidences={len(self.confidences)}, "
                f"target_notes={len(self.target_notes)}"
            )

    @classmethod
    def from_points(cls, points: Iterable[PitchPoint]) -> "PitchAnalysisData":
        points = list(points)
        return cls(
            timestamps=tuple(p.timestamp for p in points),
            frequencies=tuple(p.frequency for p in points),
            confidences=tuple(p.confidence for p in points),
            target_notes=tuple(p.target_note for p in points),
        )

    def points(self) -> Iterator[PitchPoint]:
        for values in zip(
            self.timestamps, self.frequencies, self.confidences, self.target_notes
        ):
            yield PitchPoint(*values)

    @property
    def data_point_count(self) -> int:
        return len(self.timestamps)

    @property
    def is_empty(self) -> bool:
        return not self.timestamps

    def mean_frequency(self) -> Optional[float]:
        if self.is_empty:
            return None
        return float(np.mean(self.frequencies))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamps': list(self.timestamps),
            'frequencies': list(self.frequencies),
            'confidences': list(self.confidences),
            'target_notes': [
                note.value if note is not None else None
                for note in self.target_notes
            ],
        }


@dataclass(frozen=True, eq=False)
class SpectrogramData:
    """
    Dense time x frequency magnitude matrix.

    ``magnitudes[t, f]`` is the linear (not dB) peak magnitude of bin ``f``
    in the frame starting at ``timestamps[t]``.
    """

    timestamps: Tuple[float, ...]
    frequency_bins: Tuple[float, ...]
    magnitudes: np.ndarray

    def __post_init__(self) -> None:
        object.__setattr__(self, 'timestamps', tuple(self.timestamps))
        object.__setattr__(self, 'frequency_bins', tuple(self.frequency_bins))

        magnitudes = np.array(self.magnitudes, dtype=np.float32)
        if magnitudes.size == 0:
            magnitudes = magnitudes.reshape(len(self.timestamps), len(self.frequency_bins))
        expected = (len(self.timestamps), len(self.frequency_bins))
        if magnitudes.shape != expected:
            raise ValueError(
                f"Spectrogram magnitudes shape {magnitudes.shape} does not "
                f"match (timestamps, frequency_bins) = {expected}"
            )
        if magnitudes.size and float(magnitudes.min()) < 0.0:
            raise ValueError("Spectrogram magnitudes must be non-negative")

        magnitudes.setflags(write=False)
        object.__setattr__(self, 'magnitudes', magnitudes)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SpectrogramData):
            return NotImplemented
        return (
            self.timestamps == other.timestamps
            and self.frequency_bins == other.frequency_bins
            and np.array_equal(self.magnitudes, other.magnitudes)
        )

    @property
    def time_frame_count(self) -> int:
        return len(self.timestamps)

    @property
    def frequency_bin_count(self) -> int:
        return len(self.frequency_bins)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamps': list(self.timestamps),
            'frequency_bins': list(self.frequency_bins),
            'magnitudes': self.magnitudes.tolist(),
        }


@dataclass(frozen=True)
class ScaleSettings:
    """
    Practice scale a recording was made against.

    The analysis engine never reads these; they ride along in the result so
    the caller can later assign target notes to the contour.
    """

    start_note: MIDINote
    end_note: MIDINote
    tempo_seconds_per_note: float = 1.0
    ascending_count: int = 12  # chromatic steps; one octave

    def validate(self) -> None:
        """
        Check the settings are practical for vocal training.

        Raises:
            ScaleSettingsError: If any field is out of range
        """
        if not self.start_note <= self.end_note:
            raise ScaleSettingsError(
                f"Start note ({self.start_note.note_name}) must be lower than "
                f"or equal to end note ({self.end_note.note_name})",
                field_name="start_note",
            )
        if not 48 <= self.start_note.value <= 84:
            raise ScaleSettingsError(
                f"Start note ({self.start_note.value}) should be between "
                "C3 (48) and C6 (84) for vocal training",
                field_name="start_note",
            )
        if not 1 <= self.ascending_count <= 24:
            raise ScaleSettingsError(
                f"Ascending count ({self.ascending_count}) must be between 1 and 24",
                field_name="ascending_count",
            )
        if not 1.0 <= self.tempo_seconds_per_note <= 3.0:
            raise ScaleSettingsError(
                f"Tempo ({self.tempo_seconds_per_note}s per note) must be "
                "between 1.0 and 3.0 seconds",
                field_name="tempo_seconds_per_note",
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_note': self.start_note.value,
            'end_note': self.end_note.value,
            'tempo_seconds_per_note': self.tempo_seconds_per_note,
            'ascending_count': self.ascending_count,
        }


@dataclass(frozen=True)
class RecordingId:
    """Opaque, hashable identity of one recording."""

    value: uuid.UUID = field(default_factory=uuid.uuid4)

    @classmethod
    def new(cls) -> "RecordingId":
        return cls()

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class AnalysisResult:
    """Pitch contour and spectrogram of one recording."""

    pitch_data: PitchAnalysisData
    spectrogram_data: SpectrogramData
    # Passthrough; never interpreted by the engine
    scale_settings: Optional[Any] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        settings = self.scale_settings
        if settings is not None and hasattr(settings, 'to_dict'):
            settings = settings.to_dict()
        return {
            'pitch_data': self.pitch_data.to_dict(),
            'spectrogram_data': self.spectrogram_data.to_dict(),
            'scale_settings': settings,
        }

    def to_json(self, indent: Optional[int] = 2) -> str:
        """Export as JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def get_summary(self) -> str:
        """Get human-readable summary."""
        parts: List[str] = []
        pitch = self.pitch_data

        if pitch.is_empty:
            parts.append("Pitch: none detected")
        else:
            mean = pitch.mean_frequency()
            note = MIDINote.from_frequency(mean)
            parts.append(
                f"Pitch: {pitch.data_point_count} points, "
                f"{min(pitch.frequencies):.1f}-{max(pitch.frequencies):.1f} Hz "
                f"(mean {mean:.1f} Hz, {note.note_name})"
            )

        spectrogram = self.spectrogram_data
        parts.append(
            f"Spectrogram: {spectrogram.time_frame_count} frames x "
            f"{spectrogram.frequency_bin_count} bins"
        )
        return " | ".join(parts)


# Validation helpers

def validate_confidence(confidence: float) -> None:
    """Validate confidence score is in valid range."""
    if not (0.0 <= confidence <= 1.0):
        raise ValueError(f"Confidence must be in [0.0, 1.0], got {confidence}")
