#!/usr/bin/env python3
"""
Command-line interface for the Vocalis analysis engine.

Analyzes a recording once and prints its pitch contour summary; the full
pitch and spectrogram series can be written to a JSON file.
"""

import argparse
import sys
import traceback
from pathlib import Path
from typing import Optional

from vocalis import __version__
from vocalis.core.models import AnalysisResult, MIDINote, ScaleSettings
from vocalis.core.use_case import create_analyze_recording_use_case
from vocalis.utils.config import load_config
from vocalis.utils.errors import ScaleSettingsError, VocalAnalysisError
from vocalis.utils.logging import setup_logging


def print_result(audio_file: Path, result: AnalysisResult) -> None:
    """Print analysis result to console."""
    print(f"\n{'=' * 60}")
    print(f"File: {audio_file.name}")
    print(f"{'=' * 60}")

    pitch = result.pitch_data
    if pitch.is_empty:
        print("\nPitch: no voiced windows detected")
    else:
        mean = pitch.mean_frequency()
        note = MIDINote.from_frequency(mean)
        avg_confidence = sum(pitch.confidences) / pitch.data_point_count
        print("\nPitch:")
        print(f"  Points: {pitch.data_point_count}")
        print(f"  Range: {min(pitch.frequencies):.1f} - {max(pitch.frequencies):.1f} Hz")
        print(f"  Mean: {mean:.1f} Hz ({note.note_name})")
        print(f"  Avg confidence: {avg_confidence:.2f}")
        print(f"  Span: {pitch.timestamps[0]:.2f}s - {pitch.timestamps[-1]:.2f}s")

    spectrogram = result.spectrogram_data
    print("\nSpectrogram:")
    print(f"  Frames: {spectrogram.time_frame_count}")
    print(f"  Bins: {spectrogram.frequency_bin_count}")
    if spectrogram.time_frame_count:
        peak_bin = int(spectrogram.magnitudes.max(axis=0).argmax())
        print(f"  Strongest bin: {spectrogram.frequency_bins[peak_bin]:.1f} Hz")

    if isinstance(result.scale_settings, ScaleSettings):
        settings = result.scale_settings
        print("\nScale:")
        print(f"  {settings.start_note.note_name} -> {settings.end_note.note_name}, "
              f"{settings.tempo_seconds_per_note:.1f}s per note")

    print(f"\nSummary: {result.get_summary()}")


def parse_scale(
    start: Optional[int],
    end: Optional[int],
    tempo: float,
) -> Optional[ScaleSettings]:
    """Build validated ScaleSettings from CLI arguments, if given."""
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise ScaleSettingsError(
            "Both --scale-start and --scale-end are required for a scale",
            field_name="start_note" if start is None else "end_note",
        )

    try:
        settings = ScaleSettings(
            start_note=MIDINote(start),
            end_note=MIDINote(end),
            tempo_seconds_per_note=tempo,
        )
    except ValueError as e:
        raise ScaleSettingsError(str(e), field_name="start_note") from e

    settings.validate()
    return settings


def configure_logging(config: dict, verbose: bool = False) -> None:
    """Apply the "logging" config section; --verbose forces DEBUG."""
    section = config.get("logging", {})
    log_format = section.get("format", "text")
    setup_logging(
        level="DEBUG" if verbose else section.get("level", "INFO"),
        log_format=log_format,
        log_file=section.get("file"),
        colored=log_format == "text",
        console_enabled=True
    )


def analyze_file(
    audio_file: Path,
    config: dict,
    output_json: Optional[Path] = None,
    scale_settings: Optional[ScaleSettings] = None,
    show_progress: bool = False,
    verbose: bool = False,
) -> int:
    """
    Analyze a single audio file.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if not audio_file.exists():
        print(f"Error: Audio file not found: {audio_file}")
        return 1

    print(f"Analyzing: {audio_file}")

    def on_progress(value: float) -> None:
        print(f"\r  Progress: {value * 100:5.1f}%", end="", file=sys.stderr, flush=True)
        if value >= 1.0:
            print(file=sys.stderr)

    with create_analyze_recording_use_case(config) as use_case:
        try:
            recording_id = use_case.analyzer.loader.recording_id(audio_file)
            result = use_case.execute(
                recording_id,
                audio_file,
                scale_settings=scale_settings,
                on_progress=on_progress if show_progress else None,
            )
        except VocalAnalysisError as e:
            print(f"Error during analysis: {e}")
            if verbose:
                traceback.print_exc()
            return 1

    print_result(audio_file, result)

    if output_json:
        with open(output_json, 'w') as f:
            f.write(result.to_json(indent=2))
        print(f"\nJSON results saved to: {output_json}")

    return 0


def main(argv: Optional[list] = None) -> int:
    """Main entry point for vocal recording analysis."""
    parser = argparse.ArgumentParser(
        prog="vocalis-analyze",
        description="Extract the pitch contour and spectrogram of a vocal recording",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vocalis-analyze take1.wav
  vocalis-analyze --output take1.json take1.wav
  vocalis-analyze --scale-start 60 --scale-end 72 --progress take1.wav
        """
    )

    parser.add_argument(
        "input",
        type=Path,
        help="Audio file to analyze"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file"
    )
    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        default=None,
        help="Path to save JSON output"
    )
    parser.add_argument(
        "--scale-start",
        type=int,
        default=None,
        help="MIDI note the practice scale starts on (48-84)"
    )
    parser.add_argument(
        "--scale-end",
        type=int,
        default=None,
        help="MIDI note the practice scale ends on"
    )
    parser.add_argument(
        "--tempo",
        type=float,
        default=1.0,
        help="Seconds per scale note (1.0-3.0)"
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="Show analysis progress on stderr"
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"vocalis-analyze {__version__}"
    )

    args = parser.parse_args(argv)

    try:
        config = load_config(str(args.config) if args.config else None)
        scale_settings = parse_scale(args.scale_start, args.scale_end, args.tempo)
    except VocalAnalysisError as e:
        print(f"Error: {e}")
        return 1

    configure_logging(config, verbose=args.verbose)

    return analyze_file(
        audio_file=args.input,
        config=config,
        output_json=args.output,
        scale_settings=scale_settings,
        show_progress=args.progress,
        verbose=args.verbose,
    )


if __name__ == "__main__":
    sys.exit(main())
