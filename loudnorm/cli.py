"""Command line front end normalizing one audio file into another."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .analysis import amplitude_to_db, to_lufs
from .audio import SoundFileSink, SoundFileSource
from .errors import NormalizationError
from .normalization import Mode, NormalizationSettings, Normalizer
from .progress import NullProgress, TqdmProgress

logger = logging.getLogger("loudnorm")


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the command line argument parser.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="loudnorm",
        description="Normalize the loudness of an audio file",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("input", type=Path, help="Audio file to normalize")
    parser.add_argument(
        "output",
        type=Path,
        nargs="?",
        help="Destination file, written as 32-bit float",
    )

    parser.add_argument(
        "--mode",
        type=str,
        choices=[mode.value for mode in Mode],
        default=Mode.LUFS.value,
        help="Loudness measurement algorithm",
    )

    parser.add_argument(
        "--target",
        type=float,
        default=-23.0,
        help="Target loudness in dB; LUFS for lufs mode, dBFS for rms mode",
    )

    parser.add_argument(
        "-c",
        "--channel-independent",
        action="store_true",
        help="Analyze and gain every channel independently",
    )

    parser.add_argument(
        "-s",
        "--strict-ebur128",
        action="store_true",
        help="Do not treat single-channel loudness as dual mono",
    )

    parser.add_argument(
        "--analyze-only",
        action="store_true",
        help="Print the measured loudness without writing output",
    )

    parser.add_argument(
        "--no-progress", action="store_true", help="Hide the progress bar"
    )

    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    return parser


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration.

    Args:
        verbose: Enable verbose logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_settings(args: argparse.Namespace) -> NormalizationSettings:
    """Create normalization settings from command line arguments."""
    return NormalizationSettings(
        mode=Mode(args.mode),
        target=args.target,
        channel_independent=args.channel_independent,
        strict_ebur128=args.strict_ebur128,
    )


def format_level(value: float, mode: Mode) -> str:
    if mode is Mode.LUFS:
        return f"{to_lufs(value):.2f} LUFS"
    return f"{amplitude_to_db(value):.2f} dBFS"


def run_analysis(args: argparse.Namespace, settings: NormalizationSettings) -> int:
    with SoundFileSource(args.input) as source:
        measurement = Normalizer(settings).measure(source)

    for channel, value in enumerate(measurement.values):
        label = f"Channel {channel}" if settings.channel_independent else "All channels"
        print(f"{label}: {format_level(value, settings.mode)}")
    return 0


def run_normalization(args: argparse.Namespace, settings: NormalizationSettings) -> int:
    progress = NullProgress() if args.no_progress else TqdmProgress()

    with SoundFileSource(args.input) as source:
        sink = SoundFileSink(args.output, source.spec)
        completed = False
        try:
            result = Normalizer(settings, progress).normalize(source, sink)
            completed = True
        finally:
            if not completed:
                sink.close()
                args.output.unlink(missing_ok=True)

    logger.info("Wrote %d frames to %s", result.frames_written, args.output)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not args.analyze_only and args.output is None:
        parser.error("an output file is required unless --analyze-only is given")

    settings = create_settings(args)

    try:
        if args.analyze_only:
            return run_analysis(args, settings)
        return run_normalization(args, settings)

    except NormalizationError as e:
        logger.error("Normalization failed: %s", e)
        if args.verbose:
            logger.exception("Details")
        return 1


if __name__ == "__main__":
    sys.exit(main())
