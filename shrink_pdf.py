#!/usr/bin/env python3
"""
shrink_pdf.py - Local PDF compression CLI.

Lossless mode tries every backend and keeps the smallest result.
Extreme mode rasterizes every page (text becomes unselectable).

Usage:
    python shrink_pdf.py input.pdf
    python shrink_pdf.py input.pdf -o small.pdf --keep-all ./candidates/
    python shrink_pdf.py input.pdf --mode extreme -a 80
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent to path when running as script
if __name__ == "__main__":
    sys.path.insert(0, str(Path(__file__).parent))

from pdf_shrink import (
    CompressionMode,
    CompressionRequest,
    CompressionSettings,
    Compressor,
    ProgressEvent,
    format_bytes,
    suggested_filename,
)
from pdf_shrink.config import DEFAULT_AGGRESSIVENESS


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S"
    )


def parse_args(argv=None):
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Compress a PDF locally with several backends.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python shrink_pdf.py scan.pdf
  python shrink_pdf.py scan.pdf -o compressed.pdf
  python shrink_pdf.py scan.pdf --mode extreme -a 90

Lossless mode keeps text and vectors intact; expect modest savings.
Extreme mode turns every page into a low-resolution JPEG.
"""
    )

    parser.add_argument(
        "input",
        type=Path,
        help="Input PDF file"
    )

    parser.add_argument(
        "-o", "--output",
        type=Path,
        help="Output file (default: <input>_compressed.pdf)"
    )

    parser.add_argument(
        "-m", "--mode",
        choices=[m.value for m in CompressionMode],
        default=CompressionMode.STRUCTURAL.value,
        help="lossless (default) or extreme"
    )

    parser.add_argument(
        "-a", "--aggressiveness",
        type=int,
        default=DEFAULT_AGGRESSIVENESS,
        help=f"Extreme mode only: 0-99, higher = smaller (default: {DEFAULT_AGGRESSIVENESS})"
    )

    parser.add_argument(
        "--keep-all",
        type=Path,
        metavar="DIR",
        help="Also write every successful backend output to DIR"
    )

    parser.add_argument(
        "-f", "--force",
        action="store_true",
        help="Write the output even if it is not smaller than the input"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    return parser.parse_args(argv)


def print_progress(event: ProgressEvent):
    """Print progress bar."""
    width = 40
    filled = int(width * event.percent / 100)
    bar = "=" * filled + "-" * (width - filled)
    print(f"\r[{bar}] {event.percent:3d}% {event.label[:30]:<30}", end="", file=sys.stderr)
    if event.percent >= 100:
        print(file=sys.stderr)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    input_path = args.input
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    mode = CompressionMode(args.mode)
    try:
        request = CompressionRequest(
            data=input_path.read_bytes(),
            mode=mode,
            aggressiveness=args.aggressiveness,
            progress_sink=print_progress
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    compressor = Compressor(settings=CompressionSettings.from_env())
    outcome = compressor.compress(request)

    print(f"\n{outcome.summary()}")

    if not outcome.success:
        return 1

    if args.keep_all:
        args.keep_all.mkdir(parents=True, exist_ok=True)
        for result in outcome.ordered_results:
            if result.ok:
                candidate = args.keep_all / f"{input_path.stem}_{result.backend_id}.pdf"
                candidate.write_bytes(result.data)
                print(f"Wrote {candidate} ({format_bytes(result.size)})")

    if not outcome.is_smaller and not args.force:
        print("Output is not smaller than the input; keeping the original (use --force to write anyway)")
        return 0

    output_path = args.output or input_path.with_name(suggested_filename(input_path.name))
    output_path.write_bytes(outcome.best.data)
    print(f"Wrote {output_path} ({format_bytes(outcome.best.size)}, best: {outcome.best.label})")
    return 0


if __name__ == "__main__":
    sys.exit(main())
