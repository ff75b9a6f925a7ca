"""
Classify Script - Run the demo pipeline from the command line.

Prints the same rows the HTTP API returns: model info with --info,
otherwise the prediction summary followed by the top-k classes.

Usage:
    python scripts/classify.py                        # Classify the bundled image
    python scripts/classify.py --image photo.jpg      # Classify another image
    python scripts/classify.py --provider CUDA        # Pick an execution provider
    python scripts/classify.py --info                 # Show model metadata

Author: Matthew Hong
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from classifier_demo.config import get_settings
from classifier_demo.display import DisplayRow
from classifier_demo.errors import ClassifierError
from classifier_demo.session import ClassifierSession


logging.basicConfig(
    level=logging.WARNING,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


def print_rows(rows: list[DisplayRow]) -> None:
    """Print rows as a two-column table."""
    width = max((len(row.title) for row in rows), default=0)
    for row in rows:
        print(f"  {row.title:<{width}}  {row.value}")


def positive_int(value: str) -> int:
    """argparse type for arguments that must be >= 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {number}")
    return number


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Classify an image with the demo model")
    parser.add_argument("--image", type=Path, default=None, help="Image to classify")
    parser.add_argument("--provider", default=None, help='Execution provider, e.g. "CPU"')
    parser.add_argument("--info", action="store_true", help="Print model info and exit")
    parser.add_argument("--top-k", type=positive_int, default=None, help="Number of ranked classes")
    parser.add_argument("--list-providers", action="store_true", help="List providers and exit")

    args = parser.parse_args(argv)

    overrides = {}
    if args.provider:
        overrides["PROVIDER"] = args.provider
    if args.top_k is not None:
        overrides["TOP_K"] = args.top_k
    if args.image:
        overrides["IMAGE_PATH"] = str(args.image)

    settings = get_settings().model_copy(update=overrides)

    try:
        session = ClassifierSession(settings)

        if args.list_providers:
            for provider in session.available_providers:
                marker = "*" if provider == session.selected_provider else " "
                print(f"  {marker} {provider}")
            return 0

        if args.info:
            print_rows(session.model_info_rows())
            return 0

        report = session.predict()

    except (ClassifierError, FileNotFoundError, KeyError) as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    print_rows(report.rows())
    print()
    print("  Top classes:")
    for prediction, label in zip(report.result.top_k, report.top_k_labels):
        print(f"    {prediction.index:>5}  {prediction.probability:.4f}  {label}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
