"""
Setup Assets Script - Download the ONNX model and class labels.

This script is a thin CLI wrapper around classifier_demo.model.assets.
It is idempotent: existing files are skipped unless --force is used.

Usage:
    python scripts/setup_assets.py                  # Download default model + labels
    python scripts/setup_assets.py --model resnet18 # Download a specific catalog model
    python scripts/setup_assets.py --force          # Re-download even if present
    python scripts/setup_assets.py --verify         # Verify existing assets

Author: Matthew Hong
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from classifier_demo.config import ModelSpec, get_model_spec, get_settings
from classifier_demo.model.assets import (
    download_model_assets,
    is_asset_downloaded,
    load_labels,
)


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


# =============================================================================
# CLI Functions
# =============================================================================

def print_header(spec: ModelSpec, models_dir: Path) -> None:
    """Print script header."""
    print()
    print("=" * 60)
    print("Image Classification Demo - Asset Setup")
    print("=" * 60)
    print(f"  Model:            {spec.name}")
    print(f"  Models directory: {models_dir}")
    print()


def verify_assets(spec: ModelSpec, models_dir: Path) -> bool:
    """Verify existing model and labels files."""
    print("Verifying assets...")
    all_valid = True

    ready, msg = is_asset_downloaded(models_dir / spec.file)
    if ready:
        print(f"  ✓ Model {spec.file}: {msg}")
    else:
        print(f"  ✗ Model {spec.file}: {msg}")
        all_valid = False

    labels_path = models_dir / spec.labels
    ready, msg = is_asset_downloaded(labels_path)
    if not ready:
        print(f"  ✗ Labels {spec.labels}: {msg}")
        return False

    try:
        labels = load_labels(labels_path, expected_count=spec.num_classes or None)
        print(f"  ✓ Labels {spec.labels}: {len(labels)} classes")
    except ValueError as e:
        print(f"  ✗ Labels {spec.labels}: {e}")
        all_valid = False

    return all_valid


def download_assets(spec: ModelSpec, models_dir: Path, force: bool = False) -> bool:
    """Download model and labels."""
    print(f"→ {spec.name} assets")

    try:
        paths = download_model_assets(spec, models_dir, force=force)
    except RuntimeError as e:
        print(f"  ✗ Download failed: {e}")
        return False

    for kind, path in paths.items():
        _, msg = is_asset_downloaded(path)
        print(f"  ✓ {kind}: {path} {msg}")

    return True


# =============================================================================
# Main
# =============================================================================

def main() -> int:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Download the classification model and labels",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/setup_assets.py           # Download default model
  python scripts/setup_assets.py --verify  # Verify existing assets
  python scripts/setup_assets.py --force   # Re-download everything
        """,
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Re-download even if exists",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Verify existing assets without downloading",
    )
    parser.add_argument(
        "--model",
        default=settings.MODEL_NAME,
        help=f"Catalog model name (default: {settings.MODEL_NAME})",
    )
    parser.add_argument(
        "--models-dir",
        type=Path,
        default=Path(settings.MODELS_DIR),
        help=f"Models directory (default: {settings.MODELS_DIR})",
    )

    args = parser.parse_args()

    try:
        spec = get_model_spec(args.model, settings.CATALOG_PATH)
    except KeyError as e:
        print(f"✗ {e}")
        return 1

    print_header(spec, args.models_dir)

    if args.verify:
        success = verify_assets(spec, args.models_dir)
    else:
        success = download_assets(spec, args.models_dir, force=args.force)

    print()
    print("=" * 60)
    if success:
        print("✓ Complete")
    else:
        print("✗ Some operations failed")
    print("=" * 60)
    print()

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
