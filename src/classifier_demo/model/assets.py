"""Model Asset Utilities.

This module provides utilities for downloading model artifacts and
loading class labels.

Functions:
    download_asset: Download a single file with progress reporting
    download_model_assets: Download the ONNX model and labels for a catalog entry
    is_asset_downloaded: Check if an asset is already present
    load_labels: Load class names from a JSON array or a text file
    label_for: Look up a class name by index

Author: Matthew Hong
"""

import json
import logging
import urllib.request
from pathlib import Path
from typing import Optional

from classifier_demo.config import ModelSpec

logger = logging.getLogger(__name__)


# =============================================================================
# Download Progress
# =============================================================================

class DownloadProgressBar:
    """Progress bar callback for urllib downloads.

    Displays download progress to console with percentage and MB transferred.
    """

    def __init__(self, label: str) -> None:
        """Initialize progress bar.

        Args:
            label: Name shown in front of the progress line
        """
        self.label = label
        self.downloaded = 0
        self.last_percent = -1

    def __call__(
        self,
        block_num: int,
        block_size: int,
        total_size: int,
    ) -> None:
        """Update progress bar.

        Args:
            block_num: Current block number
            block_size: Size of each block in bytes
            total_size: Total file size in bytes (-1 if unknown)
        """
        self.downloaded += block_size
        downloaded_mb = self.downloaded / (1024 * 1024)

        if total_size > 0:
            percent = min(100, int(self.downloaded * 100 / total_size))
            if percent != self.last_percent:
                self.last_percent = percent
                total_mb = total_size / (1024 * 1024)
                print(
                    f"\r  {self.label}: {percent:3d}% "
                    f"({downloaded_mb:.1f}/{total_mb:.1f} MB)",
                    end="",
                    flush=True,
                )
        else:
            print(f"\r  {self.label}: {downloaded_mb:.1f} MB", end="", flush=True)


# =============================================================================
# Download Functions
# =============================================================================

def is_asset_downloaded(path: Path) -> tuple[bool, str]:
    """Check if an asset file is present and non-empty.

    Args:
        path: Expected asset location

    Returns:
        Tuple of (is_ready, message)

    Example:
        >>> is_asset_downloaded(Path("assets/models/resnet18-v1-7.onnx"))
        (True, 'Found (44.65 MB)')
    """
    path = Path(path)

    if not path.exists():
        return False, "File not found"

    size = path.stat().st_size
    if size == 0:
        return False, "File is empty"

    return True, f"Found ({size / (1024 * 1024):.2f} MB)"


def download_asset(url: str, dest: Path, force: bool = False) -> Path:
    """Download a file. Idempotent: skips if already present.

    The file is written to a ".part" sibling first and renamed on
    success, so an interrupted download never looks complete.

    Args:
        url: Source URL
        dest: Destination file path
        force: Re-download even if exists

    Returns:
        Path to the downloaded file

    Raises:
        RuntimeError: If the download fails
    """
    dest = Path(dest)

    if not force:
        ready, msg = is_asset_downloaded(dest)
        if ready:
            logger.info(f"{dest.name} already downloaded: {msg}")
            return dest

    if not url:
        raise RuntimeError(f"No download URL configured for {dest.name}")

    dest.parent.mkdir(parents=True, exist_ok=True)
    part_path = dest.with_name(dest.name + ".part")

    logger.info(f"Downloading {dest.name}...")
    logger.info(f"  Source: {url}")
    logger.info(f"  Destination: {dest}")

    try:
        urllib.request.urlretrieve(url, part_path, DownloadProgressBar(dest.name))
        print()  # New line after progress bar
    except Exception as e:
        part_path.unlink(missing_ok=True)
        raise RuntimeError(f"Download failed: {e}") from e

    part_path.replace(dest)

    return dest


def download_model_assets(
    spec: ModelSpec,
    models_dir: Path,
    force: bool = False,
) -> dict[str, Path]:
    """Download the ONNX model and labels file for a catalog entry.

    Args:
        spec: Catalog entry
        models_dir: Destination directory
        force: Re-download even if present

    Returns:
        Dict with "model" and "labels" paths
    """
    models_dir = Path(models_dir)

    return {
        "model": download_asset(spec.url, models_dir / spec.file, force=force),
        "labels": download_asset(spec.labels_url, models_dir / spec.labels, force=force),
    }


# =============================================================================
# Labels
# =============================================================================

def load_labels(labels_file: Path, expected_count: Optional[int] = None) -> list[str]:
    """Load class labels.

    Two formats are accepted:
    - ".json": a JSON array of strings (imagenet-simple-labels.json)
    - anything else: one label per line

    Args:
        labels_file: Path to labels file
        expected_count: Required number of labels (skip check if None)

    Returns:
        List of class names indexed by class id

    Raises:
        FileNotFoundError: If labels file not found
        ValueError: If the file is malformed or has the wrong number of labels
    """
    labels_file = Path(labels_file)
    if not labels_file.exists():
        raise FileNotFoundError(
            f"Labels file not found: {labels_file}. "
            "Run 'python scripts/setup_assets.py' first."
        )

    if labels_file.suffix.lower() == ".json":
        with open(labels_file) as f:
            data = json.load(f)

        if not isinstance(data, list):
            raise ValueError(f"Expected a JSON array of labels in {labels_file}")

        labels = [str(label) for label in data]
    else:
        with open(labels_file) as f:
            labels = [line.strip() for line in f if line.strip()]

    if expected_count is not None and len(labels) != expected_count:
        raise ValueError(
            f"Expected {expected_count} labels, got {len(labels)}. "
            f"Check {labels_file} format."
        )

    logger.info(f"Loaded {len(labels)} class labels from {labels_file}")
    return labels


def label_for(labels: list[str], index: int) -> str:
    """Class name for index, or "class_<index>" if the label list is short."""
    if 0 <= index < len(labels):
        return labels[index]
    return f"class_{index}"
