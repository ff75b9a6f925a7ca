"""
Low-Level Image Transforms

This module contains atomic transformation functions used by
ImagePreprocessor.

Functions:
    load_image: Load image file as RGB numpy array
    load_image_from_bytes: Decode image bytes as RGB numpy array
    resize_image: Resize to an exact width x height (no crop, no padding)
    imagenet_normalize: Apply ImageNet mean/std normalization (HWC)
    to_nchw_tensor: Normalize into a preallocated [1, 3, H, W] buffer

Constants:
    IMAGENET_MEAN: ImageNet dataset channel means [R, G, B]
    IMAGENET_STD: ImageNet dataset channel standard deviations [R, G, B]

Author: Matthew Hong
"""

from typing import Optional, Sequence

import cv2
import numpy as np

from classifier_demo.errors import ImageDecodeError, InvalidInputShape


# =============================================================================
# Constants
# =============================================================================

# ImageNet normalization constants
# Reference: https://pytorch.org/vision/stable/models.html
IMAGENET_MEAN: np.ndarray = np.array([0.485, 0.456, 0.406], dtype=np.float64)
IMAGENET_STD: np.ndarray = np.array([0.229, 0.224, 0.225], dtype=np.float64)
IMAGENET_MEAN.flags.writeable = False
IMAGENET_STD.flags.writeable = False

INTERPOLATION_FLAGS = {
    "nearest": cv2.INTER_NEAREST,
    "bilinear": cv2.INTER_LINEAR,
    "bicubic": cv2.INTER_CUBIC,
    "area": cv2.INTER_AREA,
}


# =============================================================================
# Image Loading
# =============================================================================

def load_image(image_path: str) -> np.ndarray:
    """
    Load an image file as an RGB numpy array.

    Uses OpenCV for decoding with explicit BGR to RGB conversion, so
    channel 0 is always red.

    Args:
        image_path: Path to image file (JPEG, PNG, etc.)

    Returns:
        RGB uint8 array with shape [H, W, 3]

    Raises:
        ImageDecodeError: If image cannot be loaded (file not found or corrupted)

    Example:
        >>> image = load_image("assets/images/cat.jpg")
        >>> image.dtype
        dtype('uint8')
    """
    bgr = cv2.imread(str(image_path), cv2.IMREAD_COLOR)

    if bgr is None:
        raise ImageDecodeError(f"Failed to load image: {image_path}")

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


def load_image_from_bytes(image_bytes: bytes) -> np.ndarray:
    """
    Decode image bytes as an RGB numpy array.

    Args:
        image_bytes: Raw image bytes (JPEG, PNG, etc.)

    Returns:
        RGB uint8 array with shape [H, W, 3]

    Raises:
        ImageDecodeError: If image cannot be decoded
    """
    if not image_bytes:
        raise ImageDecodeError("Failed to decode image from bytes: empty input")

    nparr = np.frombuffer(image_bytes, np.uint8)
    bgr = cv2.imdecode(nparr, cv2.IMREAD_COLOR)

    if bgr is None:
        raise ImageDecodeError("Failed to decode image from bytes")

    return cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)


# =============================================================================
# Geometric Transforms
# =============================================================================

def resize_image(
    image: np.ndarray,
    width: int,
    height: int,
    interpolation: int = cv2.INTER_LINEAR,
) -> np.ndarray:
    """
    Resize image to exactly width x height.

    Aspect ratio is not preserved and nothing is cropped or padded. An
    image that already has the target size is returned unchanged.

    Args:
        image: RGB uint8 array with shape [H, W, 3]
        width: Target width in pixels
        height: Target height in pixels
        interpolation: OpenCV interpolation flag (default: bilinear)

    Returns:
        RGB uint8 array with shape [height, width, 3]

    Example:
        >>> image = np.zeros((1080, 1920, 3), dtype=np.uint8)
        >>> resize_image(image, 224, 224).shape
        (224, 224, 3)
    """
    if image.shape[0] == height and image.shape[1] == width:
        return image

    return cv2.resize(image, (width, height), interpolation=interpolation)


# =============================================================================
# Intensity Transforms
# =============================================================================

def imagenet_normalize(
    image: np.ndarray,
    mean: Sequence[float] = IMAGENET_MEAN,
    std: Sequence[float] = IMAGENET_STD,
) -> np.ndarray:
    """
    Apply ImageNet normalization to an image, keeping HWC layout.

    Formula: normalized = (pixel / 255.0 - mean) / std

    Args:
        image: RGB uint8 array with shape [H, W, 3]
        mean: Channel means [R, G, B]
        std: Channel standard deviations [R, G, B]

    Returns:
        Normalized float32 array with shape [H, W, 3]
        Value range approximately [-2.1, 2.6]
    """
    normalized = image.astype(np.float64) / 255.0
    normalized = (normalized - np.asarray(mean, dtype=np.float64)) / np.asarray(
        std, dtype=np.float64
    )

    return normalized.astype(np.float32)


def to_nchw_tensor(
    image: np.ndarray,
    mean: Sequence[float] = IMAGENET_MEAN,
    std: Sequence[float] = IMAGENET_STD,
    out: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Normalize an RGB image into a channel-major [1, 3, H, W] float32 tensor.

    Element (c, y, x) of the result is (image[y, x, c] / 255 - mean[c]) / std[c],
    stored at flat index c*H*W + y*W + x. Arithmetic is done in float64 in
    a single reused scratch plane and rounded to float32 once on write.

    Args:
        image: RGB uint8 array with shape [H, W, 3]
        mean: Channel means [R, G, B]
        std: Channel standard deviations [R, G, B]
        out: Optional preallocated float32 buffer of shape [1, 3, H, W]

    Returns:
        The filled buffer (``out`` when given)

    Raises:
        InvalidInputShape: If ``out`` has the wrong shape or dtype
    """
    height, width = image.shape[:2]
    expected_shape = (1, 3, height, width)

    if out is None:
        out = np.empty(expected_shape, dtype=np.float32)
    elif out.shape != expected_shape or out.dtype != np.float32:
        raise InvalidInputShape(
            f"Output buffer must be float32 {expected_shape}, "
            f"got {out.dtype} {out.shape}"
        )

    scratch = np.empty((height, width), dtype=np.float64)

    for c in range(3):
        np.divide(image[:, :, c], 255.0, out=scratch)
        scratch -= float(mean[c])
        scratch /= float(std[c])
        out[0, c] = scratch

    return out
