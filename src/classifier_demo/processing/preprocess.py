"""
Image Preprocessing Pipeline

This module provides the ImagePreprocessor class for preparing decoded
images for ImageNet classifiers (ResNet18 and friends).

Pipeline:
    1. Resize image to exactly W x H (bilinear interpolation by default)
    2. Scale each channel to [0, 1] by dividing by 255
    3. Apply ImageNet normalization (subtract mean, divide by std)
    4. Write channel-major into a [1, 3, H, W] float32 buffer

The channel-major layout (all R, then all G, then all B, each row-major)
is what the classifier was trained on. Reordering it is a correctness bug.

Author: Matthew Hong
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import cv2
import numpy as np

from classifier_demo.errors import InvalidInputShape
from classifier_demo.processing.transforms import (
    IMAGENET_MEAN,
    IMAGENET_STD,
    INTERPOLATION_FLAGS,
    resize_image,
    to_nchw_tensor,
)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_INPUT_SIZE: int = 224
"""Standard ImageNet classifier input dimension (square)."""


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class PreprocessResult:
    """
    Result container for image preprocessing.

    Attributes:
        tensor: Preprocessed image tensor [1, 3, H, W], float32, ImageNet normalized
        original_shape: (height, width) of input image
    """

    tensor: np.ndarray
    original_shape: Tuple[int, int]


# =============================================================================
# Preprocessor Class
# =============================================================================

class ImagePreprocessor:
    """
    Preprocessor for ImageNet classification models.

    Transforms decoded RGB images into tensors suitable for ONNX Runtime
    inference.

    Attributes:
        width: Target input width (default: 224)
        height: Target input height (default: 224)
        mean: Channel means for normalization
        std: Channel standard deviations for normalization
        interpolation: OpenCV resize flag

    Example:
        >>> preprocessor = ImagePreprocessor()
        >>> image = np.random.randint(0, 256, (100, 150, 3), dtype=np.uint8)
        >>> result = preprocessor(image)
        >>> result.tensor.shape
        (1, 3, 224, 224)
        >>> result.tensor.dtype
        dtype('float32')
    """

    def __init__(
        self,
        width: int = DEFAULT_INPUT_SIZE,
        height: int = DEFAULT_INPUT_SIZE,
        mean: Sequence[float] = IMAGENET_MEAN,
        std: Sequence[float] = IMAGENET_STD,
        interpolation: int = cv2.INTER_LINEAR,
    ) -> None:
        """
        Initialize ImagePreprocessor.

        Args:
            width: Target width for model input (default: 224)
            height: Target height for model input (default: 224)
            mean: Channel means for normalization (default: ImageNet)
            std: Channel standard deviations for normalization (default: ImageNet)
            interpolation: OpenCV interpolation flag (default: bilinear)

        Raises:
            ValueError: If sizes are not positive or mean/std are malformed
        """
        if width < 1 or height < 1:
            raise ValueError(f"Invalid target size: {width}x{height}")

        if len(mean) != 3 or len(std) != 3:
            raise ValueError("mean and std must each have 3 values (R, G, B)")

        if any(float(s) <= 0 for s in std):
            raise ValueError(f"std values must be positive, got {list(std)}")

        self.width = width
        self.height = height
        self.mean = np.asarray(mean, dtype=np.float64)
        self.std = np.asarray(std, dtype=np.float64)
        self.interpolation = interpolation

    @classmethod
    def from_model_spec(cls, spec) -> "ImagePreprocessor":
        """
        Build a preprocessor from a catalog ModelSpec.

        Args:
            spec: classifier_demo.config.ModelSpec

        Returns:
            ImagePreprocessor matching the model's preprocessing section
        """
        return cls(
            width=spec.width,
            height=spec.height,
            mean=spec.mean,
            std=spec.std,
            interpolation=INTERPOLATION_FLAGS[spec.interpolation],
        )

    def __call__(self, image: np.ndarray) -> PreprocessResult:
        """
        Preprocess image for classification inference.

        Args:
            image: RGB uint8 array with shape [H, W, 3]

        Returns:
            PreprocessResult containing tensor and metadata

        Raises:
            InvalidInputShape: If image has invalid shape or dtype
        """
        return self.preprocess(image)

    def preprocess(self, image: np.ndarray) -> PreprocessResult:
        """
        Preprocess image for classification inference.

        Args:
            image: RGB uint8 array with shape [H, W, 3]

        Returns:
            PreprocessResult containing:
                - tensor: [1, 3, H, W] float32, ImageNet normalized, C-contiguous
                - original_shape: Input image dimensions

        Raises:
            InvalidInputShape: If image has invalid shape or dtype
        """
        self._validate_input(image)

        original_shape = (image.shape[0], image.shape[1])

        resized = resize_image(image, self.width, self.height, self.interpolation)
        tensor = to_nchw_tensor(resized, self.mean, self.std)

        return PreprocessResult(
            tensor=tensor,
            original_shape=original_shape,
        )

    def preprocess_batch(self, images: list[np.ndarray]) -> np.ndarray:
        """
        Preprocess multiple images for batched inference.

        Args:
            images: List of RGB uint8 arrays with shape [H, W, 3]

        Returns:
            Batched tensor with shape [N, 3, H, W], ImageNet normalized

        Raises:
            InvalidInputShape: If any image has invalid shape or dtype
        """
        batch = np.empty((len(images), 3, self.height, self.width), dtype=np.float32)

        for i, image in enumerate(images):
            self._validate_input(image)
            resized = resize_image(image, self.width, self.height, self.interpolation)
            to_nchw_tensor(resized, self.mean, self.std, out=batch[i : i + 1])

        return batch

    @property
    def input_shape(self) -> Tuple[int, int, int, int]:
        """Expected model input shape (batch, channels, height, width)."""
        return (1, 3, self.height, self.width)

    def _validate_input(self, image: np.ndarray) -> None:
        """
        Validate input image.

        Raises:
            InvalidInputShape: If image has invalid shape or dtype
        """
        if not isinstance(image, np.ndarray):
            raise InvalidInputShape(f"Expected numpy array, got {type(image)}")

        if image.ndim != 3:
            raise InvalidInputShape(f"Expected 3D array [H, W, C], got {image.ndim}D")

        if image.shape[2] != 3:
            raise InvalidInputShape(f"Expected 3 channels, got {image.shape[2]}")

        if image.dtype != np.uint8:
            raise InvalidInputShape(f"Expected uint8 dtype, got {image.dtype}")

        if image.shape[0] < 1 or image.shape[1] < 1:
            raise InvalidInputShape(f"Invalid image dimensions: {image.shape[:2]}")
