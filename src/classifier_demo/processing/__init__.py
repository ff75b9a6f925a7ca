"""
Processing Module - Classifier Input and Output Transforms

This module provides the numeric core of the classification pipeline:
- Preprocessing: resize + ImageNet normalization into a [1, 3, H, W] tensor
- Postprocessing: numerically stable softmax + top-1 / top-k extraction

Both stages are pure functions of their inputs.
"""

from classifier_demo.processing.transforms import (
    IMAGENET_MEAN,
    IMAGENET_STD,
    imagenet_normalize,
    load_image,
    load_image_from_bytes,
    resize_image,
    to_nchw_tensor,
)

from classifier_demo.processing.preprocess import ImagePreprocessor, PreprocessResult
from classifier_demo.processing.postprocess import (
    ClassificationResult,
    Prediction,
    ScorePostprocessor,
    softmax,
    top1,
    top_k,
)

__all__ = [
    # Constants
    "IMAGENET_MEAN",
    "IMAGENET_STD",
    # Low-level transforms
    "imagenet_normalize",
    "load_image",
    "load_image_from_bytes",
    "resize_image",
    "to_nchw_tensor",
    # Preprocessing
    "ImagePreprocessor",
    "PreprocessResult",
    # Postprocessing
    "ClassificationResult",
    "Prediction",
    "ScorePostprocessor",
    "softmax",
    "top1",
    "top_k",
]
