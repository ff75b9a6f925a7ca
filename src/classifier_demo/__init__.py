"""
Image Classification Demo - ONNX Runtime Classifier Pipeline

This package classifies a single image with a pretrained ImageNet model:

- processing: Image preprocessing (resize + ImageNet normalization into
  [1, 3, H, W]) and score postprocessing (softmax + top-k)
- model: ONNX Runtime session registry and model/label assets
- session: ClassifierSession, the stateful pipeline behind the front ends
- api: FastAPI front end
"""

from classifier_demo.errors import (
    ClassifierError,
    EmptyInputError,
    ImageDecodeError,
    InvalidInputShape,
    NumericInstability,
    UnknownProviderError,
)
from classifier_demo.processing import (
    ImagePreprocessor,
    ScorePostprocessor,
    imagenet_normalize,
    softmax,
)

__all__ = [
    "ClassifierError",
    "EmptyInputError",
    "ImageDecodeError",
    "InvalidInputShape",
    "NumericInstability",
    "UnknownProviderError",
    "ImagePreprocessor",
    "ScorePostprocessor",
    "imagenet_normalize",
    "softmax",
]

__version__ = "0.1.0"
