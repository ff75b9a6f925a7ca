"""
Pytest Fixtures - Shared Test Fixtures for the Classification Demo

This module provides reusable fixtures for all test modules.

Fixtures:
    sample_image: Sample RGB image (1080x1920) for testing
    sample_crop: Sample RGB image (100x150) for testing
    sample_crop_small: Small RGB image (10x10) for edge case testing
    gray_image: Uniform gray 2x2 image (R=G=B=128)
    tiny_model_dir: Directory holding a 3-class ONNX model, labels and catalog
    demo_settings: Settings pointing at tiny_model_dir

Author: Matthew Hong
"""

import json
from pathlib import Path

import cv2
import numpy as np
import pytest
import yaml

from classifier_demo.config import Settings, get_catalog


TINY_SIZE = 4
TINY_LABELS = ["red", "green", "blue"]


# =============================================================================
# Image Fixtures
# =============================================================================

@pytest.fixture
def sample_image() -> np.ndarray:
    """
    Sample 1080p RGB image for testing.

    Returns:
        RGB uint8 array with shape [1080, 1920, 3]
    """
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, (1080, 1920, 3), dtype=np.uint8)


@pytest.fixture
def sample_crop() -> np.ndarray:
    """
    Sample RGB image with a non-square aspect ratio.

    Returns:
        RGB uint8 array with shape [100, 150, 3]
    """
    rng = np.random.default_rng(45)
    return rng.integers(0, 256, (100, 150, 3), dtype=np.uint8)


@pytest.fixture
def sample_crop_small() -> np.ndarray:
    """
    Small RGB image for edge case testing.

    Returns:
        RGB uint8 array with shape [10, 10, 3]
    """
    rng = np.random.default_rng(46)
    return rng.integers(0, 256, (10, 10, 3), dtype=np.uint8)


@pytest.fixture
def gray_image() -> np.ndarray:
    """Uniform gray 2x2 image with R=G=B=128."""
    return np.full((2, 2, 3), 128, dtype=np.uint8)


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def classifier_input_shape() -> tuple[int, int, int, int]:
    """Expected ResNet18 input tensor shape."""
    return (1, 3, 224, 224)


@pytest.fixture
def imagenet_mean() -> np.ndarray:
    """ImageNet channel means."""
    return np.array([0.485, 0.456, 0.406], dtype=np.float64)


@pytest.fixture
def imagenet_std() -> np.ndarray:
    """ImageNet channel standard deviations."""
    return np.array([0.229, 0.224, 0.225], dtype=np.float64)


@pytest.fixture(autouse=True)
def clear_catalog_cache():
    """Clear catalog cache before and after each test."""
    get_catalog.cache_clear()
    yield
    get_catalog.cache_clear()


# =============================================================================
# ONNX Model Fixtures
# =============================================================================

def build_tiny_classifier(model_path: Path) -> Path:
    """
    Create a minimal 3-class "classifier" ONNX model.

    GlobalAveragePool + Flatten: [1, 3, 4, 4] -> [1, 3], so the logit of
    class c is the mean normalized value of channel c. Uses IR version 9
    for onnxruntime compatibility.
    """
    onnx = pytest.importorskip("onnx")
    from onnx import TensorProto, helper

    x = helper.make_tensor_value_info("data", TensorProto.FLOAT, [1, 3, TINY_SIZE, TINY_SIZE])
    y = helper.make_tensor_value_info("logits", TensorProto.FLOAT, [1, 3])

    nodes = [
        helper.make_node("GlobalAveragePool", ["data"], ["pooled"]),
        helper.make_node("Flatten", ["pooled"], ["logits"], axis=1),
    ]

    graph = helper.make_graph(nodes, "tiny_classifier", [x], [y])
    model = helper.make_model(
        graph,
        opset_imports=[helper.make_opsetid("", 17)],
        producer_name="classifier-demo-tests",
    )
    model.ir_version = 9
    helper.set_model_props(model, {"license": "MIT", "empty_note": ""})

    onnx.save(model, str(model_path))
    return model_path


@pytest.fixture
def tiny_model_dir(tmp_path: Path) -> Path:
    """
    Directory with tiny.onnx, tiny-labels.json, gray.png and models.yaml.
    """
    build_tiny_classifier(tmp_path / "tiny.onnx")

    (tmp_path / "tiny-labels.json").write_text(json.dumps(TINY_LABELS))

    gray = np.full((8, 8, 3), 128, dtype=np.uint8)
    cv2.imwrite(str(tmp_path / "gray.png"), gray)

    catalog = {
        "metadata": {"title": "Test catalog"},
        "default_model": "tiny",
        "models": {
            "tiny": {
                "file": "tiny.onnx",
                "url": "",
                "labels": "tiny-labels.json",
                "labels_url": "",
                "num_classes": 3,
                "input": {"name": "data", "shape": [1, 3, TINY_SIZE, TINY_SIZE], "dtype": "float32"},
                "preprocessing": {
                    "resize": [TINY_SIZE, TINY_SIZE],
                    "interpolation": "bilinear",
                    "mean": [0.485, 0.456, 0.406],
                    "std": [0.229, 0.224, 0.225],
                },
            }
        },
        "onnx_runtime": {"intra_op_num_threads": 1, "inter_op_num_threads": 1},
    }
    (tmp_path / "models.yaml").write_text(yaml.safe_dump(catalog))

    return tmp_path


@pytest.fixture
def demo_settings(tiny_model_dir: Path) -> Settings:
    """Settings serving the tiny model from tiny_model_dir."""
    return Settings(
        MODEL_NAME="tiny",
        MODELS_DIR=str(tiny_model_dir),
        IMAGE_PATH=str(tiny_model_dir / "gray.png"),
        CATALOG_PATH=str(tiny_model_dir / "models.yaml"),
        TOP_K=3,
    )


@pytest.fixture
def gray_logits() -> np.ndarray:
    """Logits the tiny model produces for a uniform R=G=B=128 image."""
    value = 128 / 255.0
    return np.array(
        [
            (value - 0.485) / 0.229,
            (value - 0.456) / 0.224,
            (value - 0.406) / 0.225,
        ]
    )
