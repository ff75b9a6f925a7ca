"""
Model Module - ONNX Runtime Sessions and Model Assets

This module provides:
- registry: Load and cache ONNX Runtime sessions per execution provider
- assets: Download model/label files and load class labels
"""

from classifier_demo.model.registry import (
    CPU_PROVIDER,
    ModelInfo,
    ModelRegistry,
    SessionConfig,
    TensorInfo,
    available_providers,
    get_default_registry,
    reset_default_registry,
    resolve_provider,
    short_provider_name,
)

from classifier_demo.model.assets import (
    download_asset,
    download_model_assets,
    is_asset_downloaded,
    label_for,
    load_labels,
)

__all__ = [
    # Registry
    "CPU_PROVIDER",
    "ModelInfo",
    "ModelRegistry",
    "SessionConfig",
    "TensorInfo",
    "available_providers",
    "get_default_registry",
    "reset_default_registry",
    "resolve_provider",
    "short_provider_name",
    # Assets
    "download_asset",
    "download_model_assets",
    "is_asset_downloaded",
    "label_for",
    "load_labels",
]
