"""
Configuration Module

Two layers of configuration:

- Settings: environment variables (and .env) via pydantic-settings, for
  deployment concerns such as paths, log level and provider choice.
- Model catalog: models.yaml, the single source of truth for model
  artifacts, preprocessing constants and ONNX Runtime thread settings.

Usage:
    from classifier_demo.config import get_settings, get_model_spec

    settings = get_settings()
    spec = get_model_spec(settings.MODEL_NAME)
    spec.input_size
    (224, 224)

Author: Matthew Hong
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# Constants
# =============================================================================

DEFAULT_CATALOG_PATH = Path(__file__).parent / "models.yaml"

INTERPOLATIONS = ("nearest", "bilinear", "bicubic", "area")


# =============================================================================
# Environment Settings
# =============================================================================

class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Attributes:
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        PORT: HTTP server port
        MODEL_NAME: Catalog entry to serve
        MODELS_DIR: Directory holding the ONNX model and labels files
        IMAGE_PATH: Bundled image classified when no upload is given
        PROVIDER: Execution provider (e.g. "CPU"); first available if unset
        TOP_K: Number of ranked predictions to report
        CATALOG_PATH: Alternative models.yaml (packaged catalog if unset)
    """

    LOG_LEVEL: str = "INFO"
    PORT: int = 8000
    MODEL_NAME: str = "resnet18"
    MODELS_DIR: str = "./assets/models"
    IMAGE_PATH: str = "./assets/images/cat.jpg"
    PROVIDER: Optional[str] = None
    TOP_K: int = 5
    CATALOG_PATH: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance (singleton pattern).

    Returns:
        Settings instance loaded from environment
    """
    return Settings()


# =============================================================================
# Model Catalog Loading
# =============================================================================

@lru_cache(maxsize=4)
def get_catalog(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load and cache the model catalog.

    Args:
        path: Catalog file to read (default: packaged models.yaml)

    Returns:
        Complete catalog dictionary

    Raises:
        FileNotFoundError: If the catalog file does not exist
        yaml.YAMLError: If YAML parsing fails

    Example:
        >>> get_catalog()["default_model"]
        'resnet18'
    """
    catalog_path = Path(path) if path else DEFAULT_CATALOG_PATH

    if not catalog_path.exists():
        raise FileNotFoundError(
            f"Model catalog not found: {catalog_path}\n"
            f"Expected location: {catalog_path.absolute()}"
        )

    with open(catalog_path, "r") as f:
        return yaml.safe_load(f) or {}


def reload_catalog(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Force reload of the catalog (clears cache).

    Returns:
        Freshly loaded catalog dictionary
    """
    get_catalog.cache_clear()
    return get_catalog(path)


# =============================================================================
# Model Specifications
# =============================================================================

@dataclass(frozen=True)
class ModelSpec:
    """
    Catalog entry for one classification model.

    Attributes:
        name: Catalog key (e.g. "resnet18")
        file: ONNX file name inside the models directory
        url: Download location of the ONNX file
        labels: Labels file name inside the models directory
        labels_url: Download location of the labels file
        num_classes: Length of the model's logit vector
        input_name: Name of the model's image input
        input_shape: Expected input shape [1, 3, H, W]
        width: Resize target width
        height: Resize target height
        interpolation: Resize filter name
        mean: Per-channel normalization means [R, G, B]
        std: Per-channel normalization standard deviations [R, G, B]
    """

    name: str
    file: str
    url: str
    labels: str
    labels_url: str
    num_classes: int
    input_name: str
    input_shape: Tuple[int, ...]
    width: int
    height: int
    interpolation: str
    mean: Tuple[float, float, float]
    std: Tuple[float, float, float]

    @property
    def input_size(self) -> Tuple[int, int]:
        """Resize target as (width, height)."""
        return (self.width, self.height)

    @classmethod
    def from_dict(cls, name: str, data: Dict[str, Any]) -> "ModelSpec":
        """Build a ModelSpec from a raw catalog entry."""
        model_input = data.get("input", {})
        preprocessing = data.get("preprocessing", {})
        width, height = preprocessing.get("resize", [224, 224])

        return cls(
            name=name,
            file=data.get("file", f"{name}.onnx"),
            url=data.get("url", ""),
            labels=data.get("labels", ""),
            labels_url=data.get("labels_url", ""),
            num_classes=int(data.get("num_classes", 0)),
            input_name=model_input.get("name", "input"),
            input_shape=tuple(model_input.get("shape", [1, 3, height, width])),
            width=int(width),
            height=int(height),
            interpolation=preprocessing.get("interpolation", "bilinear"),
            mean=tuple(float(v) for v in preprocessing.get("mean", [0.485, 0.456, 0.406])),
            std=tuple(float(v) for v in preprocessing.get("std", [0.229, 0.224, 0.225])),
        )


def get_model_names(path: Optional[str] = None) -> List[str]:
    """
    Get list of all catalog model names.

    Example:
        >>> get_model_names()
        ['resnet18']
    """
    return list(get_catalog(path).get("models", {}).keys())


def get_model_spec(model_name: Optional[str] = None, path: Optional[str] = None) -> ModelSpec:
    """
    Get the catalog entry for a model.

    Args:
        model_name: Model identifier (default: catalog default_model)
        path: Catalog file to read (default: packaged models.yaml)

    Returns:
        ModelSpec for the model

    Raises:
        KeyError: If the model is not in the catalog

    Example:
        >>> spec = get_model_spec("resnet18")
        >>> spec.input_shape
        (1, 3, 224, 224)
    """
    catalog = get_catalog(path)
    models = catalog.get("models", {})
    name = model_name or catalog.get("default_model")

    if name not in models:
        available = list(models.keys())
        raise KeyError(
            f"Model '{name}' not found in catalog. "
            f"Available models: {available}"
        )

    return ModelSpec.from_dict(name, models[name])


def get_onnx_runtime_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Get ONNX Runtime session settings.

    Example:
        >>> get_onnx_runtime_config()["intra_op_num_threads"]
        2
    """
    catalog = get_catalog(path)

    if "onnx_runtime" not in catalog:
        available = list(catalog.keys())
        raise KeyError(
            f"Section 'onnx_runtime' not found. Available: {available}"
        )

    return catalog["onnx_runtime"]


# =============================================================================
# Validation
# =============================================================================

def validate_catalog(path: Optional[str] = None) -> List[str]:
    """
    Validate the model catalog.

    Returns:
        List of validation error messages (empty if valid)

    Example:
        >>> validate_catalog()
        []
    """
    errors = []

    try:
        catalog = get_catalog(path)
    except (OSError, yaml.YAMLError) as e:
        return [f"Failed to load catalog: {e}"]

    for section in ["models", "onnx_runtime"]:
        if section not in catalog:
            errors.append(f"Missing required section: {section}")

    models = catalog.get("models", {})
    default_model = catalog.get("default_model")
    if default_model is not None and default_model not in models:
        errors.append(f"default_model '{default_model}' is not a catalog model")

    for model_name, model in models.items():
        for field in ["file", "labels", "num_classes", "input", "preprocessing"]:
            if field not in model:
                errors.append(f"Model {model_name} missing field: {field}")

        preprocessing = model.get("preprocessing", {})
        for key in ["mean", "std"]:
            values = preprocessing.get(key)
            if values is not None and len(values) != 3:
                errors.append(f"Model {model_name} {key} must have 3 values")

        std = preprocessing.get("std") or []
        if any(float(v) <= 0 for v in std):
            errors.append(f"Model {model_name} std values must be positive")

        interpolation = preprocessing.get("interpolation", "bilinear")
        if interpolation not in INTERPOLATIONS:
            errors.append(
                f"Model {model_name} interpolation '{interpolation}' "
                f"not one of {list(INTERPOLATIONS)}"
            )

    onnx = catalog.get("onnx_runtime", {})
    for field in ["intra_op_num_threads", "inter_op_num_threads"]:
        if field not in onnx:
            errors.append(f"Missing onnx_runtime field: {field}")

    return errors
