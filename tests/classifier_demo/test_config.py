"""
Unit Tests for Configuration Module

This module tests classifier_demo/config.py: environment Settings and the
models.yaml catalog.

Test Categories:
- Catalog loading: File parsing and caching
- Model specifications: Catalog entries as ModelSpec
- Settings: Defaults and environment overrides
- Validation: Catalog integrity checks

Author: Matthew Hong
"""

from pathlib import Path

import pytest
import yaml

from classifier_demo.config import (
    DEFAULT_CATALOG_PATH,
    ModelSpec,
    Settings,
    get_catalog,
    get_model_names,
    get_model_spec,
    get_onnx_runtime_config,
    get_settings,
    reload_catalog,
    validate_catalog,
)


def write_catalog(path: Path, data: dict) -> str:
    path.write_text(yaml.safe_dump(data))
    return str(path)


# =============================================================================
# Catalog Loading Tests
# =============================================================================

class TestCatalogLoading:
    """Test catalog file loading."""

    def test_packaged_catalog_exists(self) -> None:
        """Packaged models.yaml should ship with the module."""
        assert DEFAULT_CATALOG_PATH.exists()

    def test_catalog_loads_successfully(self) -> None:
        """Catalog should load as a dict."""
        catalog = get_catalog()

        assert isinstance(catalog, dict)
        assert catalog["default_model"] == "resnet18"

    def test_catalog_is_cached(self) -> None:
        """Subsequent calls should return the cached object."""
        assert get_catalog() is get_catalog()

    def test_reload_clears_cache(self) -> None:
        """reload_catalog should return a fresh but equal dict."""
        first = get_catalog()
        second = reload_catalog()

        assert first == second
        assert first is not second

    def test_missing_catalog(self, tmp_path: Path) -> None:
        """Missing catalog file should raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError, match="Model catalog not found"):
            get_catalog(str(tmp_path / "missing.yaml"))


# =============================================================================
# Model Specification Tests
# =============================================================================

class TestModelSpec:
    """Test model catalog entries."""

    def test_model_names(self) -> None:
        """Packaged catalog should list resnet18."""
        assert get_model_names() == ["resnet18"]

    def test_resnet18_spec(self) -> None:
        """ResNet18 entry should describe a 224x224, 1000-class ImageNet model."""
        spec = get_model_spec("resnet18")

        assert isinstance(spec, ModelSpec)
        assert spec.file == "resnet18-v1-7.onnx"
        assert spec.labels == "imagenet-simple-labels.json"
        assert spec.num_classes == 1000
        assert spec.input_name == "data"
        assert spec.input_shape == (1, 3, 224, 224)
        assert spec.input_size == (224, 224)
        assert spec.interpolation == "bilinear"

    def test_imagenet_constants(self) -> None:
        """Catalog mean/std should be the ImageNet constants."""
        spec = get_model_spec("resnet18")

        assert spec.mean == (0.485, 0.456, 0.406)
        assert spec.std == (0.229, 0.224, 0.225)

    def test_default_model(self) -> None:
        """No name should give the catalog default model."""
        assert get_model_spec().name == "resnet18"

    def test_unknown_model(self) -> None:
        """Unknown model should raise KeyError listing available models."""
        with pytest.raises(KeyError, match="resnet18"):
            get_model_spec("vgg19")

    def test_spec_is_immutable(self) -> None:
        """ModelSpec should be frozen."""
        spec = get_model_spec("resnet18")

        with pytest.raises(AttributeError):
            spec.width = 10

    def test_onnx_runtime_config(self) -> None:
        """Thread settings should be present."""
        onnx = get_onnx_runtime_config()

        assert onnx["intra_op_num_threads"] == 2
        assert onnx["inter_op_num_threads"] == 1

    def test_onnx_runtime_config_missing(self, tmp_path: Path) -> None:
        """Missing onnx_runtime section should raise KeyError."""
        path = write_catalog(tmp_path / "c.yaml", {"models": {}})

        with pytest.raises(KeyError, match="onnx_runtime"):
            get_onnx_runtime_config(path)

    def test_custom_catalog(self, tiny_model_dir: Path) -> None:
        """Catalog path should select another catalog file."""
        spec = get_model_spec("tiny", str(tiny_model_dir / "models.yaml"))

        assert spec.input_size == (4, 4)
        assert spec.num_classes == 3


# =============================================================================
# Settings Tests
# =============================================================================

class TestSettings:
    """Test environment settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Defaults should serve resnet18 on the first provider."""
        for name in ["LOG_LEVEL", "MODEL_NAME", "PROVIDER", "TOP_K", "PORT"]:
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.MODEL_NAME == "resnet18"
        assert settings.PROVIDER is None
        assert settings.TOP_K == 5
        assert settings.LOG_LEVEL == "INFO"

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables should override defaults with type coercion."""
        monkeypatch.setenv("PROVIDER", "CPU")
        monkeypatch.setenv("TOP_K", "3")

        settings = Settings(_env_file=None)

        assert settings.PROVIDER == "CPU"
        assert settings.TOP_K == 3

    def test_get_settings_cached(self) -> None:
        """get_settings should return a singleton."""
        assert get_settings() is get_settings()


# =============================================================================
# Validation Tests
# =============================================================================

class TestValidation:
    """Test catalog validation."""

    def test_packaged_catalog_valid(self) -> None:
        """Packaged catalog should pass validation."""
        assert validate_catalog() == []

    def test_missing_catalog_reported(self, tmp_path: Path) -> None:
        """Unreadable catalog should be reported, not raised."""
        errors = validate_catalog(str(tmp_path / "missing.yaml"))

        assert len(errors) == 1
        assert "Failed to load catalog" in errors[0]

    def test_invalid_catalog_reported(self, tmp_path: Path) -> None:
        """Broken entries should each produce an error."""
        path = write_catalog(
            tmp_path / "bad.yaml",
            {
                "default_model": "missing",
                "models": {
                    "broken": {
                        "file": "broken.onnx",
                        "preprocessing": {
                            "mean": [0.5, 0.5],
                            "std": [0.2, 0.0, 0.2],
                            "interpolation": "lanczos9",
                        },
                    }
                },
            },
        )

        errors = validate_catalog(path)

        assert "Missing required section: onnx_runtime" in errors
        assert any("default_model" in e for e in errors)
        assert any("missing field: labels" in e for e in errors)
        assert any("mean must have 3 values" in e for e in errors)
        assert any("std values must be positive" in e for e in errors)
        assert any("interpolation" in e for e in errors)
