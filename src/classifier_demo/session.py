"""Classifier session: the application state around one model.

ClassifierSession owns everything the demo needs between requests:
- the selected execution provider
- the decoded image and model file size, cached per file version
- the class labels

and runs the single-image pipeline:

    decode -> ImagePreprocessor -> ONNX Runtime -> ScorePostprocessor -> report

Author: Matthew Hong
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generic, Optional, TypeVar

import numpy as np

from classifier_demo.config import (
    Settings,
    get_model_spec,
    get_onnx_runtime_config,
    get_settings,
)
from classifier_demo.display import DisplayRow, model_info_rows, prediction_rows
from classifier_demo.model.assets import label_for, load_labels
from classifier_demo.model.registry import (
    CPU_PROVIDER,
    ModelInfo,
    ModelRegistry,
    SessionConfig,
    available_providers,
    resolve_provider,
)
from classifier_demo.processing import (
    ClassificationResult,
    ImagePreprocessor,
    ScorePostprocessor,
    load_image,
    load_image_from_bytes,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# File-backed Cache
# =============================================================================

class AssetCache(Generic[T]):
    """Holds one value derived from a file.

    The value is recomputed whenever the path, modification time or size
    of the file changes, or after invalidate().
    """

    def __init__(self, loader: Callable[[Path], T]) -> None:
        self._loader = loader
        self._key: Optional[tuple[str, int, int]] = None
        self._value: Optional[T] = None

    def get(self, path: Path) -> T:
        """Return the cached value for path, loading it if stale.

        Raises:
            FileNotFoundError: If path does not exist
        """
        path = Path(path)
        stat = path.stat()
        key = (str(path.resolve()), stat.st_mtime_ns, stat.st_size)

        if key != self._key:
            self._value = self._loader(path)
            self._key = key

        return self._value

    def invalidate(self) -> None:
        self._key = None
        self._value = None

    @property
    def is_cached(self) -> bool:
        return self._key is not None


def _file_size(path: Path) -> int:
    return path.stat().st_size


# =============================================================================
# Report
# =============================================================================

@dataclass
class PredictionReport:
    """Outcome of one classification request.

    Attributes:
        model_name: ONNX file name
        model_size_bytes: ONNX file size
        result: Probabilities and ranked predictions
        label: Class name of the top-1 prediction
        top_k_labels: Class names matching result.top_k
        inference_ms: Wall time of the ONNX Runtime call only
        provider: Full name of the execution provider used
    """

    model_name: str
    model_size_bytes: int
    result: ClassificationResult
    label: str
    top_k_labels: list[str] = field(default_factory=list)
    inference_ms: float = 0.0
    provider: str = CPU_PROVIDER

    def rows(self) -> list[DisplayRow]:
        return prediction_rows(self)


# =============================================================================
# Session
# =============================================================================

class ClassifierSession:
    """Image classification session for a single catalog model.

    Attributes:
        settings: Application settings
        model_spec: Catalog entry of the served model
        registry: ONNX Runtime session registry
        preprocessor: Image to tensor transform
        postprocessor: Logits to predictions transform
    """

    def __init__(
        self,
        settings: Settings | None = None,
        registry: ModelRegistry | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            settings: Application settings (default: environment settings)
            registry: Pre-configured ModelRegistry (default: built from catalog)

        Raises:
            KeyError: If MODEL_NAME is not in the catalog
            UnknownProviderError: If PROVIDER is set but not available
        """
        self.settings = settings or get_settings()
        self.model_spec = get_model_spec(self.settings.MODEL_NAME, self.settings.CATALOG_PATH)
        self.models_dir = Path(self.settings.MODELS_DIR)

        if registry is None:
            onnx_config = get_onnx_runtime_config(self.settings.CATALOG_PATH)
            registry = ModelRegistry(
                self.models_dir,
                SessionConfig(
                    intra_op_threads=onnx_config["intra_op_num_threads"],
                    inter_op_threads=onnx_config["inter_op_num_threads"],
                ),
                model_files={self.model_spec.name: self.model_spec.file},
            )
        self.registry = registry

        self.preprocessor = ImagePreprocessor.from_model_spec(self.model_spec)
        self.postprocessor = ScorePostprocessor(top_k=self.settings.TOP_K)

        self._image_path = Path(self.settings.IMAGE_PATH)
        self._image_cache: AssetCache[np.ndarray] = AssetCache(load_image)
        self._model_size_cache: AssetCache[int] = AssetCache(_file_size)
        self._labels: list[str] | None = None

        self._available_providers = available_providers()
        self._selected_provider: str | None = (
            self._available_providers[0] if self._available_providers else None
        )
        if self.settings.PROVIDER:
            self.select_provider(self.settings.PROVIDER)

        logger.info(
            f"Classifier session ready: model={self.model_spec.name}, "
            f"provider={self.selected_provider}"
        )

    # -------------------------------------------------------------------------
    # Providers
    # -------------------------------------------------------------------------

    @property
    def available_providers(self) -> list[str]:
        return list(self._available_providers)

    @property
    def selected_provider(self) -> str:
        """Full name of the provider used for inference (CPU if none selected)."""
        return self._selected_provider or CPU_PROVIDER

    def select_provider(self, name: str) -> str:
        """Select the execution provider for subsequent predictions.

        Args:
            name: Short or full provider name

        Returns:
            Full provider name

        Raises:
            UnknownProviderError: If the provider is not available
        """
        provider = resolve_provider(name, self._available_providers)
        if provider != self._selected_provider:
            logger.info(f"Execution provider selected: {provider}")
        self._selected_provider = provider
        return provider

    # -------------------------------------------------------------------------
    # Assets
    # -------------------------------------------------------------------------

    @property
    def model_path(self) -> Path:
        return self.registry.model_path(self.model_spec.name)

    @property
    def labels_path(self) -> Path:
        return self.models_dir / self.model_spec.labels

    @property
    def image_path(self) -> Path:
        return self._image_path

    @image_path.setter
    def image_path(self, path: Path) -> None:
        path = Path(path)
        if path != self._image_path:
            self._image_cache.invalidate()
        self._image_path = path

    def load_image(self) -> np.ndarray:
        """Decoded RGB bundled image, cached until the file changes.

        Raises:
            FileNotFoundError: If the image file does not exist
            ImageDecodeError: If the file cannot be decoded
        """
        return self._image_cache.get(self._image_path)

    def model_size_bytes(self) -> int:
        """ONNX file size, cached until the file changes."""
        return self._model_size_cache.get(self.model_path)

    @property
    def labels(self) -> list[str]:
        if self._labels is None:
            expected = self.model_spec.num_classes or None
            self._labels = load_labels(self.labels_path, expected_count=expected)
        return self._labels

    def invalidate(self) -> None:
        """Drop cached image, model size, labels and ONNX sessions."""
        self._image_cache.invalidate()
        self._model_size_cache.invalidate()
        self._labels = None
        self.registry.clear_cache()

    # -------------------------------------------------------------------------
    # Model Info
    # -------------------------------------------------------------------------

    def model_info(self, provider: str | None = None) -> ModelInfo:
        """Model info for the session on provider (default: the selected one)."""
        if provider is None:
            provider = self._selected_provider
        return self.registry.get_model_info(self.model_spec.name, provider)

    def model_info_rows(self) -> list[DisplayRow]:
        return model_info_rows(self.model_info())

    # -------------------------------------------------------------------------
    # Inference
    # -------------------------------------------------------------------------

    def run_logits(
        self,
        tensor: np.ndarray,
        provider: str | None = None,
    ) -> tuple[np.ndarray, float]:
        """Run the model on a preprocessed tensor.

        The tensor is cast to the model's input dtype if it differs.

        Args:
            tensor: Input tensor [1, 3, H, W]
            provider: Execution provider (default: the selected one)

        Returns:
            Tuple of (first model output, inference time in milliseconds)
        """
        if provider is None:
            provider = self._selected_provider
        session = self.registry.get_session(self.model_spec.name, provider)
        info = self.model_info(provider)
        tensor = tensor.astype(info.input_dtype, copy=False)

        start = time.perf_counter()
        outputs = session.run([info.output_name], {info.input_name: tensor})
        inference_ms = (time.perf_counter() - start) * 1000

        return outputs[0], inference_ms

    def predict(self, image: np.ndarray | None = None) -> PredictionReport:
        """Classify an image.

        The provider is read once, so a concurrent select_provider() affects
        only later requests and the report names the provider that ran.

        Args:
            image: RGB uint8 array [H, W, 3]; the bundled image if None

        Returns:
            PredictionReport for the image

        Raises:
            FileNotFoundError: If the bundled image or model file is missing
            InvalidInputShape: If the image or model output is malformed
            NumericInstability: If the model produced non-finite logits
        """
        provider = self._selected_provider

        if image is None:
            image = self.load_image()

        prepared = self.preprocessor(image)
        logits, inference_ms = self.run_logits(prepared.tensor, provider)
        result = self.postprocessor(logits)

        labels = self.labels
        report = PredictionReport(
            model_name=self.model_path.name,
            model_size_bytes=self.model_size_bytes(),
            result=result,
            label=label_for(labels, result.prediction.index),
            top_k_labels=[label_for(labels, p.index) for p in result.top_k],
            inference_ms=inference_ms,
            provider=provider or CPU_PROVIDER,
        )

        logger.info(
            f"Prediction: {report.label} ({result.prediction.probability:.4f})",
            extra={
                "model": self.model_spec.name,
                "provider": report.provider,
                "class_id": result.prediction.index,
                "latency_ms": round(inference_ms, 3),
            },
        )

        return report

    def predict_bytes(self, image_bytes: bytes) -> PredictionReport:
        """Decode encoded image bytes and classify them.

        Raises:
            ImageDecodeError: If the bytes cannot be decoded
        """
        return self.predict(load_image_from_bytes(image_bytes))

