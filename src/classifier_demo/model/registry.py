"""ONNX Model Registry.

This module provides a registry for loading and caching ONNX Runtime
inference sessions with consistent configuration.

Features:
- Lazy loading: Models loaded on first access
- Session caching: One session per (model, execution provider) pair
- Provider selection: Short ("CPU") or full ("CPUExecutionProvider") names
- Introspection: Input/output tensor info and model metadata for display

Author: Matthew Hong
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Optional

import numpy as np
import onnxruntime as ort

from classifier_demo.errors import UnknownProviderError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_INTRA_OP_THREADS: int = 2
"""ONNX Runtime intra-op parallelism (within single operator)."""

DEFAULT_INTER_OP_THREADS: int = 1
"""ONNX Runtime inter-op parallelism (across operators)."""

CPU_PROVIDER: str = "CPUExecutionProvider"

_PROVIDER_SUFFIX = "ExecutionProvider"

# Map of ONNX tensor type strings to numpy dtypes
ONNX_TO_NUMPY = {
    "tensor(float)": np.float32,
    "tensor(float16)": np.float16,
    "tensor(double)": np.float64,
    "tensor(int64)": np.int64,
    "tensor(int32)": np.int32,
    "tensor(uint8)": np.uint8,
}


# =============================================================================
# Execution Providers
# =============================================================================


def available_providers() -> list[str]:
    """List execution providers compiled into the installed ONNX Runtime.

    Returns:
        Full provider names in ONNX Runtime priority order,
        e.g. ["CUDAExecutionProvider", "CPUExecutionProvider"]
    """
    return list(ort.get_available_providers())


def short_provider_name(provider: str) -> str:
    """Strip the ExecutionProvider suffix: "CPUExecutionProvider" -> "CPU"."""
    if provider.endswith(_PROVIDER_SUFFIX) and provider != _PROVIDER_SUFFIX:
        return provider[: -len(_PROVIDER_SUFFIX)]
    return provider


def resolve_provider(name: str, available: Optional[list[str]] = None) -> str:
    """Resolve a provider name to its full ONNX Runtime name.

    Accepts either form, case-insensitively ("cpu", "CPU",
    "CPUExecutionProvider").

    Args:
        name: Requested provider
        available: Providers to match against (default: available_providers())

    Returns:
        Full provider name, e.g. "CPUExecutionProvider"

    Raises:
        UnknownProviderError: If no available provider matches
    """
    if available is None:
        available = available_providers()

    wanted = name.strip().lower()
    for provider in available:
        if wanted in (provider.lower(), short_provider_name(provider).lower()):
            return provider

    raise UnknownProviderError(name, available)


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class TensorInfo:
    """Description of a model input or output.

    Attributes:
        name: Tensor name
        type: ONNX type string, e.g. "tensor(float)"
        shape: Dimensions; dynamic dimensions are strings or None
    """

    name: str
    type: str
    shape: tuple[Any, ...]


@dataclass
class ModelInfo:
    """Information about a loaded model.

    Attributes:
        name: Model identifier
        path: Path to ONNX file
        input_name: Name of the first input tensor
        input_shape: Shape of the first input
        input_dtype: numpy dtype of the first input
        output_name: Name of the first output tensor
        output_shape: Shape of the first output
        inputs: All model inputs
        outputs: All model outputs
        metadata: Model metadata (producer, graph name, custom entries, ...)
        providers: Providers the session actually runs on, in priority order
        size_bytes: Size of the ONNX file on disk
    """

    name: str
    path: Path
    input_name: str
    input_shape: tuple[Any, ...]
    input_dtype: np.dtype
    output_name: str
    output_shape: tuple[Any, ...]
    inputs: list[TensorInfo] = field(default_factory=list)
    outputs: list[TensorInfo] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    providers: list[str] = field(default_factory=list)
    size_bytes: int = 0


@dataclass
class SessionConfig:
    """Configuration for ONNX Runtime inference session.

    Attributes:
        intra_op_threads: Number of threads for intra-op parallelism
        inter_op_threads: Number of threads for inter-op parallelism
        providers: Default execution providers (default: CPUExecutionProvider)
    """

    intra_op_threads: int = DEFAULT_INTRA_OP_THREADS
    inter_op_threads: int = DEFAULT_INTER_OP_THREADS
    providers: list[str] = field(default_factory=lambda: [CPU_PROVIDER])


# =============================================================================
# Model Registry
# =============================================================================


class ModelRegistry:
    """Registry for loading and caching ONNX Runtime inference sessions.

    Sessions are cached per (model, provider), so switching the execution
    provider yields a session that really runs on that provider instead of
    silently reusing the first one created.

    Example:
        >>> registry = ModelRegistry(models_dir=Path("assets/models"),
        ...                          model_files={"resnet18": "resnet18-v1-7.onnx"})
        >>> session = registry.get_session("resnet18", provider="CPU")
        >>> logits = session.run(None, {"data": tensor})[0]

    Attributes:
        models_dir: Base directory for ONNX model files
        config: Session configuration (thread settings, default providers)
        model_files: Map of model names to file names inside models_dir
    """

    def __init__(
        self,
        models_dir: Path,
        config: SessionConfig | None = None,
        model_files: dict[str, str] | None = None,
    ) -> None:
        """Initialize ModelRegistry.

        Args:
            models_dir: Directory containing ONNX model files
            config: Session configuration (default: 2 intra-op, 1 inter-op threads)
            model_files: Known model file names; unknown models resolve to
                "<name>.onnx"
        """
        self.models_dir = Path(models_dir)
        self.config = config or SessionConfig()
        self.model_files = dict(model_files or {})

        self._sessions: dict[tuple[str, str], ort.InferenceSession] = {}
        self._model_info: dict[tuple[str, str], ModelInfo] = {}
        self._lock = Lock()

        logger.info("ModelRegistry initialized")
        logger.info(f"  Models dir: {self.models_dir}")
        logger.info(f"  Intra-op threads: {self.config.intra_op_threads}")
        logger.info(f"  Inter-op threads: {self.config.inter_op_threads}")

    def model_path(self, model_name: str) -> Path:
        """Resolve the ONNX file path for a model."""
        filename = self.model_files.get(model_name, f"{model_name}.onnx")
        return self.models_dir / filename

    def get_session(
        self,
        model_name: str,
        provider: str | None = None,
    ) -> ort.InferenceSession:
        """Get ONNX Runtime inference session for a model.

        Sessions are cached after first load. Thread-safe for concurrent access.

        Args:
            model_name: Name of model
            provider: Execution provider (short or full name); the configured
                default providers are used if None

        Returns:
            ONNX Runtime InferenceSession ready for inference

        Raises:
            UnknownProviderError: If provider is not available
            FileNotFoundError: If model file not found
        """
        key = self._key(model_name, provider)

        with self._lock:
            if key not in self._sessions:
                self._load_model(model_name, key[1])

            return self._sessions[key]

    def get_model_info(self, model_name: str, provider: str | None = None) -> ModelInfo:
        """Get information about a model, loading it if necessary.

        Args:
            model_name: Name of model
            provider: Execution provider (short or full name)

        Returns:
            ModelInfo with input/output specifications and metadata
        """
        key = self._key(model_name, provider)

        with self._lock:
            if key not in self._model_info:
                self._load_model(model_name, key[1])

            return self._model_info[key]

    def _key(self, model_name: str, provider: str | None) -> tuple[str, str]:
        if provider is None:
            return (model_name, ",".join(self.config.providers))
        return (model_name, resolve_provider(provider))

    def _load_model(self, model_name: str, providers_key: str) -> None:
        """Load a model into the registry.

        Args:
            model_name: Name of model to load
            providers_key: Comma-joined full provider names

        Raises:
            FileNotFoundError: If model file not found
        """
        model_path = self.model_path(model_name)

        if not model_path.exists():
            raise FileNotFoundError(
                f"Model file not found: {model_path}. "
                f"Run 'python scripts/setup_assets.py' first."
            )

        providers = providers_key.split(",")
        # CPU stays last as fallback for operators other providers lack
        if CPU_PROVIDER not in providers:
            providers.append(CPU_PROVIDER)

        logger.info(f"Loading model: {model_name} from {model_path} on {providers}")

        sess_options = ort.SessionOptions()
        sess_options.intra_op_num_threads = self.config.intra_op_threads
        sess_options.inter_op_num_threads = self.config.inter_op_threads

        session = ort.InferenceSession(
            str(model_path),
            sess_options,
            providers=providers,
        )

        inputs = [_tensor_info(meta) for meta in session.get_inputs()]
        outputs = [_tensor_info(meta) for meta in session.get_outputs()]

        model_info = ModelInfo(
            name=model_name,
            path=model_path,
            input_name=inputs[0].name,
            input_shape=inputs[0].shape,
            input_dtype=np.dtype(ONNX_TO_NUMPY.get(inputs[0].type, np.float32)),
            output_name=outputs[0].name,
            output_shape=outputs[0].shape,
            inputs=inputs,
            outputs=outputs,
            metadata=_model_metadata(session),
            providers=list(session.get_providers()),
            size_bytes=model_path.stat().st_size,
        )

        key = (model_name, providers_key)
        self._sessions[key] = session
        self._model_info[key] = model_info

        logger.info(f"  ✓ Loaded {model_name}")
        logger.info(f"    Input: {model_info.input_name} {model_info.input_shape}")
        logger.info(f"    Output: {model_info.output_name} {model_info.output_shape}")

    def is_loaded(self, model_name: str, provider: str | None = None) -> bool:
        """Check if a model session is already cached.

        Args:
            model_name: Name of model
            provider: Specific provider to check; any provider if None

        Returns:
            True if a matching session is cached
        """
        if provider is not None:
            return self._key(model_name, provider) in self._sessions

        return any(name == model_name for name, _ in self._sessions)

    def clear_cache(self) -> None:
        """Clear all cached sessions.

        Useful for testing or when models have been updated.
        """
        with self._lock:
            self._sessions.clear()
            self._model_info.clear()
            logger.info("Model cache cleared")

    def list_available(self) -> list[str]:
        """List known models present in the models directory.

        Returns:
            List of model names that can be loaded
        """
        return [name for name in self.model_files if self.model_path(name).exists()]


def _tensor_info(meta) -> TensorInfo:
    return TensorInfo(name=meta.name, type=meta.type, shape=tuple(meta.shape))


def _model_metadata(session: ort.InferenceSession) -> dict[str, Any]:
    """Collect model metadata in display order; custom entries come last."""
    meta = session.get_modelmeta()

    metadata: dict[str, Any] = {
        "producer_name": meta.producer_name,
        "graph_name": meta.graph_name,
        "domain": meta.domain,
        "description": meta.description,
        "graph_description": meta.graph_description,
        "version": meta.version,
    }
    metadata.update(meta.custom_metadata_map or {})

    return metadata


# =============================================================================
# Default Registry Singleton
# =============================================================================

_default_registry: ModelRegistry | None = None
_default_registry_lock = Lock()


def get_default_registry(
    models_dir: Path | None = None,
    config: SessionConfig | None = None,
    model_files: dict[str, str] | None = None,
) -> ModelRegistry:
    """Get or create the default ModelRegistry singleton.

    Args:
        models_dir: Directory containing models (default: settings MODELS_DIR)
        config: Session configuration
        model_files: Known model file names

    Returns:
        Shared ModelRegistry instance
    """
    global _default_registry

    with _default_registry_lock:
        if _default_registry is None:
            if models_dir is None:
                from classifier_demo.config import get_settings

                models_dir = Path(get_settings().MODELS_DIR)

            _default_registry = ModelRegistry(models_dir, config, model_files)

        return _default_registry


def reset_default_registry() -> None:
    """Reset the default registry singleton.

    Useful for testing or reconfiguration.
    """
    global _default_registry

    with _default_registry_lock:
        if _default_registry is not None:
            _default_registry.clear_cache()
        _default_registry = None
