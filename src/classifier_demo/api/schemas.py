"""Pydantic models for API request/response schemas.

Author: Matthew Hong
"""

from pydantic import BaseModel, Field


class Row(BaseModel):
    """One (title, value) display line.

    Attributes:
        title: Field name
        value: Formatted value
    """

    title: str
    value: str


class Classification(BaseModel):
    """Classification result.

    Attributes:
        class_id: Class index into the label list
        class_name: Human-readable class name
        confidence: Softmax probability [0, 1]
    """

    class_id: int
    class_name: str
    confidence: float


class PredictResponse(BaseModel):
    """Response model for /predict endpoint.

    Attributes:
        request_id: Unique request identifier for tracing
        prediction: Top-1 classification
        top_k: Ranked classifications, best first
        rows: Display rows (model, size, prediction, confidence, time, device)
        timing: Performance breakdown (inference_ms, total_ms)
    """

    request_id: str
    prediction: Classification
    top_k: list[Classification]
    rows: list[Row]
    timing: dict[str, float] = Field(
        description="Performance timing breakdown in milliseconds"
    )


class ModelInfoResponse(BaseModel):
    """Response model for /model-info endpoint."""

    rows: list[Row]


class ProvidersResponse(BaseModel):
    """Response model for /providers endpoints.

    Attributes:
        available: Available execution providers (full names)
        selected: Provider used for inference
    """

    available: list[str]
    selected: str


class SelectProviderRequest(BaseModel):
    """Request body for POST /providers."""

    provider: str = Field(description='Short ("CPU") or full provider name')


class HealthResponse(BaseModel):
    """Response model for /health endpoint.

    Attributes:
        status: Service health status
        model_loaded: Whether the classifier session is ready
    """

    status: str = "healthy"
    model_loaded: bool
