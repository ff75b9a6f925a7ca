"""FastAPI application for the image classification demo.

This module provides the HTTP front end of the demo:
- GET /health: Service health check
- GET /providers: Available and selected execution providers
- POST /providers: Select the execution provider
- GET /model-info: Model name, input/output tensors and metadata
- POST /predict: Classify an uploaded image (or the bundled one)

Author: Matthew Hong
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, File, HTTPException, UploadFile

from classifier_demo.config import get_settings
from classifier_demo.errors import (
    ClassifierError,
    ImageDecodeError,
    InvalidInputShape,
    NumericInstability,
    UnknownProviderError,
)
from classifier_demo.logger import new_request_id, setup_logging
from classifier_demo.session import ClassifierSession

from .schemas import (
    Classification,
    HealthResponse,
    ModelInfoResponse,
    PredictResponse,
    ProvidersResponse,
    Row,
    SelectProviderRequest,
)

# Global session (initialized during lifespan)
classifier: ClassifierSession | None = None
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown:
    - Startup: Setup logging, create the classifier session, warm up the model
    - Shutdown: Release ONNX Runtime sessions

    Args:
        app: FastAPI application instance
    """
    global classifier
    settings = get_settings()

    setup_logging(settings.LOG_LEVEL)
    logger.info("Starting classification service", extra={"port": settings.PORT})

    classifier = ClassifierSession(settings)

    try:
        classifier.model_info()
        logger.info("Service ready for requests")
    except FileNotFoundError as e:
        logger.warning(f"Model not loaded at startup: {e}")

    yield

    logger.info("Shutting down classification service")
    classifier.invalidate()
    classifier = None


app = FastAPI(
    title="Image Classification Demo",
    description="ONNX Runtime image classification with selectable execution providers",
    version="1.0.0",
    lifespan=lifespan,
)


def _require_classifier(endpoint: str) -> ClassifierSession:
    if classifier is None:
        logger.error("Classifier not initialized", extra={"endpoint": endpoint})
        raise HTTPException(status_code=503, detail="Service not ready")
    return classifier


def error_status(error: ClassifierError) -> int:
    """HTTP status code for a pipeline error."""
    if isinstance(error, NumericInstability):
        return 422
    if isinstance(error, (ImageDecodeError, InvalidInputShape, UnknownProviderError)):
        return 400
    return 500


def _providers_response(session: ClassifierSession) -> ProvidersResponse:
    return ProvidersResponse(
        available=session.available_providers,
        selected=session.selected_provider,
    )


@app.post("/predict", response_model=PredictResponse)
def predict(file: Optional[UploadFile] = File(None)):
    """Classify an uploaded image, or the bundled image if none is sent.

    Args:
        file: Optional uploaded image file (JPEG, PNG, etc.)

    Returns:
        PredictResponse with top-1, top-k, display rows and timing

    Raises:
        HTTPException: 400 for undecodable or malformed input, 422 for
            non-finite model output, 503 if not ready or an asset is
            missing, 500 otherwise
    """
    request_id = new_request_id()

    logger.info("Received predict request", extra={"endpoint": "/predict"})
    session = _require_classifier("/predict")

    t0 = time.perf_counter()
    try:
        if file is None:
            report = session.predict()
        else:
            report = session.predict_bytes(file.file.read())

    except ClassifierError as e:
        status_code = error_status(e)
        logger.warning(
            f"Predict rejected: {e}",
            extra={"endpoint": "/predict", "status_code": status_code},
        )
        raise HTTPException(status_code=status_code, detail=str(e))

    except FileNotFoundError as e:
        logger.error(str(e), extra={"endpoint": "/predict", "status_code": 503})
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(
            f"Predict failed: {e}",
            extra={"endpoint": "/predict", "status_code": 500},
            exc_info=True,
        )
        raise HTTPException(status_code=500, detail=str(e))

    total_ms = (time.perf_counter() - t0) * 1000

    logger.info(
        "Predict complete",
        extra={
            "endpoint": "/predict",
            "latency_ms": round(total_ms, 3),
            "class_id": report.result.prediction.index,
            "status_code": 200,
        },
    )

    ranked = [
        Classification(class_id=p.index, class_name=name, confidence=p.probability)
        for p, name in zip(report.result.top_k, report.top_k_labels)
    ]

    return PredictResponse(
        request_id=request_id,
        prediction=Classification(
            class_id=report.result.prediction.index,
            class_name=report.label,
            confidence=report.result.prediction.probability,
        ),
        top_k=ranked,
        rows=[Row(**row.as_dict()) for row in report.rows()],
        timing={"inference_ms": report.inference_ms, "total_ms": total_ms},
    )


@app.get("/model-info", response_model=ModelInfoResponse)
def model_info():
    """Describe the served model.

    Returns:
        ModelInfoResponse with model name, tensor info and metadata rows
    """
    new_request_id()
    session = _require_classifier("/model-info")

    try:
        rows = session.model_info_rows()
    except FileNotFoundError as e:
        logger.error(str(e), extra={"endpoint": "/model-info", "status_code": 503})
        raise HTTPException(status_code=503, detail=str(e))

    return ModelInfoResponse(rows=[Row(**row.as_dict()) for row in rows])


@app.get("/providers", response_model=ProvidersResponse)
def providers():
    """List available execution providers and the selected one."""
    new_request_id()
    return _providers_response(_require_classifier("/providers"))


@app.post("/providers", response_model=ProvidersResponse)
def select_provider(request: SelectProviderRequest):
    """Select the execution provider used by subsequent predictions.

    Raises:
        HTTPException: 400 if the provider is not available
    """
    new_request_id()
    session = _require_classifier("/providers")

    try:
        session.select_provider(request.provider)
    except UnknownProviderError as e:
        logger.warning(str(e), extra={"endpoint": "/providers", "status_code": 400})
        raise HTTPException(status_code=400, detail=str(e))

    return _providers_response(session)


@app.get("/health", response_model=HealthResponse)
def health():
    """Health check endpoint.

    Returns:
        HealthResponse indicating service health and session status
    """
    new_request_id()

    return HealthResponse(
        status="healthy",
        model_loaded=classifier is not None,
    )


def run() -> None:
    """Serve the API with uvicorn on the configured port."""
    settings = get_settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
