"""Display rows for model metadata and prediction results.

Front ends (HTTP API, CLI) only ever render ordered (title, value) text
pairs, so both views are built as lists of DisplayRow.

Author: Matthew Hong
"""

from dataclasses import asdict, dataclass
from typing import Any

from classifier_demo.model.registry import ModelInfo, short_provider_name


@dataclass(frozen=True)
class DisplayRow:
    """One labelled line of display output.

    Attributes:
        title: Field name, e.g. "Top Prediction"
        value: Already formatted text
    """

    title: str
    value: str

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


def format_value(value: Any) -> str:
    """Format a metadata value; shapes render as "[1, 3, 224, 224]"."""
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(str(v) for v in value) + "]"
    return str(value)


def format_model_size(size_bytes: int) -> str:
    """Model file size in MiB with one decimal, e.g. "44.7 MB"."""
    return f"{size_bytes / (1024 * 1024):.1f} MB"


def model_info_rows(info: ModelInfo) -> list[DisplayRow]:
    """Rows describing a loaded model.

    Order: model name, each input's name/type/shape, each output's
    name/type/shape, then metadata entries. Empty string metadata is skipped.
    """
    rows = [DisplayRow("Model Name", info.path.name)]

    for prefix, tensors in (("Input", info.inputs), ("Output", info.outputs)):
        for i, tensor in enumerate(tensors):
            rows.append(DisplayRow(f"{prefix} {i}: name", tensor.name))
            rows.append(DisplayRow(f"{prefix} {i}: type", tensor.type))
            rows.append(DisplayRow(f"{prefix} {i}: shape", format_value(tensor.shape)))

    for key, value in info.metadata.items():
        if isinstance(value, str) and not value:
            continue
        rows.append(DisplayRow(key, format_value(value)))

    return rows


def prediction_rows(report) -> list[DisplayRow]:
    """Rows summarising one prediction (a session.PredictionReport)."""
    prediction = report.result.prediction

    return [
        DisplayRow("Model Name", report.model_name),
        DisplayRow("Model Size", format_model_size(report.model_size_bytes)),
        DisplayRow("Top Prediction", f"{report.label} (id: {prediction.index})"),
        DisplayRow("Confidence", f"{prediction.probability:.4f}"),
        DisplayRow("Inference Time", f"{int(report.inference_ms)} ms"),
        DisplayRow("Processing Device", short_provider_name(report.provider)),
    ]
