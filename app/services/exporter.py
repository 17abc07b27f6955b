"""Single-record export to JSON, CSV and Excel"""
import io
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional
import pandas as pd
from app.services.normalizer import NormalizedPrediction, match_prediction_field
from app.utils.exceptions import ExportError
from app.utils.logger import logger

# format -> (extension, media type)
EXPORT_FORMATS = {
    "json": ("json", "application/json"),
    "csv": ("csv", "text/csv"),
    "xlsx": ("xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
}

FORMAT_ALIASES = {"excel": "xlsx", "xls": "xlsx"}

# scope -> filename stem
EXPORT_SCOPES = {
    "inputs": "inputs",
    "results": "results",
    "all": "prediction",
}

SHEET_NAMES = {
    "inputs": "Inputs",
    "results": "Results",
    "all": "Prediction",
}


@dataclass
class ExportFile:
    """A rendered export ready to be downloaded"""
    filename: str
    media_type: str
    content: bytes


def resolve_format(fmt: Optional[str], default: str = "csv") -> str:
    """Map a requested or preferred format (`excel` included) to a known one"""
    value = (fmt or default or "csv").strip().lower()
    value = FORMAT_ALIASES.get(value, value)
    if value not in EXPORT_FORMATS:
        raise ExportError(f"Unsupported export format: {fmt}")
    return value


def input_columns(record: NormalizedPrediction) -> Dict[str, Any]:
    """Input parameters without the id or any inlined model predictions"""
    excluded = set(record.prediction_fields)
    return {
        key: value
        for key, value in record.input_data.items()
        if key != "id" and key not in excluded and match_prediction_field(str(key)) is None
    }


def result_columns(record: NormalizedPrediction) -> Dict[str, float]:
    """One `<metric> - <model>` column per prediction"""
    return {
        f"{metric} - {model}": value
        for metric, models in record.predictions.items()
        for model, value in models.items()
    }


def flatten_record(record: NormalizedPrediction, scope: str = "all") -> Dict[str, Any]:
    """
    Flatten a record into a single export row.

    Raises:
        ExportError: Unknown scope, or the requested section is empty
    """
    if scope not in EXPORT_SCOPES:
        raise ExportError(f"Unsupported export type: {scope}")

    row: Dict[str, Any] = {}
    if scope in ("inputs", "all"):
        inputs = input_columns(record)
        if not inputs:
            raise ExportError(f"Prediction {record.id} has no input parameters to export")
        row.update(inputs)
    if scope in ("results", "all"):
        results = result_columns(record)
        if not results:
            raise ExportError(f"Prediction {record.id} has no results to export")
        row.update(results)
    return row


def export_filename(prediction_id: str, scope: str, fmt: str) -> str:
    extension, _ = EXPORT_FORMATS[fmt]
    return f"rock-{EXPORT_SCOPES[scope]}-{prediction_id}.{extension}"


def export_record(record: NormalizedPrediction, fmt: str = "csv", scope: str = "all") -> ExportFile:
    """
    Serialize one prediction record.

    Args:
        record: Normalized prediction record
        fmt: json, csv, xlsx (or the `excel` alias)
        scope: inputs, results or all

    Returns:
        ExportFile with the `rock-{inputs|results|prediction}-{id}.{ext}` filename
    """
    fmt = resolve_format(fmt)
    row = flatten_record(record, scope)
    _, media_type = EXPORT_FORMATS[fmt]

    if fmt == "json":
        content = json.dumps(row, ensure_ascii=False, indent=2).encode("utf-8")
    elif fmt == "csv":
        frame = pd.DataFrame([row], columns=list(row.keys()))
        content = frame.to_csv(index=False).encode("utf-8-sig")
    else:
        frame = pd.DataFrame([row], columns=list(row.keys()))
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            frame.to_excel(writer, index=False, sheet_name=SHEET_NAMES[scope])
        content = buffer.getvalue()

    filename = export_filename(record.id or "unknown", scope, fmt)
    logger.info(f"Exported {scope} of prediction {record.id} as {fmt} ({len(content)} bytes)")
    return ExportFile(filename=filename, media_type=media_type, content=content)
