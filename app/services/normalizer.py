"""
Normalization of prediction records returned by the backend.

Backend revisions disagree on the record shape. A record can arrive as:
- `{"result": {...}}` wrapping one of the shapes below
- `{"input_data": {...}, "predictions": {metric: {model: value}}}`
- a flat record with every prediction inlined as its own field, named
  either `<model>_<metric>` or `<metric>_<model>`, with or without a unit

The shape is resolved once here; everything downstream works on
`NormalizedPrediction` and never inspects the raw payload again.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern, Tuple, Union
from pydantic import BaseModel, Field
from app.utils.exceptions import NoPredictionDataError
from app.utils.logger import logger

METRICS: Tuple[str, ...] = (
    "Fragmentation_Size (cm)",
    "Vibration_Level (dB)",
    "Noise_Level (dB)",
    "Powder_Factor",
)

MODELS: Tuple[str, ...] = ("SVR", "XGBoost", "Random Forest")

MODEL_TOKENS: Dict[str, Tuple[str, ...]] = {
    "SVR": ("SVR",),
    "XGBoost": ("XGBoost",),
    "Random Forest": ("Random Forest", "Random_Forest", "RandomForest"),
}

MODEL_FIRST = "model_first"
METRIC_FIRST = "metric_first"

NO_DATA_MESSAGE = "No prediction data found"

SEPARATOR = r"[ _]"
# Unit suffixes differ between backend revisions, e.g. `Powder_Factor (kg/m³)`
UNIT = r"(?:\s*\([^)]*\))?"


@dataclass(frozen=True)
class StructuredPayload:
    """Record carrying a non-empty `predictions` map"""
    record: Dict[str, Any]


@dataclass(frozen=True)
class FlatPayload:
    """Record with predictions inlined as top-level fields"""
    record: Dict[str, Any]


RawPayload = Union[StructuredPayload, FlatPayload]


class NormalizedPrediction(BaseModel):
    """A prediction record in its one structured form"""
    id: Optional[str] = Field(None, description="Prediction identifier")
    input_data: Dict[str, Any] = Field(default_factory=dict, description="Blast parameters")
    predictions: Dict[str, Dict[str, float]] = Field(..., description="Per metric, per model predictions")
    source: str = Field("structured", description="Shape the record arrived in")
    convention: Optional[str] = Field(None, description="Inlined field naming convention, flat records only")
    prediction_fields: List[str] = Field(default_factory=list, description="Inlined prediction field names")


def _to_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def unwrap(payload: Any) -> Dict[str, Any]:
    """Strip any `{"result": ...}` envelopes"""
    record = payload
    while isinstance(record, dict) and isinstance(record.get("result"), dict):
        record = record["result"]
    if not isinstance(record, dict):
        raise NoPredictionDataError(NO_DATA_MESSAGE)
    return record


def _structured_values(predictions: Any) -> Dict[str, Dict[str, float]]:
    result: Dict[str, Dict[str, float]] = {}
    if not isinstance(predictions, dict):
        return result
    for metric, models in predictions.items():
        if not isinstance(models, dict):
            continue
        values = {}
        for model, value in models.items():
            number = _to_float(value)
            if number is not None:
                values[str(model)] = number
        if values:
            result[str(metric)] = values
    return result


def _words(name: str) -> str:
    """Pattern for a name whose words may be joined by `_` or a space"""
    return SEPARATOR.join(re.escape(part) for part in re.split(r"[ _]", name))


def _field_patterns() -> List[Tuple[Pattern, str, str, str]]:
    patterns = []
    for metric in METRICS:
        base = _words(metric.split(" (")[0])
        for model, tokens in MODEL_TOKENS.items():
            for token in tokens:
                model_name = _words(token)
                patterns.append((
                    re.compile(rf"{model_name}{SEPARATOR}{base}{UNIT}", re.IGNORECASE),
                    metric, model, MODEL_FIRST
                ))
                patterns.append((
                    re.compile(rf"{base}{UNIT}{SEPARATOR}{model_name}", re.IGNORECASE),
                    metric, model, METRIC_FIRST
                ))
    return patterns


FIELD_PATTERNS = _field_patterns()


def classify_payload(payload: Any) -> RawPayload:
    """Decide which shape a backend payload has"""
    record = unwrap(payload)
    if _structured_values(record.get("predictions")):
        return StructuredPayload(record)
    return FlatPayload(record)


def match_prediction_field(key: str) -> Optional[Tuple[str, str, str]]:
    """
    Match an inlined prediction field name.

    The model and metric must be adjacent, joined by `_` or a space; the
    metric may carry any unit suffix and case is ignored.

    Returns:
        (metric, model, convention) or None when the key is not a prediction
    """
    name = key.strip()
    for pattern, metric, model, convention in FIELD_PATTERNS:
        if pattern.fullmatch(name):
            return metric, model, convention
    return None


def _normalize_structured(payload: StructuredPayload, fallback_id: Optional[str]) -> NormalizedPrediction:
    record = payload.record
    input_data = record.get("input_data") if isinstance(record.get("input_data"), dict) else {}
    prediction_id = record.get("id") or input_data.get("id") or fallback_id
    return NormalizedPrediction(
        id=str(prediction_id) if prediction_id is not None else None,
        input_data=dict(input_data),
        predictions=_structured_values(record.get("predictions")),
        source="structured"
    )


def _normalize_flat(payload: FlatPayload, fallback_id: Optional[str]) -> NormalizedPrediction:
    record = payload.record
    # A flat record may still nest its inputs
    fields = dict(record.get("input_data")) if isinstance(record.get("input_data"), dict) else {}
    fields.update({k: v for k, v in record.items() if k not in ("input_data", "predictions")})

    predictions: Dict[str, Dict[str, float]] = {}
    prediction_fields: List[str] = []
    conventions = set()

    for key, value in fields.items():
        match = match_prediction_field(str(key))
        if match is None:
            continue
        metric, model, convention = match
        prediction_fields.append(key)
        number = _to_float(value)
        if number is None:
            logger.warning(f"Skipping non-numeric prediction field {key!r}: {value!r}")
            continue
        predictions.setdefault(metric, {})[model] = number
        conventions.add(convention)

    if not predictions:
        raise NoPredictionDataError(NO_DATA_MESSAGE)

    convention = conventions.pop() if len(conventions) == 1 else "mixed"
    # Inlined fields are a backend inconsistency; keep it visible in the logs
    logger.warning(f"Record {fields.get('id') or fallback_id} uses inlined prediction fields ({convention})")

    input_data = {k: v for k, v in fields.items() if k not in prediction_fields and k != "id"}
    prediction_id = fields.get("id") or fallback_id
    return NormalizedPrediction(
        id=str(prediction_id) if prediction_id is not None else None,
        input_data=input_data,
        predictions=predictions,
        source="flat",
        convention=convention,
        prediction_fields=prediction_fields
    )


def normalize_record(payload: Any, fallback_id: Optional[str] = None) -> NormalizedPrediction:
    """
    Reconcile any known backend record shape into one structured record.

    Args:
        payload: Decoded JSON body from the backend
        fallback_id: Identifier to use when the record does not carry one

    Raises:
        NoPredictionDataError: No recognisable prediction values
    """
    raw = classify_payload(payload)
    if isinstance(raw, StructuredPayload):
        return _normalize_structured(raw, fallback_id)
    return _normalize_flat(raw, fallback_id)
