"""Test cases for prediction record normalization"""
import pytest
from app.services.normalizer import (
    METRIC_FIRST,
    MODEL_FIRST,
    FlatPayload,
    StructuredPayload,
    classify_payload,
    match_prediction_field,
    normalize_record
)
from app.utils.exceptions import NoPredictionDataError

STRUCTURED = {
    "id": "abc",
    "input_data": {"id": "abc", "Rock_Type": "Granite", "Burden (m)": 3},
    "predictions": {
        "Fragmentation_Size (cm)": {"SVR": 30.1, "XGBoost": 30.6, "Random Forest": 31.1},
        "Powder_Factor": {"SVR": 0.6, "XGBoost": 0.61, "Random Forest": 0.62},
    },
}


def test_structured_record():
    record = normalize_record(STRUCTURED)
    assert record.source == "structured"
    assert record.id == "abc"
    assert record.predictions["Powder_Factor"]["XGBoost"] == 0.61
    assert record.input_data["Rock_Type"] == "Granite"


def test_result_envelope_is_unwrapped():
    wrapped = normalize_record({"result": STRUCTURED})
    assert wrapped.predictions == normalize_record(STRUCTURED).predictions
    assert isinstance(classify_payload({"result": STRUCTURED}), StructuredPayload)


def test_flat_model_first_field():
    record = normalize_record({"id": "f1", "Rock_Type": "Basalt", "SVR_Fragmentation_Size (cm)": "18.25"})
    assert record.predictions["Fragmentation_Size (cm)"]["SVR"] == 18.25
    assert record.convention == MODEL_FIRST
    assert record.input_data == {"Rock_Type": "Basalt"}
    assert record.prediction_fields == ["SVR_Fragmentation_Size (cm)"]


def test_flat_metric_first_field_without_unit():
    record = normalize_record({"id": "f2", "Vibration_Level_Random_Forest": 88})
    assert record.predictions == {"Vibration_Level (dB)": {"Random Forest": 88.0}}
    assert record.convention == METRIC_FIRST


def test_empty_structured_map_falls_back_to_flat_fields():
    payload = {"id": "f3", "predictions": {}, "XGBoost_Noise_Level (dB)": 99.5}
    assert isinstance(classify_payload(payload), FlatPayload)
    record = normalize_record(payload)
    assert record.predictions == {"Noise_Level (dB)": {"XGBoost": 99.5}}


def test_unparseable_values_are_skipped():
    record = normalize_record({"SVR_Powder_Factor": "n/a", "XGBoost_Powder_Factor": 0.5}, fallback_id="f4")
    assert record.id == "f4"
    assert record.predictions == {"Powder_Factor": {"XGBoost": 0.5}}
    assert "SVR_Powder_Factor" not in record.input_data


def test_no_prediction_data():
    with pytest.raises(NoPredictionDataError, match="No prediction data found"):
        normalize_record({"id": "x", "Rock_Type": "Coal"})


def test_non_dict_payload():
    with pytest.raises(NoPredictionDataError):
        normalize_record(["not", "a", "record"])


@pytest.mark.parametrize("key,expected", [
    ("SVR_Fragmentation_Size (cm)", ("Fragmentation_Size (cm)", "SVR", MODEL_FIRST)),
    ("Noise_Level (dB)_XGBoost", ("Noise_Level (dB)", "XGBoost", METRIC_FIRST)),
    ("RandomForest_Powder_Factor", ("Powder_Factor", "Random Forest", MODEL_FIRST)),
    ("SVR_Powder_Factor (kg/m³)", ("Powder_Factor", "SVR", MODEL_FIRST)),
    ("SVR Fragmentation_Size (cm)", ("Fragmentation_Size (cm)", "SVR", MODEL_FIRST)),
    ("vibration_level (dB) random forest", ("Vibration_Level (dB)", "Random Forest", METRIC_FIRST)),
    ("SVR_Fragmentation_Size_Notes", None),
    ("SVR_Score", None),
    ("Powder_Factor (kg/m³)", None),
    ("Fragmentation_Size (cm)", None),
])
def test_match_prediction_field(key, expected):
    assert match_prediction_field(key) == expected


def test_flat_unit_suffixed_fields_leave_inputs():
    record = normalize_record({
        "id": "p1",
        "Rock_Type": "Granite",
        "SVR_Fragmentation_Size (cm)": 20.0,
        "SVR_Powder_Factor (kg/m³)": 0.55,
    })
    assert record.predictions == {
        "Fragmentation_Size (cm)": {"SVR": 20.0},
        "Powder_Factor": {"SVR": 0.55},
    }
    assert record.input_data == {"Rock_Type": "Granite"}


def test_flat_space_separated_fields():
    record = normalize_record({"id": "p2", "SVR Fragmentation_Size (cm)": 18.0})
    assert record.predictions == {"Fragmentation_Size (cm)": {"SVR": 18.0}}
    assert record.convention == MODEL_FIRST


def test_flat_record_without_recognisable_fields():
    with pytest.raises(NoPredictionDataError):
        normalize_record({"id": "p3", "SVR_Score": 0.9, "Model_Notes": "XGBoost"})
