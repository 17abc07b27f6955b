"""Test cases for single-record export"""
import io
import json
import pandas as pd
import pytest
from app.services.exporter import export_record, flatten_record, resolve_format
from app.services.normalizer import normalize_record
from app.utils.exceptions import ExportError


@pytest.fixture
def record():
    return normalize_record({
        "id": "site-9",
        "input_data": {"id": "site-9", "Rock_Type": "Granite", "Burden (m)": 3, "Spacing (m)": 3.5},
        "predictions": {
            "Fragmentation_Size (cm)": {"SVR": 30.0, "XGBoost": 30.5, "Random Forest": 31.0},
            "Noise_Level (dB)": {"SVR": 100.0, "XGBoost": 100.5, "Random Forest": 101.0},
        },
    })


def test_csv_inputs_header_matches_input_keys(record):
    export = export_record(record, "csv", "inputs")
    assert export.filename == "rock-inputs-site-9.csv"
    header = export.content.decode("utf-8-sig").splitlines()[0]
    assert header.split(",") == ["Rock_Type", "Burden (m)", "Spacing (m)"]


def test_inputs_exclude_inlined_prediction_fields():
    flat = normalize_record({"id": "legacy", "Rock_Type": "Coal", "SVR_Powder_Factor": 0.4})
    flat.input_data["XGBoost_Powder_Factor"] = 0.41
    assert flatten_record(flat, "inputs") == {"Rock_Type": "Coal"}


def test_results_row(record):
    row = flatten_record(record, "results")
    assert row["Fragmentation_Size (cm) - Random Forest"] == 31.0
    assert len(row) == 6


def test_json_all(record):
    export = export_record(record, "json", "all")
    assert export.filename == "rock-prediction-site-9.json"
    assert export.media_type == "application/json"
    data = json.loads(export.content)
    assert data["Rock_Type"] == "Granite"
    assert data["Noise_Level (dB) - SVR"] == 100.0


def test_xlsx_roundtrip_through_pandas(record):
    export = export_record(record, "excel", "all")
    assert export.filename == "rock-prediction-site-9.xlsx"
    frame = pd.read_excel(io.BytesIO(export.content), sheet_name="Prediction", engine="openpyxl")
    assert frame.loc[0, "Rock_Type"] == "Granite"
    assert frame.loc[0, "Fragmentation_Size (cm) - XGBoost"] == 30.5


def test_empty_section_is_an_error(record):
    record.input_data = {"id": "site-9"}
    with pytest.raises(ExportError, match="no input parameters"):
        export_record(record, "csv", "inputs")


def test_unknown_scope_and_format(record):
    with pytest.raises(ExportError):
        flatten_record(record, "everything")
    with pytest.raises(ExportError):
        resolve_format("pdf")
    assert resolve_format(None, default="excel") == "xlsx"


def test_inputs_header_has_no_model_fields():
    flat = normalize_record({
        "id": "p1",
        "Rock_Type": "Granite",
        "Burden (m)": 3,
        "SVR_Fragmentation_Size (cm)": 20.0,
        "SVR_Powder_Factor (kg/m³)": 0.55,
        "Noise_Level (dB) XGBoost": 99.0,
    })
    export = export_record(flat, "csv", "inputs")
    header = export.content.decode("utf-8-sig").splitlines()[0]
    assert header.split(",") == ["Rock_Type", "Burden (m)"]
