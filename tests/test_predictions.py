"""Test cases for prediction endpoints"""
import io
import uuid
import pandas as pd
import pytest
from tests.conftest import BLAST_FORM

PREDICTIONS_URL = "/api/v1/predictions"


async def _submit(client, **overrides):
    response = await client.post(PREDICTIONS_URL, json={**BLAST_FORM, **overrides})
    assert response.status_code == 200, response.text
    return response.json()


@pytest.mark.asyncio
async def test_prediction_generated_id(signed_in, backend):
    """Submitting without a custom id generates a UUID and assembles the backend payload"""
    data = await _submit(signed_in)

    uuid.UUID(data["id"])
    assert set(data["predictions"]) == {
        "Fragmentation_Size (cm)", "Vibration_Level (dB)", "Noise_Level (dB)", "Powder_Factor"
    }
    for models in data["predictions"].values():
        assert set(models) == {"SVR", "XGBoost", "Random Forest"}

    sent = backend.calls_to("POST", "/api/predict")[0]["body"]
    assert sent["Rock_Density (kg/m³)"] == 2700
    assert sent["Stemming (m)"] == sent["Stemming_Length (m)"] == 3
    assert sent["Fragmentation_Size (cm)"] == 0
    assert sent["Bench_Height (m)"] == 10
    assert "id" not in data["input_data"]


@pytest.mark.asyncio
async def test_prediction_custom_id(signed_in):
    data = await _submit(signed_in, custom_id="  site1-test2 ")
    assert data["id"] == "site1-test2"

    recent = (await signed_in.get(f"{PREDICTIONS_URL}/recent", params={"sync": False})).json()
    assert recent["items"][0]["id"] == "site1-test2"
    assert recent["items"][0]["customId"] is True
    assert recent["items"][0]["rockType"] == "Granite"


@pytest.mark.asyncio
async def test_prediction_invalid_input(signed_in, backend):
    """Form validation happens before anything reaches the backend"""
    response = await signed_in.post(PREDICTIONS_URL, json={**BLAST_FORM, "Rock_Type": "Marble"})
    assert response.status_code == 422
    assert any(f["field"] == "Rock_Type" for f in response.json()["detail"])
    assert backend.calls_to("POST", "/api/predict") == []


@pytest.mark.asyncio
async def test_backend_validation_errors_are_itemized(signed_in, backend):
    backend.overrides[("POST", "/api/predict")] = (422, {"detail": [
        {"loc": ["body", "UCS (MPa)"], "msg": "field required", "type": "missing"},
        {"loc": ["body", "Burden (m)"], "msg": "value is not a valid float", "type": "float_parsing"},
    ]})
    response = await signed_in.post(PREDICTIONS_URL, json=BLAST_FORM)
    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == (
        "Validation error: UCS (MPa): field required, Burden (m): value is not a valid float"
    )
    assert data["fields"][0] == {"field": "UCS (MPa)", "message": "field required"}


@pytest.mark.asyncio
async def test_prediction_backend_unreachable(signed_in, backend):
    backend.overrides[("POST", "/api/predict")] = "network"
    response = await signed_in.post(PREDICTIONS_URL, json=BLAST_FORM)
    assert response.status_code == 503
    assert response.json()["error"] == "Connectivity Error"


@pytest.mark.asyncio
async def test_get_prediction_is_idempotent(signed_in):
    created = await _submit(signed_in)
    first = await signed_in.get(f"{PREDICTIONS_URL}/{created['id']}")
    second = await signed_in.get(f"{PREDICTIONS_URL}/{created['id']}")
    assert first.status_code == second.status_code == 200
    assert first.json()["predictions"] == second.json()["predictions"] == created["predictions"]


@pytest.mark.asyncio
async def test_get_unknown_prediction(signed_in):
    response = await signed_in.get(f"{PREDICTIONS_URL}/does-not-exist")
    assert response.status_code == 404
    assert response.json()["detail"] == "Prediction not found"


@pytest.mark.asyncio
async def test_get_flat_record(signed_in, backend):
    """Records with inlined model fields are synthesized into the structured form"""
    backend.add_record({
        "id": "legacy-1",
        "Rock_Type": "Shale",
        "Burden (m)": 2.5,
        "SVR_Fragmentation_Size (cm)": "21.5",
        "XGBoost_Fragmentation_Size (cm)": 22.0,
        "Noise_Level (dB)_Random Forest": 101.2,
    })
    response = await signed_in.get(f"{PREDICTIONS_URL}/legacy-1")
    assert response.status_code == 200
    data = response.json()
    assert data["source"] == "flat"
    assert data["predictions"]["Fragmentation_Size (cm)"] == {"SVR": 21.5, "XGBoost": 22.0}
    assert data["predictions"]["Noise_Level (dB)"] == {"Random Forest": 101.2}
    assert data["input_data"] == {"Rock_Type": "Shale", "Burden (m)": 2.5}


@pytest.mark.asyncio
async def test_get_record_without_predictions(signed_in, backend):
    backend.add_record({"id": "empty-1", "input_data": {"Rock_Type": "Coal"}, "predictions": {}})
    response = await signed_in.get(f"{PREDICTIONS_URL}/empty-1")
    assert response.status_code == 404
    assert response.json()["detail"] == "No prediction data found"


@pytest.mark.asyncio
async def test_edit_rock_type_updates_recents_in_place(signed_in):
    created = await _submit(signed_in, custom_id="quarry-7")

    response = await signed_in.put(f"{PREDICTIONS_URL}/quarry-7", json={"Rock_Type": "Basalt"})
    assert response.status_code == 200
    updated = response.json()
    assert updated["id"] == "quarry-7"
    assert updated["input_data"]["Rock_Type"] == "Basalt"
    assert updated["predictions"] != created["predictions"]

    items = (await signed_in.get(f"{PREDICTIONS_URL}/recent", params={"sync": False})).json()["items"]
    matching = [item for item in items if item["id"] == "quarry-7"]
    assert len(matching) == 1
    assert matching[0]["rockType"] == "Basalt"


@pytest.mark.asyncio
async def test_edit_without_changes(signed_in):
    await _submit(signed_in, custom_id="quarry-8")
    response = await signed_in.put(f"{PREDICTIONS_URL}/quarry-8", json={"id": "other"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_delete_prediction(signed_in, backend):
    await _submit(signed_in, custom_id="to-delete")
    response = await signed_in.delete(f"{PREDICTIONS_URL}/to-delete")
    assert response.status_code == 200
    assert "to-delete" not in backend.records

    items = (await signed_in.get(f"{PREDICTIONS_URL}/recent", params={"sync": False})).json()["items"]
    assert all(item["id"] != "to-delete" for item in items)


@pytest.mark.asyncio
async def test_recents_capped_newest_first(signed_in, backend):
    backend.overrides[("GET", "/api/predictions/history")] = (500, {"detail": "history unavailable"})
    for i in range(12):
        await _submit(signed_in, custom_id=f"run-{i}")

    data = (await signed_in.get(f"{PREDICTIONS_URL}/recent")).json()
    assert data["synced"] is False
    assert [item["id"] for item in data["items"]] == [f"run-{i}" for i in range(11, 1, -1)]


@pytest.mark.asyncio
async def test_recents_replaced_from_server_history(signed_in, backend):
    await _submit(signed_in, custom_id="local-only")
    backend.overrides[("GET", "/api/predictions/history")] = (200, [
        {"id": "server-2", "input_data": {"Rock_Type": "Iron"}, "predictions": {}},
        {"id": str(uuid.uuid4()), "input_data": {"Rock_Type": "Coal"}, "predictions": {}},
    ])
    data = (await signed_in.get(f"{PREDICTIONS_URL}/recent")).json()
    assert data["synced"] is True
    assert [item["rockType"] for item in data["items"]] == ["Iron", "Coal"]
    assert data["items"][0]["customId"] is True
    assert data["items"][1]["customId"] is False


@pytest.mark.asyncio
async def test_history_endpoint_mirrors_server(signed_in, backend):
    await _submit(signed_in, custom_id="first")
    await _submit(signed_in, custom_id="second")
    data = (await signed_in.get(f"{PREDICTIONS_URL}/history")).json()
    assert data["synced"] is True
    assert [item["id"] for item in data["items"]] == ["second", "first"]
    assert len(backend.calls_to("GET", "/api/predictions/history")) == 1


@pytest.mark.asyncio
async def test_recents_kept_when_history_empty(signed_in, backend):
    await _submit(signed_in, custom_id="kept")
    backend.overrides[("GET", "/api/predictions/history")] = (200, [])
    data = (await signed_in.get(f"{PREDICTIONS_URL}/recent")).json()
    assert data["synced"] is False
    assert [item["id"] for item in data["items"]] == ["kept"]


@pytest.mark.asyncio
async def test_test_default_prediction(signed_in):
    response = await signed_in.post(f"{PREDICTIONS_URL}/test-default")
    assert response.status_code == 200
    assert response.json()["input_data"]["Rock_Type"] == "Granite"

    items = (await signed_in.get(f"{PREDICTIONS_URL}/recent", params={"sync": False})).json()["items"]
    assert items == []


@pytest.mark.asyncio
async def test_export_inputs_csv(signed_in):
    await _submit(signed_in, custom_id="blast-1")
    response = await signed_in.get(
        f"{PREDICTIONS_URL}/blast-1/export", params={"format": "csv", "type": "inputs"}
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="rock-inputs-blast-1.csv"' in response.headers["content-disposition"]

    frame = pd.read_csv(io.StringIO(response.content.decode("utf-8-sig")))
    assert "Rock_Density (kg/m³)" in frame.columns
    assert "id" not in frame.columns
    assert not any(" - " in column for column in frame.columns)


@pytest.mark.asyncio
async def test_export_results_xlsx(signed_in):
    await _submit(signed_in, custom_id="blast-2")
    response = await signed_in.get(
        f"{PREDICTIONS_URL}/blast-2/export", params={"format": "excel", "type": "results"}
    )
    assert response.status_code == 200
    assert 'filename="rock-results-blast-2.xlsx"' in response.headers["content-disposition"]

    frame = pd.read_excel(io.BytesIO(response.content), engine="openpyxl")
    assert list(frame.columns)[0] == "Fragmentation_Size (cm) - SVR"
    assert len(frame.columns) == 12


@pytest.mark.asyncio
async def test_export_uses_saved_format_preference(signed_in, backend):
    backend.settings = {"dataExportFormat": "json"}
    await signed_in.get("/api/v1/settings")
    await _submit(signed_in, custom_id="blast-3")

    response = await signed_in.get(f"{PREDICTIONS_URL}/blast-3/export")
    assert response.status_code == 200
    assert 'filename="rock-prediction-blast-3.json"' in response.headers["content-disposition"]
    data = response.json()
    assert data["Rock_Type"] == "Granite"
    assert "Noise_Level (dB) - XGBoost" in data


@pytest.mark.asyncio
async def test_export_unknown_format(signed_in):
    await _submit(signed_in, custom_id="blast-4")
    response = await signed_in.get(f"{PREDICTIONS_URL}/blast-4/export", params={"format": "pdf"})
    assert response.status_code == 422
    assert response.json()["error"] == "Export Error"
