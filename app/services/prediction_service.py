"""Prediction lifecycle: submit, retrieve, edit-and-recalculate, delete, export"""
import uuid
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote
from app.core.cache.recents_cache import RecentsCache, make_entry
from app.models.schemas import BlastParameters
from app.services.api_client import ApiClient
from app.services.exporter import ExportFile, export_record
from app.services.normalizer import NormalizedPrediction, normalize_record
from app.utils.exceptions import FormValidationError
from app.utils.logger import logger


def default_rock_data() -> Dict[str, Any]:
    """Known-good record used to test the backend end to end"""
    return {
        "id": str(uuid.uuid4()),
        "Rock_Type": "Granite",
        "Rock_Density (kg/m³)": 2700,
        "UCS (MPa)": 120,
        "Rock_Elastic_Modulus (GPa)": 50,
        "Fracture_Frequency (/m)": 2.5,
        "Hole_Diameter (mm)": 90,
        "Charge_Length (m)": 6,
        "Stemming_Length (m)": 3,
        "Explosive_Type": "ANFO",
        "Blast_Pattern_Spacing (m)": 4,
        "Delay_Timing (ms)": 25,
        "Powder_Factor (kg/m³)": 0.5,
        "Weathering_Degree": 0.2,
        "Groundwater_Level (m)": 5,
        "Blast_Vibration_PPV (mm/s)": 10,
        "Fragmentation_Size (cm)": 20,
        "Blasting_Cost ($/tonne)": 0.8,
        "Penetration_Rate (m/min)": 1.5,
        "Bench_Height (m)": 10,
        "Stemming_Material": "Drill Cuttings",
        "Water_Log_Status": "Dry",
        "Vibration_Level (dB)": 90,
        "Noise_Level (dB)": 100,
        "Explosive_Weight (kg)": 120,
        "Burden (m)": 3,
        "Spacing (m)": 3.5,
        "Stemming (m)": 3,
        "SubDrilling (m)": 0.5,
        "Rock_Volume (m³)": 100,
    }


def _clean_id(prediction_id: str) -> str:
    value = (prediction_id or "").strip()
    if not value:
        raise FormValidationError("Please enter a prediction ID", field="id")
    return value


def _record_path(prediction_id: str) -> str:
    return f"/api/data/{quote(prediction_id, safe='')}"


class PredictionService:
    """
    Prediction workflow for one signed-in session.

    Every backend answer goes through `normalize_record` exactly once; the
    recents cache is kept in step with submits, edits and deletes.
    """

    def __init__(self, client: ApiClient, recents: RecentsCache):
        self.client = client
        self.recents = recents

    async def submit(self, params: BlastParameters) -> NormalizedPrediction:
        """Run a new prediction and remember it in the recents cache"""
        prediction_id = params.custom_id or str(uuid.uuid4())
        payload = params.to_backend_payload(prediction_id)

        logger.info(f"Submitting prediction {prediction_id} ({params.Rock_Type})")
        response = await self.client.post("/api/predict", payload)
        record = normalize_record(response, fallback_id=prediction_id)
        if not record.input_data:
            record.input_data = payload

        self.recents.push(make_entry(
            prediction_id,
            rock_type=params.Rock_Type,
            custom_id=params.custom_id is not None
        ))
        logger.info(f"Prediction {prediction_id} completed")
        return record

    async def submit_default(self) -> NormalizedPrediction:
        """Test prediction with built-in data; not added to recents"""
        payload = default_rock_data()
        response = await self.client.post("/api/predict", payload)
        record = normalize_record(response, fallback_id=payload["id"])
        logger.info(f"Default-data test prediction {payload['id']} succeeded")
        return record

    async def get(self, prediction_id: str) -> NormalizedPrediction:
        prediction_id = _clean_id(prediction_id)
        response = await self.client.get(_record_path(prediction_id))
        return normalize_record(response, fallback_id=prediction_id)

    async def update(self, prediction_id: str, changes: Dict[str, Any]) -> NormalizedPrediction:
        """
        Edit input parameters and let the backend recompute the predictions.

        The id is fixed; a Rock_Type change is mirrored into the existing
        recents entry.
        """
        prediction_id = _clean_id(prediction_id)
        changes = {k: v for k, v in (changes or {}).items() if k != "id"}
        if not changes:
            raise FormValidationError("No changes to save")

        response = await self.client.put(_record_path(prediction_id), changes)
        record = normalize_record(response, fallback_id=prediction_id)

        rock_type = record.input_data.get("Rock_Type", changes.get("Rock_Type"))
        if rock_type is not None:
            self.recents.update(prediction_id, rockType=str(rock_type))
        logger.info(f"Prediction {prediction_id} updated and recalculated")
        return record

    async def delete(self, prediction_id: str) -> None:
        prediction_id = _clean_id(prediction_id)
        await self.client.delete(_record_path(prediction_id))
        self.recents.remove(prediction_id)
        logger.info(f"Prediction {prediction_id} deleted")

    async def recent(self, sync: bool = True) -> Tuple[List[Dict[str, Any]], bool]:
        """Recents list, refreshed from server history when possible"""
        synced = await self.recents.sync_from_server(self.client) if sync else False
        return self.recents.list(), synced

    async def history(self) -> Tuple[List[Dict[str, Any]], bool]:
        """Server history replaces the recents list; the local list is kept if the server has none"""
        return await self.recent(sync=True)

    async def export(self, prediction_id: str, fmt: Optional[str], scope: str) -> ExportFile:
        record = await self.get(prediction_id)
        return export_record(record, fmt or "csv", scope)
