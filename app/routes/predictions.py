"""Prediction endpoints for rock blasting predictions"""
from enum import Enum
from typing import Any, Dict, Optional
from fastapi import APIRouter, Body, Depends, Query, status
from app.core.dependencies import get_prediction_service, require_session
from app.core.session import Session
from app.models.schemas import (
    BlastParameters,
    ErrorResponse,
    MessageResponse,
    PredictionView,
    RecentPrediction,
    RecentPredictionList
)
from app.services.normalizer import NormalizedPrediction
from app.services.prediction_service import PredictionService
from app.utils.logger import logger
from app.utils.responses import download_response

router = APIRouter(
    prefix="/predictions",
    tags=["Predictions"],
    responses={
        401: {"model": ErrorResponse, "description": "Not signed in or session expired"},
        503: {"model": ErrorResponse, "description": "Prediction server unreachable"}
    }
)


class ExportScope(str, Enum):
    INPUTS = "inputs"
    RESULTS = "results"
    ALL = "all"


def _view(record: NormalizedPrediction) -> PredictionView:
    return PredictionView(
        id=record.id,
        input_data={k: v for k, v in record.input_data.items() if k != "id"},
        predictions=record.predictions,
        source=record.source
    )


def preferred_export_format(session: Session) -> str:
    """Export format from the in-memory settings, else the saved copy, else CSV"""
    sync = session.settings_sync
    if sync is not None and sync.loaded:
        return sync.current.dataExportFormat
    saved = session.storage.get_item("userSettings")
    if isinstance(saved, dict) and saved.get("dataExportFormat"):
        return saved["dataExportFormat"]
    return "csv"


@router.post(
    "",
    response_model=PredictionView,
    summary="Run Prediction",
    description="Submit blast design parameters and get predictions from every model"
)
async def create_prediction(
    params: BlastParameters,
    service: PredictionService = Depends(get_prediction_service)
):
    """
    Run a prediction for the submitted blast design.

    **Authentication:** requires a signed-in session.

    **Returns:**
    - The prediction id (custom or generated)
    - Input parameters as stored by the backend
    - Fragmentation size, vibration, noise and powder factor per model
    """
    record = await service.submit(params)
    return _view(record)


@router.post(
    "/test-default",
    response_model=PredictionView,
    summary="Test With Default Values",
    description="Run a prediction with built-in sample data to check the backend"
)
async def test_default_prediction(service: PredictionService = Depends(get_prediction_service)):
    record = await service.submit_default()
    return _view(record)


@router.get("/recent", response_model=RecentPredictionList, summary="Recent Predictions")
async def recent_predictions(
    sync: bool = Query(True, description="Refresh from the server history first"),
    service: PredictionService = Depends(get_prediction_service)
):
    """
    Recently viewed predictions, newest first (at most 10).

    The list is refreshed from the server history when it answers with at
    least one record; otherwise the locally cached list is returned.
    """
    entries, synced = await service.recent(sync=sync)
    return RecentPredictionList(items=[RecentPrediction(**e) for e in entries], synced=synced)


@router.get("/history", response_model=RecentPredictionList, summary="Prediction History")
async def prediction_history(service: PredictionService = Depends(get_prediction_service)):
    """Server-side prediction history, mirrored into the recents list"""
    entries, synced = await service.history()
    return RecentPredictionList(items=[RecentPrediction(**e) for e in entries], synced=synced)


@router.get("/{prediction_id}", response_model=PredictionView, summary="Get Prediction")
async def get_prediction(
    prediction_id: str,
    service: PredictionService = Depends(get_prediction_service)
):
    """Fetch a stored prediction by id"""
    record = await service.get(prediction_id)
    return _view(record)


@router.put("/{prediction_id}", response_model=PredictionView, summary="Edit And Recalculate")
async def update_prediction(
    prediction_id: str,
    changes: Dict[str, Any] = Body(..., examples=[{"Rock_Type": "Basalt", "Burden (m)": 3.2}]),
    service: PredictionService = Depends(get_prediction_service)
):
    """
    Change input parameters of a stored prediction.

    The backend recomputes the predictions; the id stays the same.
    """
    record = await service.update(prediction_id, changes)
    return _view(record)


@router.delete(
    "/{prediction_id}",
    response_model=MessageResponse,
    status_code=status.HTTP_200_OK,
    summary="Delete Prediction"
)
async def delete_prediction(
    prediction_id: str,
    service: PredictionService = Depends(get_prediction_service)
):
    await service.delete(prediction_id)
    return MessageResponse(message=f"Prediction {prediction_id} deleted")


@router.get("/{prediction_id}/export", summary="Export Prediction")
async def export_prediction(
    prediction_id: str,
    format: Optional[str] = Query(None, description="json, csv or xlsx; defaults to the saved preference"),
    scope: ExportScope = Query(ExportScope.ALL, alias="type", description="inputs, results or all"),
    session: Session = Depends(require_session),
    service: PredictionService = Depends(get_prediction_service)
):
    """Download one prediction as `rock-{inputs|results|prediction}-{id}.{ext}`"""
    fmt = format or preferred_export_format(session)
    export = await service.export(prediction_id, fmt, scope.value)
    logger.info(f"Serving export {export.filename}")
    return download_response(export)
