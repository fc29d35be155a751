"""HTTP route definitions for the service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from app.schemas import (
    AlertEvaluationResponse,
    AlertResponse,
    BatchSensorReadingPayload,
    FieldCreate,
    FieldResponse,
    IngestionResponse,
    SensorReadingPayload,
    SensorReadingResponse,
)
from datastore.tables import AlertTable, FieldTable, build_default_alert_table, build_default_field_table
from models.records import Field
from services.alerts import AlertEvaluator, build_default_evaluator
from services.ingestion import (
    IngestionResult,
    IngestionService,
    ReadingSaveError,
    build_default_ingestion_service,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_evaluator() -> AlertEvaluator:
    return build_default_evaluator()


def get_ingestion_service() -> IngestionService:
    return build_default_ingestion_service()


def get_field_table() -> FieldTable:
    return build_default_field_table()


def get_alert_table() -> AlertTable:
    return build_default_alert_table()


def _ingestion_response(result: IngestionResult) -> IngestionResponse:
    response = IngestionResponse.model_validate(result)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=response.model_dump(),
        )
    return response


@router.post(
    "/fields",
    status_code=status.HTTP_201_CREATED,
    response_model=FieldResponse,
    summary="Register a field and its owning farm.",
)
async def create_field(
    payload: FieldCreate,
    fields: FieldTable = Depends(get_field_table),
) -> FieldResponse:
    try:
        record = Field(farm_id=payload.farm_id, name=payload.name, crop_type=payload.crop_type)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    try:
        fields.put_item(record)
    except OSError as exc:
        logger.exception(
            "Failed to save field", extra={"farm_id": record.farm_id, "reason": str(exc)}
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Field save failed: {exc}",
        ) from exc
    return FieldResponse.model_validate(record)


@router.get(
    "/fields/{field_id}",
    response_model=FieldResponse,
    summary="Fetch a registered field.",
)
async def get_field(
    field_id: str,
    fields: FieldTable = Depends(get_field_table),
) -> FieldResponse:
    record = fields.get_item(field_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Field {field_id!r} not found.",
        )
    return FieldResponse.model_validate(record)


@router.post(
    "/ingestion/single",
    status_code=status.HTTP_201_CREATED,
    response_model=SensorReadingResponse,
    summary="Ingest a single sensor reading.",
)
def ingest_single(
    payload: SensorReadingPayload,
    service: IngestionService = Depends(get_ingestion_service),
) -> SensorReadingResponse:
    try:
        reading = service.ingest_single(payload)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except ReadingSaveError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return SensorReadingResponse.model_validate(reading)


@router.post(
    "/ingestion/batch",
    response_model=IngestionResponse,
    summary="Ingest a batch of sensor readings sequentially.",
)
def ingest_batch(
    payload: BatchSensorReadingPayload,
    service: IngestionService = Depends(get_ingestion_service),
) -> IngestionResponse:
    return _ingestion_response(service.ingest_batch(payload))


@router.post(
    "/ingestion/batch/parallel",
    response_model=IngestionResponse,
    summary="Ingest a batch of sensor readings on the worker pool.",
)
def ingest_batch_parallel(
    payload: BatchSensorReadingPayload,
    service: IngestionService = Depends(get_ingestion_service),
) -> IngestionResponse:
    return _ingestion_response(service.ingest_batch_parallel(payload))


@router.post(
    "/alerts/evaluate",
    response_model=AlertEvaluationResponse,
    summary="Evaluate the last hour of readings and create alerts.",
)
def evaluate_alerts(
    response: Response,
    evaluator: AlertEvaluator = Depends(get_evaluator),
) -> AlertEvaluationResponse:
    result = evaluator.run_alert_evaluation()
    if not result.success:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return AlertEvaluationResponse.model_validate(result)


@router.get(
    "/farms/{farm_id}/alerts",
    response_model=list[AlertResponse],
    summary="List alerts raised for a farm, newest first.",
)
async def list_farm_alerts(
    farm_id: str,
    active_only: bool = Query(False, description="Only return active alerts."),
    alerts: AlertTable = Depends(get_alert_table),
) -> list[AlertResponse]:
    return [AlertResponse.model_validate(alert) for alert in alerts.get_by_farm_id(farm_id, active_only)]
