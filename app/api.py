"""HTTP route definitions for the service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from app.schemas import (
    ErrorResponse,
    HealthResponse,
    TemperatureListResponse,
    TemperatureUpdateRequest,
    TemperatureUpdateResponse,
)
from services.monitor import MonitorContext
from services.reader import read_raw_temperatures
from services.writer import TemperatureValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_monitor(request: Request) -> MonitorContext:
    return request.app.state.monitor


def _error(status_code: int, error: str, hint: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, hint=hint).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


@router.post(
    "/api/temperatures",
    response_model=TemperatureUpdateResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
    summary="Replace the temperature file with the valid subset of the submission.",
)
async def update_temperatures(
    payload: TemperatureUpdateRequest,
    monitor: MonitorContext = Depends(get_monitor),
) -> TemperatureUpdateResponse | JSONResponse:
    try:
        result = await run_in_threadpool(monitor.writer.submit, payload.temperatures)
    except TemperatureValidationError as exc:
        return _error(status.HTTP_400_BAD_REQUEST, str(exc), exc.hint)
    except Exception:  # noqa: BLE001 - surfaced to the caller as a 500
        logger.exception("Error updating temperatures", extra={"path": str(monitor.path)})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to update temperatures")
    return TemperatureUpdateResponse(count=result.count)


@router.get(
    "/api/temperatures",
    response_model=TemperatureListResponse,
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
    summary="Return the raw lines currently stored in the temperature file.",
)
async def list_temperatures(
    monitor: MonitorContext = Depends(get_monitor),
) -> TemperatureListResponse | JSONResponse:
    try:
        lines = await run_in_threadpool(read_raw_temperatures, monitor.path)
    except Exception:  # noqa: BLE001 - surfaced to the caller as a 500
        logger.exception("Error reading temperatures", extra={"path": str(monitor.path)})
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to read temperatures")
    return TemperatureListResponse(temperatures=lines)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> HealthResponse:
    return HealthResponse()


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}
