"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class TemperatureUpdateRequest(BaseModel):
    temperatures: List[str] = Field(
        ..., description="Temperature tokens such as '32C' or '100F'."
    )


class TemperatureUpdateResponse(BaseModel):
    success: bool = True
    count: int = Field(..., ge=1, description="Number of accepted temperatures.")
    message: str = "Temperatures updated successfully"


class TemperatureListResponse(BaseModel):
    """Raw, unparsed lines of the temperature file."""

    temperatures: List[str] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
    hint: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    message: str = "Temperature monitor server is running"
