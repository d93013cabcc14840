"""
Pydantic schemas for request/response validation.
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List
from datetime import datetime


# Command Schemas
class RefreshResponse(BaseModel):
    """Response for POST /api/actions/refresh."""

    success: bool
    items_written: int = Field(0, ge=0)
    processing_time_seconds: float = 0.0
    message: str

    model_config = ConfigDict(from_attributes=True)


class PushResponse(BaseModel):
    """Response for POST /api/actions/push."""

    eligible: int = Field(..., ge=0)
    already_pushed: int = Field(..., ge=0)
    pushed: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    created: List[str] = []
    processing_time_seconds: float = 0.0
    message: str

    model_config = ConfigDict(from_attributes=True)


# Anchor Schemas
class AnchorResponse(BaseModel):
    """A bookmark and the paragraph it marks."""

    name: str
    text: str
    is_heading: bool
    paragraph_index: int

    model_config = ConfigDict(from_attributes=True)


# Health Check Schema
class HealthCheckResponse(BaseModel):
    """Schema for health check endpoint."""

    status: str
    document: str
    ai_service: str
    tracker: str
    missing_settings: List[str] = []
    timestamp: datetime
    version: str = "0.1.0"
