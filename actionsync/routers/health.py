"""
Health check endpoint.
"""
from fastapi import APIRouter
from pathlib import Path
from datetime import datetime
import logging

import httpx

from actionsync.config import settings
from actionsync.models.schemas import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter()

REQUIRED_SETTINGS = (
    "LINEAR_API_KEY",
    "LINEAR_TEAM_ID",
    "LINEAR_PROJECT_ID",
    "ANCHOR_BOOKMARK",
    "AI_API_KEY",
)


@router.get("/", response_model=HealthCheckResponse)
async def health_check():
    """
    Health check endpoint to verify system status.

    Returns:
        HealthCheckResponse with status of the document, the AI service and
        the tracker configuration
    """
    missing = [name for name in REQUIRED_SETTINGS if not getattr(settings, name)]

    document_status = "ok" if Path(settings.DOCUMENT_PATH).is_file() else "missing"

    # Check AI service connection
    ai_status = "ok"
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            resp = await client.get(f"{settings.AI_BASE_URL.rstrip('/')}/api/tags")
        if resp.status_code != 200:
            ai_status = "error"
    except Exception as e:
        logger.error(f"AI service health check failed: {e}")
        ai_status = "error"

    tracker_status = "ok" if settings.LINEAR_API_KEY and settings.LINEAR_TEAM_ID else "unconfigured"

    overall_status = (
        "healthy"
        if document_status == "ok" and ai_status == "ok" and tracker_status == "ok" and not missing
        else "degraded"
    )

    return HealthCheckResponse(
        status=overall_status,
        document=document_status,
        ai_service=ai_status,
        tracker=tracker_status,
        missing_settings=missing,
        timestamp=datetime.utcnow()
    )
