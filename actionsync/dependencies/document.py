"""
Request dependencies for FastAPI routes.

Every request opens the configured document fresh from disk, so nothing from a
previous command (section bounds, paragraphs) leaks into the next one.
"""
from __future__ import annotations

import logging
from pathlib import Path

from fastapi import HTTPException, status

from actionsync.config import settings
from actionsync.services.document_model import DocumentHandle
from actionsync.services.sync_service import ActionSyncService

logger = logging.getLogger(__name__)


async def get_document() -> DocumentHandle:
    """Open the meeting-notes document. Raises 404 if it does not exist."""
    path = Path(settings.DOCUMENT_PATH)
    if not path.is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document not found: {settings.DOCUMENT_PATH}",
        )
    try:
        return DocumentHandle.open(path)
    except RuntimeError as exc:
        logger.error("get_document: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        )


async def get_sync_service() -> ActionSyncService:
    return ActionSyncService()
