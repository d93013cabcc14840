"""
Action-item command endpoints.

Route summary
-------------
POST /refresh  — rewrite the action-items section from the last 4 weeks of notes.
POST /push     — create Linear issues for pending items and annotate them.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from actionsync.dependencies.document import get_document, get_sync_service
from actionsync.models.schemas import PushResponse, RefreshResponse
from actionsync.services.action_extractor import ExtractionFailed
from actionsync.services.document_model import DocumentHandle
from actionsync.services.sync_service import ActionSyncService
from actionsync.services.tracker_client import TrackerCallFailed

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# POST /refresh
# ---------------------------------------------------------------------------

@router.post(
    "/refresh",
    response_model=RefreshResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh the action-items section",
)
async def refresh(
    document: DocumentHandle = Depends(get_document),
    service: ActionSyncService = Depends(get_sync_service),
) -> RefreshResponse:
    """
    Ask the AI service for the open action items of the last 4 weeks and
    replace the section under the anchor heading with them.

    A missing anchor is reported in ``message`` with ``success=false``.
    Returns 502 if the AI call fails; the document is left untouched.
    """
    try:
        result = await service.refresh(document)
    except ExtractionFailed as exc:
        logger.error("refresh: extraction failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Action item extraction failed: {exc}",
        )
    return RefreshResponse.model_validate(result)


# ---------------------------------------------------------------------------
# POST /push
# ---------------------------------------------------------------------------

@router.post(
    "/push",
    response_model=PushResponse,
    status_code=status.HTTP_200_OK,
    summary="Push pending action items to Linear",
)
async def push(
    document: DocumentHandle = Depends(get_document),
    service: ActionSyncService = Depends(get_sync_service),
) -> PushResponse:
    """
    Create one Linear issue per unchecked item that has no ``(TEAM-123)``
    suffix yet, then write the new identifier after the item.

    Safe to call repeatedly: annotated items are skipped.  Returns 502 if the
    user list or the label cannot be fetched.
    """
    try:
        result = await service.push(document)
    except TrackerCallFailed as exc:
        logger.error("push: tracker unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Linear request failed: {exc}",
        )
    return PushResponse.model_validate(result)
