"""
Anchor navigation and diagnostics.
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from actionsync.dependencies.document import get_document, get_sync_service
from actionsync.models.schemas import AnchorResponse
from actionsync.services.document_model import DocumentHandle
from actionsync.services.markers import AnchorNotFound
from actionsync.services.sync_service import ActionSyncService

router = APIRouter()


@router.get("/", response_model=List[AnchorResponse])
async def list_anchors(
    document: DocumentHandle = Depends(get_document),
    service: ActionSyncService = Depends(get_sync_service),
):
    """List every bookmark in the document (setup debugging)."""
    return [AnchorResponse.model_validate(a) for a in service.list_anchors(document)]


@router.get("/current", response_model=AnchorResponse)
async def current_anchor(
    document: DocumentHandle = Depends(get_document),
    service: ActionSyncService = Depends(get_sync_service),
):
    """Where the configured anchor heading is (jump to anchor)."""
    try:
        info = service.locate_anchor(document)
    except AnchorNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return AnchorResponse.model_validate(info)
