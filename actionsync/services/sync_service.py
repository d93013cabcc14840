"""
Orchestrator for the action-item sync.

Public API
----------
ActionSyncService.refresh(document)        -> RefreshResult
    Anchor → AI extraction → rewrite the generated section.

ActionSyncService.push(document)           -> PushResult
    Read the section → create one tracker issue per pending item → annotate
    each created item in place with its identifier.

ActionSyncService.locate_anchor(document)  -> AnchorInfo
ActionSyncService.list_anchors(document)   -> List[AnchorInfo]

Push is at-least-once and idempotent by marker: an item that already carries a
``(TEAM-123)`` suffix is never pushed again, and an item whose creation failed
is left untouched so the next run retries it.
"""
from __future__ import annotations

import dataclasses
import logging
import time
from datetime import datetime
from typing import List, Optional

from actionsync.config import settings
from actionsync.services.action_extractor import ActionExtractor, format_item
from actionsync.services.document_model import DocumentHandle
from actionsync.services.markers import (
    AnchorInfo,
    AnchorNotFound,
    anchor_info,
    append_tracker_suffix,
    list_anchors,
    resolve_anchor,
)
from actionsync.services.section_reader import pending_items, read_section
from actionsync.services.section_renderer import render_section
from actionsync.services.tracker_client import LinearTrackerClient, TrackerCallFailed

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------

@dataclasses.dataclass
class RefreshResult:
    success: bool
    items_written: int
    processing_time_seconds: float
    message: str


@dataclasses.dataclass
class PushResult:
    eligible: int
    already_pushed: int
    pushed: int
    failed: int
    created: List[str]
    processing_time_seconds: float
    message: str


# ---------------------------------------------------------------------------
# ActionSyncService
# ---------------------------------------------------------------------------

class ActionSyncService:
    """
    Runs one user command against one open document.

    Holds no state between calls; every lookup (anchor, section bounds, tracker
    users, label) is redone per call so the class can be built per request.
    """

    def __init__(
        self,
        extractor: Optional[ActionExtractor] = None,
        tracker: Optional[LinearTrackerClient] = None,
        anchor_name: Optional[str] = None,
        heading_phrase: Optional[str] = None,
        document_url: Optional[str] = None,
    ) -> None:
        self._extractor = extractor or ActionExtractor()
        self._tracker = tracker or LinearTrackerClient()
        self.anchor_name = settings.ANCHOR_BOOKMARK if anchor_name is None else anchor_name
        self.heading_phrase = heading_phrase or settings.ACTION_ITEMS_PHRASE
        self.document_url = document_url or settings.get_document_url()

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(
        self,
        document: DocumentHandle,
        now: Optional[datetime] = None,
        save: bool = True,
    ) -> RefreshResult:
        """
        Rebuild the generated section from the current notes.

        Steps
        -----
        1. Resolve the anchor heading (a missing anchor is reported, not raised).
        2. Extract open action items (ExtractionFailed propagates; the document
           has not been touched at that point).
        3. Replace the generated section and save.
        """
        t0 = time.monotonic()
        try:
            anchor = resolve_anchor(document, self.anchor_name)
        except AnchorNotFound as exc:
            logger.error("refresh: %s", exc)
            return RefreshResult(False, 0, 0.0, str(exc))

        items = await self._extractor.extract(document.full_text(), now=now)
        lines = [format_item(item) for item in items]

        written = render_section(document, anchor, lines, now=now)
        if save:
            document.save()

        elapsed = round(time.monotonic() - t0, 2)
        if written:
            message = f"Updated action items: {written} open item(s) written."
        else:
            message = "Updated action items: no open action items found."
        logger.info("refresh: %s (%.2fs)", message, elapsed)
        return RefreshResult(True, written, elapsed, message)

    # ------------------------------------------------------------------
    # Push
    # ------------------------------------------------------------------

    async def push(self, document: DocumentHandle, save: bool = True) -> PushResult:
        """
        Create tracker issues for every unchecked item without a tracker id.

        Fetching users or ensuring the label aborts the whole push
        (TrackerCallFailed propagates, nothing is annotated).  A failure on one
        issue only skips that item.
        """
        t0 = time.monotonic()
        items = read_section(document, self.heading_phrase)
        pending = pending_items(items)
        already = len(items) - len(pending)

        if not pending:
            message = f"Nothing to push ({already} item(s) already in Linear)."
            logger.info("push: %s", message)
            return PushResult(len(items), already, 0, 0, [], 0.0, message)

        context = await self._tracker.prepare_context()

        created: List[str] = []
        failed = 0
        try:
            for item in pending:
                try:
                    issue_id = await self._tracker.create_issue(item, context, self.document_url)
                except TrackerCallFailed as exc:
                    logger.warning("push: ✗ %r: %s", item.description[:80], exc)
                    issue_id = None

                if issue_id is None:
                    failed += 1
                    continue

                document.set_checklist_text(
                    item.paragraph, append_tracker_suffix(item.clean_text, issue_id)
                )
                created.append(issue_id)
                logger.info("push: ✓ %s", issue_id)
        finally:
            # Keep whatever was annotated even if the batch was interrupted.
            if created and save:
                document.save()

        elapsed = round(time.monotonic() - t0, 2)
        message = f"Pushed {len(created)} new issue(s) to Linear"
        details = []
        if already:
            details.append(f"{already} already pushed")
        if failed:
            details.append(f"{failed} failed")
        if details:
            message += f" ({', '.join(details)})"
        message += "."

        logger.info("push: %s", message)
        return PushResult(len(items), already, len(created), failed, created, elapsed, message)

    # ------------------------------------------------------------------
    # Navigation / diagnostics
    # ------------------------------------------------------------------

    def locate_anchor(self, document: DocumentHandle) -> AnchorInfo:
        """Jump-to-anchor: where the configured anchor heading is."""
        anchor = resolve_anchor(document, self.anchor_name)
        return anchor_info(document, self.anchor_name, anchor)

    def list_anchors(self, document: DocumentHandle) -> List[AnchorInfo]:
        return list_anchors(document)
