"""
Rewrites the generated section under the anchor heading.

The rewrite is a full replace: whatever sits between the anchor heading and the
next Heading 1 is deleted, including any edits a user made there by hand.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from docx.text.paragraph import Paragraph

from actionsync.services.document_model import UNCHECKED_GLYPHS, DocumentHandle
from actionsync.services.markers import section_bounds

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "Last updated: %Y-%m-%d %H:%M"
NO_ITEMS_TEXT = "No open action items in the last 4 weeks."


def clear_section(document: DocumentHandle, anchor: Paragraph) -> Optional[Paragraph]:
    """Delete the generated section; returns the boundary paragraph (None = document end)."""
    bounds = section_bounds(document, anchor)
    for element in bounds.elements:
        document.remove_element(element)
    logger.debug("clear_section: removed %d element(s)", len(bounds.elements))
    return bounds.boundary


def render_section(
    document: DocumentHandle,
    anchor: Paragraph,
    lines: List[str],
    now: Optional[datetime] = None,
) -> int:
    """
    Replace the generated section with a timestamp, a separator and *lines*.

    Every line becomes an unchecked checklist entry; all entries belong to one
    new checklist group.  Returns the number of entries written.
    """
    boundary = clear_section(document, anchor)
    now = now or datetime.now()

    stamp = document.insert_paragraph(boundary)
    stamp.add_run(now.strftime(TIMESTAMP_FORMAT)).italic = True
    document.insert_separator(boundary)

    if not lines:
        empty = document.insert_paragraph(boundary)
        empty.add_run(NO_ITEMS_TEXT).italic = True
        return 0

    group_id = document.new_checklist_group()
    for line in lines:
        document.insert_checklist_item(boundary, line, UNCHECKED_GLYPHS[0], group_id)

    logger.info("render_section: wrote %d checklist item(s)", len(lines))
    return len(lines)
