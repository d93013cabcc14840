"""
Markers embedded in the document.

Two kinds of marker carry all durable sync state:

* the anchor bookmark, which sits on the heading that owns the generated
  section;
* the ``(TEAM-123)`` suffix on a checklist line, which records that the item
  has already been pushed to the tracker.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from docx.text.paragraph import Paragraph

from actionsync.services.document_model import (
    DocumentHandle,
    heading_level,
    is_top_level_heading,
)

logger = logging.getLogger(__name__)

TRACKER_ID_RE = re.compile(r"\s*\(([A-Za-z]+-\d+)\)\s*$")


class AnchorNotFound(LookupError):
    """The configured anchor bookmark is missing or is not on a heading."""


@dataclass
class SectionBounds:
    """Body elements of the generated section and the element that ends it."""

    anchor: Paragraph
    elements: List[Any] = field(default_factory=list)
    boundary: Optional[Paragraph] = None  # None = section runs to document end


@dataclass
class AnchorInfo:
    name: str
    text: str
    is_heading: bool
    paragraph_index: int


# ---------------------------------------------------------------------------
# Anchor
# ---------------------------------------------------------------------------

def resolve_anchor(document: DocumentHandle, bookmark_name: str) -> Paragraph:
    """
    Return the heading paragraph carrying *bookmark_name*.

    Raises:
        AnchorNotFound: no anchor configured, bookmark missing, or the bookmark
                        is not on a heading paragraph.
    """
    if not bookmark_name:
        raise AnchorNotFound("No anchor bookmark configured (set ANCHOR_BOOKMARK).")

    bookmark = document.find_bookmark(bookmark_name)
    if bookmark is None or bookmark.paragraph is None:
        raise AnchorNotFound(f"Anchor bookmark {bookmark_name!r} not found in the document.")

    if heading_level(bookmark.paragraph) == 0:
        raise AnchorNotFound(
            f"Anchor bookmark {bookmark_name!r} is not on a heading "
            f"(found on: {bookmark.paragraph.text[:60]!r})."
        )
    return bookmark.paragraph


def section_bounds(document: DocumentHandle, anchor: Paragraph) -> SectionBounds:
    """
    Everything after *anchor* up to, not including, the next Heading 1.

    Recomputed on every call; the document may have changed since the last one.
    """
    bounds = SectionBounds(anchor=anchor)
    started = False
    for element in document.body_elements():
        if not started:
            started = element is anchor._element
            continue

        para = document.paragraph_for(element)
        if para is not None and is_top_level_heading(para):
            bounds.boundary = para
            break
        bounds.elements.append(element)

    if not started:
        raise AnchorNotFound("Anchor heading is not a top-level body paragraph.")
    return bounds


def anchor_info(document: DocumentHandle, name: str, paragraph: Optional[Paragraph]) -> AnchorInfo:
    if paragraph is None:
        return AnchorInfo(name=name, text="", is_heading=False, paragraph_index=-1)
    return AnchorInfo(
        name=name,
        text=paragraph.text.strip(),
        is_heading=heading_level(paragraph) > 0,
        paragraph_index=document.paragraph_index(paragraph),
    )


def list_anchors(document: DocumentHandle) -> List[AnchorInfo]:
    """Every bookmark in the document with the paragraph it marks."""
    return [anchor_info(document, b.name, b.paragraph) for b in document.bookmarks()]


# ---------------------------------------------------------------------------
# Tracker-id suffix
# ---------------------------------------------------------------------------

def split_tracker_suffix(text: str) -> Tuple[str, Optional[str]]:
    """``"fix login (ENG-42)"`` -> ``("fix login", "ENG-42")``."""
    match = TRACKER_ID_RE.search(text)
    if not match:
        return text.strip(), None
    return text[: match.start()].strip(), match.group(1)


def append_tracker_suffix(text: str, issue_id: str) -> str:
    return f"{text.strip()} ({issue_id})"
