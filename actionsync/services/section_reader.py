"""
Reads the generated section back into structured items.

Collection starts at the first paragraph whose text contains the action-items
heading phrase and runs to the end of the document.  Only unchecked checklist
entries are returned; checked ones are done and ignored.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from docx.text.paragraph import Paragraph

from actionsync.config import settings
from actionsync.services.action_extractor import UNASSIGNED
from actionsync.services.document_model import (
    UNCHECKED_GLYPHS,
    DocumentHandle,
    checklist_glyph,
    checklist_text,
)
from actionsync.services.markers import split_tracker_suffix

logger = logging.getLogger(__name__)

_BULLET_PREFIX_RE = re.compile(r"^[•\-*–·]\s*")
_ASSIGNEE_RE = re.compile(r"^@(\S+)\s*(.*)$", re.DOTALL)


@dataclass
class SectionItem:
    """One unchecked checklist entry of the generated section."""

    assignee: str
    description: str
    clean_text: str              # line without glyph, bullet prefix or tracker suffix
    issue_id: Optional[str]
    paragraph: Paragraph

    @property
    def already_pushed(self) -> bool:
        return self.issue_id is not None


def parse_item_text(text: str) -> dict:
    """Split a checklist line into clean text, tracker id, assignee and description."""
    text = _BULLET_PREFIX_RE.sub("", text.strip(), count=1)
    clean_text, issue_id = split_tracker_suffix(text)

    match = _ASSIGNEE_RE.match(clean_text)
    if match:
        assignee, description = match.group(1), match.group(2).strip()
    else:
        assignee, description = UNASSIGNED, clean_text

    return {
        "assignee": assignee,
        "description": description,
        "clean_text": clean_text,
        "issue_id": issue_id,
    }


def read_section(
    document: DocumentHandle,
    heading_phrase: Optional[str] = None,
) -> List[SectionItem]:
    """Return every unchecked checklist entry after the action-items heading."""
    heading_phrase = heading_phrase or settings.ACTION_ITEMS_PHRASE
    items: List[SectionItem] = []
    in_section = False

    for para in document.paragraphs:
        if not in_section:
            in_section = heading_phrase in para.text
            continue

        if checklist_glyph(para) not in UNCHECKED_GLYPHS:
            continue

        text = checklist_text(para)
        if not text:
            continue
        items.append(SectionItem(paragraph=para, **parse_item_text(text)))

    if not in_section:
        logger.warning("read_section: heading phrase %r not found", heading_phrase)
    logger.info(
        "read_section: %d unchecked item(s), %d already pushed",
        len(items),
        sum(1 for i in items if i.already_pushed),
    )
    return items


def pending_items(items: List[SectionItem]) -> List[SectionItem]:
    return [item for item in items if not item.already_pushed]
