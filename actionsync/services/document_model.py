"""
DOCX document model used by the action-item sync.

Wraps a python-docx ``Document`` and exposes the few primitives the sync needs:
bookmark lookup, ordered body traversal, paragraph insert/remove, separators,
and checklist entries.

A .docx file has no native checklist, so a checklist entry is a list paragraph
(``List Bullet``) whose text starts with a glyph character and a space. All
entries rendered together share one ``w:num`` instance, which is what makes
Word draw them as a single list.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from docx import Document as DocxDocument
from docx.document import Document as DocxDocumentType
from docx.enum.style import WD_STYLE_TYPE
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Glyphs and styles
# ---------------------------------------------------------------------------

UNCHECKED_GLYPHS = ("\u2610", "\u25a1")
CHECKED_GLYPHS = ("\u2611", "\u2612", "\u2713", "\u2714", "\u25a0")
ALL_GLYPHS = UNCHECKED_GLYPHS + CHECKED_GLYPHS

CHECKLIST_STYLE = "List Bullet"

HEADING_STYLES: Dict[str, int] = {
    "title": 1,
    "heading 1": 1,
    "heading 2": 2,
    "heading 3": 3,
    "heading 4": 4,
    "heading 5": 5,
    "heading 6": 6,
}

_BLOCK_TAGS = (qn("w:p"), qn("w:tbl"), qn("w:sdt"))


@dataclass
class Bookmark:
    """A named bookmark and the paragraph that contains it."""

    name: str
    paragraph: Optional[Paragraph]


# ---------------------------------------------------------------------------
# Document handle
# ---------------------------------------------------------------------------

class DocumentHandle:
    """The single document being processed."""

    def __init__(self, document: DocxDocumentType, path: Optional[Union[str, Path]] = None) -> None:
        self.document = document
        self.path = Path(path) if path else None

    @classmethod
    def open(cls, path: Union[str, Path]) -> "DocumentHandle":
        try:
            doc = DocxDocument(str(path))
        except Exception as exc:
            raise RuntimeError(f"Cannot open DOCX file: {exc}") from exc
        return cls(doc, path)

    def save(self, path: Optional[Union[str, Path]] = None) -> None:
        target = path or self.path
        if target is None:
            raise ValueError("No path to save the document to")
        self.document.save(str(target))
        logger.info("Saved document to %s", target)

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    @property
    def paragraphs(self) -> List[Paragraph]:
        return self.document.paragraphs

    def body_elements(self) -> List:
        """Block-level body children (paragraphs, tables, content controls) in order."""
        body = self.document.element.body
        return [child for child in body.iterchildren() if child.tag in _BLOCK_TAGS]

    def paragraph_index(self, paragraph: Paragraph) -> int:
        for index, para in enumerate(self.paragraphs):
            if para._element is paragraph._element:
                return index
        return -1

    def paragraph_for(self, element) -> Optional[Paragraph]:
        for para in self.paragraphs:
            if para._element is element:
                return para
        return None

    def full_text(self) -> str:
        """Whole document as plain text, headings marked with '#', tables pipe-delimited."""
        parts: List[str] = []
        for block in self.document.iter_inner_content():
            if isinstance(block, Table):
                for row in block.rows:
                    cells = [cell.text.strip() for cell in row.cells]
                    non_empty = [c for c in cells if c]
                    if non_empty:
                        parts.append(" | ".join(non_empty))
                continue

            text = block.text.strip()
            if not text:
                continue
            level = heading_level(block)
            parts.append(f"{'#' * level} {text}" if level else text)
        return "\n".join(parts)

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    def bookmarks(self) -> List[Bookmark]:
        found: List[Bookmark] = []
        for start in self.document.element.body.iter(qn("w:bookmarkStart")):
            name = start.get(qn("w:name")) or ""
            found.append(Bookmark(name=name, paragraph=self._paragraph_of(start)))
        return found

    def find_bookmark(self, name: str) -> Optional[Bookmark]:
        for bookmark in self.bookmarks():
            if bookmark.name == name:
                return bookmark
        return None

    def add_bookmark(self, paragraph: Paragraph, name: str) -> None:
        """Wrap *paragraph* content in a bookmark called *name*."""
        existing = [
            int(el.get(qn("w:id")))
            for el in self.document.element.body.iter(qn("w:bookmarkStart"))
            if (el.get(qn("w:id")) or "").isdigit()
        ]
        bookmark_id = str(max(existing, default=-1) + 1)

        start = OxmlElement("w:bookmarkStart", attrs={qn("w:id"): bookmark_id, qn("w:name"): name})
        end = OxmlElement("w:bookmarkEnd", attrs={qn("w:id"): bookmark_id})
        p = paragraph._element
        position = 1 if p.pPr is not None else 0
        p.insert(position, start)
        p.append(end)

    def _paragraph_of(self, element) -> Optional[Paragraph]:
        node = element
        while node is not None and node.tag != qn("w:p"):
            if node.tag == qn("w:body"):
                # Body-level bookmark: it marks the paragraph that follows it.
                sibling = element.getnext()
                while sibling is not None and sibling.tag != qn("w:p"):
                    sibling = sibling.getnext()
                return self.paragraph_for(sibling) if sibling is not None else None
            node = node.getparent()
        if node is None:
            return None
        return self.paragraph_for(node)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    @staticmethod
    def remove_element(element) -> None:
        parent = element.getparent()
        if parent is not None:
            parent.remove(element)

    def insert_paragraph(
        self,
        before: Optional[Paragraph],
        text: str = "",
        style: Optional[str] = None,
    ) -> Paragraph:
        """Insert a paragraph before *before*, or at the end of the body when None."""
        if before is None:
            return self.document.add_paragraph(text, style)
        return before.insert_paragraph_before(text, style)

    def insert_separator(self, before: Optional[Paragraph]) -> Paragraph:
        """Insert an empty paragraph drawn as a horizontal rule (bottom border)."""
        para = self.insert_paragraph(before)
        pPr = para._element.get_or_add_pPr()
        border = OxmlElement("w:pBdr")
        bottom = OxmlElement(
            "w:bottom",
            attrs={
                qn("w:val"): "single",
                qn("w:sz"): "6",
                qn("w:space"): "1",
                qn("w:color"): "auto",
            },
        )
        border.append(bottom)
        pPr.append(border)
        return para

    # ------------------------------------------------------------------
    # Checklists
    # ------------------------------------------------------------------

    def checklist_style(self):
        """The checklist paragraph style, added to the document when absent."""
        styles = self.document.styles
        try:
            return styles[CHECKLIST_STYLE]
        except KeyError:
            logger.warning("Style %r missing; adding it to the document", CHECKLIST_STYLE)
        style = styles.add_style(CHECKLIST_STYLE, WD_STYLE_TYPE.PARAGRAPH)
        if _has_style(self.document, "Normal"):
            style.base_style = styles["Normal"]
        return style

    def new_checklist_group(self) -> Optional[int]:
        """
        Create a fresh list instance based on the checklist style's numbering.

        Returns the new ``numId``, or None when the document has no numbering
        definition for the checklist style (items then fall back to the style's
        own list).
        """
        pPr = self.checklist_style().element.pPr
        if pPr is None or pPr.numPr is None or pPr.numPr.numId is None:
            return None

        try:
            numbering = self.document.part.numbering_part.element
            base = numbering.num_having_numId(pPr.numPr.numId.val)
        except (KeyError, NotImplementedError) as exc:
            logger.warning("No numbering definition for %r: %s", CHECKLIST_STYLE, exc)
            return None

        num = numbering.add_num(base.abstractNumId.val)
        return num.numId

    def insert_checklist_item(
        self,
        before: Optional[Paragraph],
        text: str,
        glyph: str = UNCHECKED_GLYPHS[0],
        group_id: Optional[int] = None,
    ) -> Paragraph:
        para = self.insert_paragraph(before, f"{glyph} {text}", self.checklist_style())
        if group_id is not None:
            numPr = para._element.get_or_add_pPr().get_or_add_numPr()
            numPr.get_or_add_ilvl().val = 0
            numPr.get_or_add_numId().val = group_id
        return para

    def set_checklist_text(self, paragraph: Paragraph, text: str) -> None:
        """
        Replace the text of a checklist entry, keeping its glyph.

        When *text* only extends the current text (the usual ``(ENG-42)``
        annotation), the existing runs are kept and the extension is appended
        as a run formatted like the last one.
        """
        glyph = checklist_glyph(paragraph)
        new_text = f"{glyph} {text}" if glyph else text
        current = paragraph.text.rstrip()
        runs = paragraph.runs

        if not runs or "".join(r.text for r in runs) != paragraph.text or not new_text.startswith(current):
            paragraph.text = new_text
            return

        last = runs[-1]
        for run in reversed(runs):
            run.text = run.text.rstrip()
            if run.text:
                last = run
                break

        extra = paragraph.add_run(new_text[len(current):])
        if last._r.rPr is not None:
            extra._r.insert(0, copy.deepcopy(last._r.rPr))


# ---------------------------------------------------------------------------
# Paragraph helpers
# ---------------------------------------------------------------------------

def style_name(paragraph: Paragraph) -> str:
    style = paragraph.style
    return style.name.lower() if style is not None and style.name else ""


def heading_level(paragraph: Paragraph) -> int:
    """1 for Title / Heading 1, N for Heading N, 0 for body text."""
    return HEADING_STYLES.get(style_name(paragraph), 0)


def is_heading(paragraph: Paragraph) -> bool:
    return heading_level(paragraph) > 0


def is_top_level_heading(paragraph: Paragraph) -> bool:
    return style_name(paragraph) == "heading 1"


def is_list_paragraph(paragraph: Paragraph) -> bool:
    pPr = paragraph._element.pPr
    if pPr is not None and pPr.numPr is not None:
        return True
    return style_name(paragraph).startswith("list")


def checklist_glyph(paragraph: Paragraph) -> Optional[str]:
    """The leading checkbox glyph of a list paragraph, or None."""
    if not is_list_paragraph(paragraph):
        return None
    text = paragraph.text.lstrip()
    if text and text[0] in ALL_GLYPHS:
        return text[0]
    return None


def checklist_text(paragraph: Paragraph) -> str:
    """Paragraph text with the checkbox glyph removed."""
    text = paragraph.text.strip()
    if text and text[0] in ALL_GLYPHS:
        text = text[1:].lstrip()
    return text


def _has_style(document: DocxDocumentType, name: str) -> bool:
    try:
        document.styles[name]
    except KeyError:
        return False
    return True
