"""
Shared fixtures for the action-item sync tests.

Documents are built in memory with python-docx.  The AI service and Linear are
replaced by ``httpx.MockTransport`` handlers, so no test touches the network.
"""
from __future__ import annotations

import json
from typing import AsyncGenerator, Dict, List, Optional

import httpx
import pytest
import pytest_asyncio
from docx import Document as DocxDocument
from httpx import ASGITransport, AsyncClient

from actionsync.dependencies.document import get_document, get_sync_service
from actionsync.main import app
from actionsync.services.action_extractor import ActionExtractor
from actionsync.services.document_model import UNCHECKED_GLYPHS, DocumentHandle
from actionsync.services.sync_service import ActionSyncService
from actionsync.services.tracker_client import LinearTrackerClient

ANCHOR = "action_items"
DOC_URL = "https://docs.example.com/team-sync"


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def build_document(
    section_lines: Optional[List[str]] = None,
    next_heading: bool = True,
    anchor_on_heading: bool = True,
) -> DocumentHandle:
    """
    Title, a bookmarked "Action Items" heading with *section_lines* as plain
    paragraphs beneath it, then (optionally) a dated meeting under a Heading 1.
    """
    doc = DocxDocument()
    handle = DocumentHandle(doc)

    doc.add_heading("Team Sync Notes", level=0)
    intro = doc.add_paragraph("Weekly notes for the platform team.")
    heading = doc.add_heading("Action Items", level=1)
    handle.add_bookmark(heading if anchor_on_heading else intro, ANCHOR)

    for line in section_lines or []:
        doc.add_paragraph(line)

    if next_heading:
        doc.add_heading("Meeting 2026-10-12", level=1)
        doc.add_paragraph("Alice will ship the quarterly report.")
        doc.add_heading("Discussion", level=2)
        doc.add_paragraph("Bob to review the auth PR.")
    return handle


def add_checklist(handle: DocumentHandle, lines: List[str], glyph: str = UNCHECKED_GLYPHS[0]) -> None:
    """Append checklist entries at the end of the document."""
    group = handle.new_checklist_group()
    for line in lines:
        handle.insert_checklist_item(None, line, glyph, group)


def texts(handle: DocumentHandle) -> List[str]:
    return [p.text for p in handle.paragraphs]


@pytest.fixture
def document() -> DocumentHandle:
    return build_document(["old line that refresh must remove"])


# ---------------------------------------------------------------------------
# Fake AI service
# ---------------------------------------------------------------------------

def ai_transport(
    answer: Optional[str] = None,
    body: Optional[dict] = None,
    status_code: int = 200,
    requests: Optional[list] = None,
) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(json.loads(request.content))
        payload = body if body is not None else {"response": answer or ""}
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)


def make_extractor(answer: Optional[str] = None, **kwargs) -> ActionExtractor:
    return ActionExtractor(
        api_key="ai-test-key",
        base_url="http://ai.test",
        model="test-model",
        transport=ai_transport(answer, **kwargs),
    )


# ---------------------------------------------------------------------------
# Fake Linear
# ---------------------------------------------------------------------------

class FakeLinear:
    """Minimal in-memory Linear GraphQL API."""

    def __init__(
        self,
        users: Optional[List[Dict[str, str]]] = None,
        labels: Optional[List[Dict[str, str]]] = None,
        team_key: str = "ENG",
    ) -> None:
        self.users = users if users is not None else [
            {"id": "u-alice", "name": "Alice Smith"},
            {"id": "u-bob", "name": "Bob Jones"},
        ]
        self.labels = labels if labels is not None else []
        self.team_key = team_key
        self.issues: List[dict] = []
        self.calls: List[str] = []
        self.fail_titles: set = set()        # answered with success: false
        self.error_titles: set = set()       # answered with a GraphQL error
        self.users_error = False
        self._next_number = 41

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        query = body["query"]
        variables = body.get("variables") or {}

        if "issueCreate(" in query:
            self.calls.append("issueCreate")
            issue = variables["input"]
            if issue["title"] in self.error_titles:
                return httpx.Response(200, json={"errors": [{"message": "boom"}]})
            if issue["title"] in self.fail_titles:
                return httpx.Response(200, json={"data": {"issueCreate": {"success": False, "issue": None}}})
            self._next_number += 1
            identifier = f"{self.team_key}-{self._next_number}"
            self.issues.append(dict(issue, identifier=identifier))
            return httpx.Response(200, json={
                "data": {"issueCreate": {"success": True, "issue": {"id": "i", "identifier": identifier, "url": ""}}}
            })

        if "issueLabelCreate(" in query:
            self.calls.append("issueLabelCreate")
            label = {"id": f"l-{len(self.labels) + 1}", "name": variables["input"]["name"]}
            self.labels.append(label)
            return httpx.Response(200, json={
                "data": {"issueLabelCreate": {"success": True, "issueLabel": label}}
            })

        if "issueLabels(" in query:
            self.calls.append("issueLabels")
            return httpx.Response(200, json={"data": {"issueLabels": {"nodes": self.labels}}})

        if "users(" in query:
            self.calls.append("users")
            if self.users_error:
                return httpx.Response(401, json={"errors": [{"message": "Authentication required"}]})
            return httpx.Response(200, json={"data": {"users": {"nodes": self.users}}})

        return httpx.Response(400, json={"errors": [{"message": "unknown query"}]})

    def client(self) -> LinearTrackerClient:
        return LinearTrackerClient(
            api_key="lin-test-key",
            team_id="team-1",
            project_id="project-1",
            api_url="https://linear.test/graphql",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def linear() -> FakeLinear:
    return FakeLinear()


def make_service(extractor: Optional[ActionExtractor] = None, linear: Optional[FakeLinear] = None) -> ActionSyncService:
    return ActionSyncService(
        extractor=extractor or make_extractor("[]"),
        tracker=(linear or FakeLinear()).client(),
        anchor_name=ANCHOR,
        heading_phrase="Action Items",
        document_url=DOC_URL,
    )


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------

@pytest.fixture
def api_state(tmp_path) -> dict:
    """What the API client fixture serves: a .docx on disk, a fake Linear, an AI answer."""
    path = tmp_path / "notes.docx"
    build_document().save(path)
    return {
        "path": path,
        "linear": FakeLinear(),
        "answer": '[{"assignee": "Alice", "description": "Ship report"}]',
    }


@pytest_asyncio.fixture
async def client(api_state: dict) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app.  The document dependency opens
    the temporary .docx file; the service talks to the fakes above.
    """
    state = api_state

    async def _override_get_document():
        return DocumentHandle.open(state["path"])

    async def _override_get_sync_service():
        return make_service(make_extractor(state["answer"]), state["linear"])

    app.dependency_overrides[get_document] = _override_get_document
    app.dependency_overrides[get_sync_service] = _override_get_sync_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
