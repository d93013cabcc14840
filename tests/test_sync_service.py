"""Tests for the refresh and push commands."""
from datetime import datetime

import pytest

from actionsync.services.action_extractor import ExtractionFailed
from actionsync.services.document_model import DocumentHandle, checklist_glyph
from actionsync.services.markers import resolve_anchor
from actionsync.services.section_renderer import render_section
from actionsync.services.tracker_client import TrackerCallFailed
from tests.conftest import ANCHOR, FakeLinear, build_document, make_extractor, make_service, texts

NOW = datetime(2026, 10, 19, 9, 30)

ANSWER = (
    '[{"assignee": "Alice", "description": "Ship report"},'
    ' {"assignee": "Unassigned", "description": "Book offsite venue"}]'
)


def _with_items(lines):
    handle = build_document()
    render_section(handle, resolve_anchor(handle, ANCHOR), lines, now=NOW)
    return handle


def _items(handle):
    return [p for p in handle.paragraphs if checklist_glyph(p)]


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_refresh_rewrites_section(document):
    service = make_service(make_extractor(ANSWER))

    result = await service.refresh(document, now=NOW, save=False)

    assert result.success is True
    assert result.items_written == 2
    assert "2 open item(s)" in result.message
    assert "old line that refresh must remove" not in texts(document)
    assert [p.text for p in _items(document)] == ["☐ @Alice Ship report", "☐ Book offsite venue"]


@pytest.mark.asyncio
async def test_refresh_with_no_items(document):
    result = await make_service(make_extractor("[]")).refresh(document, now=NOW, save=False)

    assert result.success is True
    assert result.items_written == 0
    assert "no open action items" in result.message


@pytest.mark.asyncio
async def test_refresh_reports_missing_anchor(document):
    requests = []
    service = make_service(make_extractor(ANSWER, requests=requests))
    service.anchor_name = "not_there"

    result = await service.refresh(document, now=NOW, save=False)

    assert result.success is False
    assert "not found" in result.message
    assert requests == []


@pytest.mark.asyncio
async def test_failed_extraction_leaves_document_untouched(document):
    before = texts(document)
    service = make_service(make_extractor(body={"error": "model unavailable"}))

    with pytest.raises(ExtractionFailed):
        await service.refresh(document, now=NOW, save=False)
    assert texts(document) == before


@pytest.mark.asyncio
async def test_refresh_saves_to_the_opened_path(tmp_path):
    path = tmp_path / "notes.docx"
    build_document().save(path)

    await make_service(make_extractor(ANSWER)).refresh(DocumentHandle.open(path), now=NOW)

    reopened = DocumentHandle.open(path)
    assert "☐ @Alice Ship report" in texts(reopened)


# ---------------------------------------------------------------------------
# Push
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_push_creates_issues_and_annotates_items(linear):
    handle = _with_items(["@Alice ship report", "book venue"])

    result = await make_service(linear=linear).push(handle, save=False)

    assert result.pushed == 2
    assert result.created == ["ENG-42", "ENG-43"]
    assert [p.text for p in _items(handle)] == [
        "☐ @Alice ship report (ENG-42)",
        "☐ book venue (ENG-43)",
    ]
    assert linear.issues[0]["assigneeId"] == "u-alice"
    assert linear.issues[1]["assigneeId"] is None


@pytest.mark.asyncio
async def test_second_push_creates_nothing(linear):
    handle = _with_items(["@Alice ship report", "@Bob review PR"])
    service = make_service(linear=linear)

    await service.push(handle, save=False)
    calls_after_first = list(linear.calls)
    result = await service.push(handle, save=False)

    assert result.pushed == 0
    assert result.already_pushed == 2
    assert "Nothing to push" in result.message
    assert linear.calls == calls_after_first
    assert len(linear.issues) == 2


@pytest.mark.asyncio
async def test_failed_item_is_left_untouched_for_retry(linear):
    handle = _with_items(["@Alice first", "@Bob second", "third"])
    linear.fail_titles.add("second")
    second_before = _items(handle)[1]._element.xml

    result = await make_service(linear=linear).push(handle, save=False)

    assert result.pushed == 2
    assert result.failed == 1
    assert "1 failed" in result.message
    items = _items(handle)
    assert items[0].text == "☐ @Alice first (ENG-42)"
    assert items[1]._element.xml == second_before
    assert items[2].text == "☐ third (ENG-43)"

    linear.fail_titles.clear()
    retry = await make_service(linear=linear).push(handle, save=False)
    assert retry.created == ["ENG-44"]
    assert retry.already_pushed == 2


@pytest.mark.asyncio
async def test_graphql_error_on_one_item_does_not_stop_the_batch(linear):
    handle = _with_items(["one", "two"])
    linear.error_titles.add("one")

    result = await make_service(linear=linear).push(handle, save=False)

    assert result.failed == 1
    assert result.created == ["ENG-42"]
    assert [p.text for p in _items(handle)] == ["☐ one", "☐ two (ENG-42)"]


@pytest.mark.asyncio
async def test_push_with_nothing_pending_makes_no_tracker_calls(linear):
    handle = _with_items(["@Alice done already (ENG-7)"])

    result = await make_service(linear=linear).push(handle, save=False)

    assert result.eligible == 1
    assert result.pushed == 0
    assert linear.calls == []


@pytest.mark.asyncio
async def test_user_lookup_failure_aborts_push():
    linear = FakeLinear()
    linear.users_error = True
    handle = _with_items(["@Alice ship report"])
    before = texts(handle)

    with pytest.raises(TrackerCallFailed):
        await make_service(linear=linear).push(handle, save=False)

    assert texts(handle) == before
    assert "issueCreate" not in linear.calls


# ---------------------------------------------------------------------------
# Navigation
# ---------------------------------------------------------------------------

def test_locate_anchor():
    handle = build_document()
    info = make_service().locate_anchor(handle)

    assert info.name == ANCHOR
    assert info.text == "Action Items"
    assert info.is_heading is True


@pytest.mark.asyncio
async def test_push_keeps_item_formatting(linear):
    handle = _with_items(["@Alice ship report"])
    _items(handle)[0].runs[0].italic = True

    await make_service(linear=linear).push(handle, save=False)

    annotated = _items(handle)[0]
    assert annotated.text == "☐ @Alice ship report (ENG-42)"
    assert all(run.italic for run in annotated.runs)
