"""
Linear issue-tracker client (GraphQL over HTTPS).

Public API
----------
LinearTrackerClient.fetch_users()                         -> Dict[first_name, user_id]
LinearTrackerClient.ensure_label(name)                    -> label_id
LinearTrackerClient.prepare_context()                     -> TrackerContext
LinearTrackerClient.create_issue(item, context, doc_url)  -> identifier | None

Every call is one sequential round trip.  The user map and label id live in a
TrackerContext that the caller builds once per push and passes along; nothing
is cached on the client.
"""
from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional

import httpx

from actionsync.config import settings
from actionsync.services.action_extractor import UNASSIGNED
from actionsync.services.section_reader import SectionItem

logger = logging.getLogger(__name__)


class TrackerCallFailed(RuntimeError):
    """A tracker request failed at transport, HTTP or GraphQL level."""


@dataclasses.dataclass
class TrackerContext:
    """Request-scoped lookups shared by every issue created in one push."""

    users: Dict[str, str]
    label_id: Optional[str] = None

    def assignee_id(self, assignee: str) -> Optional[str]:
        key = first_name_key(assignee)
        if not key or key == UNASSIGNED.lower():
            return None
        return self.users.get(key)


# ---------------------------------------------------------------------------
# GraphQL documents
# ---------------------------------------------------------------------------

_USERS_QUERY = """
query Users {
  users(first: 250) {
    nodes { id name }
  }
}
"""

_LABELS_QUERY = """
query IssueLabels {
  issueLabels(first: 250) {
    nodes { id name }
  }
}
"""

_CREATE_LABEL_MUTATION = """
mutation CreateLabel($input: IssueLabelCreateInput!) {
  issueLabelCreate(input: $input) {
    success
    issueLabel { id name }
  }
}
"""

_CREATE_ISSUE_MUTATION = """
mutation CreateIssue($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    success
    issue { id identifier url }
  }
}
"""

_ISSUE_DESCRIPTION = """\
Action item captured from meeting notes.

**Assignee:** {assignee}
**Source document:** {document_url}
"""


def first_name_key(name: str) -> str:
    parts = (name or "").strip().lstrip("@").split()
    return parts[0].lower() if parts else ""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class LinearTrackerClient:
    """Thin GraphQL client for the handful of Linear operations the sync needs."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        team_id: Optional[str] = None,
        project_id: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = settings.LINEAR_API_KEY if api_key is None else api_key
        self.team_id = settings.LINEAR_TEAM_ID if team_id is None else team_id
        self.project_id = settings.LINEAR_PROJECT_ID if project_id is None else project_id
        self.api_url = api_url or settings.LINEAR_API_URL
        self.timeout = httpx.Timeout(float(settings.TRACKER_TIMEOUT), connect=10.0)
        self._transport = transport

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def fetch_users(self) -> Dict[str, str]:
        """First name (lowercase) → user id.  On a shared first name the last user wins."""
        data = await self._graphql(_USERS_QUERY)
        users: Dict[str, str] = {}
        for node in _nodes(data, "users"):
            key = first_name_key(node.get("name", ""))
            if key and node.get("id"):
                users[key] = node["id"]
        logger.info("fetch_users: %d user(s)", len(users))
        return users

    async def ensure_label(self, name: str, color: Optional[str] = None) -> str:
        """Return the id of label *name* (case-insensitive), creating it if absent."""
        data = await self._graphql(_LABELS_QUERY)
        for node in _nodes(data, "issueLabels"):
            if str(node.get("name", "")).lower() == name.lower():
                return node["id"]

        data = await self._graphql(
            _CREATE_LABEL_MUTATION,
            {"input": {"name": name, "color": color or settings.TRACKER_LABEL_COLOR}},
        )
        payload = data.get("issueLabelCreate") or {}
        label = payload.get("issueLabel") or {}
        if not payload.get("success") or not label.get("id"):
            raise TrackerCallFailed(f"Could not create label {name!r}")
        logger.info("ensure_label: created label %r (%s)", name, label["id"])
        return label["id"]

    async def prepare_context(self, label_name: Optional[str] = None) -> TrackerContext:
        """Users first, then the label; either failure aborts the push."""
        users = await self.fetch_users()
        label_name = settings.TRACKER_LABEL_NAME if label_name is None else label_name
        label_id = await self.ensure_label(label_name) if label_name else None
        return TrackerContext(users=users, label_id=label_id)

    async def create_issue(
        self,
        item: SectionItem,
        context: TrackerContext,
        document_url: str,
    ) -> Optional[str]:
        """
        Create one issue for *item*.

        Returns the issue identifier (e.g. ``ENG-42``), or None when Linear
        answers ``success: false``.  An unknown assignee creates an unassigned
        issue rather than failing.

        Raises:
            TrackerCallFailed: transport, HTTP or GraphQL error.
        """
        issue_input: Dict[str, Any] = {
            "teamId": self.team_id,
            "projectId": self.project_id,
            "title": item.description[: settings.ISSUE_TITLE_MAX],
            "description": _ISSUE_DESCRIPTION.format(
                assignee=item.assignee,
                document_url=document_url,
            ),
            "labelIds": [context.label_id] if context.label_id else [],
            "assigneeId": context.assignee_id(item.assignee),
        }

        data = await self._graphql(_CREATE_ISSUE_MUTATION, {"input": issue_input})
        payload = data.get("issueCreate") or {}
        issue = payload.get("issue") or {}
        if not payload.get("success") or not issue.get("identifier"):
            logger.warning("create_issue: Linear reported failure for %r", item.description[:80])
            return None

        logger.info("create_issue: %s ← %r", issue["identifier"], item.description[:80])
        return issue["identifier"]

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _graphql(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """POST one GraphQL document and return its ``data`` object."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    self.api_url,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={"query": query, "variables": variables or {}},
                )
        except httpx.HTTPError as exc:
            logger.error("_graphql: transport error: %s", exc)
            raise TrackerCallFailed(f"Linear request failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = {}

        errors = body.get("errors") if isinstance(body, dict) else None
        if errors:
            messages = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            logger.error("_graphql: Linear returned errors: %s", messages)
            raise TrackerCallFailed(f"Linear error: {messages}")

        if resp.status_code != 200:
            logger.error("_graphql: Linear returned HTTP %d: %s", resp.status_code, resp.text[:300])
            raise TrackerCallFailed(f"Linear returned HTTP {resp.status_code}")

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise TrackerCallFailed("Linear response has no data")
        return data


def _nodes(data: Dict[str, Any], field: str) -> List[Dict[str, Any]]:
    connection = data.get(field) or {}
    return [n for n in connection.get("nodes") or [] if isinstance(n, dict)]
