"""
LLM-based extraction of open action items from meeting notes.

Uses an Ollama-compatible ``/api/generate`` endpoint.  The prompt is stored as a
module-level constant so it can be tuned without touching logic code.

Public API
----------
ActionExtractor.extract(document_text, now=None) -> List[ActionItem]
dedupe_items(items)                              -> List[ActionItem]
format_item(item)                                -> str
"""
from __future__ import annotations

import dataclasses
import json
import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, List, Optional, Tuple

import httpx

from actionsync.config import settings

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"


class ExtractionFailed(RuntimeError):
    """The AI service call failed or its answer could not be parsed."""


@dataclasses.dataclass
class ActionItem:
    assignee: str
    description: str


# ---------------------------------------------------------------------------
# Prompt template
# ---------------------------------------------------------------------------

_ACTION_ITEMS_PROMPT = """\
You are an assistant that keeps a team's meeting notes tidy.

Today is {today}. Below are the team's meeting notes:

---
{document_text}
---

List every action item that is still OPEN (not done, not checked off, not \
marked complete) and that comes from meeting notes dated on or after {cutoff}. \
Ignore older meetings.

For each action item provide:
1. assignee: the first name of the person responsible, or "Unassigned" if nobody is named
2. description: a short imperative description of the task (under 15 words)

Respond ONLY with a JSON array. No explanation, no markdown:
[{{"assignee": "...", "description": "..."}}]\
"""


def cutoff_date(now: Optional[datetime] = None, days: Optional[int] = None) -> date:
    """Start of the recency window ("now minus 28 days" by default)."""
    now = now or datetime.now()
    days = settings.LOOKBACK_DAYS if days is None else days
    return (now - timedelta(days=days)).date()


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class ActionExtractor:
    """
    Sends the document text to the AI service and parses the action items.

    The cutoff date is advisory: it is written into the prompt and the model is
    trusted to honour it.
    """

    ACTION_ITEMS_PROMPT = _ACTION_ITEMS_PROMPT

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = settings.AI_API_KEY if api_key is None else api_key
        self.base_url = (base_url or settings.AI_BASE_URL).rstrip("/")
        self.model = model or settings.AI_MODEL
        self.timeout = httpx.Timeout(float(settings.AI_TIMEOUT), connect=10.0)
        self._transport = transport

    async def extract(
        self,
        document_text: str,
        now: Optional[datetime] = None,
    ) -> List[ActionItem]:
        """
        Return the deduplicated open action items found in *document_text*.

        Raises:
            ExtractionFailed: missing API key, transport/service error, or an
                              unparseable JSON array in the answer.
        """
        if not self.api_key:
            raise ExtractionFailed("AI_API_KEY is not configured.")

        now = now or datetime.now()
        prompt = self.ACTION_ITEMS_PROMPT.format(
            today=now.date().isoformat(),
            cutoff=cutoff_date(now).isoformat(),
            document_text=document_text,
        )

        response_text = await self._call_llm(prompt)
        raw = self.parse_response(response_text)

        items = dedupe_items(_coerce_items(raw))
        logger.info("extract: %d open action item(s) (%d raw)", len(items), len(raw))
        return items

    # ------------------------------------------------------------------
    # Core LLM caller
    # ------------------------------------------------------------------

    async def _call_llm(self, prompt: str, max_tokens: int = 2000) -> str:
        """POST to /api/generate and return the response text."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(
                    f"{self.base_url}/api/generate",
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "model": self.model,
                        "prompt": prompt,
                        "stream": False,
                        "options": {
                            "num_predict": max_tokens,
                            "temperature": 0.1,  # low temp for deterministic JSON
                        },
                    },
                )
        except httpx.TimeoutException as exc:
            logger.error("_call_llm: request timed out after %.0f s", self.timeout.read)
            raise ExtractionFailed("AI request timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("_call_llm: transport error: %s", exc)
            raise ExtractionFailed(f"AI request failed: {exc}") from exc

        try:
            body = resp.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("error"):
            error = body["error"]
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            logger.error("_call_llm: AI service error: %s", message)
            raise ExtractionFailed(f"AI service error: {message}")

        if resp.status_code != 200:
            logger.error(
                "_call_llm: AI service returned HTTP %d: %s",
                resp.status_code,
                resp.text[:300],
            )
            raise ExtractionFailed(f"AI service returned HTTP {resp.status_code}")

        if not isinstance(body, dict):
            raise ExtractionFailed("AI service returned a non-JSON body")
        return str(body.get("response", ""))

    # ------------------------------------------------------------------
    # Tolerant JSON parsing
    # ------------------------------------------------------------------

    def parse_response(self, response: str) -> List[Any]:
        """
        Find the first ``[...]`` span in a free-form answer and parse it.

        Returns an empty list (after logging the raw answer) when there is no
        bracketed span at all.  A span that is not valid JSON even after light
        repair raises ExtractionFailed.
        """
        text = self._strip_code_fences((response or "").strip())
        fragment = self._extract_json_structure(text, "[", "]")
        if not fragment:
            logger.warning("parse_response: no JSON array in AI answer. Raw: %s", response[:1000])
            return []

        ok, val = self._try_json(fragment)
        if not ok:
            ok, val = self._try_json(self._fix_json_issues(fragment))
        if not ok or not isinstance(val, list):
            logger.error("parse_response: unparseable JSON array. Raw: %s", response[:1000])
            raise ExtractionFailed("AI answer contained an invalid JSON array")
        return val

    @staticmethod
    def _try_json(text: str) -> Tuple[bool, Any]:
        try:
            return True, json.loads(text)
        except (json.JSONDecodeError, ValueError):
            return False, None

    @staticmethod
    def _strip_code_fences(text: str) -> str:
        """Remove ```json / ``` delimiters that LLMs often wrap output in."""
        text = re.sub(r"^```(?:json|javascript|text)?\s*\n?", "", text, flags=re.IGNORECASE)
        text = re.sub(r"\n?```\s*$", "", text)
        return text.strip()

    @staticmethod
    def _fix_json_issues(text: str) -> str:
        """Repair the most common JSON mangling patterns from LLMs."""
        # Trailing commas before ] or }
        text = re.sub(r",(\s*[}\]])", r"\1", text)
        text = re.sub(r"\bTrue\b", "true", text)
        text = re.sub(r"\bFalse\b", "false", text)
        text = re.sub(r"\bNone\b", "null", text)
        return text.strip()

    @staticmethod
    def _extract_json_structure(text: str, open_b: str, close_b: str) -> str:
        """
        Find the first complete balanced open_b … close_b structure in *text*.
        Returns the matched fragment, or empty string if not found.
        """
        start = text.find(open_b)
        if start == -1:
            return ""

        depth = 0
        in_string = False
        escape_next = False

        for i, ch in enumerate(text[start:], start=start):
            if escape_next:
                escape_next = False
                continue
            if ch == "\\" and in_string:
                escape_next = True
                continue
            if ch == '"':
                in_string = not in_string
                continue
            if in_string:
                continue
            if ch == open_b:
                depth += 1
            elif ch == close_b:
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        return ""


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------

def _coerce_items(raw: List[Any]) -> List[ActionItem]:
    items: List[ActionItem] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        description = str(entry.get("description") or "").strip()
        if not description:
            continue
        assignee = str(entry.get("assignee") or "").strip().lstrip("@").strip()
        items.append(ActionItem(assignee=assignee or UNASSIGNED, description=description))
    return items


def dedupe_items(items: List[ActionItem]) -> List[ActionItem]:
    """Drop repeats of the same (description, assignee), ignoring case. First one wins."""
    seen: set = set()
    unique: List[ActionItem] = []
    for item in items:
        key = (item.description.lower(), item.assignee.lower())
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def format_item(item: ActionItem) -> str:
    if not item.assignee or item.assignee.lower() == UNASSIGNED.lower():
        return item.description
    return f"@{item.assignee} {item.description}"
