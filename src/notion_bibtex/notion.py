"""Notion database access: read BibTeX rows, write citations back.

Each processed page receives the paper title, both citation strings, the
type label, an optional URL, and has its checkbox flag reset.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from notion_bibtex.config import PropertyNames
from notion_bibtex.formatter import FormattedCitation
from notion_bibtex.utils import NOTION_API, NOTION_VERSION, HttpClient, RateLimiter

# Notion rejects rich-text segments longer than this
MAX_TEXT_LENGTH = 2000


class NotionError(RuntimeError):
    """A Notion API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotionClient:
    """Minimal Notion REST client for database queries and page updates."""

    def __init__(
        self,
        token: str,
        timeout: float = 20.0,
        rate_limit: int = 180,
        http: HttpClient | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if not token:
            raise ValueError("Notion token required")
        self.http = http or HttpClient(
            timeout=timeout,
            rate_limiter=RateLimiter(rate_limit),
            headers={
                "Authorization": f"Bearer {token}",
                "Notion-Version": NOTION_VERSION,
            },
        )
        self.logger = logger or logging.getLogger(__name__)

    def _call(self, method: str, path: str, json_body: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            resp = self.http.request(method, f"{NOTION_API}{path}", json_body=json_body, service="notion")
        except RuntimeError as e:
            raise NotionError(str(e)) from e
        return self._check(resp)

    @staticmethod
    def _check(resp: httpx.Response) -> dict[str, Any]:
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not 200 <= resp.status_code < 300:
            message = body.get("message") if isinstance(body, dict) else None
            raise NotionError(
                f"Notion API error {resp.status_code}: {message or resp.text[:200]}",
                status_code=resp.status_code,
            )
        return body

    def query_flagged(self, database_id: str, flag_property: str, limit: int | None = None) -> list[dict[str, Any]]:
        """Fetch the pages whose checkbox ``flag_property`` is ticked.

        Follows ``next_cursor`` until the result set is exhausted or
        ``limit`` pages have been collected.
        """
        pages: list[dict[str, Any]] = []
        payload: dict[str, Any] = {
            "filter": {"property": flag_property, "checkbox": {"equals": True}},
            "page_size": 100,
        }
        while True:
            body = self._call("POST", f"/databases/{database_id}/query", payload)
            pages.extend(body.get("results", []))
            if limit is not None and len(pages) >= limit:
                pages = pages[:limit]
                break
            if not body.get("has_more") or not body.get("next_cursor"):
                break
            payload["start_cursor"] = body["next_cursor"]
        self.logger.info("Found %d flagged page(s)", len(pages))
        return pages

    def update_page(self, page_id: str, properties: dict[str, Any]) -> dict[str, Any]:
        return self._call("PATCH", f"/pages/{page_id}", {"properties": properties})

    def close(self) -> None:
        self.http.close()


# ------------- Property Helpers -------------


def plain_text(prop: dict[str, Any] | None) -> str:
    """Concatenate the plain text of a rich_text or title property."""
    if not prop:
        return ""
    ptype = prop.get("type", "rich_text")
    segments = prop.get(ptype) if ptype in ("rich_text", "title") else None
    if not isinstance(segments, list):
        return ""
    return "".join(seg.get("plain_text") or seg.get("text", {}).get("content", "") for seg in segments)


def bibtex_text(page: dict[str, Any], property_name: str) -> str:
    return plain_text(page.get("properties", {}).get(property_name))


def page_title(page: dict[str, Any]) -> str:
    for prop in page.get("properties", {}).values():
        if prop.get("type") == "title":
            return plain_text(prop)
    return ""


def rich_text(content: str) -> list[dict[str, Any]]:
    chunks = [content[i : i + MAX_TEXT_LENGTH] for i in range(0, len(content), MAX_TEXT_LENGTH)]
    return [{"type": "text", "text": {"content": chunk}} for chunk in chunks]


def build_update_properties(citation: FormattedCitation, names: PropertyNames) -> dict[str, Any]:
    """Property payload for ``PATCH /pages/{id}``."""
    props: dict[str, Any] = {
        names.title: {"title": rich_text(citation.title)},
        names.slide_ref: {"rich_text": rich_text(citation.slide_ref)},
        names.normal_ref: {"rich_text": rich_text(citation.normal_ref)},
        names.type_desc: {"rich_text": rich_text(citation.type_desc)},
        names.flag: {"checkbox": False},
    }
    if citation.url:
        props[names.url] = {"url": citation.url}
    return props
