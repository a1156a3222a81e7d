"""Shared fixtures for notion_bibtex tests."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

from notion_bibtex import (
    ArxivClient,
    BibEntry,
    CitationFormatter,
    HttpClient,
    NotionError,
    PropertyNames,
    Settings,
)

# ------------- Sample Data -------------

ARXIV_FEED_TEMPLATE = """<feed xmlns="http://www.w3.org/2005/Atom" xmlns:arxiv="http://arxiv.org/schemas/atom">
  <title>ArXiv Query: id_list={arxiv_id}</title>
  <entry>
    <id>http://arxiv.org/abs/{arxiv_id}v1</id>
    <published>{published}</published>
    <title>Scaling Things Up</title>
    <summary>We scale things.</summary>
    {comment}
  </entry>
</feed>
"""


def arxiv_feed(arxiv_id: str = "2301.00001", published: str = "2023-01-02T18:00:00Z", comment: str = "") -> str:
    comment_xml = f"<arxiv:comment>{comment}</arxiv:comment>" if comment else ""
    return ARXIV_FEED_TEMPLATE.format(arxiv_id=arxiv_id, published=published, comment=comment_xml)


def make_response(status_code: int = 200, text: str = "", json_data: Any = None) -> MagicMock:
    """Stand-in for an httpx.Response with the attributes the clients read."""
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if json_data is None:
        resp.json.side_effect = ValueError("no JSON")
    else:
        resp.json.return_value = json_data
    return resp


# ------------- Entry Fixtures -------------


@pytest.fixture
def make_entry():
    """Factory fixture for creating BibEntry objects."""

    def _make_entry(entry_type: str = "article", key: str = "testkey", **fields) -> BibEntry:
        data = {
            "title": "Example Title",
            "author": "Doe, Jane and Smith, John",
            "year": "2020",
        }
        data.update(fields)
        return BibEntry(entry_type=entry_type, key=key, fields={k: v for k, v in data.items() if v is not None})

    return _make_entry


@pytest.fixture
def make_bibtex():
    """Factory fixture for raw BibTeX text as pasted into a Notion cell."""

    def _make_bibtex(entry_type: str = "article", key: str = "testkey", **fields) -> str:
        data = {
            "title": "Example Title",
            "author": "Doe, Jane and Smith, John",
            "year": "2020",
        }
        data.update(fields)
        lines = [f"@{entry_type}{{{key},"]
        lines.extend(f"  {name} = {{{value}}}," for name, value in data.items() if value is not None)
        lines[-1] = lines[-1].rstrip(",")
        lines.append("}")
        return "\n".join(lines)

    return _make_bibtex


@pytest.fixture
def article_entry(make_entry):
    """Journal article with volume, number and pages."""
    return make_entry(
        key="smith2023",
        author="Smith, John and Doe, Jane",
        title="A Study",
        journal="Journal of X",
        volume="5",
        number="2",
        pages="10--20",
        year="2023",
    )


@pytest.fixture
def icml_entry(make_entry):
    """Conference paper with three authors at a venue from the table."""
    return make_entry(
        entry_type="inproceedings",
        key="vaswani2017",
        author="Vaswani, Ashish and Shazeer, Noam and Parmar, Niki",
        title="Attention",
        booktitle="International Conference on Machine Learning",
        pages="1--10",
        year="2017",
    )


@pytest.fixture
def preprint_entry(make_entry):
    """arXiv preprint without a journal."""
    return make_entry(
        entry_type="misc",
        key="doe2024",
        author="Doe, Jane",
        title="Preprint Paper",
        eprint="2401.12345",
        year="2024",
    )


@pytest.fixture
def formatter():
    """CitationFormatter with the default venue resolver."""
    return CitationFormatter()


@pytest.fixture
def logger():
    """Create a test logger."""
    return logging.getLogger("test")


# ------------- Fake Clients -------------


class FakeHttpClient(HttpClient):
    """Fake HTTP client that replays canned responses and records requests."""

    def __init__(self, responses: Optional[List[Any]] = None):
        # Don't call parent __init__ to avoid setting up real HTTP
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    def request(self, method, url, params=None, accept=None, json_body=None, service=None):
        self.calls.append(
            {"method": method, "url": url, "params": params, "accept": accept, "json": json_body, "service": service}
        )
        if not self.responses:
            raise RuntimeError("FakeHttpClient has no response left")
        resp = self.responses.pop(0)
        if isinstance(resp, Exception):
            raise resp
        return resp

    def close(self):
        self.closed = True


@pytest.fixture
def fake_http():
    """Factory fixture for fake HTTP clients."""

    def _create(*responses) -> FakeHttpClient:
        return FakeHttpClient(list(responses))

    return _create


@pytest.fixture
def fake_arxiv(fake_http, logger):
    """Factory fixture for ArxivClient instances backed by canned feeds."""

    def _create(*responses) -> ArxivClient:
        return ArxivClient(fake_http(*responses), logger=logger)

    return _create


class FakeNotionClient:
    """In-memory stand-in for NotionClient."""

    def __init__(self, pages: Optional[List[Dict[str, Any]]] = None, fail_on: Optional[set] = None):
        self.pages = list(pages or [])
        self.fail_on = set(fail_on or ())
        self.updates: List[tuple] = []
        self.query_error: Optional[NotionError] = None
        self.closed = False

    def query_flagged(self, database_id, flag_property, limit=None):
        if self.query_error is not None:
            raise self.query_error
        return self.pages[:limit] if limit is not None else list(self.pages)

    def update_page(self, page_id, properties):
        if page_id in self.fail_on:
            raise NotionError(f"Notion API error 400: cannot update {page_id}", status_code=400)
        self.updates.append((page_id, properties))
        return {"id": page_id}

    def close(self):
        self.closed = True


@pytest.fixture
def make_page():
    """Factory fixture for Notion page objects as returned by a database query."""

    def _make_page(page_id: str = "page-1", bibtex: str = "", title: str = "", names: PropertyNames = None):
        names = names or PropertyNames()
        return {
            "object": "page",
            "id": page_id,
            "properties": {
                names.title: {
                    "type": "title",
                    "title": [{"type": "text", "plain_text": title, "text": {"content": title}}] if title else [],
                },
                names.bibtex: {
                    "type": "rich_text",
                    "rich_text": [{"type": "text", "plain_text": bibtex, "text": {"content": bibtex}}],
                },
                names.flag: {"type": "checkbox", "checkbox": True},
            },
        }

    return _make_page


@pytest.fixture
def settings():
    """Settings for a run against a fake database."""
    return Settings(token="secret_test", database_id="db-1")
