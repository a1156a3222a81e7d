"""arXiv metadata lookup for preprint entries without a venue.

An entry that has an ``eprint`` but no ``journal`` gets its journal and year
backfilled from the arXiv export API: the journal becomes the feed's
``arxiv:comment`` (often "Accepted at ...") or, failing that,
``arXiv preprint arXiv:<eprint>``; the year is taken from the publication
timestamp.
"""

from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ElementTree
from dataclasses import dataclass

from notion_bibtex.source import BibEntry
from notion_bibtex.utils import ARXIV_API, HttpClient, collapse_whitespace

ATOM_NS = {
    "atom": "http://www.w3.org/2005/Atom",
    "arxiv": "http://arxiv.org/schemas/atom",
}

_ARXIV_PREFIX_RE = re.compile(r"^arxiv:\s*", re.IGNORECASE)


class EnrichmentError(RuntimeError):
    """The arXiv lookup failed or returned an unusable feed."""


@dataclass(frozen=True)
class ArxivMetadata:
    arxiv_id: str
    published: str
    comment: str | None = None
    title: str | None = None

    @property
    def year(self) -> str:
        return self.published[:4]


def parse_feed(xml: str, arxiv_id: str = "") -> ArxivMetadata:
    """Parse an arXiv Atom feed and return the first entry's metadata.

    Raises:
        EnrichmentError: On malformed XML, an empty feed, or an entry
            without a publication timestamp (the API's error entries).
    """
    try:
        root = ElementTree.fromstring(xml)
    except ElementTree.ParseError as e:
        raise EnrichmentError(f"malformed arXiv feed for {arxiv_id}: {e}") from e

    entries = root.findall("atom:entry", ATOM_NS)
    if not entries:
        raise EnrichmentError(f"arXiv returned no entry for {arxiv_id}")
    first = entries[0]

    published = (first.findtext("atom:published", default="", namespaces=ATOM_NS) or "").strip()
    if not published:
        summary = collapse_whitespace(first.findtext("atom:summary", default="", namespaces=ATOM_NS) or "")
        raise EnrichmentError(f"arXiv entry for {arxiv_id} has no publication date {summary}".rstrip())

    comment = collapse_whitespace(first.findtext("arxiv:comment", default="", namespaces=ATOM_NS) or "")
    title = collapse_whitespace(first.findtext("atom:title", default="", namespaces=ATOM_NS) or "")
    return ArxivMetadata(
        arxiv_id=arxiv_id,
        published=published,
        comment=comment or None,
        title=title or None,
    )


class ArxivClient:
    """Fetch preprint metadata from the arXiv export API."""

    def __init__(self, http: HttpClient, logger: logging.Logger | None = None) -> None:
        self.http = http
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self, eprint: str) -> ArxivMetadata:
        arxiv_id = _ARXIV_PREFIX_RE.sub("", eprint.strip())
        params = {"id_list": arxiv_id}
        self.logger.debug("arXiv lookup: %s", arxiv_id)
        try:
            resp = self.http.request("GET", ARXIV_API, params=params, accept="application/atom+xml", service="arxiv")
        except RuntimeError as e:
            raise EnrichmentError(f"arXiv lookup failed for {arxiv_id}: {e}") from e
        if resp.status_code != 200:
            raise EnrichmentError(f"arXiv lookup failed for {arxiv_id}: HTTP {resp.status_code}")
        return parse_feed(resp.text, arxiv_id)


def needs_enrichment(entry: BibEntry) -> bool:
    return not entry.has("journal") and entry.has("eprint")


def enrich_entry(entry: BibEntry, client: ArxivClient) -> BibEntry:
    """Backfill ``journal`` and ``year`` for a preprint entry.

    Entries that already have a journal, or have no eprint, are returned
    unchanged.

    Raises:
        EnrichmentError: If the lookup fails.
    """
    if not needs_enrichment(entry):
        return entry
    eprint = entry.require("eprint")
    meta = client.fetch(eprint)
    journal = meta.comment or f"arXiv preprint arXiv:{eprint}"
    client.logger.debug("Enriched %s: journal=%r year=%s", entry.key or eprint, journal, meta.year)
    return entry.with_fields(journal=journal, year=meta.year)
