"""Batch processing of flagged Notion pages.

For every page whose checkbox is ticked: read the BibTeX cell, clean and
parse it, backfill preprint metadata from arXiv when needed, format the
citations, and write them back while clearing the checkbox. Records are
processed one at a time; nothing is shared between them except the
read-only lookup tables.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from notion_bibtex.arxiv import ArxivClient, enrich_entry, needs_enrichment
from notion_bibtex.config import Settings
from notion_bibtex.formatter import CitationFormatter, FormattedCitation
from notion_bibtex.notion import NotionClient, NotionError, bibtex_text, build_update_properties, page_title
from notion_bibtex.source import BibEntry, BibLoader, MissingFieldError, parse_entry
from notion_bibtex.utils import HttpClient, RateLimiterRegistry
from notion_bibtex.venues import VenueResolver

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    page_id: str
    title: str
    action: str  # "updated", "would_update", "skipped", "error"
    message: str
    citation: FormattedCitation | None = None


@dataclass
class BatchOutcome:
    """Aggregate result of one batch run.

    ``status`` mirrors an HTTP status for callers that expose the batch as
    a request: 200 on success, 500 when the batch or any record failed.
    """

    ok: bool
    message: str
    status: int = 200
    results: list[ProcessResult] = field(default_factory=list)

    def count(self, action: str) -> int:
        return sum(1 for r in self.results if r.action == action)


def cite_entry(
    entry: BibEntry,
    formatter: CitationFormatter,
    arxiv: ArxivClient | None = None,
) -> FormattedCitation:
    """Enrich (when possible) and format one parsed entry.

    Raises:
        EnrichmentError: If the arXiv lookup fails.
        MissingFieldError: If a required field is missing.
    """
    if arxiv is not None and needs_enrichment(entry):
        entry = enrich_entry(entry, arxiv)
    return formatter.format(entry)


class CitationProcessor:
    """Process the flagged pages of one Notion database."""

    def __init__(
        self,
        notion: NotionClient,
        settings: Settings,
        arxiv: ArxivClient | None = None,
        formatter: CitationFormatter | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.notion = notion
        self.settings = settings
        self.arxiv = arxiv
        self.formatter = formatter or CitationFormatter(VenueResolver(fallback=settings.venue_fallback))
        self.loader = BibLoader()
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings: Settings, logger: logging.Logger | None = None) -> CitationProcessor:
        """Build the processor with real Notion and arXiv clients."""
        limits = RateLimiterRegistry({"arxiv": settings.arxiv_rate_limit})
        arxiv_http = HttpClient(timeout=settings.timeout, rate_limiter=limits)
        return cls(
            notion=NotionClient(settings.token, timeout=settings.timeout, rate_limit=settings.notion_rate_limit),
            settings=settings,
            arxiv=ArxivClient(arxiv_http, logger=logger),
            logger=logger,
        )

    def process_page(self, page: dict[str, Any]) -> ProcessResult:
        """Process a single page.

        Parse failures and missing required fields yield a "skipped" result.

        Raises:
            EnrichmentError: If the arXiv lookup fails.
            NotionError: If the write-back fails.
        """
        names = self.settings.properties
        page_id = page.get("id", "")
        title = page_title(page)[:60]

        entry = parse_entry(bibtex_text(page, names.bibtex), self.loader)
        if entry is None:
            return ProcessResult(page_id, title, "skipped", "No BibTeX entry could be parsed")

        try:
            citation = cite_entry(entry, self.formatter, self.arxiv)
        except MissingFieldError as e:
            return ProcessResult(page_id, title or entry.key, "skipped", str(e))

        if self.settings.dry_run:
            return ProcessResult(page_id, citation.title[:60], "would_update", citation.slide_ref, citation)

        self.notion.update_page(page_id, build_update_properties(citation, names))
        return ProcessResult(page_id, citation.title[:60], "updated", citation.slide_ref, citation)

    def run(self, database_id: str | None = None) -> BatchOutcome:
        """Process every flagged page of the database.

        With ``settings.fail_fast`` the first failing record aborts the batch;
        otherwise failures are recorded and the batch continues.
        """
        database_id = database_id or self.settings.database_id
        try:
            pages = self.notion.query_flagged(database_id, self.settings.properties.flag, limit=self.settings.limit)
        except NotionError as e:
            self.logger.error("Failed to query database %s: %s", database_id, e)
            return BatchOutcome(ok=False, message=f"Error: {e}", status=500)

        results: list[ProcessResult] = []
        for i, page in enumerate(pages, 1):
            self.logger.info("[%d/%d] Processing: %s", i, len(pages), page_title(page)[:50] or page.get("id", ""))
            try:
                result = self.process_page(page)
            except Exception as e:
                self.logger.exception("Error processing page %s", page.get("id", ""))
                if self.settings.fail_fast:
                    return BatchOutcome(ok=False, message=f"Error: {e}", status=500, results=results)
                result = ProcessResult(page.get("id", ""), page_title(page)[:60], "error", str(e))
            results.append(result)

            if result.action in ("updated", "would_update"):
                self.logger.info("  + %s", result.message)
            elif result.action == "skipped":
                self.logger.info("  - Skipped: %s", result.message)
            elif result.action == "error":
                self.logger.error("  ! Error: %s", result.message)

        return summarize(results)


def summarize(results: list[ProcessResult]) -> BatchOutcome:
    """Fold per-record results into the single batch message."""
    errors = [r for r in results if r.action == "error"]
    done = sum(1 for r in results if r.action in ("updated", "would_update"))
    skipped = sum(1 for r in results if r.action == "skipped")
    if errors:
        message = f"Error: {len(errors)} of {len(results)} record(s) failed; first error: {errors[0].message}"
        return BatchOutcome(ok=False, message=message, status=500, results=results)
    return BatchOutcome(
        ok=True,
        message=f"Update complete: {done} updated, {skipped} skipped",
        results=results,
    )
