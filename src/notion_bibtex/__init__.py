"""Notion BibTeX - Citation strings for BibTeX entries kept in Notion.

This package provides tools for:
- Cleaning and parsing hand-pasted BibTeX entries
- Backfilling venue and year of arXiv preprints
- Formatting compact "slide" and full "normal" citations
- Writing the results back to the rows of a Notion database

Example usage:
    from notion_bibtex import CitationFormatter, parse_entry

    entry = parse_entry(raw_bibtex)
    citation = CitationFormatter().format(entry)
    print(citation.slide_ref)
"""

from notion_bibtex._version import __version__

# Formatting pipeline
from notion_bibtex.arxiv import (
    ArxivClient,
    ArxivMetadata,
    EnrichmentError,
    enrich_entry,
    needs_enrichment,
    parse_feed,
)
from notion_bibtex.authors import (
    Author,
    AuthorList,
    contains_cjk,
    decode_latex_accents,
    join_names,
    parse_author,
)
from notion_bibtex.config import PropertyNames, Settings, load_settings, save_settings
from notion_bibtex.formatter import (
    TYPE_LABELS,
    CitationFormatter,
    FormattedCitation,
    format_entry,
    format_pages,
    short_year,
    type_description,
)

# Notion record store and batch processing
from notion_bibtex.notion import NotionClient, NotionError, bibtex_text, build_update_properties
from notion_bibtex.processor import BatchOutcome, CitationProcessor, ProcessResult, cite_entry
from notion_bibtex.source import (
    BibEntry,
    BibLoader,
    MissingFieldError,
    clean_bibtex,
    normalize_fields,
    parse_entries,
    parse_entry,
)

# Shared utilities
from notion_bibtex.utils import HttpClient, RateLimiter, RateLimiterRegistry, split_authors_bibtex
from notion_bibtex.venues import (
    TOKEN_ABBREVIATIONS,
    VENUE_ABBREVIATIONS,
    VenueAbbreviation,
    VenueResolver,
    venue_name,
)

__all__ = [
    # Version
    "__version__",
    # Source
    "BibEntry",
    "BibLoader",
    "MissingFieldError",
    "clean_bibtex",
    "normalize_fields",
    "parse_entries",
    "parse_entry",
    # Preprint enrichment
    "ArxivClient",
    "ArxivMetadata",
    "EnrichmentError",
    "enrich_entry",
    "needs_enrichment",
    "parse_feed",
    # Authors
    "Author",
    "AuthorList",
    "contains_cjk",
    "decode_latex_accents",
    "join_names",
    "parse_author",
    # Venues
    "TOKEN_ABBREVIATIONS",
    "VENUE_ABBREVIATIONS",
    "VenueAbbreviation",
    "VenueResolver",
    "venue_name",
    # Formatting
    "TYPE_LABELS",
    "CitationFormatter",
    "FormattedCitation",
    "format_entry",
    "format_pages",
    "short_year",
    "type_description",
    # Notion and batch processing
    "BatchOutcome",
    "CitationProcessor",
    "NotionClient",
    "NotionError",
    "ProcessResult",
    "bibtex_text",
    "build_update_properties",
    "cite_entry",
    # Configuration
    "PropertyNames",
    "Settings",
    "load_settings",
    "save_settings",
    # Utilities
    "HttpClient",
    "RateLimiter",
    "RateLimiterRegistry",
    "split_authors_bibtex",
]
