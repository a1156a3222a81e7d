"""Slide and normal citation strings.

Examples (article with two Western authors)::

    [Smith, ’23] Smith, J. and Doe, J.: A Study, Journal of X, Vol. 5, No. 2, p10-20 (2023).
    Smith, J. and Doe, J.: A Study, Journal of X, Vol. 5, No. 2, p10-20 (2023).

Branches, in priority order: ``misc`` (preprint), conference papers
(``inproceedings`` and its synonym ``conference``), then journal-style
entries. Whether the names are CJK or Western only changes the author
strings, which :class:`~notion_bibtex.authors.AuthorList` takes care of.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType

from notion_bibtex.authors import AuthorList
from notion_bibtex.source import BibEntry
from notion_bibtex.utils import collapse_whitespace
from notion_bibtex.venues import VenueAbbreviation, VenueResolver, parenthetical, venue_name

TYPE_LABELS = MappingProxyType(
    {
        "article": "雑誌論文",
        "inproceedings": "会議論文",
        "conference": "会議論文",
        "misc": "arXiv論文",
    }
)

YEAR_MARK = "’"

_DASHES_RE = re.compile(r"\s*[-–—]+\s*")


@dataclass(frozen=True)
class FormattedCitation:
    title: str
    slide_ref: str
    normal_ref: str
    type_desc: str
    url: str | None = None


def short_year(year: str) -> str:
    """Last two characters of the year (``"2024"`` -> ``"24"``)."""
    return year.strip()[-2:]


def format_pages(pages: str) -> str:
    """``"12--14"`` and ``"12-14"`` both become ``"p12-14"``."""
    return "p" + _DASHES_RE.sub("-", pages.strip())


def type_description(entry: BibEntry) -> str:
    label = TYPE_LABELS.get(entry.entry_type, entry.entry_type)
    if entry.entry_type == "article":
        journal = collapse_whitespace(entry.get("journal") or "")
        if journal:
            return f"{label} ({journal})"
    elif entry.is_conference:
        venue = venue_name(entry)
        if venue:
            return f"{label} ({venue})"
    return label


def preprint_label(entry: BibEntry) -> str:
    eprint = entry.get("eprint")
    if eprint:
        return f"arXiv preprint arXiv:{eprint}"
    return collapse_whitespace(entry.get("journal") or entry.get("howpublished") or "")


def volume_details(entry: BibEntry, require_volume: bool = False) -> str:
    """``", Vol. V, No. N, pP"``, each part only when present."""
    volume = entry.get("volume")
    if require_volume and not volume:
        return ""
    parts = []
    if volume:
        parts.append(f"Vol. {volume}")
    number = entry.get("number")
    if number:
        parts.append(f"No. {number}")
    pages = entry.get("pages")
    if pages:
        parts.append(format_pages(pages))
    return "".join(f", {p}" for p in parts)


class CitationFormatter:
    """Compose slide/normal citations and the type label for one entry."""

    def __init__(self, resolver: VenueResolver | None = None) -> None:
        self.resolver = resolver or VenueResolver()

    def format(self, entry: BibEntry) -> FormattedCitation:
        """Format one entry.

        Raises:
            MissingFieldError: If ``author``, ``title`` or ``year`` is missing.
        """
        authors = AuthorList.from_field(entry.require("author"))
        title = collapse_whitespace(entry.title)
        year = entry.year

        if entry.entry_type == "misc":
            slide_tail, normal_tail = self._misc_tails(entry)
        elif entry.is_conference:
            slide_tail, normal_tail = self._conference_tails(entry, self.resolver.resolve(venue_name(entry)))
        else:
            slide_tail, normal_tail = self._journal_tails(entry)

        key = f"[{authors.surname}, {YEAR_MARK}{short_year(year)}]"
        return FormattedCitation(
            title=title,
            slide_ref=f"{key} {authors.slide()}: {title}{slide_tail} ({year}).",
            normal_ref=f"{authors.normal()}: {title}{normal_tail} ({year}).",
            type_desc=type_description(entry),
            url=entry.get("url"),
        )

    @staticmethod
    def _misc_tails(entry: BibEntry) -> tuple[str, str]:
        # Slide shows the venue comment fetched from arXiv; normal keeps the identifier
        label = preprint_label(entry)
        slide_label = collapse_whitespace(entry.get("journal") or "") or label
        slide = f", {slide_label}" if slide_label else ""
        normal = f", {label}" if label else ""
        return slide, normal

    @staticmethod
    def _conference_tails(entry: BibEntry, abbr: VenueAbbreviation) -> tuple[str, str]:
        details = volume_details(entry)
        venue = venue_name(entry)
        slide = f", In {abbr}{details}" if abbr.text else details
        if not venue:
            return slide, details
        proceedings = f"In Proceedings of {venue}"
        if abbr.from_table and parenthetical(venue) != abbr.text:
            proceedings += f" ({abbr})"
        return slide, f", {proceedings}{details}"

    @staticmethod
    def _journal_tails(entry: BibEntry) -> tuple[str, str]:
        details = volume_details(entry, require_volume=True)
        venue = collapse_whitespace(entry.get("journal") or entry.get("booktitle") or "")
        slide = f", {venue}{details}" if venue else details
        source = venue or collapse_whitespace(entry.get("publisher") or "")
        normal = f", {source}{details}" if source else details
        return slide, normal


def format_entry(entry: BibEntry, resolver: VenueResolver | None = None) -> FormattedCitation:
    return CitationFormatter(resolver).format(entry)
