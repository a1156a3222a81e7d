"""Venue name abbreviation.

Resolution order, first hit wins:

1. curated table of full venue names (case-insensitive substring test in
   both directions),
2. an abbreviation already present in parentheses, e.g. ``"... (ICRA)"``,
3. word-by-word shortening (``International`` -> ``Int.``), or the
   initial-letter acronym when configured with ``fallback="acronym"``.

Because the table test matches in both directions, a short table key can
match an unrelated longer venue, and a short venue can match a longer key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType

from notion_bibtex.source import BibEntry
from notion_bibtex.utils import collapse_whitespace

VENUE_ABBREVIATIONS = MappingProxyType(
    {
        "The International Conference on Learning Representations": "ICLR",
        "Advances in Neural Information Processing Systems": "NeurIPS",
        "SIGKDD Conference on Knowledge Discovery and Data Mining": "KDD",
        "Conference on Computer Vision and Pattern Recognition": "CVPR",
        "International Conference on Machine Learning": "ICML",
        "International Conference on Computer Vision": "ICCV",
        "European Conference on Computer Vision": "ECCV",
        "Winter Conference on Applications of Computer Vision": "WACV",
        "AAAI Conference on Artificial Intelligence": "AAAI",
        "International Joint Conference on Artificial Intelligence": "IJCAI",
        "International Conference on Artificial Intelligence and Statistics": "AISTATS",
        "Annual Meeting of the Association for Computational Linguistics": "ACL",
        "Conference on Empirical Methods in Natural Language Processing": "EMNLP",
        "North American Chapter of the Association for Computational Linguistics": "NAACL",
        "International Conference on Robotics and Automation": "ICRA",
        "International Conference on Intelligent Robots and Systems": "IROS",
        "Conference on Robot Learning": "CoRL",
        "International Conference on Acoustics, Speech and Signal Processing": "ICASSP",
    }
)

TOKEN_ABBREVIATIONS = MappingProxyType(
    {
        "International": "Int.",
        "Conference": "Conf.",
        "Recognition": "Recognit.",
    }
)

FALLBACKS = ("shorten", "acronym")

_PARENTHETICAL_RE = re.compile(r"\(([^)]+)\)")


@dataclass(frozen=True)
class VenueAbbreviation:
    text: str
    source: str  # "table", "parenthetical", "shortened", "acronym", "empty"

    @property
    def from_table(self) -> bool:
        return self.source == "table"

    def __str__(self) -> str:
        return self.text


def venue_name(entry: BibEntry) -> str:
    """``booktitle`` if present, else ``journal``, else ''."""
    return collapse_whitespace(entry.get("booktitle") or entry.get("journal") or "")


def lookup_table(name: str, table: MappingProxyType[str, str] = VENUE_ABBREVIATIONS) -> str | None:
    if not name:
        return None
    needle = name.lower()
    for full, abbr in table.items():
        key = full.lower()
        if key in needle or needle in key:
            return abbr
    return None


def parenthetical(name: str) -> str | None:
    m = _PARENTHETICAL_RE.search(name)
    return m.group(1).strip() if m and m.group(1).strip() else None


def shorten_tokens(name: str, table: MappingProxyType[str, str] = TOKEN_ABBREVIATIONS) -> str:
    return " ".join(table.get(word, word) for word in name.split())


def acronym(name: str) -> str:
    return "".join(word[0].upper() for word in name.split())


class VenueResolver:
    """Resolve full venue names to their abbreviations."""

    def __init__(
        self,
        table: MappingProxyType[str, str] = VENUE_ABBREVIATIONS,
        token_table: MappingProxyType[str, str] = TOKEN_ABBREVIATIONS,
        fallback: str = "shorten",
    ) -> None:
        if fallback not in FALLBACKS:
            raise ValueError(f"unknown venue fallback {fallback!r}; expected one of {FALLBACKS}")
        self.table = table
        self.token_table = token_table
        self.fallback = fallback

    def resolve(self, name: str) -> VenueAbbreviation:
        name = collapse_whitespace(name)
        if not name:
            return VenueAbbreviation("", "empty")
        abbr = lookup_table(name, self.table)
        if abbr:
            return VenueAbbreviation(abbr, "table")
        abbr = parenthetical(name)
        if abbr:
            return VenueAbbreviation(abbr, "parenthetical")
        if self.fallback == "acronym":
            return VenueAbbreviation(acronym(name), "acronym")
        return VenueAbbreviation(shorten_tokens(name, self.token_table), "shortened")
