"""Raw BibTeX cleanup, parsing, and field normalization.

Text stored in a Notion cell is often pasted by hand and carries small
defects that make bibtexparser drop the entry. ``clean_bibtex`` repairs the
known ones before parsing:

* a dangling comma on the last field before the closing brace,
* blanks inside the citation key (``@article{smith 2020,``),
* a missing comma after the citation key.

Anything else is passed through unchanged; a parse that yields no entries
is the only failure signal.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

import bibtexparser
from bibtexparser.bparser import BibTexParser

from notion_bibtex.utils import safe_strip

logger = logging.getLogger(__name__)

CONFERENCE_TYPES = frozenset({"inproceedings", "conference"})

_TRAILING_COMMAS_RE = re.compile(r",+$")
_KEY_WITH_BLANKS_RE = re.compile(r"@(\w+)\s*\{([^,\n]*?)[ \t]+([^,\n]*?),")
_KEY_WITHOUT_COMMA_RE = re.compile(r"^([ \t]*@\w+[ \t]*\{[ \t]*[^,\s{}=]+)[ \t]*$", re.MULTILINE)
_ENTRY_TYPE_RE = re.compile(r"^\s*@(\w+)\s*\{")


class MissingFieldError(ValueError):
    """Raised when a field required by a formatting branch is absent."""

    def __init__(self, field_name: str, key: str = "") -> None:
        self.field_name = field_name
        self.key = key
        where = f" in entry '{key}'" if key else ""
        super().__init__(f"missing required field '{field_name}'{where}")


# ------------- Source Normalizer -------------


def strip_dangling_commas(text: str) -> str:
    """Drop trailing commas on a line that is followed by a lone closing brace."""
    lines = text.splitlines()
    for i in range(len(lines) - 1):
        line = lines[i].rstrip()
        if line.endswith(",") and lines[i + 1].strip() == "}":
            lines[i] = _TRAILING_COMMAS_RE.sub("", line)
    return "\n".join(lines)


def repair_citation_key(text: str) -> str:
    """Remove blanks inside the citation key and add a missing comma after it."""

    def _collapse(m: re.Match[str]) -> str:
        key = "".join(f"{m.group(2)} {m.group(3)}".split())
        return f"@{m.group(1)}{{{key},"

    text = _KEY_WITH_BLANKS_RE.sub(_collapse, text, count=1)
    return _KEY_WITHOUT_COMMA_RE.sub(r"\1,", text, count=1)


def clean_bibtex(raw: str) -> str:
    """Repair common hand-editing defects so the parser accepts the entry."""
    text = (raw or "").strip()
    text = strip_dangling_commas(text)
    return repair_citation_key(text)


def entry_type_of(text: str) -> str:
    """Return the lower-cased ``@type`` tag of the first entry, or ''."""
    m = _ENTRY_TYPE_RE.match(text or "")
    return m.group(1).lower() if m else ""


# ------------- Parsing -------------


class BibLoader:
    """Thin wrapper around bibtexparser's v1 parser."""

    def __init__(self, ignore_nonstandard_types: bool = False) -> None:
        # Unknown tags pass through and get their raw tag as type label
        self.ignore_nonstandard_types = ignore_nonstandard_types

    def _parser(self) -> BibTexParser:
        # BibTexParser accumulates entries across calls, so build one per load
        parser = BibTexParser(common_strings=True, ignore_nonstandard_types=self.ignore_nonstandard_types)
        parser.customization = None
        return parser

    def loads(self, text: str) -> bibtexparser.bibdatabase.BibDatabase:
        return bibtexparser.loads(text, parser=self._parser())

    def load_file(self, path: str) -> bibtexparser.bibdatabase.BibDatabase:
        with open(path, encoding="utf-8") as f:
            return bibtexparser.load(f, parser=self._parser())


# ------------- Field Normalizer -------------


@dataclass(frozen=True)
class BibEntry:
    """One parsed BibTeX entry with lower-cased keys and trimmed values.

    ``fields`` is read-only; use :meth:`with_fields` to derive an updated
    entry (the arXiv enricher does this to backfill journal and year).
    """

    entry_type: str
    key: str = ""
    fields: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def get(self, name: str) -> str | None:
        """Return a field value, or None when it is absent or blank."""
        value = self.fields.get(name.lower())
        return value if value else None

    def require(self, name: str) -> str:
        value = self.get(name)
        if value is None:
            raise MissingFieldError(name, self.key)
        return value

    def has(self, name: str) -> bool:
        return self.get(name) is not None

    def with_fields(self, **updates: str) -> BibEntry:
        merged = dict(self.fields)
        merged.update({k.lower(): safe_strip(v) for k, v in updates.items()})
        return replace(self, fields=merged)

    @property
    def title(self) -> str:
        return self.require("title")

    @property
    def year(self) -> str:
        return self.require("year")

    @property
    def is_conference(self) -> bool:
        return self.entry_type in CONFERENCE_TYPES


def normalize_fields(raw: Mapping[str, Any]) -> BibEntry:
    """Build a BibEntry from a bibtexparser entry dict.

    Keys are lower-cased and values trimmed. bibtexparser's bookkeeping keys
    (``ENTRYTYPE`` and ``ID``) become the entry type and citation key.
    """
    fields: dict[str, str] = {}
    entry_type = ""
    key = ""
    for name, value in raw.items():
        if name == "ENTRYTYPE":
            entry_type = safe_strip(value).lower()
        elif name == "ID":
            key = safe_strip(value)
        else:
            fields[name.lower()] = safe_strip(value)
    return BibEntry(entry_type=entry_type, key=key, fields=fields)


def parse_entries(text: str, loader: BibLoader | None = None) -> list[BibEntry]:
    """Clean, parse, and normalize every entry found in ``text``."""
    loader = loader or BibLoader()
    db = loader.loads(clean_bibtex(text))
    return [normalize_fields(e) for e in db.entries]


def parse_entry(text: str, loader: BibLoader | None = None) -> BibEntry | None:
    """Parse the first entry of a raw BibTeX block.

    Returns:
        The normalized entry, or None when the cleaned text yields no entries.
    """
    entries = parse_entries(text, loader)
    if not entries:
        logger.debug("No BibTeX entry parsed from %r", (text or "")[:60])
        return None
    return entries[0]
