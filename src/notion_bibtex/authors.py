"""Author parsing for citation strings.

Western names are reduced to ``Family, I. J.``; entries whose first author
is written in CJK script keep the raw names and use the family name as it
appears first in the string. The script decision is made once per entry
from the first author and applies to every author of that entry.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from types import MappingProxyType

from notion_bibtex.utils import collapse_whitespace, split_authors_bibtex

# Plural particle appended to a CJK surname when there are co-authors
CJK_PLURAL_SUFFIX = "ら"

_CJK_RE = re.compile(r"[\u3000-\u9fff]")
_CJK_SEPARATOR_RE = re.compile(r",\s*|\s+")
_NAME_TOKEN_RE = re.compile(r"(?:\{[^{}]*\}|[^\s{}])+")

_ACCENT_MARKS = {
    "'": "\u0301",  # acute
    "`": "\u0300",  # grave
    "^": "\u0302",  # circumflex
    '"': "\u0308",  # umlaut
    "~": "\u0303",  # tilde
}


def _build_accent_table() -> MappingProxyType[tuple[str, str], str]:
    table = {}
    for accent, mark in _ACCENT_MARKS.items():
        for letter in "aeiouAEIOUnN":
            composed = unicodedata.normalize("NFC", letter + mark)
            if len(composed) == 1:
                table[(accent, letter)] = composed
    return MappingProxyType(table)


ACCENTED_LETTERS = _build_accent_table()

_ACCENT = r"""\\(['`^"~])\s*(?:\{\s*\\?([A-Za-z])\s*\}|\\?([A-Za-z]))"""
_WRAPPED_ACCENT_RE = re.compile(r"\{" + _ACCENT + r"\}")
_BARE_ACCENT_RE = re.compile(_ACCENT)


def _accent_sub(m: re.Match[str]) -> str:
    letter = m.group(2) or m.group(3)
    return ACCENTED_LETTERS.get((m.group(1), letter), letter)


def decode_latex_accents(text: str) -> str:
    r"""Decode LaTeX accent escapes into composed characters.

    ``\'e``, ``\'{e}`` and ``{\'e}`` all become ``é``. Accent/letter pairs
    without a composed form fall back to the bare letter.
    """
    if not text:
        return ""
    text = _WRAPPED_ACCENT_RE.sub(_accent_sub, text)
    return _BARE_ACCENT_RE.sub(_accent_sub, text)


def contains_cjk(text: str) -> bool:
    """True when ``text`` contains a character from the CJK ranges."""
    return bool(_CJK_RE.search(text or ""))


@dataclass(frozen=True)
class Author:
    raw: str
    family: str
    initials: str = ""

    @property
    def display(self) -> str:
        """``Family, I. J.``, or just the family name without given names."""
        return f"{self.family}, {self.initials}" if self.initials else self.family


def _name_tokens(name: str) -> list[str]:
    # Brace groups stay attached to their token: "{van Dyk}" is one token
    return [t.replace("{", "").replace("}", "") for t in _NAME_TOKEN_RE.findall(name)]


def parse_author(raw: str) -> Author:
    """Parse one BibTeX name into family name and initials.

    Handles both ``Family, Given Names`` and ``Given Names Family``.
    """
    name = collapse_whitespace(decode_latex_accents(raw))
    if "," in name:
        family_part, _, given_part = name.partition(",")
        family = " ".join(_name_tokens(family_part))
        given = _name_tokens(given_part)
    else:
        tokens = _name_tokens(name)
        family = tokens[-1] if tokens else ""
        given = tokens[:-1]
    initials = " ".join(f"{part[0].upper()}." for part in given if part)
    return Author(raw=raw, family=family, initials=initials)


def cjk_surname(raw: str) -> str:
    """First comma/space-delimited token of a CJK name (family name first)."""
    tokens = _CJK_SEPARATOR_RE.split(raw.strip().replace("{", "").replace("}", ""))
    return tokens[0] if tokens else ""


def join_names(names: list[str]) -> str:
    """Join as ``A``, ``A and B`` or ``A, B, ... and Z``."""
    if not names:
        return ""
    if len(names) == 1:
        return names[0]
    return f"{', '.join(names[:-1])} and {names[-1]}"


@dataclass(frozen=True)
class AuthorList:
    """All authors of one entry, with the script decision made once."""

    names: tuple[str, ...]
    is_cjk: bool

    @classmethod
    def from_field(cls, author_field: str) -> AuthorList:
        names = tuple(split_authors_bibtex(author_field))
        return cls(names=names, is_cjk=bool(names) and contains_cjk(names[0]))

    def __len__(self) -> int:
        return len(self.names)

    @property
    def surname(self) -> str:
        """Family name of the first author, as shown in the slide key."""
        if not self.names:
            return ""
        if self.is_cjk:
            return cjk_surname(self.names[0])
        return parse_author(self.names[0]).family

    def slide(self) -> str:
        """Count-dependent short author string for slide citations."""
        if not self.names:
            return ""
        if self.is_cjk:
            surname = cjk_surname(self.names[0])
            return surname + CJK_PLURAL_SUFFIX if len(self.names) > 1 else surname
        first = parse_author(self.names[0]).display
        if len(self.names) == 1:
            return first
        if len(self.names) == 2:
            return f"{first} and {parse_author(self.names[1]).display}"
        return f"{first}, et al."

    def normal(self) -> str:
        """Full author list for normal citations."""
        if self.is_cjk:
            return ", ".join(_CJK_SEPARATOR_RE.sub("", n) for n in self.names)
        return join_names([parse_author(n).display for n in self.names])
