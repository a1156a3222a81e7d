#!/usr/bin/env python3
"""CLI entry point for the notion-bibtex-format command.

Formats every entry of a local .bib file without touching Notion.

Usage:
    notion-bibtex-format refs.bib
    notion-bibtex-format refs.bib --fetch-arxiv --json
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict

from notion_bibtex.arxiv import ArxivClient, EnrichmentError
from notion_bibtex.formatter import CitationFormatter
from notion_bibtex.processor import cite_entry
from notion_bibtex.source import MissingFieldError, parse_entries
from notion_bibtex.utils import HttpClient, RateLimiterRegistry
from notion_bibtex.venues import FALLBACKS, VenueResolver


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="notion-bibtex-format",
        description="Print slide and normal citations for the entries of a .bib file.",
    )
    p.add_argument("input", help="Input .bib file ('-' for stdin)")
    p.add_argument("--fetch-arxiv", action="store_true", help="Backfill venue/year of preprints from arXiv")
    p.add_argument("--json", action="store_true", help="Emit one JSON object per entry")
    p.add_argument("--venue-fallback", choices=FALLBACKS, default="shorten", help="Fallback venue abbreviation")
    p.add_argument("--timeout", type=float, default=20.0, help="HTTP timeout seconds")
    p.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s: %(message)s")
    logger = logging.getLogger("notion_bibtex")

    try:
        if args.input == "-":
            text = sys.stdin.read()
        else:
            with open(args.input, encoding="utf-8") as f:
                text = f.read()
    except OSError as e:
        logger.error("Failed to read input: %s", e)
        return 1

    entries = parse_entries(text)
    if not entries:
        logger.error("No BibTeX entries found in %s", args.input)
        return 1

    formatter = CitationFormatter(VenueResolver(fallback=args.venue_fallback))
    arxiv = None
    if args.fetch_arxiv:
        arxiv = ArxivClient(HttpClient(timeout=args.timeout, rate_limiter=RateLimiterRegistry()), logger=logger)

    failures = 0
    try:
        for entry in entries:
            try:
                citation = cite_entry(entry, formatter, arxiv)
            except (MissingFieldError, EnrichmentError) as e:
                logger.warning("Skipping %s: %s", entry.key or "<no key>", e)
                failures += 1
                continue
            if args.json:
                print(json.dumps({"key": entry.key, **asdict(citation)}, ensure_ascii=False))
            else:
                print(f"[{entry.key}] {citation.type_desc}")
                print(f"  slide:  {citation.slide_ref}")
                print(f"  normal: {citation.normal_ref}")
    finally:
        if arxiv is not None:
            arxiv.http.close()
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
