#!/usr/bin/env python3
"""CLI for the notion-bibtex command.

Formats the BibTeX entries of every flagged page in a Notion database and
writes the citations back.

Usage:
    notion-bibtex --database-id DB --token secret_xxx
    notion-bibtex --dry-run --verbose
    notion-bibtex --token secret_xxx --database-id DB --save-settings --include-token
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from notion_bibtex.config import DEFAULT_SETTINGS_PATH, Settings, load_settings, save_settings
from notion_bibtex.processor import BatchOutcome, CitationProcessor
from notion_bibtex.venues import FALLBACKS


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="notion-bibtex",
        description="Format BibTeX entries stored in a Notion database into slide and normal citations.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  NOTION_TOKEN        Notion integration token
  NOTION_DATABASE_ID  Database holding the BibTeX rows
""",
    )
    config_group = p.add_argument_group("Configuration")
    config_group.add_argument("--token", help="Notion integration token (or set NOTION_TOKEN)")
    config_group.add_argument("--database-id", help="Notion database ID (or set NOTION_DATABASE_ID)")
    config_group.add_argument(
        "--config",
        dest="config_file",
        default=None,
        help=f"Settings YAML file (default: {DEFAULT_SETTINGS_PATH})",
    )
    config_group.add_argument("--save-settings", action="store_true", help="Save the effective settings and exit")
    config_group.add_argument(
        "--include-token", action="store_true", help="With --save-settings, also store the token in the file"
    )

    run_group = p.add_argument_group("Processing")
    run_group.add_argument("--dry-run", action="store_true", help="Compute citations without updating Notion")
    run_group.add_argument("--fail-fast", action="store_true", help="Abort the batch on the first failing record")
    run_group.add_argument("--limit", type=int, default=None, help="Process at most N flagged pages")
    run_group.add_argument(
        "--venue-fallback",
        choices=FALLBACKS,
        default=None,
        help="Abbreviation for venues not in the table: word shortening or initial-letter acronym",
    )
    run_group.add_argument("--timeout", type=float, default=None, help="HTTP timeout seconds")
    run_group.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return p


def init_logging(verbose: bool) -> logging.Logger:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    return logging.getLogger("notion_bibtex")


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Merge settings: command-line flags > settings file > environment."""
    settings = load_settings(args.config_file)
    settings.token = args.token or settings.token or os.environ.get("NOTION_TOKEN", "")
    settings.database_id = args.database_id or settings.database_id or os.environ.get("NOTION_DATABASE_ID", "")
    if args.venue_fallback:
        settings.venue_fallback = args.venue_fallback
    if args.timeout is not None:
        settings.timeout = args.timeout
    if args.limit is not None:
        settings.limit = args.limit
    settings.dry_run = args.dry_run or settings.dry_run
    settings.fail_fast = args.fail_fast or settings.fail_fast
    settings.verbose = args.verbose or settings.verbose
    return settings


def print_summary(outcome: BatchOutcome) -> None:
    """Print summary of results."""
    print("\n" + "=" * 60)
    print("SUMMARY")
    print("=" * 60)
    print(f"Total processed:  {len(outcome.results)}")
    print(f"Updated:          {outcome.count('updated') + outcome.count('would_update')}")
    print(f"Skipped:          {outcome.count('skipped')}")
    print(f"Errors:           {outcome.count('error')}")

    errors = [r for r in outcome.results if r.action == "error"]
    if errors:
        print("\n--- Errors ---")
        for r in errors:
            print(f"  [{r.page_id}] {r.title}")
            print(f"    Error: {r.message}")
    print()
    print(outcome.message)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code: 0 on success, 1 when the batch failed, 2 on bad settings
    """
    args = build_arg_parser().parse_args(argv)
    try:
        settings = resolve_settings(args)
    except (OSError, ValueError, TypeError) as e:
        print(f"Error: could not load settings: {e}", file=sys.stderr)
        return 2
    logger = init_logging(settings.verbose)

    if args.save_settings:
        path = save_settings(settings, args.config_file, include_token=args.include_token)
        logger.info("Settings saved to %s", path)
        return 0

    if not settings.token or not settings.database_id:
        print("Error: NOTION_TOKEN and NOTION_DATABASE_ID required", file=sys.stderr)
        print("  Set environment variables or use --token and --database-id", file=sys.stderr)
        return 2

    processor = CitationProcessor.from_settings(settings, logger=logger)
    try:
        outcome = processor.run()
    finally:
        processor.notion.close()
        if processor.arxiv is not None:
            processor.arxiv.http.close()
    print_summary(outcome)
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    sys.exit(main())
