"""Tests for the command-line entry points."""

from __future__ import annotations

import io
import json

import pytest
from conftest import FakeNotionClient

from notion_bibtex import CitationProcessor, load_settings
from notion_bibtex.cli import format_cli, process_cli

ARTICLE_BIB = """@article{smith2023,
  author = {Smith, John and Doe, Jane},
  title = {A Study},
  journal = {Journal of X},
  volume = {5},
  number = {2},
  pages = {10--20},
  year = {2023},
}
"""


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No credentials in the environment and no default settings file."""
    monkeypatch.delenv("NOTION_TOKEN", raising=False)
    monkeypatch.delenv("NOTION_DATABASE_ID", raising=False)
    return tmp_path / "settings.yaml"


@pytest.fixture
def fake_processor_factory(monkeypatch):
    """Replace the real clients built by the CLI with a fake Notion database."""

    def _install(pages, fail_on=None):
        class _Factory:
            @staticmethod
            def from_settings(settings, logger=None):
                return CitationProcessor(FakeNotionClient(pages, fail_on=fail_on), settings, logger=logger)

        monkeypatch.setattr(process_cli, "CitationProcessor", _Factory)

    return _install


class TestProcessCli:
    """Tests for notion-bibtex."""

    def test_missing_credentials(self, clean_env, capsys):
        assert process_cli.main(["--config", str(clean_env)]) == 2
        assert "NOTION_TOKEN and NOTION_DATABASE_ID required" in capsys.readouterr().err

    def test_flags_override_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("NOTION_TOKEN", "secret_env")
        monkeypatch.setenv("NOTION_DATABASE_ID", "db-env")
        args = process_cli.build_arg_parser().parse_args(["--config", str(clean_env), "--token", "secret_flag"])
        settings = process_cli.resolve_settings(args)
        assert settings.token == "secret_flag"
        assert settings.database_id == "db-env"

    def test_settings_file_overrides_environment(self, clean_env, monkeypatch):
        clean_env.write_text("database_id: db-file\n", encoding="utf-8")
        monkeypatch.setenv("NOTION_DATABASE_ID", "db-env")
        args = process_cli.build_arg_parser().parse_args(["--config", str(clean_env)])
        assert process_cli.resolve_settings(args).database_id == "db-file"

    def test_processing_flags(self, clean_env):
        argv = ["--config", str(clean_env), "--dry-run", "--fail-fast", "--limit", "3", "--venue-fallback", "acronym"]
        settings = process_cli.resolve_settings(process_cli.build_arg_parser().parse_args(argv))
        assert settings.dry_run and settings.fail_fast
        assert settings.limit == 3
        assert settings.venue_fallback == "acronym"

    def test_save_settings(self, clean_env):
        argv = ["--config", str(clean_env), "--token", "secret_x", "--database-id", "db-1", "--save-settings"]
        assert process_cli.main(argv) == 0
        saved = load_settings(clean_env)
        assert saved.database_id == "db-1"
        assert saved.token == ""

    def test_save_settings_with_token(self, clean_env):
        argv = ["--config", str(clean_env), "--token", "secret_x", "--save-settings", "--include-token"]
        assert process_cli.main(argv) == 0
        assert load_settings(clean_env).token == "secret_x"

    def test_bad_settings_file(self, clean_env, capsys):
        clean_env.write_text("- not\n- a mapping\n", encoding="utf-8")
        assert process_cli.main(["--config", str(clean_env)]) == 2
        assert "could not load settings" in capsys.readouterr().err

    def test_run_success(self, clean_env, fake_processor_factory, make_page, capsys):
        fake_processor_factory([make_page("p1", ARTICLE_BIB)])
        argv = ["--config", str(clean_env), "--token", "secret_x", "--database-id", "db-1"]
        assert process_cli.main(argv) == 0
        out = capsys.readouterr().out
        assert "Update complete: 1 updated, 0 skipped" in out
        assert "Total processed:  1" in out

    def test_run_failure_exit_code(self, clean_env, fake_processor_factory, make_page, capsys):
        fake_processor_factory([make_page("p1", ARTICLE_BIB)], fail_on={"p1"})
        argv = ["--config", str(clean_env), "--token", "secret_x", "--database-id", "db-1"]
        assert process_cli.main(argv) == 1
        out = capsys.readouterr().out
        assert "--- Errors ---" in out
        assert "Error: 1 of 1 record(s) failed" in out


class TestFormatCli:
    """Tests for notion-bibtex-format."""

    def test_text_output(self, tmp_path, capsys):
        path = tmp_path / "refs.bib"
        path.write_text(ARTICLE_BIB, encoding="utf-8")
        assert format_cli.main([str(path)]) == 0
        out = capsys.readouterr().out
        assert "[smith2023] 雑誌論文 (Journal of X)" in out
        assert "slide:  [Smith, ’23] Smith, J. and Doe, J.: A Study, Journal of X, Vol. 5, No. 2, p10-20 (2023)." in out

    def test_json_output(self, tmp_path, capsys):
        path = tmp_path / "refs.bib"
        path.write_text(ARTICLE_BIB, encoding="utf-8")
        assert format_cli.main([str(path), "--json"]) == 0
        record = json.loads(capsys.readouterr().out.strip())
        assert record["key"] == "smith2023"
        assert record["normal_ref"] == "Smith, J. and Doe, J.: A Study, Journal of X, Vol. 5, No. 2, p10-20 (2023)."
        assert record["url"] is None

    def test_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(ARTICLE_BIB))
        assert format_cli.main(["-"]) == 0
        assert "smith2023" in capsys.readouterr().out

    def test_missing_file(self, tmp_path):
        assert format_cli.main([str(tmp_path / "missing.bib")]) == 1

    def test_no_entries(self, tmp_path):
        path = tmp_path / "empty.bib"
        path.write_text("% nothing here\n", encoding="utf-8")
        assert format_cli.main([str(path)]) == 1

    def test_entry_with_missing_field(self, tmp_path, capsys):
        path = tmp_path / "refs.bib"
        path.write_text(ARTICLE_BIB + "\n@misc{noyear,\n  author = {Doe, Jane},\n  title = {T}\n}\n", encoding="utf-8")
        assert format_cli.main([str(path)]) == 1
        assert "smith2023" in capsys.readouterr().out
