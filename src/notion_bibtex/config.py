"""Configuration dataclasses and settings persistence."""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path("~/.config/notion-bibtex/settings.yaml")


@dataclass
class PropertyNames:
    """Names of the Notion database properties read and written per page.

    Attributes:
        flag: Checkbox selecting the pages to process; reset after processing
        bibtex: Rich-text property holding the raw BibTeX entry
        title: Title property receiving the paper title
        slide_ref: Rich-text property receiving the slide citation
        normal_ref: Rich-text property receiving the normal citation
        type_desc: Rich-text property receiving the type label
        url: URL property, written only when the entry has a url
    """

    flag: str = "チェックボックス"
    bibtex: str = "BibTeX"
    title: str = "論文名"
    slide_ref: str = "参考文献(スライド)"
    normal_ref: str = "参考文献"
    type_desc: str = "種類"
    url: str = "URL"


@dataclass
class Settings:
    """Settings for one batch run.

    Attributes:
        token: Notion integration token
        database_id: Notion database holding the BibTeX rows
        properties: PropertyNames of the database columns
        timeout: HTTP timeout in seconds
        arxiv_rate_limit: arXiv requests per minute
        notion_rate_limit: Notion requests per minute
        venue_fallback: "shorten" (word shortening) or "acronym"
        fail_fast: Abort the batch on the first failing record
        dry_run: Compute citations without writing them back
        verbose: Enable debug logging
        limit: Process at most this many pages (None for all)
    """

    token: str = ""
    database_id: str = ""
    properties: PropertyNames = field(default_factory=PropertyNames)
    timeout: float = 20.0
    arxiv_rate_limit: int = 30
    notion_rate_limit: int = 180
    venue_fallback: str = "shorten"
    fail_fast: bool = False
    dry_run: bool = False
    verbose: bool = False
    limit: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create settings from a dictionary (e.g., loaded from YAML).

        Unknown keys are ignored with a warning.
        """
        data = dict(data or {})
        prop_data = dict(data.pop("properties", None) or {})
        prop_known = {f.name for f in fields(PropertyNames)}
        prop_unknown = sorted(set(prop_data) - prop_known)
        if prop_unknown:
            logger.warning("Ignoring unknown property names: %s", ", ".join(prop_unknown))
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))
        kwargs = {k: v for k, v in data.items() if k in known}
        props = PropertyNames(**{k: v for k, v in prop_data.items() if k in prop_known})
        return cls(properties=props, **kwargs)

    def to_dict(self, include_token: bool = False) -> dict[str, Any]:
        """Convert settings to a dictionary for serialization."""
        data = asdict(self)
        if not include_token:
            data.pop("token")
        return data


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file; a missing file yields defaults."""
    p = Path(path or DEFAULT_SETTINGS_PATH).expanduser()
    if not p.exists():
        return Settings()
    with open(p, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"invalid settings file {p}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"settings file {p} must contain a mapping")
    return Settings.from_dict(data)


def save_settings(settings: Settings, path: str | Path | None = None, include_token: bool = False) -> Path:
    """Write settings to a YAML file, creating parent directories.

    The token is only written when ``include_token`` is set; the file is
    then made readable by the owner only.
    """
    p = Path(path or DEFAULT_SETTINGS_PATH).expanduser()
    p.parent.mkdir(parents=True, exist_ok=True)
    data = settings.to_dict(include_token=include_token)
    if include_token:
        # Owner-only from creation; chmod covers a pre-existing file
        fd = os.open(p, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        os.chmod(p, 0o600)
        f = os.fdopen(fd, "w", encoding="utf-8")
    else:
        f = open(p, "w", encoding="utf-8")
    with f:
        yaml.safe_dump(data, f, allow_unicode=True, sort_keys=False)
    return p
