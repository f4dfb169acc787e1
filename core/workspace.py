"""Workspace root, settings, timezone, logging and path helpers for Routinely."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.fileio import read_yaml, write_yaml_atomic
from core.models import TRUTHY, Settings

logger = logging.getLogger(__name__)


def workspace_root() -> Path:
    """Get the workspace root directory (contains config.yaml, data/, history/)."""
    return Path(
        os.environ.get("ROUTINES_ROOT", str(Path.home() / "routines"))
    ).expanduser().resolve()


def debug_enabled() -> bool:
    return os.environ.get("ROUTINES_DEBUG", "").strip().lower() in TRUTHY


def configure_logging(level: int | None = None) -> None:
    """Configure root logging once; DEBUG when ROUTINES_DEBUG is set."""
    if level is None:
        level = logging.DEBUG if debug_enabled() else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ── Settings ──────────────────────────────────────────────────


def config_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "config.yaml"


def load_settings(root: Path | None = None) -> Settings:
    """Load config.yaml, falling back to defaults if missing or unreadable."""
    try:
        return Settings.from_dict(read_yaml(config_path(root)))
    except Exception:
        logger.exception("Could not read settings from %s; using defaults", config_path(root))
        return Settings()


def save_settings(settings: Settings, root: Path | None = None) -> None:
    write_yaml_atomic(config_path(root), settings.to_dict())


def get_user_timezone(root: Path | None = None, settings: Settings | None = None) -> ZoneInfo:
    """Get the configured timezone, defaulting to UTC."""
    if settings is None:
        settings = load_settings(root)
    try:
        return ZoneInfo(settings.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r in settings; using UTC", settings.timezone)
        return ZoneInfo("UTC")


# ── Path helpers ──────────────────────────────────────────────

def data_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "data"


def history_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "history"


def database_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "routines.db"
