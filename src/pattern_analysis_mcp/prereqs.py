"""Prerequisite checks for the fabric analysis environment."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from pydantic import BaseModel, Field

from .config import ServerConfig, get_config
from .invocation import build_env


class PrereqStatus(BaseModel):
    """Result of checking a single prerequisite."""

    name: str
    available: bool
    path: str = ""
    message: str = ""


class PrereqReport(BaseModel):
    """Aggregated prerequisite check results."""

    all_ok: bool = False
    checks: list[PrereqStatus] = Field(default_factory=list)


def _nearest_existing(path: Path) -> Path:
    while not path.exists() and path != path.parent:
        path = path.parent
    return path


def check_prereqs(config: ServerConfig | None = None) -> PrereqReport:
    """Check that fabric is invocable and the export directory is writable.

    Fabric is looked up on the same augmented PATH the spawned process gets.
    """
    cfg = config or get_config()
    checks: list[PrereqStatus] = []

    env = build_env(cfg.extra_paths, cfg.fabric_path)
    fabric = shutil.which(os.path.expanduser(cfg.fabric_path), path=env["PATH"])
    checks.append(PrereqStatus(
        name="fabric",
        available=fabric is not None,
        path=fabric or "",
        message="" if fabric else f"'{cfg.fabric_path}' not found — set FABRIC_PATH or FABRIC_EXTRA_PATHS",
    ))

    export_dir = cfg.resolved_export_dir
    anchor = _nearest_existing(export_dir)
    writable = anchor.is_dir() and os.access(anchor, os.W_OK)
    checks.append(PrereqStatus(
        name="export_dir",
        available=writable,
        path=str(export_dir),
        message="" if writable else f"Cannot create or write {export_dir} — set FABRIC_EXPORT_DIR",
    ))

    return PrereqReport(
        all_ok=all(c.available for c in checks),
        checks=checks,
    )
