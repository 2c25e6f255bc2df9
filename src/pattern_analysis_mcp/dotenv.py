"""Fill unset ``FABRIC_*`` / ``MLFLOW_*`` settings from a shared config file.

MCP hosts often launch the server with a bare environment, so the fabric
path and export directory set in a shell profile never arrive. Settings in
``~/.config/pattern-analysis-mcp/.env`` fill that gap. Only keys this
server reads are injected; anything else in the file is ignored.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_ENV_PATH = Path.home() / ".config" / "pattern-analysis-mcp" / ".env"
MANAGED_PREFIXES = ("FABRIC_", "MLFLOW_")


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    return value


def _needs_value(key: str, current: str | None) -> bool:
    """True when *current* is missing, blank, or an unexpanded ``${KEY}`` reference."""
    if current is None:
        return True
    current = _unquote(current).strip()
    return not current or current in (f"${key}", f"${{{key}}}") or current.startswith(f"${{{key}:-")


def parse_dotenv(path: Path) -> dict[str, str]:
    """Read ``KEY=VALUE`` pairs from *path*; a missing file gives ``{}``.

    Accepts ``export`` prefixes, quoted values and ``#`` comment lines.
    Values are taken literally, without variable expansion.
    """
    if not path.is_file():
        return {}
    pairs: dict[str, str] = {}
    for raw in path.read_text().splitlines():
        line = raw.strip()
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        pairs[key] = _unquote(value)
    return pairs


def load_dotenv(path: Path | None = None) -> dict[str, str]:
    """Inject managed settings from *path* (default :data:`DEFAULT_ENV_PATH`).

    Process environment wins unless its value is blank or a self-reference.

    Returns:
        The variables that were set.
    """
    injected: dict[str, str] = {}
    for key, value in parse_dotenv(path or DEFAULT_ENV_PATH).items():
        if not key.startswith(MANAGED_PREFIXES):
            logger.debug("Ignoring unmanaged key %s in config file", key)
            continue
        if _needs_value(key, os.environ.get(key)):
            os.environ[key] = value
            injected[key] = value
    return injected
