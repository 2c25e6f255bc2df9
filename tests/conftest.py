"""Shared test fixtures for pattern-analysis-mcp."""

from __future__ import annotations

import sys
from typing import Any

import pytest

import pattern_analysis_mcp.config as cfg_mod
from pattern_analysis_mcp.config import ServerConfig


def unwrap_tool(tool: Any) -> Any:
    """Extract the raw coroutine from a FastMCP FunctionTool, if wrapped.

    FastMCP 2.x wraps @server.tool functions in FunctionTool (not callable).
    FastMCP 3.x preserves the original function. This helper works with both.
    """
    return getattr(tool, "fn", tool)


@pytest.fixture(autouse=True)
def _clean_config():
    """Reset the config singleton between tests."""
    cfg_mod._config = None
    yield
    cfg_mod._config = None


@pytest.fixture(autouse=True)
def _isolate_dotenv(tmp_path, monkeypatch):
    """Prevent tests from loading the user's real ~/.config/pattern-analysis-mcp/.env."""
    monkeypatch.setattr(
        "pattern_analysis_mcp.dotenv.DEFAULT_ENV_PATH",
        tmp_path / "nonexistent.env",
    )


@pytest.fixture(autouse=True)
def _disable_tracing(monkeypatch):
    """Keep MLflow out of the test run."""
    monkeypatch.setenv("FABRIC_TRACING_ENABLED", "false")


@pytest.fixture()
def fake_fabric(tmp_path):
    """Write a Python script that stands in for the fabric CLI.

    Returns a factory taking the script body; the script is executable and
    runs under the current interpreter, so ``sys.argv`` and ``sys.stdin``
    behave as they would for fabric.
    """
    def _factory(body: str, name: str = "fabric") -> str:
        script = tmp_path / "bin" / name
        script.parent.mkdir(exist_ok=True)
        script.write_text(f"#!{sys.executable}\nimport sys, time\n{body}\n")
        script.chmod(0o755)
        return str(script)

    return _factory


@pytest.fixture()
def make_config(tmp_path):
    """Build a ServerConfig pointing at *fabric_path* with exports under tmp_path."""
    def _factory(fabric_path: str = "fabric", **overrides: Any) -> ServerConfig:
        data: dict[str, Any] = {
            "fabric_path": fabric_path,
            "export_dir": str(tmp_path / "exports"),
            "extra_paths": [],
        }
        data.update(overrides)
        return ServerConfig(**data)

    return _factory


COPYWRITING_RESPONSE = """\
# Copywriting Analysis

Headline Score: 8/10
Persuasion: strong emotional pull, 6/10
Clarity: 7/10
Overall Score: 7/10

Improvements:
- Tighten the headline to under ten words
- Add a single, specific call to action
- Replace "world-class" with a concrete proof point

Thanks for reading.
"""

WISDOM_RESPONSE = """\
# SUMMARY

A founder explains how small, daily habits compound into durable creative output.

# IDEAS

- Consistency beats intensity over long horizons.
- Constraints make creative decisions easier.

# QUOTES

- "Ship something every day."

# HABITS

- Write for 30 minutes before checking email.

# FACTS

# ONE-SENTENCE TAKEAWAY

Small daily output compounds into mastery.

# RECOMMENDATIONS

- Pick one daily creative habit and track it.
"""
