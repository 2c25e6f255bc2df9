"""Tests for structured error categorization and retryability flags."""

from __future__ import annotations

import pytest

from pattern_analysis_mcp.errors import (
    EmptyOutput,
    ExportIOError,
    InvocationCancelled,
    InvocationTimeout,
    NonZeroExit,
    SpawnError,
    make_tool_error,
)
from pattern_analysis_mcp.models.analysis import RawResponse


def _response(exit_code: int | None = 1, stderr: str = "") -> RawResponse:
    return RawResponse(stdout="", stderr=stderr, exit_code=exit_code, duration_millis=10)


class TestMakeToolError:
    @pytest.mark.parametrize(
        ("error", "category", "retryable"),
        [
            (SpawnError("Could not start fabric"), "FABRIC_NOT_FOUND", False),
            (InvocationTimeout("timed out", response=_response(-15)), "PROCESS_TIMEOUT", True),
            (InvocationCancelled("cancelled"), "PROCESS_CANCELLED", False),
            (EmptyOutput("no output", response=_response(0)), "EMPTY_OUTPUT", False),
            (NonZeroExit("bad pattern", response=_response(1)), "PROCESS_FAILED", False),
            (ExportIOError("disk full"), "EXPORT_FAILED", False),
            (ValueError("No input provided"), "INPUT_INVALID", False),
            (RuntimeError("boom"), "UNKNOWN", False),
        ],
    )
    def test_categories(self, error, category, retryable):
        result = make_tool_error(error)
        assert result["category"] == category
        assert result["retryable"] is retryable
        assert result["error"] == str(error)

    def test_builtin_timeout_maps_to_process_timeout(self):
        result = make_tool_error(TimeoutError())
        assert result["category"] == "PROCESS_TIMEOUT"
        assert result["retryable"] is True

    def test_missing_transcript(self):
        error = NonZeroExit(
            "could not get transcript",
            response=_response(1, stderr="Error: transcript not available for video"),
        )
        result = make_tool_error(error)
        assert result["category"] == "TRANSCRIPT_UNAVAILABLE"
        assert "captions" in result["hint"]

    def test_killed_by_signal_is_retryable(self):
        result = make_tool_error(NonZeroExit("Process exited with code -9", response=_response(-9)))
        assert result["category"] == "PROCESS_KILLED"
        assert result["retryable"] is True

    def test_hint_names_remedy(self):
        assert "FABRIC_PATH" in make_tool_error(SpawnError("x"))["hint"]
        assert "FABRIC_TIMEOUT" in make_tool_error(InvocationTimeout("x"))["hint"]


class TestInvocationError:
    def test_stderr_and_exit_code(self):
        error = NonZeroExit("failed", command=["fabric", "--pattern", "x"], response=_response(3, "oops"))
        assert error.stderr == "oops"
        assert error.exit_code == 3
        assert error.command == ["fabric", "--pattern", "x"]

    def test_without_response(self):
        error = SpawnError("missing")
        assert error.stderr == ""
        assert error.response is None
