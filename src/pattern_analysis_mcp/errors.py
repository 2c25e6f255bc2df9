"""Structured error handling — invocation/export exceptions, categories, and tool error model."""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel

from .models.analysis import RawResponse


class ErrorCategory(str, Enum):
    """Categories of errors for diagnostics."""

    FABRIC_NOT_FOUND = "FABRIC_NOT_FOUND"
    PROCESS_TIMEOUT = "PROCESS_TIMEOUT"
    PROCESS_CANCELLED = "PROCESS_CANCELLED"
    PROCESS_FAILED = "PROCESS_FAILED"
    PROCESS_KILLED = "PROCESS_KILLED"
    EMPTY_OUTPUT = "EMPTY_OUTPUT"
    TRANSCRIPT_UNAVAILABLE = "TRANSCRIPT_UNAVAILABLE"
    EXPORT_FAILED = "EXPORT_FAILED"
    INPUT_INVALID = "INPUT_INVALID"
    UNKNOWN = "UNKNOWN"


class AnalysisError(Exception):
    """Base class for terminal pipeline failures."""

    hint = ""


class InvocationError(AnalysisError):
    """The external analysis process could not produce a usable result.

    ``response`` holds whatever was captured before the failure; it is
    ``None`` when the process never started.
    """

    def __init__(
        self,
        message: str,
        *,
        command: list[str] | None = None,
        response: RawResponse | None = None,
    ) -> None:
        self.command = list(command or [])
        self.response = response
        super().__init__(message)

    @property
    def stderr(self) -> str:
        return self.response.stderr if self.response else ""


class SpawnError(InvocationError):
    """The executable is missing or not invocable."""

    hint = "Fabric executable not found — set FABRIC_PATH or add its directory to FABRIC_EXTRA_PATHS"


class InvocationTimeout(InvocationError):
    """The process exceeded its time budget and was terminated."""

    hint = (
        "Timed out — the payload may be too large or the remote resource slow; "
        "shorten the input or raise FABRIC_TIMEOUT"
    )


class InvocationCancelled(InvocationError):
    """The caller cancelled the invocation before it finished."""

    hint = "Analysis was cancelled before the process finished"


class NonZeroExit(InvocationError):
    """The process ran but exited with a non-zero status."""

    hint = "Fabric exited with an error — check the stderr text for details"

    @property
    def exit_code(self) -> int | None:
        return self.response.exit_code if self.response else None


class EmptyOutput(InvocationError):
    """The process exited cleanly but wrote nothing to stdout."""

    hint = "Fabric returned no output — check the pattern name and model configuration"


class ExportIOError(AnalysisError):
    """The CSV destination could not be created or written."""

    hint = "Export failed — check that FABRIC_EXPORT_DIR exists and is writable"

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        self.path = path
        super().__init__(message)


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    hint: str
    retryable: bool = False


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + human-readable hint."""
    if isinstance(error, SpawnError):
        return ErrorCategory.FABRIC_NOT_FOUND, error.hint
    if isinstance(error, InvocationTimeout):
        return ErrorCategory.PROCESS_TIMEOUT, error.hint
    if isinstance(error, InvocationCancelled):
        return ErrorCategory.PROCESS_CANCELLED, error.hint
    if isinstance(error, EmptyOutput):
        return ErrorCategory.EMPTY_OUTPUT, error.hint
    if isinstance(error, NonZeroExit):
        combined = f"{error} {error.stderr}".lower()
        if "transcript" in combined or "captions" in combined:
            return (
                ErrorCategory.TRANSCRIPT_UNAVAILABLE,
                "No transcript available — the video may be private, have no captions, "
                "or the YouTube API may not be configured for fabric",
            )
        if error.exit_code in (-9, -15):
            return (
                ErrorCategory.PROCESS_KILLED,
                "Fabric was killed by a signal — try a shorter input",
            )
        return ErrorCategory.PROCESS_FAILED, error.hint
    if isinstance(error, ExportIOError):
        return ErrorCategory.EXPORT_FAILED, error.hint

    s = str(error).lower()
    if isinstance(error, ValueError):
        return ErrorCategory.INPUT_INVALID, str(error)
    if isinstance(error, TimeoutError) or "timeout" in s or "timed out" in s:
        return (
            ErrorCategory.PROCESS_TIMEOUT,
            InvocationTimeout.hint,
        )
    if isinstance(error, FileNotFoundError):
        return ErrorCategory.FABRIC_NOT_FOUND, SpawnError.hint

    return (ErrorCategory.UNKNOWN, str(error))


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, hint = categorize_error(error)
    retryable = cat in {
        ErrorCategory.PROCESS_TIMEOUT,
        ErrorCategory.PROCESS_KILLED,
    }
    return ToolError(
        error=str(error),
        category=cat.value,
        hint=hint,
        retryable=retryable,
    ).model_dump(mode="json")
