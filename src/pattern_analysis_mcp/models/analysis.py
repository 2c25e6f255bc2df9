"""Request, response and record models for one analysis run.

``AnalysisRequest`` and ``AnalysisRecord`` are pydantic models so tools can
return them with ``model_dump()``; ``RawResponse`` is a plain frozen
dataclass because it only lives between the invocation and extraction steps.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ContentKind(str, Enum):
    """Classification of a raw input."""

    TEXT = "text"
    URL = "url"
    YOUTUBE = "youtube"


class AnalysisKind(str, Enum):
    """Which fabric pattern and extraction schema a request uses."""

    COPYWRITING_SCORE = "analyze_copywriting_score"
    WIREFRAME_FLOW = "analyze_wireframe_flow"
    COMPETITIVE_AUDIT = "create_competitive_audit"
    STORYBRAND_VARIANT = "create_storybrand_variant"
    EXTRACT_WISDOM = "extract_wisdom"


class AnalysisRequest(BaseModel):
    """Immutable description of a single analysis invocation."""

    model_config = ConfigDict(frozen=True)

    raw_input: str
    content_kind: ContentKind
    analysis_kind: AnalysisKind
    max_input_length: int = Field(gt=0)
    timeout_millis: int = Field(gt=0)


@dataclass(frozen=True)
class RawResponse:
    """Captured output of one process run, successful or not."""

    stdout: str
    stderr: str
    exit_code: int | None
    duration_millis: int


class AnalysisRecord(BaseModel):
    """Typed result of extracting a response against a schema.

    Every field declared by the schema is present as a key. A value of
    ``None`` means the field was not found in the response.
    """

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    content_kind: ContentKind
    analysis_kind: AnalysisKind
    scored_fields: dict[str, int | None] = Field(default_factory=dict)
    labeled_fields: dict[str, str | None] = Field(default_factory=dict)
    text_fields: dict[str, str | None] = Field(default_factory=dict)
    list_fields: dict[str, list[str]] = Field(default_factory=dict)
    full_response_text: str = ""
    original_input: str = ""

    @property
    def matched_count(self) -> int:
        """Number of declared fields that resolved to a value."""
        count = sum(v is not None for v in self.scored_fields.values())
        count += sum(v is not None for v in self.labeled_fields.values())
        count += sum(v is not None for v in self.text_fields.values())
        count += sum(bool(v) for v in self.list_fields.values())
        return count

    @property
    def declared_count(self) -> int:
        return (
            len(self.scored_fields)
            + len(self.labeled_fields)
            + len(self.text_fields)
            + len(self.list_fields)
        )


class AnalysisOutcome(BaseModel):
    """What the pipeline hands back to a caller.

    ``export_error`` is set when the record was computed but could not be
    written; the record itself stays valid.
    """

    record: AnalysisRecord
    export_path: str = ""
    export_error: str = ""
    truncated: bool = False
    duration_millis: int = 0
    log: list[str] = Field(default_factory=list)
