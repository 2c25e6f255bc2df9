"""Shared type aliases for tool parameters."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

# ── Literal enums ────────────────────────────────────────────────────────────

AnalysisKindName = Literal[
    "analyze_copywriting_score",
    "analyze_wireframe_flow",
    "create_competitive_audit",
    "create_storybrand_variant",
    "extract_wisdom",
]

# ── Annotated aliases ────────────────────────────────────────────────────────

ContentParam = Annotated[str, Field(
    min_length=1,
    description="Text to analyze, a web URL, or a YouTube video URL (transcript is fetched by fabric)",
)]
TimeoutParam = Annotated[int, Field(ge=1, le=3600, description="Process timeout in seconds")]
MaxInputLengthParam = Annotated[int, Field(
    ge=1,
    description="Maximum characters sent to fabric; longer input is truncated with a marker",
)]
