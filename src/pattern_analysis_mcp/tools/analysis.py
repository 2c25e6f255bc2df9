"""Analysis tools — 2 tools on a FastMCP sub-server."""

from __future__ import annotations

import logging
from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..errors import AnalysisError, make_tool_error
from ..events import EventLog
from ..pipeline import run_analysis
from ..schemas import SCHEMAS
from ..tracing import trace
from ..types import AnalysisKindName, ContentParam

logger = logging.getLogger(__name__)
analysis_server = FastMCP("analysis")


@analysis_server.tool(annotations=ToolAnnotations(readOnlyHint=False, openWorldHint=True))
@trace(name="analyze_content", span_type="TOOL")
async def analyze_content(
    content: ContentParam,
    analysis_kind: AnalysisKindName = "extract_wisdom",
    export: Annotated[bool | None, Field(
        description="Append the result to the pattern's CSV file (defaults to FABRIC_AUTO_EXPORT)",
    )] = None,
) -> dict:
    """Run a fabric pattern over text, a URL, or a YouTube video and parse the result.

    The input is classified first: YouTube URLs are passed to fabric with
    ``--youtube --transcript``; everything else is piped to stdin, truncated
    to the configured maximum length.

    Args:
        content: Text, web URL, or YouTube URL.
        analysis_kind: Fabric pattern to run — selects the extraction schema.
        export: Whether to append the record to its CSV file.

    Returns:
        Dict with the parsed record, export path (or export error), and the
        event log lines for this run.
    """
    log = EventLog()
    try:
        outcome = await run_analysis(content, analysis_kind, log=log, export=export)
    except (AnalysisError, ValueError) as exc:
        logger.warning("analyze_content failed: %s", exc)
        result = make_tool_error(exc)
        result["log"] = log.lines
        return result
    return outcome.model_dump(mode="json")


@analysis_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
@trace(name="list_analysis_kinds", span_type="TOOL")
async def list_analysis_kinds() -> dict:
    """List the supported fabric patterns and the fields each one extracts.

    Returns:
        Dict mapping pattern name to title, export file stem and field columns.
    """
    return {
        kind.value: {
            "title": schema.title,
            "export_stem": schema.export_stem,
            "scored_fields": [f.key for f in schema.scored_fields],
            "labeled_fields": [f.key for f in schema.labeled_fields],
            "text_sections": [f.key for f in schema.text_sections],
            "list_sections": [f.key for f in schema.list_sections],
        }
        for kind, schema in SCHEMAS.items()
    }
