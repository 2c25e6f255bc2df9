"""Infrastructure tools — 2 tools on a FastMCP sub-server."""

from __future__ import annotations

from typing import Annotated

from fastmcp import FastMCP
from mcp.types import ToolAnnotations
from pydantic import Field

from ..config import get_config, update_config
from ..errors import make_tool_error
from ..prereqs import check_prereqs
from ..tracing import trace
from ..types import MaxInputLengthParam, TimeoutParam

infra_server = FastMCP("infra")


@infra_server.tool(annotations=ToolAnnotations(readOnlyHint=True, openWorldHint=False))
@trace(name="infra_status", span_type="TOOL")
async def infra_status() -> dict:
    """Report the active configuration and whether fabric and the export directory are usable.

    Returns:
        Dict with current_config and a prerequisite report.
    """
    return {
        "current_config": get_config().model_dump(),
        "prereqs": check_prereqs().model_dump(),
    }


@infra_server.tool(
    annotations=ToolAnnotations(
        readOnlyHint=False,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=False,
    )
)
@trace(name="infra_configure", span_type="TOOL")
async def infra_configure(
    fabric_path: Annotated[str | None, Field(description="Path or command name of the fabric executable")] = None,
    max_input_length: MaxInputLengthParam | None = None,
    timeout: TimeoutParam | None = None,
    export_dir: Annotated[str | None, Field(description="Directory receiving the per-pattern CSV files")] = None,
    auto_export: Annotated[bool | None, Field(description="Append every successful analysis to CSV")] = None,
) -> dict:
    """Reconfigure the server at runtime.

    Changes take effect immediately for all subsequent tool calls.

    Returns:
        Dict with current_config.
    """
    try:
        cfg = update_config(
            fabric_path=fabric_path,
            max_input_length=max_input_length,
            timeout=timeout,
            export_dir=export_dir,
            auto_export=auto_export,
        )
    except Exception as exc:
        return make_tool_error(exc)
    return {"current_config": cfg.model_dump()}
