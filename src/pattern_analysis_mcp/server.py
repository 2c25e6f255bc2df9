"""Main FastMCP server — mounts all sub-servers."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from . import tracing
from .tools.analysis import analysis_server
from .tools.infra import infra_server

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(server: FastMCP):
    """Startup/shutdown hook — configures and flushes tracing."""
    tracing.setup()
    yield {}
    tracing.shutdown()
    logger.info("Lifespan shutdown complete")


app = FastMCP(
    "pattern-analysis",
    instructions=(
        "Runs fabric patterns (copywriting score, wireframe flow, competitive "
        "audit, StoryBrand, extract wisdom) over text, URLs, and YouTube videos, "
        "returns structured fields, and appends results to per-pattern CSV files."
    ),
    lifespan=_lifespan,
)

app.mount(analysis_server)
app.mount(infra_server)


def main() -> None:
    """Entry-point for ``pattern-analysis-mcp`` console script."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.run()


if __name__ == "__main__":
    main()
