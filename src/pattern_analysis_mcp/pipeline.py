"""End-to-end analysis: classify → invoke fabric → extract → export."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .classifier import classify
from .config import ServerConfig, get_config
from .errors import ExportIOError
from .events import EventLog
from .export import append_record, export_path_for
from .extraction import extract
from .invocation import build_plan, invoke
from .models.analysis import AnalysisKind, AnalysisOutcome, AnalysisRequest
from .schemas import get_schema

logger = logging.getLogger(__name__)


def make_request(
    raw_input: str,
    analysis_kind: AnalysisKind | str,
    *,
    config: ServerConfig | None = None,
    log: EventLog | None = None,
) -> AnalysisRequest:
    """Classify *raw_input* and freeze it into a request using config limits.

    Raises:
        ValueError: If the input is blank or the analysis kind is unknown.
    """
    if not raw_input.strip():
        raise ValueError("No input provided")
    cfg = config or get_config()
    kind = get_schema(analysis_kind).analysis_kind
    return AnalysisRequest(
        raw_input=raw_input,
        content_kind=classify(raw_input, log),
        analysis_kind=kind,
        max_input_length=cfg.max_input_length,
        timeout_millis=cfg.timeout_millis,
    )


async def run_analysis(
    raw_input: str,
    analysis_kind: AnalysisKind | str,
    *,
    config: ServerConfig | None = None,
    log: EventLog | None = None,
    cancel_event: asyncio.Event | None = None,
    export: bool | None = None,
    export_dir: Path | str | None = None,
) -> AnalysisOutcome:
    """Run one analysis and optionally append it to the kind's CSV file.

    Invocation errors propagate unchanged. An export failure is recorded on
    the outcome instead, so the computed record is never lost.

    Args:
        raw_input: Text, URL or YouTube URL to analyze.
        analysis_kind: Fabric pattern / schema to use.
        config: Overrides the global config.
        log: Event sink; a fresh one is created when omitted.
        cancel_event: Set it to abort the running process.
        export: Whether to write CSV; defaults to ``config.auto_export``.
        export_dir: Overrides ``config.export_dir``.
    """
    cfg = config or get_config()
    log = log if log is not None else EventLog()

    request = make_request(raw_input, analysis_kind, config=cfg, log=log)
    plan = build_plan(request, config=cfg, log=log)
    response = await invoke(plan, cancel_event=cancel_event, log=log)

    schema = get_schema(request.analysis_kind)
    record = extract(
        response.stdout,
        schema,
        original_input=raw_input,
        content_kind=request.content_kind,
        log=log,
    )

    outcome = AnalysisOutcome(
        record=record,
        truncated=plan.truncated,
        duration_millis=response.duration_millis,
    )
    if export if export is not None else cfg.auto_export:
        destination = export_path_for(request.analysis_kind, export_dir or cfg.resolved_export_dir)
        try:
            outcome.export_path = str(append_record(record, destination, log=log))
        except ExportIOError as exc:
            logger.warning("Export failed, keeping in-memory record: %s", exc)
            outcome.export_error = str(exc)

    outcome.log = log.lines
    return outcome
