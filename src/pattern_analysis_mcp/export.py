"""Append-only CSV export of analysis records.

One file per analysis kind. The header is written once, when the file is
new or empty, and every row has the same columns in the same order. All
cells are quoted (``csv.QUOTE_ALL``) so model text with commas, quotes or
newlines never shifts a column.
"""

from __future__ import annotations

import csv
import io
import logging
import threading
from pathlib import Path

from .errors import ExportIOError
from .events import EventLog, emit
from .models.analysis import AnalysisKind, AnalysisRecord
from .schemas import ExtractionSchema, get_schema

logger = logging.getLogger(__name__)

LIST_SEPARATOR = "; "
META_HEAD = ("Date", "Content Type", "Pattern Type")
META_TAIL = ("Full Analysis", "Original Content")

_locks: dict[Path, threading.Lock] = {}
_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    """Return the lock serializing appends to *path*."""
    key = path.resolve()
    with _locks_guard:
        lock = _locks.get(key)
        if lock is None:
            lock = _locks[key] = threading.Lock()
        return lock


def export_path_for(kind: AnalysisKind | str, export_dir: Path | str) -> Path:
    """Return the CSV file that records of *kind* are appended to."""
    return Path(export_dir).expanduser() / f"{get_schema(kind).export_stem}.csv"


def header_for(schema: ExtractionSchema) -> list[str]:
    return [*META_HEAD, *(f.column for f in schema.fields), *META_TAIL]


def row_for(record: AnalysisRecord, schema: ExtractionSchema) -> list[str]:
    """Render *record* as cells in ``header_for(schema)`` order.

    Missing values become empty cells; lists are joined with ``"; "``.
    """
    values = {
        **record.scored_fields,
        **record.labeled_fields,
        **record.text_fields,
    }
    cells = [
        record.timestamp.isoformat(),
        record.content_kind.value,
        record.analysis_kind.value,
    ]
    for spec in schema.fields:
        if spec in schema.list_sections:
            cells.append(LIST_SEPARATOR.join(record.list_fields.get(spec.key) or []))
        else:
            value = values.get(spec.key)
            cells.append("" if value is None else str(value))
    cells.extend([record.full_response_text, record.original_input])
    return cells


def format_row(cells: list[str]) -> str:
    """Serialize one row with every cell quoted and inner quotes doubled."""
    buf = io.StringIO()
    csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n").writerow(cells)
    return buf.getvalue()


def append_record(
    record: AnalysisRecord,
    destination: Path | str,
    *,
    log: EventLog | None = None,
) -> Path:
    """Append *record* to *destination*, writing the header first if needed.

    The header (when due) and the row go out in a single write call while
    holding the path's lock, so concurrent appends never interleave.

    Returns:
        The path written to.

    Raises:
        ExportIOError: If the directory or file cannot be created or written.
    """
    path = Path(destination).expanduser()
    schema = get_schema(record.analysis_kind)
    row = format_row(row_for(record, schema))

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with _lock_for(path):
            is_new = not path.exists() or path.stat().st_size == 0
            payload = format_row(header_for(schema)) + row if is_new else row
            with path.open("a", encoding="utf-8", newline="") as fh:
                fh.write(payload)
    except OSError as exc:
        emit(log, "export", "write to %s failed: %s", path, exc, level=logging.ERROR, source=logger)
        raise ExportIOError(f"Could not write export file {path}: {exc}", path=path) from exc

    emit(
        log,
        "export",
        "%s row appended to %s%s",
        record.analysis_kind.value,
        path,
        " (new file with header)" if is_new else "",
        source=logger,
    )
    return path
