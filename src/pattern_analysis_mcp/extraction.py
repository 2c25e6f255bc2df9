"""Structured extraction — turn a fabric response into an AnalysisRecord.

Every field is searched independently against the untouched response text,
so one field's match never hides text from another. A field that cannot be
found resolves to ``None`` (or ``[]`` for list sections); extraction itself
never raises.

Field shapes:

- **scored**: ``<keyword> ... N/10`` on one line, first match wins.
- **labeled**: ``Label: rest of line`` at the start of a line.
- **list section**: a heading line followed by ``-`` bullet lines, ending at a
  blank line, another heading, or end of text.
- **text section**: a heading line followed by prose lines, with the same
  terminators.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone

from .events import EventLog, emit
from .models.analysis import AnalysisRecord, ContentKind
from .schemas import ExtractionSchema, FieldSpec

logger = logging.getLogger(__name__)

_BULLET_RE = re.compile(r"^[ \t]*(?:-|•|\*(?=[ \t]))[ \t]*(.*)$")
_MARKDOWN_HEADING_RE = re.compile(r"^[ \t]*#")
# Up to four leading words before a heading keyword ("Key", "Top 3", ...).
_HEADING_PREFIX = r"(?:[A-Za-z0-9][A-Za-z0-9'&/()-]*[ \t]+){0,4}"


def _keyword_pattern(keyword: str, *, plural_optional: bool = False) -> str:
    """Regex fragment for *keyword*; spaces also match ``_`` or ``-``."""
    words = [re.escape(w) for w in keyword.split()]
    if plural_optional and words and words[-1].endswith("s"):
        words[-1] = words[-1][:-1] + "s?"
    return r"[ _-]".join(words)


def _score_re(keyword: str) -> re.Pattern[str]:
    return re.compile(
        rf"{_keyword_pattern(keyword)}[^\n]*?(?<!\d)(\d{{1,2}})[ \t]*/[ \t]*10(?!\d)",
        re.IGNORECASE,
    )


def _label_re(keyword: str) -> re.Pattern[str]:
    return re.compile(
        rf"^[ \t]*(?:#+[ \t]*|[-*][ \t]+)?(?:\*\*)?{_keyword_pattern(keyword)}(?:\*\*)?[ \t]*:(.*)$",
        re.IGNORECASE | re.MULTILINE,
    )


def _heading_re(keyword: str) -> re.Pattern[str]:
    return re.compile(
        rf"^[ \t]*(?:#+[ \t]*)?(?:\*\*)?{_HEADING_PREFIX}{_keyword_pattern(keyword, plural_optional=True)}"
        rf"(?:\*\*)?[ \t]*(?::(.*))?$",
        re.IGNORECASE,
    )


def _clean(value: str) -> str:
    return value.strip().strip("*").strip()


def extract_score(text: str, keyword: str) -> int | None:
    """Return the first ``N/10`` score following *keyword*, or None.

    Scores outside 0–10 are treated as not found.
    """
    match = _score_re(keyword).search(text)
    if not match:
        return None
    value = int(match.group(1))
    return value if 0 <= value <= 10 else None


def extract_label(text: str, keyword: str) -> str | None:
    """Return the trimmed rest of the first ``keyword:`` line, or None."""
    match = _label_re(keyword).search(text)
    if not match:
        return None
    value = _clean(match.group(1))
    return value or None


class _SectionScanner:
    """Locates heading lines and walks the lines under them."""

    def __init__(self, text: str, schema: ExtractionSchema) -> None:
        self.lines = text.splitlines()
        self._headings = {spec.key: _heading_re(spec.keyword) for spec in schema.headings}
        self._labels = [_label_re(spec.keyword) for spec in schema.labeled_fields]

    def find(self, spec: FieldSpec) -> tuple[int, str] | None:
        """Return (line index, inline text after the colon) of the first heading."""
        pattern = self._headings[spec.key]
        for index, line in enumerate(self.lines):
            match = pattern.match(line)
            if match:
                return index, _clean(match.group(1) or "")
        return None

    def is_boundary(self, line: str, current: str) -> bool:
        """True when *line* starts another section."""
        if _MARKDOWN_HEADING_RE.match(line):
            return True
        if _BULLET_RE.match(line):
            return False
        for key, pattern in self._headings.items():
            if key != current and pattern.match(line):
                return True
        return any(p.match(line) for p in self._labels)

    def body(self, spec: FieldSpec) -> tuple[list[str], str] | None:
        """Lines belonging to the section, plus any inline heading text."""
        found = self.find(spec)
        if found is None:
            return None
        start, inline = found
        collected: list[str] = []
        started = bool(inline)
        for line in self.lines[start + 1 :]:
            if not line.strip():
                if started:
                    break
                continue
            if self.is_boundary(line, spec.key):
                break
            started = True
            collected.append(line)
        return collected, inline


def extract_list(scanner: _SectionScanner, spec: FieldSpec) -> list[str]:
    """Return the bullet items under *spec*'s heading (``[]`` when none)."""
    section = scanner.body(spec)
    if section is None:
        return []
    lines, inline = section
    items = []
    for line in ([inline] if inline else []) + lines:
        match = _BULLET_RE.match(line)
        if match:
            item = match.group(1).strip()
            if item:
                items.append(item)
    return items


def extract_text(scanner: _SectionScanner, spec: FieldSpec) -> str | None:
    """Return the prose under *spec*'s heading joined by newlines, or None."""
    section = scanner.body(spec)
    if section is None:
        return None
    lines, inline = section
    parts = ([inline] if inline else []) + [line.strip() for line in lines]
    return "\n".join(parts) or None


def extract(
    response_text: str,
    schema: ExtractionSchema,
    *,
    original_input: str = "",
    content_kind: ContentKind = ContentKind.TEXT,
    timestamp: datetime | None = None,
    log: EventLog | None = None,
) -> AnalysisRecord:
    """Parse *response_text* against *schema* into an AnalysisRecord.

    Args:
        response_text: Raw stdout of the analysis process.
        schema: Fields to look for.
        original_input: The user's input, kept verbatim on the record.
        content_kind: Classification of the original input.
        timestamp: Record timestamp; defaults to now (UTC).
        log: Optional event log receiving a match summary.

    Returns:
        A record with every schema field present.
    """
    scanner = _SectionScanner(response_text, schema)
    record = AnalysisRecord(
        timestamp=timestamp or datetime.now(timezone.utc),
        content_kind=content_kind,
        analysis_kind=schema.analysis_kind,
        scored_fields={f.key: extract_score(response_text, f.keyword) for f in schema.scored_fields},
        labeled_fields={f.key: extract_label(response_text, f.keyword) for f in schema.labeled_fields},
        text_fields={f.key: extract_text(scanner, f) for f in schema.text_sections},
        list_fields={f.key: extract_list(scanner, f) for f in schema.list_sections},
        full_response_text=response_text,
        original_input=original_input,
    )
    missing = [
        key
        for fields in (record.scored_fields, record.labeled_fields, record.text_fields)
        for key, value in fields.items()
        if value is None
    ]
    emit(
        log,
        "extract",
        "%s matched %d/%d fields%s",
        schema.analysis_kind.value,
        record.matched_count,
        record.declared_count,
        f" (absent: {', '.join(missing)})" if missing else "",
        source=logger,
    )
    return record
