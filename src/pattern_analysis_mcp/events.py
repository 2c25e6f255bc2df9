"""Per-run event log.

Each pipeline run owns one ``EventLog``. Components receive it as an
argument and call :meth:`EventLog.emit`; the line is kept on the instance
and forwarded to the emitting module's logger. Callers decide whether to
show, persist, or drop the collected lines.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


class EventLog:
    """Ordered, timestamped record of significant pipeline events."""

    def __init__(self) -> None:
        self._lines: list[str] = []

    def emit(
        self,
        event: str,
        message: str,
        *args: object,
        level: int = logging.INFO,
        source: logging.Logger | None = None,
    ) -> str:
        """Record one event line and forward it to *source* (or this module's logger).

        ``message`` uses %-style placeholders like the stdlib logger.
        """
        text = message % args if args else message
        stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
        line = f"[{stamp}] {event}: {text}"
        self._lines.append(line)
        (source or logger).log(level, "%s: %s", event, text)
        return line

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)


def emit(log: EventLog | None, event: str, message: str, *args: object, **kwargs) -> None:
    """Emit on *log* when one was supplied, otherwise just log."""
    if log is not None:
        log.emit(event, message, *args, **kwargs)
        return
    source = kwargs.get("source") or logger
    source.log(kwargs.get("level", logging.INFO), "%s: " + message, event, *args)
