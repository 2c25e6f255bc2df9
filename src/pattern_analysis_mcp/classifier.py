"""Content classification — plain text, generic URL, or YouTube URL."""

from __future__ import annotations

import logging
import re
from urllib.parse import parse_qs, urlparse

from .events import EventLog, emit
from .models.analysis import ContentKind

logger = logging.getLogger(__name__)

_VIDEO_ID_RE = re.compile(r"[A-Za-z0-9_-]{11}")
_PATH_PREFIXES = {"embed", "v", "shorts", "live"}


def _is_youtube_host(host: str) -> bool:
    """Check if host is a youtube.com domain (including subdomains like www.youtube.com)."""
    return host == "youtube.com" or host.endswith(".youtube.com")


def _is_youtu_be_host(host: str) -> bool:
    """Check if host is the youtu.be short-link domain."""
    return host in ("youtu.be", "www.youtu.be")


def _is_absolute_url(text: str):
    """Return the parsed URL when *text* is an absolute http(s) URL, else None."""
    if not text or any(ch.isspace() for ch in text):
        return None
    try:
        parsed = urlparse(text)
        host = parsed.hostname
    except ValueError:
        return None
    if parsed.scheme.lower() not in ("http", "https") or not host:
        return None
    return parsed


def _video_id_from_parsed(parsed) -> str | None:
    """Extract an 11-character video ID from watch, embed, short-link or shorts URLs."""
    host = (parsed.hostname or "").lower()
    if _is_youtu_be_host(host):
        candidate = parsed.path.strip("/").split("/", 1)[0]
    elif _is_youtube_host(host):
        parts = [p for p in parsed.path.split("/") if p]
        if parts == ["watch"]:
            candidate = parse_qs(parsed.query).get("v", [""])[0]
        elif len(parts) >= 2 and parts[0] in _PATH_PREFIXES:
            candidate = parts[1]
        else:
            return None
    else:
        return None
    return candidate if _VIDEO_ID_RE.fullmatch(candidate) else None


def extract_video_id(url: str) -> str | None:
    """Return the video ID for a recognised YouTube URL, or None."""
    parsed = _is_absolute_url(url.strip())
    if parsed is None:
        return None
    return _video_id_from_parsed(parsed)


def classify(raw_input: str, log: EventLog | None = None) -> ContentKind:
    """Assign exactly one ContentKind to *raw_input*.

    The whole trimmed input must be an absolute URL to count as one; a URL
    that also has a recognised video shape is ``youtube``.
    """
    parsed = _is_absolute_url(raw_input.strip())
    if parsed is None:
        kind = ContentKind.TEXT
    elif _video_id_from_parsed(parsed):
        kind = ContentKind.YOUTUBE
    else:
        kind = ContentKind.URL
    emit(log, "classify", "input of %d chars classified as %s", len(raw_input), kind.value, source=logger)
    return kind
