"""Read comments back out of a Persyst layout (``.lay``) file.

The layout file may be edited by hand while a recording is running, so the
``[Comments]`` section is parsed independently of the canonical store and
compared against it by content.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Iterable, List, Optional

from ..core.models import Comment

logger = logging.getLogger(__name__)

COMMENTS_MARKER = "[Comments]"
SAMPLE_TIMES_MARKER = "[SampleTimes]"


# SQLite INTEGER columns hold signed 64-bit values.
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _parse_int_field(token: str, name: str) -> int:
    try:
        value = int(token)
    except ValueError:
        number = float(token)
        if not math.isfinite(number):
            raise ValueError(f"{name} {token.strip()!r} is not finite") from None
        value = int(number)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"{name} {token.strip()!r} is out of range")
    return value


def parse_comment_line(line: str) -> Comment:
    """
    Parse ``timestamp,duration,durationInt,eventType,text``.

    Only the first four commas are structural; the remainder of the line is
    the text, verbatim. Raises ``ValueError`` for malformed lines, including
    integer fields outside the signed 64-bit range.
    """
    parts = line.rstrip("\r\n").split(",", 4)
    if len(parts) != 5:
        raise ValueError(f"expected 5 comma-separated fields, got {len(parts)}")
    timestamp, duration, duration_int, event_type, text = parts
    return Comment(
        timestamp=float(timestamp),
        duration=float(duration),
        duration_int=_parse_int_field(duration_int, "durationInt"),
        event_type=_parse_int_field(event_type, "eventType"),
        text=text,
    )


def scan_comments(path: str | Path, from_offset: int = 0) -> List[Comment]:
    """
    Return the comments listed in the first ``[Comments]`` section after
    ``from_offset``, in file order.

    The file is opened and closed within the call. An unreadable file is
    reported and treated as holding no comments.
    """
    lay_path = Path(path)
    comments: List[Comment] = []
    try:
        fh = lay_path.open("rb")
    except OSError as exc:
        logger.warning("Cannot read layout file %s: %s", lay_path, exc)
        return comments

    with fh:
        fh.seek(max(0, int(from_offset)))
        in_comments = False
        for raw in fh:
            line = raw.decode("utf-8", errors="replace")
            stripped = line.strip()
            if stripped == COMMENTS_MARKER:
                in_comments = True
                continue
            if not in_comments:
                continue
            if not stripped or stripped.startswith("["):
                break
            try:
                comments.append(parse_comment_line(line))
            except (ValueError, OverflowError) as exc:
                logger.warning("Skipping unparseable comment line %r in %s: %s", stripped, lay_path, exc)
    return comments


def new_comments(extracted: Iterable[Comment], existing: Iterable[Comment]) -> List[Comment]:
    """
    Return the extracted comments absent from ``existing``, in scan order.

    Comparison is on the stored (normalized) form, and a comment repeated in
    ``extracted`` is returned once.
    """
    known = set(existing)
    fresh: List[Comment] = []
    for comment in extracted:
        comment = comment.normalized()
        if comment in known:
            continue
        known.add(comment)
        fresh.append(comment)
    return fresh


def find_section_start(path: str | Path) -> Optional[int]:
    """Return the byte offset of the ``[SampleTimes]`` line, if present."""
    offset = 0
    with Path(path).open("rb") as fh:
        for raw in fh:
            if raw.decode("utf-8", errors="replace").strip() == SAMPLE_TIMES_MARKER:
                return offset
            offset += len(raw)
    return None


__all__ = [
    "COMMENTS_MARKER",
    "SAMPLE_TIMES_MARKER",
    "find_section_start",
    "new_comments",
    "parse_comment_line",
    "scan_comments",
]
