"""SQLite-backed canonical store for sample-time markers and comments.

One store file exists per continuous stream. It is the source of truth the
layout file's rewritable region is regenerated from on every tick.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from ..core.models import ChannelInfo, Comment, SampleTime

logger = logging.getLogger(__name__)

_SCHEMA: Sequence[Tuple[str, str]] = (
    (
        "SampleTimes",
        "CREATE TABLE IF NOT EXISTS SampleTimes ("
        "BaseSampleNumber INTEGER NOT NULL, "
        "Timestamp        DOUBLE  NOT NULL);",
    ),
    (
        "Comments",
        "CREATE TABLE IF NOT EXISTS Comments ("
        "Timestamp   DOUBLE  NOT NULL, "
        "Duration    DOUBLE  NOT NULL, "
        "DurationInt INTEGER NOT NULL, "
        "EventType   INTEGER NOT NULL, "
        "Text        TEXT    NOT NULL);",
    ),
    (
        "Channels",
        "CREATE TABLE IF NOT EXISTS Channels ("
        "ChannelName   TEXT    NOT NULL, "
        "ChannelNumber INTEGER NOT NULL);",
    ),
    (
        "FileInfo",
        "CREATE TABLE IF NOT EXISTS FileInfo ("
        "File          TEXT    NOT NULL, "
        "WaveformCount INTEGER NOT NULL, "
        "SamplingRate  DOUBLE  NOT NULL, "
        "Calibration   DOUBLE  NOT NULL, "
        "FileType      TEXT    NOT NULL, "
        "DataType      INTEGER NOT NULL);",
    ),
)


class StoreError(Exception):
    """Base class for canonical store failures."""


class StoreUnavailable(StoreError):
    """The store file could not be opened or its tables created."""


class StoreReadError(StoreError):
    """A query against an open store failed."""


class CanonicalStore:
    """
    Append-only tables for one stream.

    Inserts never raise on database errors or out-of-range integers: a
    failed insert is logged, counted in :attr:`dropped_records` and
    reported by a ``False`` return.
    Reads raise :class:`StoreReadError` so callers never mistake a failed
    query for an empty table.
    """

    def __init__(self, path: Path, connection: sqlite3.Connection) -> None:
        self.path = path
        self._conn = connection
        self.dropped_records = 0

    # ------------------------------------------------------------------ lifecycle
    @classmethod
    def open(cls, path: str | Path) -> CanonicalStore:
        """Open (creating if needed) the store at ``path``."""
        db_path = Path(path)
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(db_path), check_same_thread=False)
        except (OSError, sqlite3.Error) as exc:
            logger.error("Cannot open canonical store %s: %s", db_path, exc)
            raise StoreUnavailable(f"cannot open {db_path}: {exc}") from exc

        try:
            for table, ddl in _SCHEMA:
                conn.execute(ddl)
                logger.debug("Table %s ready in %s", table, db_path)
            conn.commit()
        except sqlite3.Error as exc:
            conn.close()
            logger.error("Cannot create tables in %s: %s", db_path, exc)
            raise StoreUnavailable(f"cannot create tables in {db_path}: {exc}") from exc

        logger.info("Opened canonical store %s", db_path)
        return cls(db_path, conn)

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error:
            logger.exception("Failed to close canonical store %s", self.path)

    def __enter__(self) -> CanonicalStore:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------ internals
    def _insert(self, sql: str, params: Sequence[object]) -> bool:
        try:
            with self._conn:
                self._conn.execute(sql, params)
        except (sqlite3.Error, OverflowError) as exc:
            self.dropped_records += 1
            logger.warning("Dropped row %r in %s: %s", tuple(params), self.path, exc)
            return False
        return True

    def _select(self, sql: str) -> List[tuple]:
        try:
            return self._conn.execute(sql).fetchall()
        except sqlite3.Error as exc:
            raise StoreReadError(f"query failed on {self.path}: {exc}") from exc

    # ------------------------------------------------------------------ sample times
    def insert_sample_time(self, base_index: int, timestamp: float) -> bool:
        return self._insert(
            "INSERT INTO SampleTimes (BaseSampleNumber, Timestamp) VALUES (?, ?);",
            (int(base_index), float(timestamp)),
        )

    def all_sample_times(self) -> List[SampleTime]:
        rows = self._select("SELECT BaseSampleNumber, Timestamp FROM SampleTimes ORDER BY rowid;")
        return [SampleTime(int(base), float(ts)) for base, ts in rows]

    # ------------------------------------------------------------------ comments
    def insert_comment(self, comment: Comment) -> bool:
        """Append ``comment`` without any duplicate check."""
        comment = comment.normalized()
        ok = self._insert(
            "INSERT INTO Comments (Timestamp, Duration, DurationInt, EventType, Text) "
            "VALUES (?, ?, ?, ?, ?);",
            (
                float(comment.timestamp),
                float(comment.duration),
                int(comment.duration_int),
                int(comment.event_type),
                str(comment.text),
            ),
        )
        if ok:
            logger.debug("Inserted comment %s", comment.to_line())
        return ok

    def all_comments(self) -> List[Comment]:
        rows = self._select(
            "SELECT Timestamp, Duration, DurationInt, EventType, Text FROM Comments ORDER BY rowid;"
        )
        return [
            Comment(float(ts), float(dur), int(dur_int), int(event_type), str(text))
            for ts, dur, dur_int, event_type, text in rows
        ]

    # ------------------------------------------------------------------ stream metadata
    def record_channels(self, channels: Iterable[ChannelInfo]) -> bool:
        ok = True
        for number, channel in enumerate(channels, start=1):
            ok = self._insert(
                "INSERT INTO Channels (ChannelName, ChannelNumber) VALUES (?, ?);",
                (channel.name, number),
            ) and ok
        return ok

    def channels(self) -> List[Tuple[str, int]]:
        rows = self._select("SELECT ChannelName, ChannelNumber FROM Channels ORDER BY rowid;")
        return [(str(name), int(number)) for name, number in rows]

    def record_file_info(
        self,
        data_file: str,
        waveform_count: int,
        sampling_rate: float,
        calibration: float,
        file_type: str,
        data_type: int,
    ) -> bool:
        return self._insert(
            "INSERT INTO FileInfo "
            "(File, WaveformCount, SamplingRate, Calibration, FileType, DataType) "
            "VALUES (?, ?, ?, ?, ?, ?);",
            (
                data_file,
                int(waveform_count),
                float(sampling_rate),
                float(calibration),
                file_type,
                int(data_type),
            ),
        )

    def file_info(self) -> Optional[dict]:
        """Return the most recent FileInfo row as a mapping, if any."""
        rows = self._select(
            "SELECT File, WaveformCount, SamplingRate, Calibration, FileType, DataType "
            "FROM FileInfo ORDER BY rowid DESC LIMIT 1;"
        )
        if not rows:
            return None
        data_file, count, rate, calibration, file_type, data_type = rows[0]
        return {
            "File": data_file,
            "WaveformCount": int(count),
            "SamplingRate": float(rate),
            "Calibration": float(calibration),
            "FileType": file_type,
            "DataType": int(data_type),
        }


__all__ = [
    "CanonicalStore",
    "StoreError",
    "StoreReadError",
    "StoreUnavailable",
]
