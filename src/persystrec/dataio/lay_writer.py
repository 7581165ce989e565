"""Persyst layout (``.lay``) file writing.

A layout file is a static header (``[FileInfo]`` and ``[ChannelMap]``)
followed by a rewritable region holding ``[SampleTimes]`` and
``[Comments]``. The header is written once per recording; the region from
:attr:`LayoutFileWriter.section_start` to end-of-file is regenerated on
every tick.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..core.models import ChannelInfo, Comment, SampleTime
from .lay_extractor import COMMENTS_MARKER, SAMPLE_TIMES_MARKER

logger = logging.getLogger(__name__)

FILE_INFO_MARKER = "[FileInfo]"
CHANNEL_MAP_MARKER = "[ChannelMap]"


class LayoutWriteError(OSError):
    """Truncating or writing the rewritable region failed."""


def _format_value(value: object) -> str:
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    return str(value)


def _add_field(name: str, value: object) -> str:
    return f"{name}={_format_value(value)}\n"


@dataclass
class LayoutHeader:
    """Static ``[FileInfo]`` and ``[ChannelMap]`` content of a layout file."""

    data_file: str
    sampling_rate: float
    calibration: float
    waveform_count: int
    file_type: str = "Interleaved"
    header_length: int = 0
    data_type: int = 0
    channel_names: List[str] = field(default_factory=list)

    @classmethod
    def for_channels(
        cls,
        channels: Sequence[ChannelInfo],
        data_file: str,
        file_type: str = "Interleaved",
        header_length: int = 0,
        data_type: int = 0,
    ) -> LayoutHeader:
        first = channels[0]
        return cls(
            data_file=data_file,
            sampling_rate=first.sample_rate,
            calibration=first.bit_volts,
            waveform_count=len(channels),
            file_type=file_type,
            header_length=header_length,
            data_type=data_type,
            channel_names=[ch.name for ch in channels],
        )

    def file_info_items(self) -> List[Tuple[str, object]]:
        return [
            ("File", self.data_file),
            ("FileType", self.file_type),
            ("SamplingRate", self.sampling_rate),
            ("HeaderLength", self.header_length),
            ("Calibration", self.calibration),
            ("WaveformCount", self.waveform_count),
            ("DataType", self.data_type),
        ]

    def to_text(self) -> str:
        parts = [FILE_INFO_MARKER + "\n"]
        parts.extend(_add_field(name, value) for name, value in self.file_info_items())
        parts.append(CHANNEL_MAP_MARKER + "\n")
        parts.extend(_add_field(name, number) for number, name in enumerate(self.channel_names, start=1))
        return "".join(parts)


def render_sample_times_section(rows: Iterable[SampleTime]) -> str:
    lines = [SAMPLE_TIMES_MARKER]
    lines.extend(row.to_line() for row in rows)
    return "\n".join(lines) + "\n"


def render_comments_section(rows: Iterable[Comment]) -> str:
    lines = [COMMENTS_MARKER]
    lines.extend(row.to_line() for row in rows)
    return "\n".join(lines) + "\n"


class LayoutFileWriter:
    """
    Owns one layout file and the offset where its rewritable region starts.

    The file is opened by path for every rewrite and closed again, so an
    editor that saved a new copy of the file is picked up on the next tick.
    """

    def __init__(self, path: str | Path, *, fsync: bool = True) -> None:
        self.path = Path(path)
        self.fsync = fsync
        self._header_bytes: bytes = b""
        self._section_start: Optional[int] = None

    @classmethod
    def attach(cls, path: str | Path, section_start: int, *, fsync: bool = True) -> LayoutFileWriter:
        """Adopt an existing layout file whose header ends at ``section_start``."""
        writer = cls(path, fsync=fsync)
        with writer.path.open("rb") as fh:
            writer._header_bytes = fh.read(section_start)
        writer._section_start = len(writer._header_bytes)
        return writer

    @property
    def section_start(self) -> int:
        if self._section_start is None:
            raise RuntimeError("layout header has not been written yet")
        return self._section_start

    # ------------------------------------------------------------------ header
    def write_header(self, header: LayoutHeader) -> int:
        """Create the file with ``header`` and record the section start."""
        self._header_bytes = header.to_text().encode("utf-8")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("wb") as fh:
            fh.write(self._header_bytes)
            self._sync(fh)
            self.record_section_start(fh)
        logger.info("Wrote layout header %s (section start %d)", self.path, self._section_start)
        return self.section_start

    def record_section_start(self, fh: BinaryIO) -> None:
        self._section_start = fh.tell()

    # ------------------------------------------------------------------ rewritable region
    def rewrite(self, sample_times: Sequence[SampleTime], comments: Sequence[Comment]) -> None:
        """Truncate at :attr:`section_start` and write both sections."""
        offset = self.section_start
        try:
            with self._open_region() as fh:
                self.truncate_at(fh, offset)
                self.write_sample_times_section(fh, sample_times)
                self.write_comments_section(fh, comments)
                self._sync(fh)
        except OSError as exc:
            raise LayoutWriteError(f"cannot rewrite {self.path}: {exc}") from exc

    def truncate_at(self, fh: BinaryIO, offset: int) -> None:
        fh.seek(offset)
        fh.truncate()

    def write_sample_times_section(self, fh: BinaryIO, rows: Iterable[SampleTime]) -> None:
        fh.write(render_sample_times_section(rows).encode("utf-8"))

    def write_comments_section(self, fh: BinaryIO, rows: Iterable[Comment]) -> None:
        fh.write(render_comments_section(rows).encode("utf-8"))

    # ------------------------------------------------------------------ internals
    @contextmanager
    def _open_region(self) -> Iterator[BinaryIO]:
        try:
            fh = self.path.open("r+b")
        except FileNotFoundError:
            logger.warning("Layout file %s disappeared; recreating header", self.path)
            fh = self.path.open("w+b")
        with fh:
            size = fh.seek(0, os.SEEK_END)
            if size < len(self._header_bytes):
                fh.seek(0)
                fh.write(self._header_bytes)
            yield fh

    def _sync(self, fh: BinaryIO) -> None:
        fh.flush()
        if self.fsync:
            os.fsync(fh.fileno())


__all__ = [
    "CHANNEL_MAP_MARKER",
    "FILE_INFO_MARKER",
    "LayoutFileWriter",
    "LayoutHeader",
    "LayoutWriteError",
    "render_comments_section",
    "render_sample_times_section",
]
