"""Record engine: maps host channel callbacks onto per-stream reconcilers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np

from ..config.runtime import RecorderConfig
from ..dataio.canonical_store import CanonicalStore, StoreUnavailable
from ..dataio.file_paths import StreamFilePaths, stream_file_paths
from ..dataio.lay_writer import LayoutFileWriter, LayoutHeader
from .models import ChannelInfo, Comment, StreamPlan
from .reconciler import StreamReconciler, TickReport

logger = logging.getLogger(__name__)


@dataclass
class ChannelSlot:
    """Where a recorded channel lands: its stream and position inside it."""

    stream_index: int
    index_within_stream: int


def plan_streams(channels: Sequence[ChannelInfo]) -> tuple[List[StreamPlan], List[ChannelSlot]]:
    """
    Group channels into streams.

    A new stream starts whenever the stream id changes from the previous
    channel, so channels of one stream must be contiguous.
    """
    plans: List[StreamPlan] = []
    slots: List[ChannelSlot] = []
    current: List[ChannelInfo] = []
    last_stream_id: Optional[int] = None

    def _close_stream() -> None:
        if current:
            plans.append(StreamPlan(index=len(plans), first_channel=current[0], channels=tuple(current)))

    for channel in channels:
        if channel.stream_id != last_stream_id:
            _close_stream()
            current = []
        slots.append(ChannelSlot(stream_index=len(plans), index_within_stream=len(current)))
        current.append(channel)
        last_stream_id = channel.stream_id
    _close_stream()
    return plans, slots


@dataclass
class StreamState:
    plan: StreamPlan
    paths: StreamFilePaths
    reconciler: StreamReconciler


class RecordEngine:
    """
    Persyst-format record engine.

    The host calls :meth:`write_continuous_data` for every channel of every
    block; the first channel of each stream triggers that stream's tick.
    """

    def __init__(self, config: RecorderConfig | None = None) -> None:
        self.config = (config or RecorderConfig()).sanitized()
        self._streams: List[Optional[StreamState]] = []
        self._slots: List[ChannelSlot] = []
        self._samples_written: List[int] = []

    @property
    def streams(self) -> List[Optional[StreamState]]:
        return list(self._streams)

    def samples_written(self, write_channel: int) -> int:
        return self._samples_written[write_channel]

    # ------------------------------------------------------------------ lifecycle
    def open_files(self, continuous_dir: str | Path, channels: Sequence[ChannelInfo]) -> None:
        """Create the layout file and canonical store of every stream."""
        plans, self._slots = plan_streams(channels)
        self._samples_written = [0] * len(channels)
        self._streams = [self._open_stream(Path(continuous_dir), plan) for plan in plans]

    def _open_stream(self, continuous_dir: Path, plan: StreamPlan) -> Optional[StreamState]:
        cfg = self.config
        paths = stream_file_paths(continuous_dir, plan.first_channel, cfg)
        try:
            store = CanonicalStore.open(paths.store_path)
        except StoreUnavailable:
            logger.error("Stream %d (%s) will not be reconciled", plan.index, paths.directory)
            return None

        header = LayoutHeader.for_channels(
            plan.channels,
            data_file=cfg.data_file_name,
            file_type=cfg.file_type,
            header_length=cfg.header_length,
            data_type=cfg.data_type,
        )
        writer = LayoutFileWriter(paths.layout_path, fsync=cfg.fsync_each_tick)
        try:
            writer.write_header(header)
        except OSError:
            logger.exception("Cannot create layout file %s", paths.layout_path)
            store.close()
            return None

        store.record_file_info(
            data_file=header.data_file,
            waveform_count=header.waveform_count,
            sampling_rate=header.sampling_rate,
            calibration=header.calibration,
            file_type=header.file_type,
            data_type=header.data_type,
        )
        store.record_channels(plan.channels)

        reconciler = StreamReconciler(store, writer)
        reconciler.render()
        return StreamState(plan=plan, paths=paths, reconciler=reconciler)

    def close_files(self) -> None:
        for state in self._streams:
            if state is None:
                continue
            state.reconciler.merge()
            state.reconciler.store.close()
        self._streams = []
        self._slots = []
        self._samples_written = []

    # ------------------------------------------------------------------ callbacks
    def write_continuous_data(self, write_channel: int, timestamps: np.ndarray) -> Optional[TickReport]:
        """
        Account for one block of ``write_channel``.

        ``timestamps`` holds one timestamp per sample; the block's first
        timestamp is recorded against the samples already written.
        """
        times = np.asarray(timestamps, dtype=np.float64).reshape(-1)
        if times.size == 0:
            return None

        slot = self._slots[write_channel]
        report: Optional[TickReport] = None
        if slot.index_within_stream == 0:
            state = self._streams[slot.stream_index]
            if state is not None:
                report = state.reconciler.tick(self._samples_written[write_channel], float(times[0]))
        self._samples_written[write_channel] += int(times.size)
        return report

    def write_comment(self, stream_index: int, comment: Comment) -> bool:
        """Store a live comment/annotation event for ``stream_index``."""
        state = self._streams[stream_index]
        if state is None:
            logger.warning("Dropping comment for unavailable stream %d: %s", stream_index, comment.text)
            return False
        return state.reconciler.add_comment(comment)


__all__ = ["ChannelSlot", "RecordEngine", "StreamState", "plan_streams"]
