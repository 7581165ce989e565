"""Per-stream reconciliation between the canonical store and the layout file."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Optional

from ..dataio.canonical_store import CanonicalStore, StoreError
from ..dataio.lay_extractor import new_comments, scan_comments
from ..dataio.lay_writer import LayoutFileWriter, LayoutWriteError
from .models import Comment

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    """Outcome of one reconciliation cycle."""

    base_index: Optional[int]
    marker_stored: bool = False
    extracted: int = 0
    merged: int = 0
    dropped: int = 0
    rendered: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.dropped == 0 and self.rendered


class StreamReconciler:
    """
    Keeps one stream's store and layout file consistent.

    Each tick stores the new sample-time marker, merges comments that were
    typed into the layout file since the last tick, then regenerates the
    file's rewritable region from the store. Store and file failures are
    reported in the returned :class:`TickReport`, never raised.
    """

    def __init__(self, store: CanonicalStore, writer: LayoutFileWriter) -> None:
        self.store = store
        self.writer = writer
        self._lock = threading.Lock()

    @property
    def section_start(self) -> int:
        return self.writer.section_start

    def tick(self, base_index: int, timestamp: float) -> TickReport:
        with self._lock:
            report = TickReport(base_index=int(base_index))
            report.marker_stored = self.store.insert_sample_time(base_index, timestamp)
            if not report.marker_stored:
                report.dropped += 1
            self._merge_and_render(report)
            return report

    def merge(self) -> TickReport:
        """Run the merge and render steps without adding a marker."""
        with self._lock:
            report = TickReport(base_index=None)
            self._merge_and_render(report)
            return report

    def render(self) -> TickReport:
        """Regenerate the rewritable region from the store only."""
        with self._lock:
            report = TickReport(base_index=None)
            self._render(report)
            return report

    def add_comment(self, comment: Comment) -> bool:
        """
        Store a comment from the live event stream.

        Live comments are new by construction, so no duplicate check is made;
        the comment reaches the layout file on the next tick.
        """
        with self._lock:
            return self.store.insert_comment(comment)

    # ------------------------------------------------------------------ internals
    def _merge_and_render(self, report: TickReport) -> None:
        extracted = scan_comments(self.writer.path, self.writer.section_start)
        report.extracted = len(extracted)
        try:
            existing = self.store.all_comments()
        except StoreError as exc:
            report.error = str(exc)
            logger.error("Skipping merge for %s: %s", self.writer.path, exc)
            return

        for comment in new_comments(extracted, existing):
            if self.store.insert_comment(comment):
                report.merged += 1
            else:
                report.dropped += 1
        if report.merged:
            logger.info("Merged %d externally added comment(s) from %s", report.merged, self.writer.path)

        self._render(report)

    def _render(self, report: TickReport) -> None:
        try:
            sample_times = self.store.all_sample_times()
            comments = self.store.all_comments()
        except StoreError as exc:
            report.error = str(exc)
            logger.error("Cannot render %s: %s", self.writer.path, exc)
            return
        try:
            self.writer.rewrite(sample_times, comments)
        except LayoutWriteError as exc:
            report.error = str(exc)
            logger.error("Layout rewrite failed, retrying next tick: %s", exc)
            return
        report.rendered = True


__all__ = ["StreamReconciler", "TickReport"]
