"""Persyst layout-file recorder.

Sample-time markers and comments are kept in a per-stream SQLite store and
re-materialised into the ``[SampleTimes]`` and ``[Comments]`` sections of
the stream's ``.lay`` file on every tick, merging comments that were typed
into the file by hand in between.
"""

from .config import RecorderConfig, load_config
from .core.models import ChannelInfo, Comment, SampleTime, StreamPlan
from .dataio.canonical_store import CanonicalStore, StoreError, StoreReadError, StoreUnavailable
from .dataio.lay_extractor import new_comments, scan_comments
from .dataio.lay_writer import LayoutFileWriter, LayoutHeader, LayoutWriteError
from .core.reconciler import StreamReconciler, TickReport
from .core.record_engine import RecordEngine, plan_streams

__version__ = "0.1.0"

__all__ = [
    "CanonicalStore",
    "ChannelInfo",
    "Comment",
    "LayoutFileWriter",
    "LayoutHeader",
    "LayoutWriteError",
    "RecordEngine",
    "RecorderConfig",
    "SampleTime",
    "StoreError",
    "StoreReadError",
    "StoreUnavailable",
    "StreamPlan",
    "StreamReconciler",
    "TickReport",
    "load_config",
    "new_comments",
    "plan_streams",
    "scan_comments",
]
