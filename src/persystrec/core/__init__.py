"""Record types plus the per-stream reconciler and record engine.

Only the plain data types are re-exported here; import
:mod:`.reconciler` and :mod:`.record_engine` directly (or use the top-level
package) for the classes that touch the disk.
"""

from .models import ChannelInfo, Comment, SampleTime, StreamPlan

__all__ = ["ChannelInfo", "Comment", "SampleTime", "StreamPlan"]
