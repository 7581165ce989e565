"""Helpers for constructing per-stream recording file paths."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from ..config.runtime import RecorderConfig
from ..core.models import ChannelInfo

# Characters in source node names that are not kept in directory names.
_NODE_NAME_RE = re.compile(r"[ @]")


def processor_directory_name(channel: ChannelInfo) -> str:
    """
    Directory name for the stream ``channel`` belongs to.

    Example: "Neuropixels-PXI-100.ProbeA-LFP"
    """
    node = _NODE_NAME_RE.sub("_", channel.source_node_name)
    return f"{node}-{channel.source_node_id}.{channel.stream_name}"


@dataclass(frozen=True)
class StreamFilePaths:
    """Layout file, data file and canonical store for one stream."""

    directory: Path
    layout_path: Path
    data_path: Path
    store_path: Path


def stream_file_paths(continuous_dir: Path, channel: ChannelInfo, config: RecorderConfig) -> StreamFilePaths:
    """Return the co-located file paths for the stream of ``channel``."""
    directory = Path(continuous_dir) / processor_directory_name(channel)
    return StreamFilePaths(
        directory=directory,
        layout_path=directory / config.layout_file_name,
        data_path=directory / config.data_file_name,
        store_path=directory / config.store_file_name,
    )
