"""Shared dataclasses for Persyst recordings: markers, comments, channels."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class SampleTime:
    """One ``[SampleTimes]`` row: cumulative sample count and its timestamp."""

    base_index: int
    timestamp: float

    def to_line(self) -> str:
        return f"{int(self.base_index)}={float(self.timestamp)!r}"


@dataclass(frozen=True, slots=True)
class Comment:
    """
    One ``[Comments]`` row.

    Comments have no key of their own: two comments are the same comment
    when all five fields compare equal, which is exactly dataclass equality.
    """

    timestamp: float
    duration: float
    duration_int: int
    event_type: int
    text: str

    def normalized(self) -> Comment:
        """
        Return the form the comment is stored and rendered in.

        Negative timestamps move to zero, and trailing line-break characters
        are dropped from the text since each comment occupies one line.
        """
        timestamp = 0.0 if self.timestamp < 0 else self.timestamp
        text = self.text.rstrip("\r\n")
        if timestamp == self.timestamp and text == self.text:
            return self
        return Comment(timestamp, self.duration, self.duration_int, self.event_type, text)

    def to_line(self) -> str:
        return (
            f"{float(self.timestamp)!r},{float(self.duration)!r},"
            f"{int(self.duration_int)},{int(self.event_type)},{self.text}"
        )


@dataclass(frozen=True, slots=True)
class ChannelInfo:
    """Continuous channel as handed over by the acquisition host."""

    name: str
    stream_id: int
    stream_name: str
    source_node_name: str
    source_node_id: int
    sample_rate: float
    bit_volts: float


@dataclass(frozen=True, slots=True)
class StreamPlan:
    """Channel grouping for one continuous-data stream."""

    index: int
    first_channel: ChannelInfo
    channels: tuple[ChannelInfo, ...]

    @property
    def channel_count(self) -> int:
        return len(self.channels)
