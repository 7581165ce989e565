from __future__ import annotations

from pathlib import Path

import pytest

from persystrec.core.models import Comment
from persystrec.dataio.lay_extractor import (
    find_section_start,
    new_comments,
    parse_comment_line,
    scan_comments,
)

LAYOUT = (
    "[FileInfo]\n"
    "File=recording.dat\n"
    "[SampleTimes]\n"
    "0=0.0\n"
    "[Comments]\n"
    "0.5,0.0,0,0,start\n"
    "12.25,1.5,1,2,eyes, closed, patient awake\n"
    "[Patient]\n"
    "1.0,0.0,0,0,not a comment\n"
)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "recording.lay"
    path.write_text(text, encoding="utf-8")
    return path


def test_parse_keeps_text_after_fourth_comma_verbatim() -> None:
    assert parse_comment_line("3.0,0.25,0,7,a, b,c \n") == Comment(3.0, 0.25, 0, 7, "a, b,c ")


@pytest.mark.parametrize(
    "line",
    [
        "1.0,2.0,3",
        "x,0.0,0,0,text",
        "1.0,0.0,one,0,text",
        "1.0,0.0,1e400,0,text",
        "1.0,0.0,99999999999999999999,0,text",
        "1.0,0.0,0,-9223372036854775809,text",
        "1.0,0.0,0,nan,text",
    ],
)
def test_parse_rejects_malformed_lines(line: str) -> None:
    with pytest.raises(ValueError):
        parse_comment_line(line)


def test_scan_reads_comments_until_next_section(tmp_path: Path) -> None:
    path = _write(tmp_path, LAYOUT)
    assert scan_comments(path) == [
        Comment(0.5, 0.0, 0, 0, "start"),
        Comment(12.25, 1.5, 1, 2, "eyes, closed, patient awake"),
    ]


def test_scan_stops_at_blank_line(tmp_path: Path) -> None:
    path = _write(tmp_path, "[Comments]\n1.0,0.0,0,0,a\n\n2.0,0.0,0,0,b\n")
    assert scan_comments(path) == [Comment(1.0, 0.0, 0, 0, "a")]


def test_scan_handles_crlf_line_endings(tmp_path: Path) -> None:
    path = tmp_path / "recording.lay"
    path.write_bytes(b"[Comments]\r\n1.0,0.0,0,0,edited on windows\r\n")
    assert scan_comments(path) == [Comment(1.0, 0.0, 0, 0, "edited on windows")]


def test_scan_starts_at_offset(tmp_path: Path) -> None:
    text = "[Comments]\n9.0,0.0,0,0,header area\n[SampleTimes]\n[Comments]\n1.0,0.0,0,0,region\n"
    path = _write(tmp_path, text)
    offset = text.index("[SampleTimes]")
    assert scan_comments(path, offset) == [Comment(1.0, 0.0, 0, 0, "region")]


def test_scan_skips_malformed_lines(tmp_path: Path) -> None:
    path = _write(tmp_path, "[Comments]\n1.0,0.0,0,0,ok\ngarbage\n2.0,0.0,0,0,also ok\n")
    assert [c.text for c in scan_comments(path)] == ["ok", "also ok"]


def test_scan_without_section_or_file_is_empty(tmp_path: Path) -> None:
    assert scan_comments(_write(tmp_path, "[FileInfo]\nFile=x\n")) == []
    assert scan_comments(tmp_path / "missing.lay") == []


def test_new_comments_uses_content_not_position() -> None:
    a = Comment(1.0, 0.0, 0, 0, "a")
    b = Comment(2.0, 0.0, 0, 0, "b")
    c = Comment(3.0, 0.0, 0, 0, "c")
    assert new_comments([c, a, b], existing=[b, a]) == [c]
    assert new_comments([a, b], existing=[a, b]) == []


def test_new_comments_preserves_scan_order_and_collapses_repeats() -> None:
    a = Comment(1.0, 0.0, 0, 0, "a")
    b = Comment(2.0, 0.0, 0, 0, "b")
    assert new_comments([b, a, b], existing=[]) == [b, a]


def test_new_comments_compares_clamped_form() -> None:
    stored = Comment(0.0, 0.0, 0, 0, "early")
    assert new_comments([Comment(-1.0, 0.0, 0, 0, "early")], existing=[stored]) == []


def test_find_section_start(tmp_path: Path) -> None:
    path = _write(tmp_path, LAYOUT)
    assert find_section_start(path) == LAYOUT.index("[SampleTimes]")
    assert find_section_start(_write(tmp_path, "[FileInfo]\n")) is None


def test_parse_accepts_int64_limits_exactly() -> None:
    comment = parse_comment_line("1.0,0.0,9223372036854775807,-9223372036854775808,edge")
    assert comment.duration_int == 2**63 - 1
    assert comment.event_type == -(2**63)
    assert parse_comment_line("1.0,0.0,2.0,3,float ints").duration_int == 2


def test_scan_skips_out_of_range_lines(tmp_path: Path) -> None:
    path = _write(tmp_path, "[Comments]\n1.0,0.0,1e400,0,bad\n2.0,0.0,0,0,good\n")
    assert scan_comments(path) == [Comment(2.0, 0.0, 0, 0, "good")]
