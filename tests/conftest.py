from __future__ import annotations

from pathlib import Path

import pytest

from persystrec.core.reconciler import StreamReconciler
from persystrec.dataio.canonical_store import CanonicalStore
from persystrec.dataio.lay_writer import LayoutFileWriter, LayoutHeader


def make_header(channel_count: int = 2) -> LayoutHeader:
    return LayoutHeader(
        data_file="recording.dat",
        sampling_rate=30000.0,
        calibration=0.195,
        waveform_count=channel_count,
        channel_names=[f"CH{i}" for i in range(channel_count)],
    )


@pytest.fixture
def reconciler(tmp_path: Path):
    writer = LayoutFileWriter(tmp_path / "recording.lay", fsync=False)
    writer.write_header(make_header())
    store = CanonicalStore.open(tmp_path / "recording.db")
    yield StreamReconciler(store, writer)
    store.close()


@pytest.fixture
def layout_header() -> LayoutHeader:
    return make_header()
