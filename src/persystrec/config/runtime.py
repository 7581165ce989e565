"""Runtime configuration for the Persyst record engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PERSYSTREC_CONFIG"

# Persyst DataType codes keyed by sample width in bits.
_DATA_TYPE_BY_BITS = {16: 0, 32: 7}


@dataclass(slots=True)
class RecorderConfig:
    """
    File naming and durability knobs for one recording.

    The defaults produce ``recording.lay``/``recording.dat``/``recording.db``
    triples with 16-bit interleaved samples, fsync'd after every tick.
    """

    layout_file_name: str = "recording.lay"
    data_file_name: str = "recording.dat"
    store_file_name: str = "recording.db"
    file_type: str = "Interleaved"
    header_length: int = 0
    data_bits: int = 16

    fsync_each_tick: bool = True
    log_level: str = "INFO"

    @property
    def data_type(self) -> int:
        """Persyst ``DataType`` code for :attr:`data_bits`."""
        return _DATA_TYPE_BY_BITS.get(self.data_bits, 0)

    def sanitized(self) -> RecorderConfig:
        """Return a copy with derived limits applied."""
        bits = int(self.data_bits)
        if bits not in _DATA_TYPE_BY_BITS:
            bits = 16
        return RecorderConfig(
            layout_file_name=str(self.layout_file_name) or "recording.lay",
            data_file_name=str(self.data_file_name) or "recording.dat",
            store_file_name=str(self.store_file_name) or "recording.db",
            file_type=str(self.file_type),
            header_length=max(0, int(self.header_length)),
            data_bits=bits,
            fsync_each_tick=bool(self.fsync_each_tick),
            log_level=str(self.log_level).upper(),
        )


_SECTION = "recorder"


def _settings_from(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Collect recorder settings from a YAML document.

    Keys may sit at the top level or inside a ``recorder:`` block; the block
    wins when both name the same setting. Unknown keys are reported and
    dropped so a typo never silently keeps a default.
    """
    section = data.get(_SECTION)
    settings = {key: value for key, value in data.items() if key != _SECTION}
    if isinstance(section, Mapping):
        settings.update(section)

    known = {f.name for f in fields(RecorderConfig)}
    unknown = sorted(str(key) for key in settings.keys() - known)
    if unknown:
        logger.warning("Ignoring unknown recorder settings: %s", ", ".join(unknown))
    return {key: value for key, value in settings.items() if key in known}


def config_from_mapping(data: Mapping[str, Any] | None) -> RecorderConfig:
    """Build a sanitized :class:`RecorderConfig` on top of the defaults."""
    if not data:
        return RecorderConfig()
    return replace(RecorderConfig(), **_settings_from(data)).sanitized()


def _resolve_config_path(path: str | Path | None) -> Path | None:
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    return Path(path).expanduser() if path is not None else None


def load_config(path: str | Path | None = None) -> RecorderConfig:
    """
    Load configuration from ``path`` (or ``$PERSYSTREC_CONFIG``).

    No path, or a path that does not exist, gives the defaults. A document
    that is not a mapping raises ``ValueError``.
    """
    cfg_path = _resolve_config_path(path)
    if cfg_path is None or not cfg_path.is_file():
        return RecorderConfig()
    raw = yaml.safe_load(cfg_path.read_text(encoding="utf-8"))
    if raw is None:
        return RecorderConfig()
    if not isinstance(raw, Mapping):
        raise ValueError(f"{cfg_path}: expected a mapping of recorder settings, got {type(raw).__name__}")
    return config_from_mapping(raw)


__all__ = ["CONFIG_ENV_VAR", "RecorderConfig", "config_from_mapping", "load_config"]
