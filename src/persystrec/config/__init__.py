"""Configuration objects and helpers for the Persyst recorder.

Settings live in an optional YAML file (``--config`` or ``$PERSYSTREC_CONFIG``)
and are loaded into the typed :class:`RecorderConfig` used by the record
engine and the maintenance CLI.
"""

from .runtime import CONFIG_ENV_VAR, RecorderConfig, config_from_mapping, load_config

__all__ = ["CONFIG_ENV_VAR", "RecorderConfig", "config_from_mapping", "load_config"]
