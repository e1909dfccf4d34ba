"""Configuration objects and helpers for dmelog.

:mod:`runtime` loads/saves the YAML descriptor (``dmelog.yaml``) that tunes
polling, buffer capacities, and export naming; :mod:`app_config` resolves
where exports, saved logs, and application logs live on disk.
"""

from .app_config import AppPaths
from .runtime import DatalogConfig, config_from_mapping, load_config, save_config

__all__ = ["AppPaths", "DatalogConfig", "config_from_mapping", "load_config", "save_config"]
