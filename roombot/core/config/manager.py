"""
ConfigManager: tunable configuration access for roombot.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable values (cache sizes,
  TTLs, retry timing, save intervals).
- Back configuration with YAML defaults from the `config/` directory plus
  in-process overrides.

Responsibilities
----------------
- Load and deep-merge every YAML file found under the configured directory.
- Serve reads from an in-memory mapping with graceful fallback to defaults.
- Accept runtime overrides (used by tests and operators).

Key Design Decisions
--------------------
- YAML is the single source for **defaults**; overrides live in memory only.
- Callers always pass a default to `get()`, so a missing `config/` directory
  degrades to built-in values rather than failing startup.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, MutableMapping, Optional

import yaml

from roombot.core.config.config import Config
from roombot.core.logging.logger import get_logger

logger = get_logger(__name__)

_MISSING = object()


class ConfigManager:
    """
    Tunable configuration with YAML defaults and dot-notation access.

    Examples
    --------
    >>> ConfigManager.load()
    >>> ConfigManager.get("cache.players_capacity", 500)
    500
    """

    _defaults: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _loaded: bool = False

    # =========================================================================
    # YAML LOADING & DEFAULTS
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = value

    @classmethod
    def load(cls, config_dir: Optional[Path] = None) -> None:
        """
        Recursively load all YAML config files into the defaults mapping.

        Files that fail to parse or whose root is not a mapping are skipped
        with a warning; the remaining files still load.
        """
        config_dir = Path(config_dir) if config_dir is not None else Config.CONFIG_DIR
        cls._defaults = {}
        cls._loaded = True

        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        loaded_count = 0

        for yaml_file in yaml_files:
            relative = str(yaml_file.relative_to(config_dir))
            try:
                with yaml_file.open("r", encoding="utf-8") as handle:
                    data = yaml.safe_load(handle)
            except (OSError, yaml.YAMLError) as exc:
                logger.warning(
                    "Failed to load YAML config",
                    extra={"file": relative, "error": str(exc), "error_type": type(exc).__name__},
                )
                continue

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                loaded_count += 1
                logger.debug("Loaded YAML config", extra={"file": relative})
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={"file": relative, "root_type": type(data).__name__},
                )

        logger.info(
            "YAML configs loaded",
            extra={"yaml_file_count": loaded_count, "top_level_keys": len(cls._defaults)},
        )

    # =========================================================================
    # READS
    # =========================================================================

    @staticmethod
    def _traverse(source: Dict[str, Any], key: str) -> Any:
        value: Any = source
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return _MISSING
            value = value[part]
        return value

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Resolution order: runtime override, YAML default, `default`.
        """
        if not cls._loaded:
            cls.load()

        if key in cls._overrides:
            return cls._overrides[key]

        value = cls._traverse(cls._defaults, key)
        if value is _MISSING or value is None:
            return default
        return value

    # =========================================================================
    # OVERRIDES
    # =========================================================================

    @classmethod
    def override(cls, key: str, value: Any) -> None:
        cls._overrides[key] = value
        logger.info("Config override applied", extra={"config_key": key})

    @classmethod
    def reset(cls) -> None:
        """Drop overrides and loaded defaults; next read reloads YAML."""
        cls._overrides.clear()
        cls._defaults = {}
        cls._loaded = False
