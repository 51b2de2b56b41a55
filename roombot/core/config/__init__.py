"""
roombot configuration package.

- `config.Config`: static, environment-driven settings (.env supported)
- `manager.ConfigManager`: YAML-backed tunables with dot-notation access
- `settings`: typed bundles handed to each persistence component

Only the static layer is re-exported here; the logging subsystem imports it
during bootstrap, before ConfigManager (which logs) can be imported.
"""

from roombot.core.config.config import Config, Environment

__all__ = ["Config", "Environment"]
