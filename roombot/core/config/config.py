"""
Static configuration management for roombot.

Purpose
-------
Provides centralized static configuration loaded from environment variables
with sensible defaults, type validation, and bounds checking. This module
handles non-tunable configuration that is set at process startup: remote
store coordinates and credentials, document paths, directories, logging.

Responsibilities
----------------
- Load configuration from environment variables with .env support
- Provide type-safe access to all static configuration values
- Validate critical settings on startup
- Create required directories (logs, backups)
- Track configuration loading metrics

Non-Responsibilities
--------------------
- Tunable values such as cache sizes and retry timing (handled by ConfigManager)
- Secrets management (use environment variables)

Architecture Notes
------------------
- Singleton pattern via class methods (no instantiation)
- Auto-loads on module import via Config.load()
- Directory paths relative to project root for portability

Environment Variables
---------------------
Required in production:
- GITHUB_TOKEN: remote store API token

Optional (with defaults):
- GITHUB_OWNER / GITHUB_REPO / GITHUB_BRANCH: remote repository coordinates
- GITHUB_API_BASE_URL: API root (default: https://api.github.com)
- ADMINS_PATH / UNIFORMS_PATH / STATS_PATH: remote document paths
- ENVIRONMENT: Environment type (default: development)
- LOG_LEVEL: Logging level (default: INFO)
- LOG_JSON / LOG_FILE_ENABLED: logging output switches
- BACKUP_DIR: local snapshot directory (default: <project>/backups)
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Environment(Enum):
    """Deployment environment types."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"

    @classmethod
    def from_string(cls, value: str) -> "Environment":
        """
        Parse environment string safely with fallback.

        Example
        -------
        >>> Environment.from_string("production") == Environment.PRODUCTION
        True
        >>> Environment.from_string("invalid") == Environment.DEVELOPMENT
        True
        """
        try:
            return cls(value.lower())
        except ValueError:
            # Structured logger is not initialized yet during bootstrap
            logging.warning(f"Unknown environment '{value}', defaulting to development")
            return cls.DEVELOPMENT


# ============================================================================
# Configuration Metrics Tracker
# ============================================================================


class _ConfigLoadMetrics:
    """
    Internal metrics tracker for configuration loading.

    Tracks which configuration values came from environment variables
    versus defaults, and any validation errors encountered.
    """

    def __init__(self):
        self.env_vars_loaded: Dict[str, bool] = {}
        self.validation_errors: Dict[str, str] = {}
        self.defaults_used: Dict[str, Any] = {}
        self.last_reload: Optional[str] = None

    def record_env_load(self, key: str, from_env: bool, default: Any):
        self.env_vars_loaded[key] = from_env
        if not from_env:
            self.defaults_used[key] = default

    def record_validation_error(self, key: str, error: str):
        self.validation_errors[key] = error

    def get_summary(self) -> Dict[str, Any]:
        return {
            "total_configs": len(self.env_vars_loaded),
            "from_environment": sum(1 for v in self.env_vars_loaded.values() if v),
            "from_defaults": sum(1 for v in self.env_vars_loaded.values() if not v),
            "validation_errors": len(self.validation_errors),
            "defaults_used": list(self.defaults_used.keys()),
            "last_reload": self.last_reload,
        }


# ============================================================================
# Main Configuration Class
# ============================================================================


class Config:
    """
    Centralized static configuration for the room bot.

    Usage
    -----
    >>> token = Config.GITHUB_TOKEN
    >>> if Config.is_production():
    ...     logger.info("Running in production mode")
    >>> logger.info("Config loaded", extra=Config.get_config_summary())
    """

    _metrics: Optional[_ConfigLoadMetrics] = None
    _validated: bool = False

    # =========================================================================
    # Remote Store Configuration
    # =========================================================================

    GITHUB_TOKEN: str = ""
    GITHUB_OWNER: str = "lekysitoo"
    GITHUB_REPO: str = "hostlokotest"
    GITHUB_BRANCH: str = "main"
    GITHUB_API_BASE_URL: str = "https://api.github.com"

    ADMINS_PATH: str = "admins.json"
    UNIFORMS_PATH: str = "uniforms.json"
    STATS_PATH: str = "stats.json"

    # =========================================================================
    # Environment Configuration
    # =========================================================================

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None
    LOG_COLORS: bool = True
    LOG_FILE_ENABLED: bool = True

    # =========================================================================
    # Directory Configuration
    # =========================================================================

    PROJECT_ROOT = Path(__file__).resolve().parents[3]
    LOGS_DIR = PROJECT_ROOT / "logs"
    BACKUP_DIR = PROJECT_ROOT / "backups"
    CONFIG_DIR = PROJECT_ROOT / "config"

    # =========================================================================
    # Room Metadata
    # =========================================================================

    ROOM_NAME: str = "roombot"

    # =========================================================================
    # Helper Methods
    # =========================================================================

    @classmethod
    def _init_metrics(cls):
        if cls._metrics is None:
            cls._metrics = _ConfigLoadMetrics()

    @classmethod
    def _reject(cls, key: str, error: str) -> None:
        logging.warning(error)
        if cls._metrics:
            cls._metrics.record_validation_error(key, error)

    @classmethod
    def _safe_bool(cls, key: str, default: Optional[bool]) -> Optional[bool]:
        """
        Safely parse boolean from environment.

        Recognizes: true/false, yes/no, 1/0, on/off (case-insensitive).
        """
        cls._init_metrics()

        raw_value = os.getenv(key)
        if raw_value is None:
            cls._metrics.record_env_load(key, False, default)
            return default

        normalized = raw_value.lower().strip()
        if normalized in {"true", "yes", "1", "on"}:
            value = True
        elif normalized in {"false", "no", "0", "off"}:
            value = False
        else:
            cls._reject(key, f"{key}='{raw_value}' is not a valid boolean, using default {default}")
            return default

        cls._metrics.record_env_load(key, True, default)
        return value

    @classmethod
    def _safe_str(cls, key: str, default: str, required: bool = False) -> str:
        cls._init_metrics()

        value = os.getenv(key, default)
        cls._metrics.record_env_load(key, key in os.environ, default)

        if required and not value:
            error = f"Required environment variable {key} is not set"
            logging.error(error)
            cls._metrics.record_validation_error(key, error)

        return value

    @classmethod
    def _safe_path(cls, key: str, default: Path) -> Path:
        raw_value = cls._safe_str(key, "")
        return Path(raw_value).expanduser().resolve() if raw_value else default

    # =========================================================================
    # Configuration Loading
    # =========================================================================

    @classmethod
    def load(cls) -> None:
        """
        Load all configuration from environment variables with validation.

        Called automatically on module import; call again to pick up
        environment changes (tests do this after patching ``os.environ``).
        """
        cls._init_metrics()

        # Remote store
        cls.GITHUB_TOKEN = cls._safe_str("GITHUB_TOKEN", "", required=True)
        cls.GITHUB_OWNER = cls._safe_str("GITHUB_OWNER", "lekysitoo")
        cls.GITHUB_REPO = cls._safe_str("GITHUB_REPO", "hostlokotest")
        cls.GITHUB_BRANCH = cls._safe_str("GITHUB_BRANCH", "main")
        cls.GITHUB_API_BASE_URL = cls._safe_str(
            "GITHUB_API_BASE_URL", "https://api.github.com"
        ).rstrip("/")

        cls.ADMINS_PATH = cls._safe_str("ADMINS_PATH", "admins.json")
        cls.UNIFORMS_PATH = cls._safe_str("UNIFORMS_PATH", "uniforms.json")
        cls.STATS_PATH = cls._safe_str("STATS_PATH", "stats.json")

        # Environment
        cls.ENVIRONMENT = cls._safe_str("ENVIRONMENT", "development")
        cls.LOG_LEVEL = cls._safe_str("LOG_LEVEL", "INFO")
        cls.LOG_JSON = cls._safe_bool("LOG_JSON", None)
        cls.LOG_COLORS = bool(cls._safe_bool("LOG_COLORS", True))
        cls.LOG_FILE_ENABLED = bool(cls._safe_bool("LOG_FILE_ENABLED", True))

        # Directories
        cls.LOGS_DIR = cls._safe_path("LOGS_DIR", cls.PROJECT_ROOT / "logs")
        cls.BACKUP_DIR = cls._safe_path("BACKUP_DIR", cls.PROJECT_ROOT / "backups")
        cls.CONFIG_DIR = cls._safe_path("CONFIG_DIR", cls.PROJECT_ROOT / "config")

        # Room
        cls.ROOM_NAME = cls._safe_str("ROOM_NAME", "roombot")

        cls._metrics.last_reload = datetime.now(timezone.utc).isoformat()

    @classmethod
    def validate(cls) -> None:
        """
        Validate critical configuration values on startup.

        Raises
        ------
        ConfigurationError
            If required values are missing in production. Outside production
            problems are only logged so the bot can run from backups.
        """
        if cls._validated:
            return

        from roombot.core.exceptions import ConfigurationError

        logger = logging.getLogger(__name__)
        cls.load()

        problems: Dict[str, str] = {}
        if not cls.GITHUB_TOKEN:
            problems["GITHUB_TOKEN"] = "remote store token is required"
        if not cls.GITHUB_OWNER or not cls.GITHUB_REPO:
            problems["GITHUB_REPO"] = "owner and repository must both be set"

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if cls.LOG_LEVEL.upper() not in valid_log_levels:
            logger.warning(f"Invalid LOG_LEVEL '{cls.LOG_LEVEL}', using INFO")
            cls.LOG_LEVEL = "INFO"

        cls.LOGS_DIR.mkdir(parents=True, exist_ok=True)
        cls.BACKUP_DIR.mkdir(parents=True, exist_ok=True)

        if problems:
            for key, message in problems.items():
                logger.warning(f"Configuration problem: {key}: {message}")
            if cls.is_production():
                key, message = next(iter(problems.items()))
                raise ConfigurationError(key, message)

        cls._validated = True
        logger.info(f"Configuration loaded: {cls._metrics.get_summary()}")

    # =========================================================================
    # Environment Checks
    # =========================================================================

    @classmethod
    def is_production(cls) -> bool:
        return Environment.from_string(cls.ENVIRONMENT) is Environment.PRODUCTION

    @classmethod
    def is_testing(cls) -> bool:
        return Environment.from_string(cls.ENVIRONMENT) is Environment.TESTING

    # =========================================================================
    # Metrics & Summary
    # =========================================================================

    @classmethod
    def get_metrics(cls) -> Optional[_ConfigLoadMetrics]:
        return cls._metrics

    @classmethod
    def get_config_summary(cls) -> Dict[str, Any]:
        """
        Get non-sensitive configuration summary for debugging.

        Example
        -------
        >>> Config.get_config_summary()["github_token_set"]
        True
        """
        return {
            "environment": cls.ENVIRONMENT,
            "log_level": cls.LOG_LEVEL,
            "github_owner": cls.GITHUB_OWNER,
            "github_repo": cls.GITHUB_REPO,
            "github_branch": cls.GITHUB_BRANCH,
            "github_token_set": bool(cls.GITHUB_TOKEN),
            "backup_dir": str(cls.BACKUP_DIR),
        }


# Load on import
Config.load()
