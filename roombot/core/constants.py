"""
Constants shared across the persistence layer.

Values here are protocol or data constants, not tunables; tunables belong
in `config/*.yaml` and are read through ConfigManager.
"""

from __future__ import annotations

from typing import Any, Dict

# ============================================================================
# Remote store protocol
# ============================================================================

GITHUB_ACCEPT_HEADER = "application/vnd.github.v3+json"
RATE_LIMIT_REMAINING_HEADER = "X-RateLimit-Remaining"
RATE_LIMIT_RESET_HEADER = "X-RateLimit-Reset"
RETRY_AFTER_HEADER = "Retry-After"

# Rate-limit exhaustion is signalled with one of these plus remaining == 0
RATE_LIMIT_STATUSES = frozenset({403, 429})

# Statuses that retrying the same request cannot fix
NON_RETRYABLE_STATUSES = frozenset({400, 401, 404, 409, 422})

# Cache key prefix for decoded remote documents
REMOTE_CACHE_PREFIX = "github:"

BACKUP_SUFFIX = ".backup.json"

# ============================================================================
# Room defaults
# ============================================================================

# Team uniforms: {"angle": degrees, "text_color": rgb, "colors": [rgb, ...]}
DEFAULT_UNIFORMS: Dict[str, Dict[str, Any]] = {
    "red": {"angle": 0, "text_color": 0xFFFFFF, "colors": [0xED6A5A]},
    "blue": {"angle": 0, "text_color": 0xFFFFFF, "colors": [0x5995ED]},
    "boca": {"angle": 90, "text_color": 0xFFFFFF, "colors": [0x0A2D6E, 0xF2C12E, 0x0A2D6E]},
    "river": {"angle": 45, "text_color": 0x000000, "colors": [0xFFFFFF, 0xE1001A, 0xFFFFFF]},
    "argentina": {"angle": 0, "text_color": 0x000000, "colors": [0x75AADB, 0xFFFFFF, 0x75AADB]},
    "brasil": {"angle": 0, "text_color": 0x0B6E3B, "colors": [0xFCDD09]},
}

DEFAULT_TEAM_COLORS: Dict[int, int] = {
    1: 0xED6A5A,
    2: 0x5995ED,
}
