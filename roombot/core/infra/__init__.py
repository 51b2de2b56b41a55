"""Process-level orchestration."""

from roombot.core.infra.application_context import ApplicationContext

__all__ = ["ApplicationContext"]
