"""
Remote document store access.

- `RemoteStoreClient`: load/save JSON documents with retry and fallback
- `RetryPolicy`: exponential backoff for transient failures
"""

from roombot.core.remote.client import RemoteDocument, RemoteStoreClient
from roombot.core.remote.retry_policy import RetryPolicy

__all__ = ["RemoteStoreClient", "RemoteDocument", "RetryPolicy"]
