"""Core infrastructure: config, logging, cache, backup, remote store, sync."""
