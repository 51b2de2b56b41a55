"""roombot: resilient cache-and-sync layer for a game room bot."""

__version__ = "0.1.0"
