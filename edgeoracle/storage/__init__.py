"""Storage module for data persistence.

This module provides SQLite-based storage for recommendations keyed
by evaluation date and their later resolutions.
"""

from .history import DailyStats, HistoryStore, history_session

__all__ = ["DailyStats", "HistoryStore", "history_session"]
