"""Persistence layer."""

from indicharts.db.store import DataStore

__all__ = ["DataStore"]
