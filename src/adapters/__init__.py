"""Adapter implementations of the stats store port."""

from .database import DatabaseAdapter
from .memory_store import InMemoryStatsAdapter

__all__ = ["DatabaseAdapter", "InMemoryStatsAdapter"]
