"""Service layer implementing business logic.

Services connect ports (interfaces) with adapters (implementations),
providing high-level business operations to the application layer.
"""

from src.core.services.stats_service import MatchStatsService

__all__ = ["MatchStatsService"]
