from .repository import AsyncRepository
from .stats_repository import StatsRepository, create_stats_engine

__all__ = ["AsyncRepository", "StatsRepository", "create_stats_engine"]
