from .entity import DEFAULT_RATING, Entity, WriteResult
from .entity_stats import EntityStats

__all__ = ["DEFAULT_RATING", "Entity", "EntityStats", "WriteResult"]
