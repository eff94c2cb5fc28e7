from .client import (
    EntityRepository,
    InMemoryRepository,
    StashRepository,
    create_repository,
    sort_by_rating,
)
from .filters import matches, to_graphql_filter

__all__ = [
    "EntityRepository",
    "InMemoryRepository",
    "StashRepository",
    "create_repository",
    "matches",
    "sort_by_rating",
    "to_graphql_filter",
]
