from datetime import datetime

from sqlmodel import Field, SQLModel


class EntityStats(SQLModel, table=True):
    """Running comparison statistics for one catalogue entity."""

    entity_id: str = Field(primary_key=True)
    kind: str = Field(default="performers", primary_key=True)
    matches: int = 0
    wins: int = 0
    losses: int = 0
    current_streak: int = 0  # +n consecutive wins, -n consecutive losses
    best_streak: int = 0
    last_match_at: datetime | None = None
