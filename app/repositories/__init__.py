"""
Repository layer for data access.

Usage:
    from app.repositories import CompetitionRepository
    from app.core.database import SessionLocal

    db = SessionLocal()
    competitions = CompetitionRepository(db).find_ordered()
    db.close()
"""

from app.repositories.base import BaseRepository, MergeOutcome
from app.repositories.competition_repository import CompetitionRepository, StageRepository
from app.repositories.team_repository import TeamRepository, PlayerRepository
from app.repositories.score_repository import (
    ScoreRepository,
    HeroStatRepository,
    WeaponStatRepository,
)

__all__ = [
    "BaseRepository",
    "MergeOutcome",
    "CompetitionRepository",
    "StageRepository",
    "TeamRepository",
    "PlayerRepository",
    "ScoreRepository",
    "HeroStatRepository",
    "WeaponStatRepository",
]
