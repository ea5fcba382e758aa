"""
Tournament models.

Usage:
    from app.models import Competition, Stage, Score
"""
from app.models.models import (
    Base,
    Competition,
    Stage,
    Team,
    Player,
    Score,
    HeroStat,
    WeaponStat,
)

__all__ = [
    "Base",
    "Competition",
    "Stage",
    "Team",
    "Player",
    "Score",
    "HeroStat",
    "WeaponStat",
]
