"""
Score and per-stage stat repositories.
"""
from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import joinedload

from app.models import Score, Stage, HeroStat, WeaponStat
from app.repositories.base import BaseRepository


def score_id(stage_id: str, team_id: str) -> str:
    """Composite key of a team's score row within a stage."""
    return f"{stage_id}-{team_id}"


def stat_id(stage_id: str, name: str) -> str:
    """Composite key of a hero or weapon stat row within a stage."""
    return f"{stage_id}-{name}"


class ScoreRepository(BaseRepository[Score]):
    """Repository for stage scores."""

    def __init__(self, db):
        super().__init__(Score, db)

    def find_by_stage(self, stage_id: str) -> List[Score]:
        """Scores of a stage with team and player eagerly loaded."""
        return self.query().options(
            joinedload(Score.team),
            joinedload(Score.player)
        ).filter(Score.stage_id == stage_id).order_by(Score.id).all()

    def find_by_stages(self, stage_ids: List[str]) -> List[Score]:
        """Scores across several stages, ordered by id."""
        if not stage_ids:
            return []
        return self.query().options(
            joinedload(Score.team)
        ).filter(Score.stage_id.in_(stage_ids)).order_by(Score.id).all()


class HeroStatRepository(BaseRepository[HeroStat]):
    """Repository for per-stage hero statistics."""

    def __init__(self, db):
        super().__init__(HeroStat, db)

    def find_ranked(self, competition_id: str, stage_id: str) -> List[HeroStat]:
        """Hero stats of a stage, most played first."""
        return self.query().join(Stage).filter(
            Stage.id == stage_id,
            Stage.competition_id == competition_id
        ).order_by(desc(HeroStat.battle_amount), HeroStat.id).all()


class WeaponStatRepository(BaseRepository[WeaponStat]):
    """Repository for per-stage weapon statistics."""

    def __init__(self, db):
        super().__init__(WeaponStat, db)

    def find_ranked(self, competition_id: str, stage_id: str) -> List[WeaponStat]:
        """Weapon stats of a stage, most picked first."""
        return self.query().join(Stage).filter(
            Stage.id == stage_id,
            Stage.competition_id == competition_id
        ).order_by(desc(WeaponStat.pick_rate), WeaponStat.id).all()
