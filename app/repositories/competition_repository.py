"""
Competition and Stage repositories.

Usage:
    repo = CompetitionRepository(db)
    leagues = repo.find_ordered(only_nbpl=True)
"""
from typing import List

from sqlalchemy import desc
from sqlalchemy.orm import selectinload

from app.models import Competition, Stage
from app.repositories.base import BaseRepository


class CompetitionRepository(BaseRepository[Competition]):
    """Repository for competitions."""

    def __init__(self, db):
        super().__init__(Competition, db)

    def find_ordered(
        self,
        only_nbpl: bool = False,
        with_children: bool = False
    ) -> List[Competition]:
        """Competitions newest first, optionally restricted to the league flag."""
        query = self.query()
        if only_nbpl:
            query = query.filter(Competition.nbpl.is_(True))
        if with_children:
            query = query.options(
                selectinload(Competition.stages),
                selectinload(Competition.teams)
            )
        query = query.order_by(desc(Competition.start_date))
        return query.all()


class StageRepository(BaseRepository[Stage]):
    """Repository for competition stages."""

    def __init__(self, db):
        super().__init__(Stage, db)

    def find_by_competition(self, competition_id: str) -> List[Stage]:
        """All stages of a competition in a stable order."""
        return self.query().filter(
            Stage.competition_id == competition_id
        ).order_by(Stage.start_date, Stage.id).all()

    def find_filtered(self, competition_id: str, type: int, rank_type: int) -> List[Stage]:
        """Stages matching a bracket variant, with scores and stats loaded."""
        return self.query().options(
            selectinload(Stage.scores),
            selectinload(Stage.hero_stats),
            selectinload(Stage.weapon_stats)
        ).filter(
            Stage.competition_id == competition_id,
            Stage.type == type,
            Stage.rank_type == rank_type
        ).order_by(Stage.start_date, Stage.id).all()
