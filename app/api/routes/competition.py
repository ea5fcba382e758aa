"""
Competition read routes consumed by the dashboard.

All routes are read-only views over the synced data:
- Competition list (optionally league only)
- Stages of a bracket variant with scores and stats
- Stage score table, aggregated team rankings
- Hero and weapon statistics
"""
import logging
from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.services.competition_service import CompetitionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/competition", tags=["competitions"])


def get_competition_service(db: Session = Depends(get_db)) -> CompetitionService:
    """Dependency to get competition service instance."""
    return CompetitionService(db)


@router.get("/list")
async def list_competitions(
    only_nbpl: bool = Query(False, description="Only league competitions"),
    service: CompetitionService = Depends(get_competition_service)
) -> Dict:
    """Competitions newest first with stages and teams, wrapped as ``{data: {list}}``."""
    return service.find_all(only_nbpl=only_nbpl)


@router.get("/stage/list")
async def list_stages(
    competition_uuid: str = Query(..., description="Competition ID"),
    type: int = Query(..., description="Stage type"),
    rank_type: int = Query(..., description="Rank type"),
    service: CompetitionService = Depends(get_competition_service)
) -> List[Dict]:
    """Stages of one bracket variant with their scores, hero stats and weapon stats."""
    return service.find_stages(competition_uuid, type, rank_type)


@router.get("/rank/score")
async def stage_scores(
    stage_uuid: str = Query(..., description="Stage ID"),
    service: CompetitionService = Depends(get_competition_service)
) -> List[Dict]:
    """Score table of a stage joined with team and player."""
    return service.get_stage_scores(stage_uuid)


@router.get("/rank/team/data")
async def team_rankings(
    competition_uuid: str = Query(..., description="Competition ID"),
    stage_uuid: str = Query(..., description="Comma-separated stage IDs"),
    service: CompetitionService = Depends(get_competition_service)
) -> List[Dict]:
    """
    Team standings aggregated over one or more stages.

    Args:
        competition_uuid: Competition the stages belong to
        stage_uuid: Stage IDs separated by commas
    """
    stage_ids = [stage_id.strip() for stage_id in stage_uuid.split(",") if stage_id.strip()]
    if not stage_ids:
        raise HTTPException(status_code=400, detail="stage_uuid must list at least one stage")
    return service.get_team_rankings(competition_uuid, stage_ids)


@router.get("/rank/hero")
async def hero_stats(
    competition_uuid: str = Query(..., description="Competition ID"),
    stage_uuid: str = Query(..., description="Stage ID"),
    model_type: int = Query(1, description="Game mode"),
    service: CompetitionService = Depends(get_competition_service)
) -> List[Dict]:
    """Hero statistics of a stage, most played first."""
    return service.get_hero_stats(competition_uuid, stage_uuid, model_type)


@router.get("/rank/weapon")
async def weapon_stats(
    competition_uuid: str = Query(..., description="Competition ID"),
    stage_uuid: str = Query(..., description="Stage ID"),
    model_type: int = Query(1, description="Game mode"),
    service: CompetitionService = Depends(get_competition_service)
) -> List[Dict]:
    """Weapon statistics of a stage, most picked first."""
    return service.get_weapon_stats(competition_uuid, stage_uuid, model_type)
