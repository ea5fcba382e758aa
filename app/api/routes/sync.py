"""Sync API routes for triggering ingestion from the upstream tournament API.

Provides endpoints for:
- Competition list sync and single competition deep sync
- Stage, team and score sync triggers
- Stage statistics sync
- Full sync
- Diagnostic reads of what has been stored

Every trigger returns the operation's result object with status 200, even
when the sync itself failed.
"""
import logging
from typing import AsyncGenerator, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.rate_limit import limiter, SYNC_TRIGGER_LIMIT
from app.models import Competition, Stage, Team, Score
from app.repositories import CompetitionRepository
from app.services.competition_service import serialize_competition
from app.services.sync.orchestrator import SyncOrchestrator
from app.utils.timezone import format_display_time

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


class CompetitionSyncRequest(BaseModel):
    competition_name: str = Field(..., min_length=1)


class StageStatsSyncRequest(BaseModel):
    competitionId: Optional[str] = None


async def get_orchestrator(db: Session = Depends(get_db)) -> AsyncGenerator[SyncOrchestrator, None]:
    """Dependency to get sync orchestrator instance; closes its client afterwards."""
    orchestrator = SyncOrchestrator(db)
    try:
        yield orchestrator
    finally:
        await orchestrator.cleanup()


@router.post("/competitions")
@limiter.limit(SYNC_TRIGGER_LIMIT)
async def trigger_sync_competitions(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Sync the upstream competition list."""
    logger.info("Received request to sync all competitions")
    try:
        result = await orchestrator.sync_competitions()
    except Exception as e:
        logger.error(f"Error syncing competitions: {e}")
        return {
            "success": False,
            "message": "Failed to sync competitions",
            "error": str(e)
        }
    return result.to_dict()


@router.post("/competitions/{competition_id}")
@limiter.limit(SYNC_TRIGGER_LIMIT)
async def trigger_sync_competition_detail(
    request: Request,
    competition_id: str,
    body: CompetitionSyncRequest,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Sync one competition with its stages, teams, scores and stats."""
    logger.info(f"Received request to sync competition {competition_id} ({body.competition_name})")
    try:
        result = await orchestrator.sync_competition_detail(competition_id, body.competition_name)
    except Exception as e:
        logger.error(f"Error syncing competition {competition_id}: {e}")
        return {
            "success": False,
            "message": "Failed to sync competition",
            "error": str(e)
        }
    return result.to_dict()


@router.post("/competitions/{competition_id}/stages")
@limiter.limit(SYNC_TRIGGER_LIMIT)
async def trigger_sync_stages(
    request: Request,
    competition_id: str,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Sync stages (and their scores and stats) of a competition."""
    logger.info(f"Syncing stages for competition {competition_id}")
    result = await orchestrator.sync_stages(competition_id)
    return result.to_dict()


@router.post("/competitions/{competition_id}/teams")
@limiter.limit(SYNC_TRIGGER_LIMIT)
async def trigger_sync_teams(
    request: Request,
    competition_id: str,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Sync teams and players of a stored competition."""
    logger.info(f"Syncing teams for competition {competition_id}")
    result = await orchestrator.sync_teams_and_players(competition_id)
    return result.to_dict()


@router.post("/stages/{stage_id}/scores")
@limiter.limit(SYNC_TRIGGER_LIMIT)
async def trigger_sync_scores(
    request: Request,
    stage_id: str,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Sync the score table of a stored stage."""
    logger.info(f"Syncing scores for stage {stage_id}")
    result = await orchestrator.sync_scores(stage_id)
    return result.to_dict()


@router.post("/stages/{stage_id}/stats")
@limiter.limit(SYNC_TRIGGER_LIMIT)
async def trigger_sync_stage_stats(
    request: Request,
    stage_id: str,
    body: Optional[StageStatsSyncRequest] = None,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Sync scores, hero stats and weapon stats of a stage, stopping at the first failure."""
    competition_id = body.competitionId if body else None
    logger.info(f"Received request to sync stats for stage {stage_id} in competition {competition_id}")
    result = await orchestrator.sync_stage_stats(stage_id, competition_id=competition_id)
    return result.to_dict()


@router.post("/all")
@limiter.limit(SYNC_TRIGGER_LIMIT)
async def trigger_sync_all(
    request: Request,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator)
) -> Dict:
    """Run the full sequential sync."""
    logger.info("Received request to run full sync")
    result = await orchestrator.sync_all()
    return result.to_dict()


@router.get("/competitions")
async def list_stored_competitions(db: Session = Depends(get_db)) -> list:
    """Stored competitions, newest first."""
    return [serialize_competition(c) for c in CompetitionRepository(db).find_ordered()]


@router.get("/test-db")
async def test_database(db: Session = Depends(get_db)) -> Dict:
    """Sample a few rows of each table to confirm the store is readable."""
    try:
        competitions = db.query(Competition).order_by(Competition.start_date.desc()).limit(5).all()
        stages = db.query(Stage).limit(5).all()
        teams = db.query(Team).limit(5).all()
        scores = db.query(Score).limit(5).all()
    except Exception as e:
        logger.error(f"Database test failed: {e}")
        return {"success": False, "error": str(e)}

    return {
        "success": True,
        "data": {
            "competitions": [
                {"id": c.id, "name": c.name, "startDate": format_display_time(c.start_date)}
                for c in competitions
            ],
            "stages": [{"id": s.id, "name": s.name, "competitionId": s.competition_id} for s in stages],
            "teams": [{"id": t.id, "name": t.name, "competitionId": t.competition_id} for t in teams],
            "scores": [{"id": s.id, "points": s.points, "teamId": s.team_id} for s in scores],
        }
    }
