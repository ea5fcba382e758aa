"""
Read-side service for competitions and their derived data.

Responses keep the field names the dashboard consumes (camelCase), with
competition and stage dates rendered in display time. Nothing here writes.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.models import Competition, Stage, Team, Player, Score, HeroStat, WeaponStat
from app.repositories import (
    CompetitionRepository,
    StageRepository,
    ScoreRepository,
    HeroStatRepository,
    WeaponStatRepository,
)
from app.utils.timezone import format_display_time

logger = logging.getLogger(__name__)


# =============================================================================
# Serializers
# =============================================================================

def serialize_team(team: Optional[Team]) -> Optional[Dict[str, Any]]:
    if team is None:
        return None
    return {
        "id": team.id,
        "name": team.name,
        "logo": team.logo,
        "points": team.points,
        "rank": team.rank,
        "competitionId": team.competition_id,
    }


def serialize_player(player: Optional[Player]) -> Optional[Dict[str, Any]]:
    if player is None:
        return None
    return {
        "id": player.id,
        "name": player.name,
        "avatar": player.avatar,
        "teamId": player.team_id,
        "competitionId": player.competition_id,
    }


def _decode_match_scores(raw: Optional[str]) -> List[Dict[str, Any]]:
    try:
        value = json.loads(raw or "[]")
    except ValueError:
        logger.warning(f"Stored match scores are not valid JSON: {raw!r}")
        return []
    return value if isinstance(value, list) else []


def serialize_score(score: Score, with_relations: bool = False) -> Dict[str, Any]:
    data = {
        "id": score.id,
        "points": score.points,
        "kills": score.kills,
        "deaths": score.deaths,
        "assists": score.assists,
        "matchScores": _decode_match_scores(score.match_scores),
        "stageId": score.stage_id,
        "teamId": score.team_id,
        "playerId": score.player_id,
    }
    if with_relations:
        data["team"] = serialize_team(score.team)
        data["player"] = serialize_player(score.player)
    return data


def serialize_hero_stat(stat: HeroStat) -> Dict[str, Any]:
    return {
        "id": stat.id,
        "heroName": stat.hero_name,
        "heroImage": stat.hero_image,
        "battleAmount": stat.battle_amount,
        "killTimesAvg": stat.kill_times_avg,
        "assistAvg": stat.assist_avg,
        "cureAvg": stat.cure_avg,
        "damageAvg": stat.damage_avg,
        "deathAvg": stat.death_avg,
        "totalLiveTimeAvg": stat.total_live_time_avg,
        "scoreTop1BattleAmount": stat.score_top1_battle_amount,
        "rescueTimesAvg": stat.rescue_times_avg,
        "scoreTop1Rate": stat.score_top1_rate,
        "rank": stat.rank,
        "stageId": stat.stage_id,
    }


def serialize_weapon_stat(stat: WeaponStat) -> Dict[str, Any]:
    return {
        "id": stat.id,
        "weaponName": stat.weapon_name,
        "pickRate": stat.pick_rate,
        "killRate": stat.kill_rate,
        "stageId": stat.stage_id,
    }


def serialize_stage(stage: Stage, with_children: bool = False) -> Dict[str, Any]:
    data = {
        "id": stage.id,
        "name": stage.name,
        "type": stage.type,
        "rankType": stage.rank_type,
        "startDate": format_display_time(stage.start_date),
        "endDate": format_display_time(stage.end_date),
        "competitionId": stage.competition_id,
    }
    if with_children:
        data["scores"] = [serialize_score(score) for score in sorted(stage.scores, key=lambda s: s.id)]
        data["heroStats"] = [serialize_hero_stat(stat) for stat in stage.hero_stats]
        data["weaponStats"] = [serialize_weapon_stat(stat) for stat in stage.weapon_stats]
    return data


def serialize_competition(competition: Competition, with_children: bool = False) -> Dict[str, Any]:
    data = {
        "id": competition.id,
        "name": competition.name,
        "description": competition.description,
        "startDate": format_display_time(competition.start_date),
        "endDate": format_display_time(competition.end_date),
        "type": competition.type,
        "nbpl": competition.nbpl,
    }
    if with_children:
        data["stages"] = [serialize_stage(stage) for stage in competition.stages]
        data["teams"] = [serialize_team(team) for team in competition.teams]
    return data


class CompetitionService:
    """
    Query service behind the competition read API.

    Usage:
        service = CompetitionService(db)
        payload = service.find_all(only_nbpl=True)
    """

    def __init__(self, db: Session):
        self.db = db
        self.competitions = CompetitionRepository(db)
        self.stages = StageRepository(db)
        self.scores = ScoreRepository(db)
        self.hero_stats = HeroStatRepository(db)
        self.weapon_stats = WeaponStatRepository(db)

    def find_all(self, only_nbpl: bool = False) -> Dict[str, Any]:
        """
        Competitions newest first with their stages and teams.

        Returns:
            ``{"data": {"list": [...]}}``, the envelope the dashboard expects
        """
        competitions = self.competitions.find_ordered(only_nbpl=only_nbpl, with_children=True)
        logger.info(f"Found {len(competitions)} competitions (only_nbpl={only_nbpl})")
        return {
            "data": {
                "list": [serialize_competition(c, with_children=True) for c in competitions]
            }
        }

    def find_stages(self, competition_id: str, type: int, rank_type: int) -> List[Dict[str, Any]]:
        """Stages of one bracket variant with scores, hero stats and weapon stats."""
        stages = self.stages.find_filtered(competition_id, type, rank_type)
        return [serialize_stage(stage, with_children=True) for stage in stages]

    def get_stage_scores(self, stage_id: str) -> List[Dict[str, Any]]:
        """Score rows of a stage joined with their team and player."""
        return [
            serialize_score(score, with_relations=True)
            for score in self.scores.find_by_stage(stage_id)
        ]

    def get_team_rankings(self, competition_id: str, stage_ids: List[str]) -> List[Dict[str, Any]]:
        """
        Aggregate team standings over a set of stages.

        Points and kills are summed and score rows counted per team. Teams
        are ordered by total points descending; equal totals keep the order
        in which teams were first seen (score rows ordered by id). Rank is
        the 1-based position.

        ``competition_id`` is accepted for API symmetry; the stage ids alone
        select the rows.
        """
        totals: Dict[str, Dict[str, Any]] = {}
        for score in self.scores.find_by_stages(stage_ids):
            entry = totals.get(score.team_id)
            if entry is None:
                entry = totals[score.team_id] = {
                    "team": serialize_team(score.team),
                    "totalPoints": 0.0,
                    "totalKills": 0,
                    "matches": 0,
                }
            entry["totalPoints"] += score.points or 0
            entry["totalKills"] += score.kills or 0
            entry["matches"] += 1

        ranked = sorted(totals.values(), key=lambda entry: entry["totalPoints"], reverse=True)
        return [{**entry, "rank": index + 1} for index, entry in enumerate(ranked)]

    def get_hero_stats(self, competition_id: str, stage_id: str, model_type: Optional[int] = None) -> List[Dict[str, Any]]:
        """Hero stats of a stage, most played first. ``model_type`` is ignored."""
        return [serialize_hero_stat(stat) for stat in self.hero_stats.find_ranked(competition_id, stage_id)]

    def get_weapon_stats(self, competition_id: str, stage_id: str, model_type: Optional[int] = None) -> List[Dict[str, Any]]:
        """Weapon stats of a stage, most picked first. ``model_type`` is ignored."""
        return [serialize_weapon_stat(stat) for stat in self.weapon_stats.find_ranked(competition_id, stage_id)]
