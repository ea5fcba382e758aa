"""Sync orchestrator for ingesting the upstream tournament API.

This orchestrator coordinates:
- Competition list sync
- Stage sync across every bracket variant (type x rank type)
- Team roster and player sync
- Per-stage score tables
- Per-stage hero and weapon statistics

Every write is a keyed upsert (see ``BaseRepository.merge``), so running any
operation twice with the same upstream payloads leaves the store unchanged.
Operations report failures through ``SyncResult`` and never retry; the only
operation that lets unexpected faults escape is ``sync_all``.

Sync order for a full run:
    competitions -> stages (+ scores/stats per stage) -> teams/players
    -> scores and stats for every stored stage
"""
import json
import logging
import math
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core import metrics
from app.models import Competition, Stage, Team
from app.repositories import (
    CompetitionRepository,
    StageRepository,
    TeamRepository,
    PlayerRepository,
    ScoreRepository,
    HeroStatRepository,
    WeaponStatRepository,
)
from app.repositories.score_repository import score_id, stat_id
from app.services.sync.client import UpstreamClient
from app.services.sync.envelope import extract_list, upstream_error_code
from app.services.sync.result import SyncResult
from app.services.sync.translations import (
    translate_error,
    translate_hero_name,
    translate_weapon_name,
)
from app.utils.timezone import utc_now

logger = logging.getLogger(__name__)

# Bracket variants queried for every competition
STAGE_TYPES = (1, 2)
RANK_TYPES = (0, 1, 2, 3)

UNKNOWN_TEAM_NAME = "Unknown Team"

# Upstream timestamps above this are milliseconds, below are seconds
_MILLISECONDS_THRESHOLD = 1e11


class InvalidTimestamp(ValueError):
    """An upstream date field could not be interpreted."""


# =============================================================================
# Lenient field parsing
# =============================================================================

def parse_timestamp(value: Any) -> datetime:
    """
    Convert an upstream date field into a naive UTC datetime.

    Accepts epoch seconds, epoch milliseconds (numbers or digit strings),
    ISO-8601 strings and datetimes. Missing values mean "now".

    Raises:
        InvalidTimestamp: If the value cannot be interpreted
    """
    if value is None or value == "":
        return utc_now()

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC).replace(tzinfo=None)
        return value

    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if abs(value) > _MILLISECONDS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, UTC).replace(tzinfo=None)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidTimestamp(f"Invalid timestamp: {value}") from e

    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise InvalidTimestamp(f"Invalid timestamp: {value}") from e
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(UTC).replace(tzinfo=None)
        return parsed

    raise InvalidTimestamp(f"Invalid timestamp: {value!r}")


def to_float(value: Any, default: float = 0.0) -> float:
    """Parse a loosely-typed number; anything unparseable becomes ``default``."""
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_int(value: Any, default: int = 0) -> int:
    """Parse a loosely-typed integer (fractions truncated)."""
    number = to_float(value, default=None)
    if number is None or not math.isfinite(number):
        return default
    return int(number)


def normalize_match_scores(raw: Any) -> List[Dict[str, Any]]:
    """Reshape ``match_score_list_v2`` into the stored per-match records."""
    if not isinstance(raw, list):
        return []
    return [
        {
            "gameNumber": match.get("game_number") or 0,
            "score": match.get("score") or 0,
            "rank": match.get("rank") or 0,
            "isWin": bool(match.get("is_win")),
            "isSaidian": bool(match.get("is_saidian")),
        }
        for match in raw
        if isinstance(match, dict)
    ]


class SyncOrchestrator:
    """
    Coordinates sync jobs between the upstream tournament API and the store.

    This is the main entry point for the data sync layer.
    All sync operations should go through this orchestrator.
    """

    def __init__(self, db: Session, client: Optional[UpstreamClient] = None):
        """
        Initialize the sync orchestrator.

        Args:
            db: SQLAlchemy database session
            client: Upstream client; created lazily when omitted
        """
        self.db = db
        self.competitions = CompetitionRepository(db)
        self.stages = StageRepository(db)
        self.teams = TeamRepository(db)
        self.players = PlayerRepository(db)
        self.scores = ScoreRepository(db)
        self.hero_stats = HeroStatRepository(db)
        self.weapon_stats = WeaponStatRepository(db)

        self._client = client
        self._owns_client = client is None

    @property
    def client(self) -> UpstreamClient:
        """Lazy load upstream client."""
        if self._client is None:
            self._client = UpstreamClient()
        return self._client

    # =========================================================================
    # Competitions
    # =========================================================================

    async def sync_single_competition(self, payload: Dict[str, Any]) -> SyncResult:
        """
        Upsert one competition from an upstream list record.

        Never raises: validation and persistence failures come back as a
        failed result and nothing is written.
        """
        payload = payload or {}
        competition_uuid = payload.get("competition_uuid")
        competition_name = payload.get("competition_name")

        if not competition_uuid or not competition_name:
            missing = [
                name for name, value in (
                    ("competition_uuid", competition_uuid),
                    ("competition_name", competition_name),
                ) if not value
            ]
            error = f"Missing required fields: {', '.join(missing)}"
            logger.warning(f"Skipping invalid competition data: {error}")
            return SyncResult.fail("Invalid competition data", error)

        try:
            start_date = parse_timestamp(payload.get("start_time"))
            end_date = parse_timestamp(payload.get("end_time"))
        except InvalidTimestamp:
            logger.warning(
                f"Invalid dates in competition {competition_uuid}: "
                f"start_time={payload.get('start_time')!r}, end_time={payload.get('end_time')!r}"
            )
            return SyncResult.fail("Invalid competition data", "Invalid date format")

        raw_type = payload.get("type")
        comp_type = raw_type if isinstance(raw_type, int) and not isinstance(raw_type, bool) else 0

        try:
            outcome = self.competitions.upsert(
                id=competition_uuid,
                name=competition_name,
                description=payload.get("competition_type") or "",
                start_date=start_date,
                end_date=end_date,
                type=comp_type,
                nbpl=comp_type == 1,
            )
            self.competitions.save()
        except Exception as e:
            self.competitions.rollback()
            logger.error(f"Error processing competition {competition_uuid}: {e}")
            return SyncResult.fail("Failed to sync competition", str(e))

        competition = outcome.instance
        logger.info(
            f"Synced competition {competition.name} ({competition.id}) "
            f"type={competition.type} nbpl={competition.nbpl} created={outcome.created}"
        )
        return SyncResult.ok(f"Successfully synced competition: {competition.name}")

    async def sync_competitions(self) -> SyncResult:
        """
        Fetch the competition list and upsert every record.

        Returns:
            Result whose message carries the success/failure tally
        """
        logger.info("Starting competition sync")
        try:
            payload = await self.client.fetch_competitions()
        except Exception as e:
            logger.error(f"Competition sync failed: {e}")
            metrics.record_sync_result("competitions", False)
            return SyncResult.fail("Competition sync failed", str(e))

        envelope = extract_list(payload, allow_bare_data=False)
        if not envelope.ok:
            logger.error(f"Unexpected competition list response: {envelope.reason}")
            metrics.record_sync_result("competitions", False)
            return SyncResult.fail("Competition sync failed", envelope.reason)

        logger.info(f"Found {len(envelope.items)} competitions to sync")

        success_count = 0
        failure_count = 0
        for record in envelope.items:
            result = await self.sync_single_competition(record if isinstance(record, dict) else {})
            if result.success:
                success_count += 1
            else:
                failure_count += 1
                logger.error(f"Failed to sync competition {record!r}: {result.error}")

        message = f"Competition sync completed. Success: {success_count}, Failed: {failure_count}"
        logger.info(message)
        metrics.record_sync_result("competitions", True)
        return SyncResult.ok(
            message,
            error=f"{failure_count} competitions failed to sync" if failure_count else None,
        )

    # =========================================================================
    # Stages
    # =========================================================================

    async def sync_stages(self, competition_id: str) -> SyncResult:
        """
        Sync the stages of a competition for every type x rank type pair.

        The competition must already exist; otherwise no upstream call is
        made. Each stored stage is immediately followed by its scores, hero
        stats and weapon stats. Failures of one pair or one stage are logged
        and skipped.
        """
        if not self.competitions.exists(competition_id):
            message = f"Competition not found with ID: {competition_id}"
            logger.error(message)
            return SyncResult.fail(message)

        logger.info(f"Syncing stages for competition {competition_id}")
        synced = 0
        skipped = 0

        for stage_type in STAGE_TYPES:
            for rank_type in RANK_TYPES:
                try:
                    payload = await self.client.fetch_stages(competition_id, stage_type, rank_type)
                except Exception as e:
                    logger.error(
                        f"Error fetching stages for type {stage_type} and rank type {rank_type}: {e}"
                    )
                    continue

                envelope = extract_list(payload, allow_bare_data=False)
                if not envelope.ok:
                    logger.warning(f"No stages found for type {stage_type} and rank type {rank_type}")
                    continue

                logger.info(
                    f"Found {len(envelope.items)} stages for type {stage_type} and rank type {rank_type}"
                )
                for record in envelope.items:
                    stage = self._upsert_stage(record, competition_id, stage_type, rank_type)
                    if stage is None:
                        skipped += 1
                        continue
                    synced += 1
                    await self._sync_stage_children(competition_id, stage, record)

        metrics.record_sync_result("stages", True)
        return SyncResult.ok(
            f"Stages sync completed for competition {competition_id}",
            synced=synced,
            skipped=skipped,
        )

    def _upsert_stage(
        self,
        record: Any,
        competition_id: str,
        stage_type: int,
        rank_type: int
    ) -> Optional[Stage]:
        """Upsert one stage record; returns None when it was skipped."""
        if not isinstance(record, dict) or not record.get("stage_uuid") or not record.get("stage_name"):
            logger.warning(f"Skipping invalid stage data: {record!r}")
            return None

        try:
            outcome = self.stages.upsert(
                id=record["stage_uuid"],
                name=record["stage_name"],
                type=to_int(record.get("type"), stage_type),
                rank_type=to_int(record.get("rank_type"), rank_type),
                start_date=parse_timestamp(record.get("start_time")),
                end_date=parse_timestamp(record.get("end_time")),
                competition_id=competition_id,
            )
            self.stages.save()
        except Exception as e:
            self.stages.rollback()
            logger.error(f"Error processing stage {record.get('stage_uuid')}: {e}")
            return None

        logger.info(f"Synced stage {outcome.instance.name} ({outcome.instance.id})")
        return outcome.instance

    async def _sync_stage_children(self, competition_id: str, stage: Stage, record: Dict[str, Any]):
        """Scores, hero stats and weapon stats for a freshly stored stage."""
        embedded = record.get("rank_list")
        if isinstance(embedded, list):
            for row in embedded:
                result = await self.sync_scores(stage.id, team_data=row)
                if not result.success:
                    logger.warning(f"Embedded score for stage {stage.id} failed: {result.error}")
        else:
            result = await self.sync_scores(stage.id)
            if not result.success:
                logger.warning(f"Score sync for stage {stage.id} failed: {result.message}")

        for step in (self.sync_hero_stats, self.sync_weapon_stats):
            result = await step(competition_id, stage.id)
            if not result.success:
                logger.warning(f"{step.__name__} for stage {stage.id} failed: {result.message}")

    def get_stages_for_competition(self, competition_id: str) -> List[Stage]:
        """Stored stages of a competition."""
        return self.stages.find_by_competition(competition_id)

    # =========================================================================
    # Teams and players
    # =========================================================================

    async def sync_teams_and_players(self, competition_id: str) -> SyncResult:
        """
        Sync the team roster of a stored competition and each team's players.

        The competition must already exist; otherwise no upstream call is
        made.
        """
        competition = self.competitions.find_by_id(competition_id)
        if competition is None:
            message = f"Competition not found with ID: {competition_id}"
            logger.error(message)
            return SyncResult.fail(message)

        logger.info(f"Syncing teams for competition {competition.name} ({competition_id})")
        try:
            payload = await self.client.fetch_teams(competition_id)
        except Exception as e:
            logger.error(f"Teams and players sync failed: {e}")
            metrics.record_sync_result("teams", False)
            return SyncResult.fail(f"Teams and players sync failed: {e}", str(e))

        envelope = extract_list(payload)
        if not envelope.ok or not envelope.items:
            logger.error("No teams found in response")
            metrics.record_sync_result("teams", False)
            return SyncResult.fail(
                "No teams found in response",
                None if envelope.ok else envelope.reason,
            )

        logger.info(f"Found {len(envelope.items)} teams to sync")

        success_count = 0
        failure_count = 0
        for record in envelope.items:
            try:
                team = self._upsert_team(record, competition)
                if team is None:
                    failure_count += 1
                    continue
                await self._sync_team_players(competition_id, team)
                success_count += 1
            except Exception as e:
                self.teams.rollback()
                uuid = record.get("uuid") if isinstance(record, dict) else None
                logger.error(f"Error processing team {uuid}: {e}")
                failure_count += 1

        message = f"Teams sync completed. Success: {success_count}, Failures: {failure_count}"
        logger.info(message)
        metrics.record_sync_result("teams", success_count > 0)
        return SyncResult(
            success=success_count > 0,
            message=message,
            details={"synced": success_count, "failed": failure_count},
        )

    def _upsert_team(self, record: Any, competition: Competition) -> Optional[Team]:
        """Upsert a roster record; optional fields keep stored values when absent."""
        if not isinstance(record, dict) or not record.get("uuid") or not record.get("name"):
            logger.error(f"Invalid team data: {record!r}")
            return None

        existing = self.teams.find_by_id(record["uuid"])
        logo = record.get("team_logo_url") or record.get("logo")
        points = record.get("points")
        rank = record.get("rank")

        outcome = self.teams.upsert(
            id=record["uuid"],
            name=record["name"],
            logo=logo if logo else (existing.logo if existing else None),
            points=to_float(points) if points is not None else (existing.points if existing else 0),
            rank=(to_int(rank) or None) if rank is not None else (existing.rank if existing else None),
            competition_id=competition.id,
        )
        self.teams.save()
        logger.info(f"Synced team {outcome.instance.name} ({outcome.instance.id})")
        return outcome.instance

    async def _sync_team_players(self, competition_id: str, team: Team) -> int:
        """Fetch and upsert the players of one team; returns the number stored."""
        payload = await self.client.fetch_team_players(competition_id, team.id)
        envelope = extract_list(payload)
        if not envelope.ok:
            logger.error(f"Invalid players response for team {team.id}: {envelope.reason}")
            return 0

        stored = 0
        for record in envelope.items:
            if not isinstance(record, dict) or not record.get("uuid") or not record.get("name"):
                logger.error(f"Invalid player data: {record!r}")
                continue
            try:
                self.players.upsert(
                    id=record["uuid"],
                    name=record["name"],
                    avatar=record.get("avatar") or None,
                    team_id=team.id,
                    competition_id=competition_id,
                )
                self.players.save()
                stored += 1
            except Exception as e:
                self.players.rollback()
                logger.error(f"Error processing player {record.get('uuid')}: {e}")

        logger.info(f"Synced {stored} players for team {team.name}")
        return stored

    # =========================================================================
    # Scores
    # =========================================================================

    async def sync_scores(self, stage_id: str, team_data: Optional[Dict[str, Any]] = None) -> SyncResult:
        """
        Sync the score table of a stored stage.

        Args:
            stage_id: Stage to sync
            team_data: A single ``rank_list`` row; when omitted the whole
                table is fetched from upstream
        """
        stage = self.stages.find_by_id(stage_id)
        if stage is None:
            return SyncResult.fail("Stage not found", "Stage not found")

        if team_data is not None:
            try:
                self.sync_team_score(stage, team_data)
            except Exception as e:
                self.scores.rollback()
                logger.error(f"Error syncing scores for stage {stage_id}: {e}")
                return SyncResult.fail("Scores sync failed", str(e))
            return SyncResult.ok(
                f"Score synced successfully for team {team_data.get('team_uuid')} in stage {stage_id}"
            )

        logger.info(f"Syncing scores for stage {stage_id}")
        try:
            payload = await self.client.fetch_stage_scores(
                stage.id,
                stage.competition_id,
                stage.type or 1,
                stage.rank_type or 0,
            )
        except Exception as e:
            logger.error(f"Error syncing scores for stage {stage_id}: {e}")
            metrics.record_sync_result("scores", False)
            return SyncResult.fail("Scores sync failed", str(e))

        envelope = extract_list(payload, key="rank_list")
        if not envelope.ok:
            logger.error(f"Invalid team data response format: {envelope.reason}")
            metrics.record_sync_result("scores", False)
            return SyncResult.fail("Invalid API response format", envelope.reason)

        if not envelope.items:
            logger.warning("No teams found in response")
            return SyncResult.ok("No teams found to sync")

        synced, failed = 0, 0
        for row in envelope.items:
            try:
                self.sync_team_score(stage, row)
                synced += 1
            except Exception as e:
                self.scores.rollback()
                failed += 1
                team_uuid = row.get("team_uuid") if isinstance(row, dict) else None
                logger.error(f"Error syncing score for team {team_uuid} in stage {stage_id}: {e}")

        metrics.record_sync_result("scores", True)
        return SyncResult.ok(
            f"Scores synced successfully for stage {stage_id}",
            error=f"{failed} team scores failed to sync" if failed else None,
            synced=synced,
            failed=failed,
        )

    def sync_team_score(self, stage: Stage, team_data: Dict[str, Any]):
        """
        Upsert one team's score row within a stage.

        Creates a placeholder team when the team is unknown and resolves a
        player so that the score always has its three parents.

        Raises:
            ValueError: If ``team_uuid`` is missing
        """
        if not isinstance(team_data, dict) or not team_data.get("team_uuid"):
            raise ValueError("Missing team_uuid in team data")

        team_uuid = team_data["team_uuid"]
        team = self.teams.find_by_id(team_uuid)
        if team is None:
            logger.info(f"Team {team_uuid} not found, creating placeholder team")
            team = self.teams.create(
                id=team_uuid,
                name=team_data.get("team_name") or UNKNOWN_TEAM_NAME,
                competition_id=stage.competition_id,
                points=to_float(team_data.get("score")),
                rank=to_int(team_data.get("rank")) or None,
            )

        player_id = self._resolve_player_id(team, team_data.get("player_uuid"))
        match_scores = normalize_match_scores(team_data.get("match_score_list_v2"))
        if not match_scores:
            logger.debug(f"No match scores found for team {team_uuid}")

        outcome = self.scores.upsert(
            id=score_id(stage.id, team_uuid),
            points=to_float(team_data.get("score")),
            kills=to_int(team_data.get("kill_times")),
            deaths=to_int(team_data.get("death_times")),
            assists=to_int(team_data.get("assist_times")),
            match_scores=json.dumps(match_scores),
            stage_id=stage.id,
            team_id=team_uuid,
            player_id=player_id,
        )
        self.scores.save()

        score = outcome.instance
        logger.info(
            f"Synced score {score.id}: points={score.points} kills={score.kills} "
            f"deaths={score.deaths} assists={score.assists}"
        )
        return score

    def _resolve_player_id(self, team: Team, player_uuid: Optional[str]) -> str:
        """Referenced player if stored, else the team's first player, else its default player."""
        if player_uuid and self.players.exists(player_uuid):
            return player_uuid

        player = self.players.first_of_team(team.id)
        if player is None:
            player = self.players.get_or_create_default(team)
        return player.id

    # =========================================================================
    # Hero and weapon statistics
    # =========================================================================

    async def sync_hero_stats(self, competition_id: str, stage_id: str) -> SyncResult:
        """Sync aggregate hero statistics of a stored stage."""
        return await self._sync_stage_stats_table(
            kind="hero",
            stage_id=stage_id,
            fetch_name="fetch_hero_stats",
            upsert_row=self._upsert_hero_stat,
        )

    async def sync_weapon_stats(self, competition_id: str, stage_id: str) -> SyncResult:
        """Sync aggregate weapon statistics of a stored stage."""
        return await self._sync_stage_stats_table(
            kind="weapon",
            stage_id=stage_id,
            fetch_name="fetch_weapon_stats",
            upsert_row=self._upsert_weapon_stat,
        )

    async def _sync_stage_stats_table(self, kind: str, stage_id: str, fetch_name: str, upsert_row) -> SyncResult:
        label = kind.capitalize()
        stage = self.stages.find_by_id(stage_id)
        if stage is None:
            return SyncResult.fail("Stage not found", "Stage not found")

        logger.info(f"Syncing {kind} stats for stage {stage_id}")
        try:
            payload = await getattr(self.client, fetch_name)(stage.competition_id, stage_id)
        except Exception as e:
            logger.error(f"Error syncing {kind} stats for stage {stage_id}: {e}")
            metrics.record_sync_result(f"{kind}_stats", False)
            return SyncResult.fail(f"{label} stats sync failed", str(e))

        code = upstream_error_code(payload)
        if code != 0:
            message = translate_error(code, payload.get("message") if isinstance(payload, dict) else None)
            logger.error(f"API Error: {message}")
            metrics.record_sync_result(f"{kind}_stats", False)
            return SyncResult.fail(message)

        envelope = extract_list(payload, allow_bare_data=False)
        if not envelope.ok:
            logger.error(f"Invalid {kind} stats response format: {envelope.reason}")
            metrics.record_sync_result(f"{kind}_stats", False)
            return SyncResult.fail("Invalid API response format", envelope.reason)

        stored = 0
        for row in envelope.items:
            try:
                upsert_row(stage_id, row)
                stored += 1
            except Exception as e:
                self.db.rollback()
                logger.error(f"Error processing {kind} stat {row!r}: {e}")

        metrics.record_sync_result(f"{kind}_stats", True)
        return SyncResult.ok(f"{label} stats sync completed for stage {stage_id}", stored=stored)

    def _upsert_hero_stat(self, stage_id: str, row: Dict[str, Any]):
        hero_name = translate_hero_name(row.get("hero_name"))
        if not hero_name:
            raise ValueError("Missing hero_name")

        self.hero_stats.upsert(
            id=stat_id(stage_id, hero_name),
            hero_name=hero_name,
            hero_image=row.get("hero_img"),
            battle_amount=to_int(row.get("battle_amount")),
            kill_times_avg=to_float(row.get("kill_times_avg")),
            assist_avg=to_float(row.get("assist_avg")),
            cure_avg=to_float(row.get("cure_avg")),
            damage_avg=to_float(row.get("damage_avg")),
            death_avg=to_float(row.get("death_avg")),
            total_live_time_avg=to_float(row.get("total_live_time_avg")),
            score_top1_battle_amount=to_int(row.get("score_top1_battle_amount")),
            rescue_times_avg=to_float(row.get("rescue_times_avg")),
            score_top1_rate=to_float(row.get("score_top1_rate")),
            rank=to_int(row.get("rank")),
            stage_id=stage_id,
        )
        self.hero_stats.save()

    def _upsert_weapon_stat(self, stage_id: str, row: Dict[str, Any]):
        weapon_name = translate_weapon_name(row.get("weapon_name"))
        if not weapon_name:
            raise ValueError("Missing weapon_name")

        self.weapon_stats.upsert(
            id=stat_id(stage_id, weapon_name),
            weapon_name=weapon_name,
            pick_rate=to_float(row.get("pick_rate")),
            kill_rate=to_float(row.get("kill_rate")),
            stage_id=stage_id,
        )
        self.weapon_stats.save()

    # =========================================================================
    # Composite operations
    # =========================================================================

    async def sync_competition_detail(self, competition_id: str, competition_name: str) -> SyncResult:
        """
        Sync one competition with all related data.

        The competition shell is upserted first (dates default to now), then
        stages, teams/players, and scores plus stats for every stored stage.
        """
        logger.info(f"Syncing competition {competition_id} ({competition_name}) with all related data")
        competition_result = await self.sync_single_competition({
            "competition_uuid": competition_id,
            "competition_name": competition_name,
            "type": 0,
        })
        if not competition_result.success:
            return competition_result

        stages_result = await self.sync_stages(competition_id)
        teams_result = await self.sync_teams_and_players(competition_id)

        for stage in self.get_stages_for_competition(competition_id):
            await self.sync_scores(stage.id)
            await self.sync_hero_stats(competition_id, stage.id)
            await self.sync_weapon_stats(competition_id, stage.id)

        return SyncResult.ok(
            f"Successfully synced competition {competition_name} with all related data",
            competition=competition_result,
            stages=stages_result,
            teams=teams_result,
        )

    async def sync_stage_stats(self, stage_id: str, competition_id: Optional[str] = None) -> SyncResult:
        """
        Scores, then hero stats, then weapon stats for one stage.

        Stops at the first failing step and returns its result.
        """
        if competition_id is None:
            stage = self.stages.find_by_id(stage_id)
            competition_id = stage.competition_id if stage else ""

        scores_result = await self.sync_scores(stage_id)
        if not scores_result.success:
            logger.error(f"Failed to sync scores, skipping stats sync: {scores_result.message}")
            return scores_result

        hero_result = await self.sync_hero_stats(competition_id, stage_id)
        if not hero_result.success:
            logger.error(f"Failed to sync hero stats, skipping weapon stats: {hero_result.message}")
            return hero_result

        return await self.sync_weapon_stats(competition_id, stage_id)

    async def sync_all(self) -> SyncResult:
        """
        Full sequential sync of everything reachable from the competition list.

        Nested operation failures are logged and the loop continues.
        Unexpected faults (e.g. the database going away) propagate.
        """
        logger.info("Starting full sync process")
        started = datetime.now(UTC)

        competitions_result = await self.sync_competitions()
        logger.info(f"Competitions sync result: {competitions_result.message}")

        competitions = self.competitions.find_all()
        logger.info(f"Found {len(competitions)} competitions in database")

        stage_count = 0
        for competition in competitions:
            logger.info(f"Processing competition {competition.name} ({competition.id})")

            stages_result = await self.sync_stages(competition.id)
            logger.info(f"Stages sync result for {competition.id}: {stages_result.message}")

            teams_result = await self.sync_teams_and_players(competition.id)
            logger.info(f"Teams sync result for {competition.id}: {teams_result.message}")

            for stage in self.get_stages_for_competition(competition.id):
                stage_count += 1
                results = (
                    await self.sync_scores(stage.id),
                    await self.sync_hero_stats(competition.id, stage.id),
                    await self.sync_weapon_stats(competition.id, stage.id),
                )
                for result in results:
                    if not result.success:
                        logger.warning(f"Stage {stage.id}: {result.message}")

        duration_ms = int((datetime.now(UTC) - started).total_seconds() * 1000)
        logger.info(f"Full sync completed successfully ({duration_ms}ms)")
        metrics.record_sync_result("all", True)
        return SyncResult.ok(
            "Full sync completed successfully",
            competitions=len(competitions),
            stages=stage_count,
            duration_ms=duration_ms,
        )

    async def cleanup(self):
        """Close any open connections."""
        if self._client is not None and self._owns_client:
            await self._client.close()
