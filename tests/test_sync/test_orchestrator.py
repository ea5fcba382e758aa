"""Integration tests for SyncOrchestrator.

Test Strategy:
1. Test competition sync validation, tallies and transport failures
2. Test stage sync across bracket variants
3. Test team/player sync, including the not-found guard
4. Test score sync (placeholder teams, player resolution, idempotence)
5. Test hero/weapon stat sync and upstream error translation
6. Test composite operations (stage stats, competition detail, full sync)

Each test follows the pattern:
- Given: Database with sample data and a mocked upstream client
- When: SyncOrchestrator method is called
- Then: Correct result object and database state
"""
import json
from datetime import datetime

import httpx
import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.services.sync.orchestrator import SyncOrchestrator
from app.models import Competition, Stage, Team, Player, Score, HeroStat, WeaponStat
from app.utils.timezone import utc_now


def stage_list(*stages):
    return {"code": 0, "data": {"list": list(stages)}}


class TestSyncSingleCompetition:
    """Validation and mapping of a single competition record."""

    @pytest.mark.asyncio
    async def test_creates_competition_from_payload(self, db_session: Session, mock_client):
        """Should map upstream fields onto a Competition row."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_single_competition({
            "competition_uuid": "c1",
            "competition_name": "Spring Cup",
            "competition_type": "league",
            "start_time": 1709294400,
            "end_time": 1711972800000,
            "type": 1,
        })

        assert result.success is True
        assert result.message == "Successfully synced competition: Spring Cup"
        competition = db_session.get(Competition, "c1")
        assert competition.name == "Spring Cup"
        assert competition.description == "league"
        assert competition.start_date == datetime(2024, 3, 1, 12, 0, 0)
        assert competition.end_date == datetime(2024, 4, 1, 12, 0, 0)
        assert competition.type == 1
        assert competition.nbpl is True

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, db_session: Session, mock_client):
        """Should fail without writing when name is missing."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_single_competition({"competition_uuid": "c1"})

        assert result.success is False
        assert result.message == "Invalid competition data"
        assert result.error.startswith("Missing required fields")
        assert "competition_name" in result.error
        assert db_session.query(Competition).count() == 0

    @pytest.mark.asyncio
    async def test_missing_uuid_and_name(self, db_session: Session, mock_client):
        """Should list both missing fields."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_single_competition({})

        assert result.success is False
        assert "competition_uuid" in result.error
        assert "competition_name" in result.error

    @pytest.mark.asyncio
    async def test_invalid_date(self, db_session: Session, mock_client):
        """Should reject unparseable dates."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_single_competition({
            "competition_uuid": "c1",
            "competition_name": "Cup",
            "start_time": "not-a-date",
        })

        assert result.success is False
        assert result.message == "Invalid competition data"
        assert result.error == "Invalid date format"
        assert db_session.query(Competition).count() == 0

    @pytest.mark.asyncio
    async def test_non_integer_type_defaults_to_zero(self, db_session: Session, mock_client):
        """Should store type 0 and nbpl False when type is not an integer."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        await orchestrator.sync_single_competition({
            "competition_uuid": "c1",
            "competition_name": "Cup",
            "type": "1",
        })

        competition = db_session.get(Competition, "c1")
        assert competition.type == 0
        assert competition.nbpl is False
        assert competition.description == ""

    @pytest.mark.asyncio
    async def test_missing_dates_use_sync_time(self, db_session: Session, mock_client):
        """Should store the sync time for absent dates and refresh it on re-sync."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)
        payload = {"competition_uuid": "c1", "competition_name": "Cup", "type": 1}

        before = utc_now()
        await orchestrator.sync_single_competition(payload)
        first_start = db_session.get(Competition, "c1").start_date
        await orchestrator.sync_single_competition(payload)
        competition = db_session.get(Competition, "c1")

        assert before <= first_start <= competition.start_date <= utc_now()
        assert (competition.name, competition.type, competition.nbpl) == ("Cup", 1, True)

    @pytest.mark.asyncio
    async def test_resync_updates_in_place(self, db_session: Session, mock_client):
        """Should update the same row when synced again."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)
        payload = {"competition_uuid": "c1", "competition_name": "Cup", "start_time": 1709294400,
                   "end_time": 1709294400, "type": 2}

        await orchestrator.sync_single_competition(payload)
        await orchestrator.sync_single_competition({**payload, "competition_name": "Cup Renamed"})

        assert db_session.query(Competition).count() == 1
        assert db_session.get(Competition, "c1").name == "Cup Renamed"


class TestSyncCompetitions:
    """Competition list sync."""

    @pytest.mark.asyncio
    async def test_tallies_successes_and_failures(self, db_session: Session, mock_client):
        """Should report counts and set error when a record fails."""
        mock_client.fetch_competitions.return_value = {
            "code": 0,
            "data": {"list": [
                {"competition_uuid": "c1", "competition_name": "Cup", "start_time": 1709294400,
                 "end_time": 1709294400, "type": 1},
                {"competition_name": "No Id"},
            ]},
        }
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_competitions()

        assert result.success is True
        assert result.message == "Competition sync completed. Success: 1, Failed: 1"
        assert result.error == "1 competitions failed to sync"
        assert db_session.query(Competition).count() == 1

    @pytest.mark.asyncio
    async def test_accepts_top_level_list(self, db_session: Session, mock_client):
        """Should read competitions from a top-level list key."""
        mock_client.fetch_competitions.return_value = {
            "list": [{"competition_uuid": "c1", "competition_name": "Cup"}]
        }
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_competitions()

        assert result.message == "Competition sync completed. Success: 1, Failed: 0"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_transport_failure(self, db_session: Session, mock_client):
        """Should convert a transport error into a failed result."""
        mock_client.fetch_competitions.side_effect = httpx.ConnectError("connection refused")
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_competitions()

        assert result.success is False
        assert result.message == "Competition sync failed"
        assert "connection refused" in result.error

    @pytest.mark.asyncio
    async def test_unexpected_envelope(self, db_session: Session, mock_client):
        """Should fail on an envelope without a list."""
        mock_client.fetch_competitions.return_value = {"data": {"total": 0}}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_competitions()

        assert result.success is False
        assert result.error == "Invalid API response format"


class TestSyncStages:
    """Stage sync across type x rank type."""

    @pytest.mark.asyncio
    async def test_syncs_stage_and_children(self, db_session: Session, mock_client, sample_competition):
        """Should store stages and then sync their scores and stats."""
        def fetch_stages(competition_id, stage_type, rank_type):
            if (stage_type, rank_type) == (1, 0):
                return stage_list({
                    "stage_uuid": "new-s",
                    "stage_name": "Finals",
                    "type": 1,
                    "rank_type": 0,
                    "start_time": 1709294400,
                    "end_time": 1709294400,
                })
            if (stage_type, rank_type) == (2, 3):
                raise httpx.ConnectError("timeout")
            return {"code": 0, "data": {}}

        mock_client.fetch_stages.side_effect = fetch_stages
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_stages("comp-1")

        assert result.success is True
        assert result.message == "Stages sync completed for competition comp-1"
        assert mock_client.fetch_stages.await_count == 8
        stage = db_session.get(Stage, "new-s")
        assert stage.name == "Finals"
        assert stage.competition_id == "comp-1"
        mock_client.fetch_stage_scores.assert_awaited_once_with("new-s", "comp-1", 1, 0)
        mock_client.fetch_hero_stats.assert_awaited_once_with("comp-1", "new-s")
        mock_client.fetch_weapon_stats.assert_awaited_once_with("comp-1", "new-s")

    @pytest.mark.asyncio
    async def test_skips_invalid_stage(self, db_session: Session, mock_client, sample_competition):
        """Should skip stage records without uuid or name."""
        mock_client.fetch_stages.return_value = stage_list({"stage_uuid": "x"})
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_stages("comp-1")

        assert result.success is True
        assert db_session.query(Stage).count() == 0
        assert result.details["skipped"] == 8

    @pytest.mark.asyncio
    async def test_missing_type_falls_back_to_query(self, db_session: Session, mock_client, sample_competition):
        """Should use the queried type/rank type when the record omits them."""
        def fetch_stages(competition_id, stage_type, rank_type):
            if (stage_type, rank_type) == (2, 1):
                return stage_list({"stage_uuid": "s-x", "stage_name": "Group"})
            return {"code": 0, "data": {}}

        mock_client.fetch_stages.side_effect = fetch_stages
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        await orchestrator.sync_stages("comp-1")

        stage = db_session.get(Stage, "s-x")
        assert stage.type == 2
        assert stage.rank_type == 1

    @pytest.mark.asyncio
    async def test_embedded_rank_list(self, db_session: Session, mock_client, sample_competition, sample_teams):
        """Should sync embedded rank_list rows instead of fetching the table."""
        def fetch_stages(competition_id, stage_type, rank_type):
            if (stage_type, rank_type) == (1, 0):
                return stage_list({
                    "stage_uuid": "s-e",
                    "stage_name": "Embedded",
                    "rank_list": [{"team_uuid": "T1", "score": 20, "kill_times": 4}],
                })
            return {"code": 0, "data": {}}

        mock_client.fetch_stages.side_effect = fetch_stages
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        await orchestrator.sync_stages("comp-1")

        mock_client.fetch_stage_scores.assert_not_awaited()
        score = db_session.get(Score, "s-e-T1")
        assert score.points == 20
        assert score.kills == 4

    @pytest.mark.asyncio
    async def test_unknown_competition_makes_no_call(self, db_session: Session, mock_client):
        """Should fail fast and store nothing when the competition is unknown."""
        mock_client.fetch_stages.return_value = stage_list({"stage_uuid": "orphan", "stage_name": "Orphan"})
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_stages("nope")

        assert result.success is False
        assert result.message == "Competition not found with ID: nope"
        mock_client.fetch_stages.assert_not_called()
        assert db_session.query(Stage).count() == 0

    @pytest.mark.asyncio
    async def test_resync_is_idempotent(self, db_session: Session, mock_client, sample_competition):
        """Should leave the same stage rows with the same fields after a second sync."""
        def fetch_stages(competition_id, stage_type, rank_type):
            if (stage_type, rank_type) == (1, 0):
                return stage_list(
                    {"stage_uuid": "st-a", "stage_name": "Day 1", "start_time": 1709294400,
                     "end_time": 1709380800},
                    {"stage_uuid": "st-b", "stage_name": "Day 2", "type": 2, "rank_type": 1,
                     "start_time": 1709380800000, "end_time": 1709467200000},
                )
            return {"code": 0, "data": {}}

        mock_client.fetch_stages.side_effect = fetch_stages
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        def snapshot():
            return {
                s.id: (s.name, s.type, s.rank_type, s.start_date, s.end_date, s.competition_id)
                for s in db_session.query(Stage).all()
            }

        await orchestrator.sync_stages("comp-1")
        first = snapshot()
        await orchestrator.sync_stages("comp-1")
        second = snapshot()

        assert first == second
        assert sorted(first) == ["st-a", "st-b"]
        assert first["st-b"][1:3] == (2, 1)


class TestReferentialIntegrity:
    """Foreign keys are enforced on SQLite."""

    def test_orphan_stage_rejected(self, db_session: Session):
        """Should refuse a stage whose competition does not exist."""
        db_session.add(Stage(
            id="orphan", name="Orphan", type=1, rank_type=0,
            start_date=datetime(2024, 3, 1), end_date=datetime(2024, 3, 2),
            competition_id="missing"
        ))

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

        assert db_session.query(Stage).count() == 0

    @pytest.mark.asyncio
    async def test_placeholder_team_requires_stored_stage(self, db_session: Session, mock_client):
        """Should not create placeholder teams or players for an unknown stage."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_scores("missing", team_data={"team_uuid": "T9"})

        assert result.success is False
        assert db_session.query(Team).count() == 0
        assert db_session.query(Player).count() == 0


class TestSyncTeamsAndPlayers:
    """Team roster sync."""

    @pytest.mark.asyncio
    async def test_unknown_competition_makes_no_call(self, db_session: Session, mock_client):
        """Should fail fast without touching upstream."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_teams_and_players("nope")

        assert result.success is False
        assert result.message == "Competition not found with ID: nope"
        mock_client.fetch_teams.assert_not_called()
        mock_client.fetch_team_players.assert_not_called()

    @pytest.mark.asyncio
    async def test_syncs_teams_and_players(self, db_session: Session, mock_client, sample_competition):
        """Should upsert valid teams and their players and skip invalid records."""
        mock_client.fetch_teams.return_value = {
            "code": 0,
            "data": [
                {"uuid": "T9", "name": "Nine", "team_logo_url": "http://logo/9.png", "points": "12", "rank": 3},
                {"name": "No Uuid"},
            ],
        }
        mock_client.fetch_team_players.return_value = {
            "code": 0,
            "data": {"list": [
                {"uuid": "P9", "name": "Niner", "avatar": "a.png"},
                {"uuid": "P10"},
            ]},
        }
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_teams_and_players("comp-1")

        assert result.success is True
        assert result.message == "Teams sync completed. Success: 1, Failures: 1"
        team = db_session.get(Team, "T9")
        assert team.logo == "http://logo/9.png"
        assert team.points == 12
        assert team.rank == 3
        player = db_session.get(Player, "P9")
        assert player.team_id == "T9"
        assert player.competition_id == "comp-1"
        assert player.avatar == "a.png"
        assert db_session.get(Player, "P10") is None
        mock_client.fetch_team_players.assert_awaited_once_with("comp-1", "T9")

    @pytest.mark.asyncio
    async def test_resync_keeps_stored_optional_fields(self, db_session: Session, mock_client, sample_competition):
        """Should not reset logo/points/rank when a later roster omits them."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)
        mock_client.fetch_teams.return_value = {"data": {"list": [
            {"uuid": "T9", "name": "Nine", "team_logo_url": "http://logo/9.png", "points": 7, "rank": 2}
        ]}}
        await orchestrator.sync_teams_and_players("comp-1")

        mock_client.fetch_teams.return_value = {"data": {"list": [{"uuid": "T9", "name": "Nine v2"}]}}
        await orchestrator.sync_teams_and_players("comp-1")

        team = db_session.get(Team, "T9")
        assert team.name == "Nine v2"
        assert team.logo == "http://logo/9.png"
        assert team.points == 7
        assert team.rank == 2

    @pytest.mark.asyncio
    async def test_no_teams(self, db_session: Session, mock_client, sample_competition):
        """Should fail when upstream has no teams."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_teams_and_players("comp-1")

        assert result.success is False
        assert result.message == "No teams found in response"

    @pytest.mark.asyncio
    async def test_all_teams_invalid(self, db_session: Session, mock_client, sample_competition):
        """Should report failure when no team could be synced."""
        mock_client.fetch_teams.return_value = {"data": {"list": [{"name": "x"}]}}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_teams_and_players("comp-1")

        assert result.success is False
        assert result.message == "Teams sync completed. Success: 0, Failures: 1"


class TestSyncScores:
    """Stage score table sync."""

    @pytest.mark.asyncio
    async def test_stage_not_found(self, db_session: Session, mock_client):
        """Should fail without fetching when the stage is unknown."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_scores("missing")

        assert result.success is False
        assert result.message == "Stage not found"
        mock_client.fetch_stage_scores.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_rank_list(self, db_session: Session, mock_client, sample_stages):
        """Should succeed with nothing to sync."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_scores("s1")

        assert result.success is True
        assert result.message == "No teams found to sync"

    @pytest.mark.asyncio
    async def test_fetch_all_creates_scores(self, db_session: Session, mock_client, sample_stages, sample_teams):
        """Should create one score per team, with placeholder teams and default players."""
        mock_client.fetch_stage_scores.return_value = {
            "code": 0,
            "data": {"rank_list": [
                {
                    "team_uuid": "T1",
                    "score": "12.5",
                    "kill_times": 3,
                    "death_times": "2",
                    "assist_times": "abc",
                    "player_uuid": "P1",
                    "match_score_list_v2": [
                        {"game_number": 1, "score": 8, "rank": 2, "is_win": 0, "is_saidian": 1},
                    ],
                },
                {"team_uuid": "T3", "team_name": "Three", "score": 4, "rank": 5},
            ]},
        }
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_scores("s1")

        assert result.success is True
        assert result.message == "Scores synced successfully for stage s1"
        mock_client.fetch_stage_scores.assert_awaited_once_with("s1", "comp-1", 1, 0)

        score = db_session.get(Score, "s1-T1")
        assert score.points == 12.5
        assert score.kills == 3
        assert score.deaths == 2
        assert score.assists == 0
        assert score.player_id == "P1"
        assert json.loads(score.match_scores) == [
            {"gameNumber": 1, "score": 8, "rank": 2, "isWin": False, "isSaidian": True}
        ]

        placeholder = db_session.get(Team, "T3")
        assert placeholder.name == "Three"
        assert placeholder.points == 4
        assert placeholder.rank == 5
        assert placeholder.competition_id == "comp-1"

        default_score = db_session.get(Score, "s1-T3")
        assert default_score.player_id == "default-player-T3"
        default_player = db_session.get(Player, "default-player-T3")
        assert default_player.name == "Default Player"
        assert default_player.team_id == "T3"

    @pytest.mark.asyncio
    async def test_resync_is_idempotent(self, db_session: Session, mock_client, sample_stages, sample_teams):
        """Should leave exactly one unchanged row per team after a second sync."""
        mock_client.fetch_stage_scores.return_value = {"data": {"rank_list": [
            {"team_uuid": "T1", "score": 10, "kill_times": 2},
            {"team_uuid": "T2", "score": 15, "kill_times": 1},
            {"team_uuid": "T4", "score": 1},
        ]}}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        await orchestrator.sync_scores("s1")
        first = {
            s.id: (s.points, s.kills, s.deaths, s.assists, s.match_scores, s.player_id)
            for s in db_session.query(Score).all()
        }
        await orchestrator.sync_scores("s1")
        second = {
            s.id: (s.points, s.kills, s.deaths, s.assists, s.match_scores, s.player_id)
            for s in db_session.query(Score).all()
        }

        assert first == second
        assert sorted(first) == ["s1-T1", "s1-T2", "s1-T4"]
        assert db_session.query(Team).filter(Team.id == "T4").count() == 1
        assert db_session.query(Player).filter(Player.id == "default-player-T4").count() == 1

    @pytest.mark.asyncio
    async def test_unknown_player_falls_back_to_first_player(
        self, db_session: Session, mock_client, sample_stages, sample_teams
    ):
        """Should use the team's first player when player_uuid is not stored."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_scores("s1", team_data={"team_uuid": "T2", "player_uuid": "ghost"})

        assert result.success is True
        assert db_session.get(Score, "s1-T2").player_id == "P2"

    @pytest.mark.asyncio
    async def test_single_record_missing_team(self, db_session: Session, mock_client, sample_stages):
        """Should fail the single-record mode when team_uuid is missing."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_scores("s1", team_data={"score": 3})

        assert result.success is False
        assert result.message == "Scores sync failed"
        assert result.error == "Missing team_uuid in team data"
        mock_client.fetch_stage_scores.assert_not_called()

    @pytest.mark.asyncio
    async def test_bad_rows_are_counted(self, db_session: Session, mock_client, sample_stages, sample_teams):
        """Should keep syncing siblings when one row is invalid."""
        mock_client.fetch_stage_scores.return_value = {"data": {"rank_list": [
            {"score": 1},
            {"team_uuid": "T1", "score": 2},
        ]}}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_scores("s1")

        assert result.success is True
        assert result.details == {"synced": 1, "failed": 1}
        assert result.error == "1 team scores failed to sync"
        assert db_session.get(Score, "s1-T1") is not None


class TestSyncStats:
    """Hero and weapon stat sync."""

    @pytest.mark.asyncio
    async def test_hero_stats_translated(self, db_session: Session, mock_client, sample_stages):
        """Should translate hero names and key rows by stage and name."""
        mock_client.fetch_hero_stats.return_value = {"code": 0, "data": {"list": [
            {"hero_name": "迦南", "hero_img": "canaan.png", "battle_amount": 30, "kill_times_avg": 1.5,
             "score_top1_rate": 0.2, "rank": 1},
            {"hero_name": "Akos", "battle_amount": 5},
        ]}}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_hero_stats("comp-1", "s1")

        assert result.success is True
        assert result.message == "Hero stats sync completed for stage s1"
        stat = db_session.get(HeroStat, "s1-Canaan")
        assert stat.hero_name == "Canaan"
        assert stat.hero_image == "canaan.png"
        assert stat.battle_amount == 30
        assert stat.kill_times_avg == 1.5
        assert stat.cure_avg == 0
        assert db_session.get(HeroStat, "s1-Akos") is not None
        mock_client.fetch_hero_stats.assert_awaited_once_with("comp-1", "s1")

    @pytest.mark.asyncio
    async def test_weapon_stats_translated(self, db_session: Session, mock_client, sample_stages):
        """Should store 太刀 as Katana."""
        mock_client.fetch_weapon_stats.return_value = {"code": 0, "data": {"list": [
            {"weapon_name": "太刀", "pick_rate": 0.4, "kill_rate": 0.3},
        ]}}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_weapon_stats("comp-1", "s1")

        assert result.success is True
        stat = db_session.get(WeaponStat, "s1-Katana")
        assert stat.weapon_name == "Katana"
        assert stat.pick_rate == 0.4
        assert stat.kill_rate == 0.3

    @pytest.mark.asyncio
    async def test_upstream_error_code_translated(self, db_session: Session, mock_client, sample_stages):
        """Should return the translated upstream error as failure."""
        mock_client.fetch_hero_stats.return_value = {"code": 20002, "message": "参数非法"}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_hero_stats("comp-1", "s1")

        assert result.success is False
        assert result.message == "Invalid parameters"

    @pytest.mark.asyncio
    async def test_unknown_code_uses_message(self, db_session: Session, mock_client, sample_stages):
        """Should translate the message when the code is unknown."""
        mock_client.fetch_weapon_stats.return_value = {"code": 500, "message": "失败"}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_weapon_stats("comp-1", "s1")

        assert result.success is False
        assert result.message == "Failed"

    @pytest.mark.asyncio
    async def test_stage_not_found(self, db_session: Session, mock_client):
        """Should fail without fetching when the stage is unknown."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_weapon_stats("comp-1", "missing")

        assert result.success is False
        assert result.message == "Stage not found"
        mock_client.fetch_weapon_stats.assert_not_called()

    @pytest.mark.asyncio
    async def test_resync_is_idempotent(self, db_session: Session, mock_client, sample_stages):
        """Should keep one unchanged row per stage and name after a second sync."""
        mock_client.fetch_hero_stats.return_value = {"code": 0, "data": {"list": [
            {"hero_name": "迦南", "battle_amount": 30, "kill_times_avg": 1.5, "rank": 1},
        ]}}
        mock_client.fetch_weapon_stats.return_value = {"code": 0, "data": {"list": [
            {"weapon_name": "太刀", "pick_rate": 0.4, "kill_rate": 0.3},
        ]}}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        def snapshot():
            heroes = {
                h.id: (h.hero_name, h.battle_amount, h.kill_times_avg, h.rank)
                for h in db_session.query(HeroStat).all()
            }
            weapons = {
                w.id: (w.weapon_name, w.pick_rate, w.kill_rate)
                for w in db_session.query(WeaponStat).all()
            }
            return heroes, weapons

        await orchestrator.sync_hero_stats("comp-1", "s1")
        await orchestrator.sync_weapon_stats("comp-1", "s1")
        first = snapshot()
        await orchestrator.sync_hero_stats("comp-1", "s1")
        await orchestrator.sync_weapon_stats("comp-1", "s1")

        assert snapshot() == first
        assert list(first[1]) == ["s1-Katana"]
        assert db_session.query(WeaponStat).filter(WeaponStat.id == "s1-Katana").count() == 1
        assert list(first[0]) == ["s1-Canaan"]


class TestCompositeOperations:
    """Stage stats, competition detail and full sync."""

    @pytest.mark.asyncio
    async def test_stage_stats_stops_on_first_failure(self, db_session: Session, mock_client, sample_stages):
        """Should not fetch stats when score sync fails."""
        mock_client.fetch_stage_scores.side_effect = httpx.ConnectError("down")
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_stage_stats("s1", competition_id="comp-1")

        assert result.success is False
        assert result.message == "Scores sync failed"
        mock_client.fetch_hero_stats.assert_not_called()
        mock_client.fetch_weapon_stats.assert_not_called()

    @pytest.mark.asyncio
    async def test_stage_stats_runs_all_steps(self, db_session: Session, mock_client, sample_stages):
        """Should end with the weapon stats result."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_stage_stats("s1")

        assert result.success is True
        assert result.message == "Weapon stats sync completed for stage s1"
        mock_client.fetch_hero_stats.assert_awaited_once_with("comp-1", "s1")

    @pytest.mark.asyncio
    async def test_competition_detail(self, db_session: Session, mock_client):
        """Should create the competition shell and report nested results."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_competition_detail("c9", "Winter Cup")

        assert result.success is True
        assert result.message == "Successfully synced competition Winter Cup with all related data"
        assert db_session.get(Competition, "c9").name == "Winter Cup"
        body = result.to_dict()
        assert body["details"]["competition"]["success"] is True
        assert body["details"]["teams"]["message"] == "No teams found in response"

    @pytest.mark.asyncio
    async def test_competition_detail_invalid_name(self, db_session: Session, mock_client):
        """Should stop when the competition shell is invalid."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_competition_detail("c9", "")

        assert result.success is False
        assert result.message == "Invalid competition data"
        mock_client.fetch_stages.assert_not_called()

    @pytest.mark.asyncio
    async def test_sync_all(self, db_session: Session, mock_client):
        """Should walk competitions, stages, teams, scores and stats in order."""
        mock_client.fetch_competitions.return_value = {"data": {"list": [
            {"competition_uuid": "c1", "competition_name": "Cup", "start_time": 1709294400,
             "end_time": 1709294400, "type": 1},
        ]}}

        def fetch_stages(competition_id, stage_type, rank_type):
            if (stage_type, rank_type) == (1, 0):
                return stage_list({"stage_uuid": "st1", "stage_name": "Day 1"})
            return {"data": {}}

        mock_client.fetch_stages.side_effect = fetch_stages
        mock_client.fetch_teams.return_value = {"data": {"list": [{"uuid": "T1", "name": "One"}]}}
        mock_client.fetch_stage_scores.return_value = {"data": {"rank_list": [{"team_uuid": "T1", "score": 9}]}}
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        result = await orchestrator.sync_all()

        assert result.success is True
        assert result.message == "Full sync completed successfully"
        assert result.details["competitions"] == 1
        assert result.details["stages"] == 1
        assert db_session.get(Score, "st1-T1").points == 9
        # Once during stage sync, once in the per-stage pass
        assert mock_client.fetch_stage_scores.await_count == 2

    @pytest.mark.asyncio
    async def test_sync_all_propagates_unexpected_errors(self, db_session: Session, mock_client):
        """Should let faults outside the per-operation handling escape."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)
        orchestrator.competitions.find_all = lambda: (_ for _ in ()).throw(RuntimeError("db gone"))

        with pytest.raises(RuntimeError, match="db gone"):
            await orchestrator.sync_all()

    @pytest.mark.asyncio
    async def test_cleanup_keeps_injected_client_open(self, db_session: Session, mock_client):
        """Should only close clients the orchestrator created itself."""
        orchestrator = SyncOrchestrator(db_session, client=mock_client)

        await orchestrator.cleanup()

        mock_client.close.assert_not_called()
