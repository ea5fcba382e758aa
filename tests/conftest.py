"""Shared pytest fixtures for naraka-tournament-api tests."""
import os
import sys
import json
from pathlib import Path
from datetime import datetime
from typing import Generator
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Keep the app off the on-disk database and rate limits off for tests
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("LOG_JSON", "false")

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    from app.models import Base
    from app.core.database import enable_sqlite_foreign_keys

    # StaticPool keeps a single connection so that TestClient's worker thread
    # sees the same in-memory database as the test body.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def mock_client() -> AsyncMock:
    """Upstream client double; every fetch_* is an AsyncMock returning an empty list."""
    from app.services.sync.client import UpstreamClient

    client = AsyncMock(spec=UpstreamClient)
    empty = {"code": 0, "data": {"list": []}}
    client.fetch_competitions.return_value = empty
    client.fetch_stages.return_value = empty
    client.fetch_teams.return_value = empty
    client.fetch_team_players.return_value = empty
    client.fetch_stage_scores.return_value = {"code": 0, "data": {"rank_list": []}}
    client.fetch_hero_stats.return_value = empty
    client.fetch_weapon_stats.return_value = empty
    return client


@pytest.fixture
def sample_competition(db_session: Session):
    """A stored league competition."""
    from app.models import Competition

    competition = Competition(
        id="comp-1",
        name="NBPL Spring Split",
        description="league",
        start_date=datetime(2024, 3, 1, 12, 0, 0),
        end_date=datetime(2024, 5, 1, 12, 0, 0),
        type=1,
        nbpl=True
    )
    db_session.add(competition)
    db_session.commit()
    return competition


@pytest.fixture
def sample_stages(db_session: Session, sample_competition):
    """Two stages of the sample competition."""
    from app.models import Stage

    stages = [
        Stage(
            id="s1",
            name="Week 1",
            type=1,
            rank_type=0,
            start_date=datetime(2024, 3, 1, 12, 0, 0),
            end_date=datetime(2024, 3, 7, 12, 0, 0),
            competition_id=sample_competition.id
        ),
        Stage(
            id="s2",
            name="Week 2",
            type=1,
            rank_type=0,
            start_date=datetime(2024, 3, 8, 12, 0, 0),
            end_date=datetime(2024, 3, 14, 12, 0, 0),
            competition_id=sample_competition.id
        ),
    ]
    db_session.add_all(stages)
    db_session.commit()
    return stages


@pytest.fixture
def sample_teams(db_session: Session, sample_competition):
    """Two teams, each with one rostered player."""
    from app.models import Team, Player

    teams = [
        Team(id="T1", name="Team One", points=0, competition_id=sample_competition.id),
        Team(id="T2", name="Team Two", points=0, competition_id=sample_competition.id),
    ]
    db_session.add_all(teams)
    db_session.add_all([
        Player(id="P1", name="Player One", team_id="T1", competition_id=sample_competition.id),
        Player(id="P2", name="Player Two", team_id="T2", competition_id=sample_competition.id),
    ])
    db_session.commit()
    return teams


@pytest.fixture
def sample_scores(db_session: Session, sample_stages, sample_teams):
    """s1: T1 10pts/2 kills, T2 15pts/1 kill; s2: T1 5pts/1 kill."""
    from app.models import Score

    rows = [
        ("s1", "T1", "P1", 10, 2),
        ("s1", "T2", "P2", 15, 1),
        ("s2", "T1", "P1", 5, 1),
    ]
    scores = [
        Score(
            id=f"{stage_id}-{team_id}",
            points=points,
            kills=kills,
            deaths=0,
            assists=0,
            match_scores=json.dumps([]),
            stage_id=stage_id,
            team_id=team_id,
            player_id=player_id
        )
        for stage_id, team_id, player_id, points, kills in rows
    ]
    db_session.add_all(scores)
    db_session.commit()
    return scores


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture(scope="function")
def test_client(db_session, mock_client):
    """
    Create FastAPI TestClient with a fresh database for each test.

    The sync orchestrator dependency is overridden so that sync routes talk
    to ``mock_client`` instead of the real upstream API.

    Note: We don't use context manager (with TestClient) so the lifespan
    (init_db on the configured database, scheduler) does not run.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/api/competition/list")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from app.main import app
    from app.core.database import get_db
    from app.api.routes.sync import get_orchestrator
    from app.services.sync.orchestrator import SyncOrchestrator

    def override_get_db():
        yield db_session

    def override_get_orchestrator():
        return SyncOrchestrator(db_session, client=mock_client)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_orchestrator] = override_get_orchestrator

    client = TestClient(app)
    yield client

    app.dependency_overrides.clear()
