"""
Team and Player repositories.

The default-player helpers back score sync: a Score row must reference a
player, so teams without a roster get a synthesized "Default Player".
"""
from typing import Optional

from app.models import Team, Player
from app.repositories.base import BaseRepository

DEFAULT_PLAYER_NAME = "Default Player"


def default_player_id(team_id: str) -> str:
    """Deterministic id of the synthesized player for a team."""
    return f"default-player-{team_id}"


class TeamRepository(BaseRepository[Team]):
    """Repository for teams."""

    def __init__(self, db):
        super().__init__(Team, db)


class PlayerRepository(BaseRepository[Player]):
    """Repository for players."""

    def __init__(self, db):
        super().__init__(Player, db)

    def first_of_team(self, team_id: str) -> Optional[Player]:
        """First rostered player of a team (by id), if any."""
        return self.query().filter(Player.team_id == team_id).order_by(Player.id).first()

    def get_or_create_default(self, team: Team) -> Player:
        """Return the team's synthesized player, creating it on first use."""
        player_id = default_player_id(team.id)
        player = self.find_by_id(player_id)
        if player is None:
            player = self.create(
                id=player_id,
                name=DEFAULT_PLAYER_NAME,
                avatar=None,
                team_id=team.id,
                competition_id=team.competition_id
            )
        return player
