"""
Database models for the Naraka tournament API.

Every primary key is the identifier issued by the upstream tournament API
(or a deterministic composite of such identifiers), so re-syncing the same
upstream record always lands on the same row.
"""
from sqlalchemy import Column, String, Float, Integer, DateTime, ForeignKey, Boolean, Text, Index
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


class Competition(Base):
    """A tournament as listed by the upstream competition center."""
    __tablename__ = "competitions"

    id = Column(String(64), primary_key=True)  # competition_uuid
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")  # upstream competition_type label
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False)
    type = Column(Integer, nullable=False, default=0)
    nbpl = Column(Boolean, nullable=False, default=False, index=True)  # league flag (type == 1)

    # Relationships
    stages = relationship("Stage", back_populates="competition", order_by="Stage.start_date")
    teams = relationship("Team", back_populates="competition")


class Stage(Base):
    """A bracket/phase of a competition, scoped by type and rank type."""
    __tablename__ = "stages"

    id = Column(String(64), primary_key=True)  # stage_uuid
    name = Column(String(255), nullable=False)
    type = Column(Integer, nullable=False)
    rank_type = Column(Integer, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    competition_id = Column(String(64), ForeignKey("competitions.id"), nullable=False, index=True)

    # Relationships
    competition = relationship("Competition", back_populates="stages")
    scores = relationship("Score", back_populates="stage")
    hero_stats = relationship("HeroStat", back_populates="stage")
    weapon_stats = relationship("WeaponStat", back_populates="stage")

    __table_args__ = (
        Index('ix_stages_lookup', 'competition_id', 'type', 'rank_type'),
    )


class Team(Base):
    """A team registered in a competition."""
    __tablename__ = "teams"

    id = Column(String(64), primary_key=True)  # team_uuid
    name = Column(String(255), nullable=False)
    logo = Column(String(1024), nullable=True)
    points = Column(Float, nullable=False, default=0)
    rank = Column(Integer, nullable=True)
    competition_id = Column(String(64), ForeignKey("competitions.id"), nullable=False, index=True)

    # Relationships
    competition = relationship("Competition", back_populates="teams")
    players = relationship("Player", back_populates="team")
    scores = relationship("Score", back_populates="team")


class Player(Base):
    """A rostered player; competition_id is denormalized from the team."""
    __tablename__ = "players"

    id = Column(String(128), primary_key=True)  # player uuid or default-player-{team_id}
    name = Column(String(255), nullable=False)
    avatar = Column(String(1024), nullable=True)
    team_id = Column(String(64), ForeignKey("teams.id"), nullable=False, index=True)
    competition_id = Column(String(64), ForeignKey("competitions.id"), nullable=False, index=True)

    # Relationships
    team = relationship("Team", back_populates="players")
    scores = relationship("Score", back_populates="player")


class Score(Base):
    """A team's standing in one stage; id is "{stage_id}-{team_id}"."""
    __tablename__ = "scores"

    id = Column(String(160), primary_key=True)
    points = Column(Float, nullable=False, default=0)
    kills = Column(Integer, nullable=False, default=0)
    deaths = Column(Integer, nullable=False, default=0)
    assists = Column(Integer, nullable=False, default=0)
    match_scores = Column(Text, nullable=False, default="[]")  # JSON list of per-match records
    stage_id = Column(String(64), ForeignKey("stages.id"), nullable=False, index=True)
    team_id = Column(String(64), ForeignKey("teams.id"), nullable=False, index=True)
    player_id = Column(String(128), ForeignKey("players.id"), nullable=False)

    # Relationships
    stage = relationship("Stage", back_populates="scores")
    team = relationship("Team", back_populates="scores")
    player = relationship("Player", back_populates="scores")


class HeroStat(Base):
    """Per-stage aggregate hero statistics; id is "{stage_id}-{hero_name}"."""
    __tablename__ = "hero_stats"

    id = Column(String(255), primary_key=True)
    hero_name = Column(String(100), nullable=False)
    hero_image = Column(String(1024), nullable=True)
    battle_amount = Column(Integer, nullable=False, default=0)
    kill_times_avg = Column(Float, nullable=False, default=0)
    assist_avg = Column(Float, nullable=False, default=0)
    cure_avg = Column(Float, nullable=False, default=0)
    damage_avg = Column(Float, nullable=False, default=0)
    death_avg = Column(Float, nullable=False, default=0)
    total_live_time_avg = Column(Float, nullable=False, default=0)
    score_top1_battle_amount = Column(Integer, nullable=False, default=0)
    rescue_times_avg = Column(Float, nullable=False, default=0)
    score_top1_rate = Column(Float, nullable=False, default=0)
    rank = Column(Integer, nullable=False, default=0)
    stage_id = Column(String(64), ForeignKey("stages.id"), nullable=False, index=True)

    # Relationships
    stage = relationship("Stage", back_populates="hero_stats")


class WeaponStat(Base):
    """Per-stage aggregate weapon statistics; id is "{stage_id}-{weapon_name}"."""
    __tablename__ = "weapon_stats"

    id = Column(String(255), primary_key=True)
    weapon_name = Column(String(100), nullable=False)
    pick_rate = Column(Float, nullable=False, default=0)
    kill_rate = Column(Float, nullable=False, default=0)
    stage_id = Column(String(64), ForeignKey("stages.id"), nullable=False, index=True)

    # Relationships
    stage = relationship("Stage", back_populates="weapon_stats")
