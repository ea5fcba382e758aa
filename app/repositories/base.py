"""
Base repository class for data access layer.

The repository pattern provides:
1. Separation of data access logic from the sync and read services
2. Single place for query logic
3. Easier testing (can mock repositories)
4. An explicit, auditable upsert path

Upserts are a two-step construct-then-merge: ``build()`` creates a transient
instance from upstream fields (defaults included), then ``merge()`` either
adds it as a new row or copies its column values onto the existing row with
the same primary key. The caller learns which path was taken.

Example:
    class TeamRepository(BaseRepository[Team]):
        def find_by_competition(self, competition_id: str) -> List[Team]:
            return self.query().filter(Team.competition_id == competition_id).all()
"""
import logging
from dataclasses import dataclass
from typing import TypeVar, Generic, Type, Optional, List, Any
from sqlalchemy import inspect
from sqlalchemy.orm import Query, Session

from app.core import metrics

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass
class MergeOutcome(Generic[T]):
    """Result of a construct-then-merge write."""
    instance: T
    created: bool


class BaseRepository(Generic[T]):
    """
    Base repository class providing common data access methods.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
    """

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    # ========================================================================
    # Reads
    # ========================================================================

    def find_by_id(self, id: str) -> Optional[T]:
        """Find a single record by primary key."""
        return self.db.get(self.model_type, id)

    def find_all(self) -> List[T]:
        """Find all records."""
        return self.db.query(self.model_type).all()

    def query(self) -> Query:
        """Get a new query object for this model."""
        return self.db.query(self.model_type)

    def exists(self, id: str) -> bool:
        """Check if a record with given ID exists."""
        return self.db.query(
            self.db.query(self.model_type).filter(self.model_type.id == id).exists()
        ).scalar()

    # ========================================================================
    # Construct-then-merge
    # ========================================================================

    def build(self, **fields: Any) -> T:
        """
        Construct a transient instance; nothing is added to the session.

        Scalar column defaults are applied eagerly so that ``merge()`` copies
        them onto existing rows instead of NULLs.
        """
        for column in inspect(self.model_type).columns:
            if column.key not in fields and column.default is not None and column.default.is_scalar:
                fields[column.key] = column.default.arg
        return self.model_type(**fields)

    def merge(self, candidate: T) -> MergeOutcome[T]:
        """
        Write a built instance keyed by its primary key.

        New keys are added as-is. Existing rows receive every column value
        of the candidate, so identical candidates leave the row unchanged.
        """
        existing = self.find_by_id(candidate.id)
        entity = self.model_type.__name__

        if existing is None:
            self.db.add(candidate)
            self.db.flush()
            logger.debug(f"Created {entity} {candidate.id}")
            metrics.record_upsert(entity, created=True)
            return MergeOutcome(instance=candidate, created=True)

        for column in inspect(self.model_type).columns:
            if column.primary_key:
                continue
            setattr(existing, column.key, getattr(candidate, column.key))
        self.db.flush()
        logger.debug(f"Updated {entity} {existing.id}")
        metrics.record_upsert(entity, created=False)
        return MergeOutcome(instance=existing, created=False)

    def upsert(self, **fields: Any) -> MergeOutcome[T]:
        """Shorthand for ``merge(build(**fields))``."""
        return self.merge(self.build(**fields))

    def create(self, **fields: Any) -> T:
        """Insert a record that is known not to exist yet."""
        instance = self.build(**fields)
        self.db.add(instance)
        self.db.flush()
        metrics.record_upsert(self.model_type.__name__, created=True)
        return instance

    # ========================================================================
    # Transaction control
    # ========================================================================

    def save(self) -> None:
        """Commit pending changes to the database."""
        self.db.commit()

    def rollback(self) -> None:
        """Rollback pending changes."""
        self.db.rollback()
