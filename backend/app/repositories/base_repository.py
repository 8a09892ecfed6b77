# backend/app/repositories/base_repository.py
"""
Base Repository Pattern for the studio booking engine

Provides the foundation for all repository classes with:
- Common CRUD operations
- Type safety with generics
- Single-statement conditional updates for contended counters
- Savepoint helpers for race-tolerant inserts

Repositories never commit; transaction boundaries belong to services.
"""

from contextlib import contextmanager
import logging
from typing import Any, Generic, Iterator, List, Optional, Type, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, SessionTransaction

from ..core.exceptions import RepositoryException

# Type variable for generic model support
T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Concrete base repository implementation with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @contextmanager
    def savepoint(self) -> Iterator[SessionTransaction]:
        """
        Run a block inside a SAVEPOINT.

        A failure inside the block rolls back only to the savepoint, so
        earlier work in the surrounding transaction survives.
        """
        nested = self.db.begin_nested()
        try:
            yield nested
        except Exception:
            # A failed flush already deactivates the nested transaction; the
            # rollback is still required to release the session.
            nested.rollback()
            raise
        else:
            if nested.is_active:
                nested.commit()

    def get_by_id(self, id: str) -> Optional[T]:
        """Retrieve an entity by its primary key."""
        try:
            return self.db.query(self.model).filter(self.model.id == id).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting {self.model.__name__} by id {id}: {str(e)}")
            raise RepositoryException(f"Failed to retrieve {self.model.__name__}: {str(e)}")

    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        Integrity errors propagate unchanged so callers can translate them.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()  # Get ID without committing
            return entity
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}")

    def find_by(self, **kwargs: Any) -> List[T]:
        """Find entities by given criteria (exact match)."""
        try:
            return self.db.query(self.model).filter_by(**kwargs).all()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding by criteria: {str(e)}")
            raise RepositoryException(f"Failed to find records: {str(e)}")

    def find_one_by(self, **kwargs: Any) -> Optional[T]:
        """Find a single entity by given criteria (exact match)."""
        try:
            return self.db.query(self.model).filter_by(**kwargs).first()
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding one by criteria: {str(e)}")
            raise RepositoryException(f"Failed to find record: {str(e)}")

    # Protected helper methods for use by subclasses

    def _conditional_update(self, *criteria: Any, **values: Any) -> int:
        """
        Issue one ``UPDATE ... WHERE <criteria>`` and return the affected row count.

        Pending ORM changes are flushed first. The statement bypasses the
        identity map, so loaded instances are expired afterwards and later
        reads see the new column values.
        """
        stmt = update(self.model).where(*criteria).values(**values)
        try:
            self.db.flush()
            result = self.db.execute(stmt.execution_options(synchronize_session=False))
        except SQLAlchemyError as e:
            self.logger.error(f"Conditional update on {self.model.__name__} failed: {str(e)}")
            raise RepositoryException(f"Failed to update {self.model.__name__}: {str(e)}")
        self.db.expire_all()
        return int(result.rowcount or 0)

    def _build_query(self) -> Query:
        """Get base query for the model."""
        return self.db.query(self.model)

    def _execute_query(self, query: Query) -> List[T]:
        """Execute query with error handling."""
        try:
            return query.all()
        except SQLAlchemyError as e:
            self.logger.error(f"Query execution error: {str(e)}")
            raise RepositoryException(f"Query failed: {str(e)}")
