"""Base repository with common document-store operations."""
from typing import Generic, TypeVar, Type, Optional, List

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from exceptions import DispatchError, DownstreamError, DuplicateRecordError, MatchTimeout
from logging_config import get_logger

logger = get_logger(__name__)

ModelType = TypeVar("ModelType")

_TIMEOUT_MARKERS = ("timeout", "timed out", "database is locked", "canceling statement")


def translate_store_error(error: SQLAlchemyError, action: str) -> DispatchError:
    """
    Map a driver error to the dispatch taxonomy.

    Unique-key violations become DuplicateRecordError (a conflict, never
    retried). Lock waits and statement timeouts become MatchTimeout so
    callers see a bounded failure instead of a generic store error.

    Args:
        error: Original SQLAlchemy exception
        action: Human-readable description of the failed operation

    Returns:
        Exception to raise (chained by the caller)
    """
    if isinstance(error, IntegrityError):
        return DuplicateRecordError(f"Cannot {action}: record already exists")
    message = str(error).lower()
    if isinstance(error, OperationalError) and any(marker in message for marker in _TIMEOUT_MARKERS):
        return MatchTimeout(f"Store call timed out: {action}")
    return DownstreamError(f"Failed to {action}")


class BaseRepository(Generic[ModelType]):
    """
    Base repository providing keyed get/put over one collection.

    Generic type pattern for type-safe repository operations.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    def get_by_id(self, id: str) -> Optional[ModelType]:
        """
        Get entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity or None if not found
        """
        try:
            return self.db.get(self.model, id)
        except SQLAlchemyError as e:
            logger.error(f"Error getting {self.model.__name__} by ID", entity_id=id, error=str(e))
            raise translate_store_error(e, f"get {self.model.__name__}") from e

    def get_all(self, skip: int = 0, limit: Optional[int] = None) -> List[ModelType]:
        """
        Get all entities with optional pagination.

        Args:
            skip: Number of records to skip
            limit: Maximum number of records to return

        Returns:
            List of entities
        """
        try:
            query = self.db.query(self.model).offset(skip)
            if limit is not None:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as e:
            logger.error(f"Error getting all {self.model.__name__}", error=str(e))
            raise translate_store_error(e, f"list {self.model.__name__}") from e

    def add(self, entity: ModelType) -> ModelType:
        """
        Persist a new entity.

        Args:
            entity: Transient model instance

        Returns:
            Persisted entity
        """
        try:
            self.db.add(entity)
            self.db.commit()
            self.db.refresh(entity)

            logger.info(f"Created {self.model.__name__}", entity_id=entity.id)
            return entity

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creating {self.model.__name__}", error=str(e))
            raise translate_store_error(e, f"create {self.model.__name__}") from e

    def update(self, id: str, **kwargs) -> Optional[ModelType]:
        """
        Unconditionally update entity fields.

        Not for booking assignment fields; those go through the
        conditional update on BookingRepository.

        Args:
            id: Entity ID
            **kwargs: Attributes to update

        Returns:
            Updated entity or None if not found
        """
        try:
            entity = self.db.get(self.model, id)

            if not entity:
                return None

            for key, value in kwargs.items():
                if hasattr(entity, key):
                    setattr(entity, key, value)

            self.db.commit()
            self.db.refresh(entity)

            logger.info(f"Updated {self.model.__name__}", entity_id=id)
            return entity

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error updating {self.model.__name__}", entity_id=id, error=str(e))
            raise translate_store_error(e, f"update {self.model.__name__}") from e
