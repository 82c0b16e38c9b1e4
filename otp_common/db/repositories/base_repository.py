# otp_common/db/repositories/base_repository.py

from sqlalchemy.orm import Session
from typing import TypeVar, Generic, Type

from otp_common.utils.logging_config import log_operation, log_context

# Import the repository logger
from . import logger

T = TypeVar('T')


class BaseRepository(Generic[T]):
    @staticmethod
    @log_operation("delete_by_id", logger=logger)
    def delete_by_id(db: Session, model_class: Type[T], id: str) -> bool:
        """Delete an entity by ID; a missing ID is not an error"""
        with log_context(logger, model=model_class.__name__, id=id):
            deleted = db.query(model_class).filter(
                model_class.id == id
            ).delete(synchronize_session=False)
            db.commit()
            logger.debug("Deleted entity", extra={
                'model': model_class.__name__,
                'id': id,
                'deleted_count': deleted
            })
            return deleted > 0
