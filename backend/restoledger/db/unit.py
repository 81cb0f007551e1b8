import logging
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from restoledger.core.errors import AppError, ConstraintError, IntegrityViolation

log = logging.getLogger(__name__)


@contextmanager
def atomic(s: Session, operation: str, **context):
    """Commit everything done in the block, or roll all of it back.

    Storage failures surface as ConstraintError (referential rejections) or
    IntegrityViolation (any other storage or unexpected error); all are
    logged with ``context``.
    """
    try:
        yield s
        s.commit()
    except AppError as e:
        s.rollback()
        log.warning("%s rolled back %s: %s", operation, context, e.message)
        raise
    except IntegrityError as e:
        s.rollback()
        log.error("%s blocked by constraint %s: %s", operation, context, e.orig)
        raise ConstraintError() from e
    except SQLAlchemyError as e:
        s.rollback()
        log.exception("%s failed %s", operation, context)
        raise IntegrityViolation() from e
    except Exception as e:
        s.rollback()
        log.exception("%s crashed %s", operation, context)
        raise IntegrityViolation() from e
