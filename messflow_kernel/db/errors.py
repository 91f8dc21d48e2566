"""Translation of driver/ORM failures into PersistenceError."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import SQLAlchemyError

from messflow_kernel.exceptions import PersistenceError


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """
    Re-raise any SQLAlchemyError from the block as PersistenceError.

    Used around read paths, which have nothing to roll back.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        raise PersistenceError(operation, type(exc).__name__) from exc
