# authcore/infra/sql/guard.py
from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from authcore.services._shared.errors import StorageUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def storage_guard(operation: str) -> Iterator[None]:
    """Re-raise any SQLAlchemy failure (including pool timeouts) as :class:`StorageUnavailable`."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Database %s failed: %s", operation, exc.__class__.__name__)
        raise StorageUnavailable(f"Database {operation} failed") from exc
