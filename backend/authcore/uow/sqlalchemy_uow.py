"""
SQLAlchemy implementation of UnitOfWork.
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from authcore.repositories import RefreshTokenRepository, UserRepository
from authcore.uow.base import UnitOfWork

SessionFactory = Callable[[], Session]


class SQLAlchemyRepositoryContainer:
    """Provide repository instances that share a SQLAlchemy session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=self.session)
        self.refresh_tokens = RefreshTokenRepository(session=self.session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    SQLAlchemy-backed UoW over an injected session factory.

    Under Flask the factory returns the app-scoped ``db.session``; elsewhere a
    ``scoped_session`` works the same way. The same session is shared across
    all repositories for a consistent transaction.
    """

    def __init__(self, session_factory: SessionFactory) -> None:
        super().__init__(session=session_factory())

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        # No-op: the session is lazily started on the first statement.
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            try:
                self.commit()
            except Exception:
                self.rollback()
                raise
        else:
            self.rollback()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
