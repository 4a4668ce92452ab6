"""Unit of Work abstractions and the SQLAlchemy implementation."""

from .base import UnitOfWork
from .sqlalchemy_uow import SessionFactory, SQLAlchemyUnitOfWork

__all__ = [
    "UnitOfWork",
    "SessionFactory",
    "SQLAlchemyUnitOfWork",
]
