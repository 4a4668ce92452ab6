"""Generic repository base for SQLAlchemy 2.x.

Repositories are persistence-only:

- No business logic, no commit/rollback; the Unit of Work owns transactions.
- They return ORM entities; stores convert them to domain records.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sqlalchemy.orm import Session

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Minimal typed repository bound to one session.

    Subclasses set :attr:`model` and add query helpers.

    :param session: Session shared across the Unit of Work scope.
    :type session: :class:`sqlalchemy.orm.Session`
    """

    model: type[E]

    def __init__(self, session: Session) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        """Return the session bound to the current Unit of Work."""
        return self._session

    # --------------------------------- CRUD ----------------------------------

    def add(self, instance: E) -> E:
        """Stage a new entity and flush to materialize the PK.

        :param instance: New entity instance.
        :type instance: E
        :returns: The same instance after ``flush()``.
        :rtype: E
        """
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """Fetch an entity by primary key.

        :param entity_id: Primary key value.
        :returns: Entity or ``None`` when absent.
        """
        return self.session.get(self.model, entity_id)

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.session.flush()
