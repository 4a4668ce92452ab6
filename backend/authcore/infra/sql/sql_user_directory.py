# authcore/infra/sql/sql_user_directory.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from authcore.infra.sql.guard import storage_guard
from authcore.models.user import User
from authcore.services._shared.errors import DuplicateIdentity
from authcore.services._shared.ports import Identity, UserDirectory, normalize_email
from authcore.services._shared.ports.token_ledger import as_utc
from authcore.uow import SessionFactory, SQLAlchemyUnitOfWork


def _to_identity(user: User) -> Identity:
    return Identity(
        id=user.id,
        email=user.email,
        password_hash=user.password_hash,
        first_name=user.first_name,
        last_name=user.last_name,
        is_active=bool(user.is_active),
        is_verified=bool(user.is_verified),
        created_at=as_utc(user.created_at),
        updated_at=as_utc(user.updated_at),
        last_login=as_utc(user.last_login) if user.last_login else None,
    )


@dataclass(slots=True)
class SqlUserDirectory(UserDirectory):
    """
    Directory stored in the ``users`` table.

    The unique constraint on ``email`` is the final arbiter for concurrent
    registrations: the losing insert surfaces as :class:`DuplicateIdentity`.

    :param session_factory: Returns the session to run in.
    """

    session_factory: SessionFactory

    def _uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(self.session_factory)

    def find_by_email(self, email: str) -> Identity | None:
        with storage_guard("lookup"), self._uow() as uow:
            user = uow.users.get_by_email(email)
            return _to_identity(user) if user is not None else None

    def find_by_id(self, identity_id: int) -> Identity | None:
        with storage_guard("lookup"), self._uow() as uow:
            user = uow.users.get(identity_id)
            return _to_identity(user) if user is not None else None

    def create(
        self, *, email: str, password_hash: str, first_name: str, last_name: str
    ) -> Identity:
        with storage_guard("insert"):
            try:
                with self._uow() as uow:
                    if uow.users.exists_by_email(email):
                        raise DuplicateIdentity()
                    user = uow.users.add(
                        User(
                            email=normalize_email(email),
                            password_hash=password_hash,
                            first_name=first_name,
                            last_name=last_name,
                        )
                    )
                    return _to_identity(user)
            except IntegrityError as exc:
                raise DuplicateIdentity() from exc

    def touch_last_login(self, identity_id: int) -> None:
        with storage_guard("update"), self._uow() as uow:
            uow.users.touch_last_login(identity_id)
