# authcore/infra/sql/sql_token_ledger.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from authcore.infra.sql.guard import storage_guard
from authcore.models.refresh_token import RefreshToken
from authcore.services._shared.ports import REFRESH_TOKEN_LIFETIME, LedgerRecord, TokenLedger
from authcore.services._shared.ports.token_ledger import as_utc, utcnow
from authcore.uow import SessionFactory, SQLAlchemyUnitOfWork


def _to_record(row: RefreshToken) -> LedgerRecord:
    return LedgerRecord(
        ledger_id=row.id,
        identity_id=row.user_id,
        token_value=row.token,
        expires_at=as_utc(row.expires_at),
        created_at=as_utc(row.created_at),
    )


@dataclass(slots=True)
class SqlTokenLedger(TokenLedger):
    """
    Ledger stored in the ``refresh_tokens`` table.

    Each operation runs in its own unit of work. Rotation deletes the old row
    with ``DELETE ... WHERE token = :old AND expires_at > :now`` and inserts
    the new row in the same transaction; a zero row count means another
    caller already consumed (or revoked) the token.

    :param session_factory: Returns the session to run in.
    """

    session_factory: SessionFactory
    lifetime: timedelta = REFRESH_TOKEN_LIFETIME

    def _uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(self.session_factory)

    def _new_row(self, identity_id: int, token_value: str) -> RefreshToken:
        now = utcnow()
        return RefreshToken(
            user_id=identity_id,
            token=token_value,
            expires_at=now + self.lifetime,
            created_at=now,
        )

    def store(self, identity_id: int, token_value: str) -> LedgerRecord:
        with storage_guard("store"), self._uow() as uow:
            existing = uow.refresh_tokens.get_by_token(identity_id, token_value)
            if existing is not None:
                return _to_record(existing)
            row = uow.refresh_tokens.add(self._new_row(identity_id, token_value))
            return _to_record(row)

    def is_active(self, identity_id: int, token_value: str) -> bool:
        with storage_guard("lookup"), self._uow() as uow:
            row = uow.refresh_tokens.get_by_token(identity_id, token_value)
            return row is not None and as_utc(row.expires_at) > utcnow()

    def revoke(self, identity_id: int, token_value: str) -> bool:
        with storage_guard("revoke"), self._uow() as uow:
            return uow.refresh_tokens.delete_token(identity_id, token_value) > 0

    def rotate(self, identity_id: int, old_value: str, new_value: str) -> LedgerRecord | None:
        with storage_guard("rotate"), self._uow() as uow:
            if uow.refresh_tokens.consume_active(identity_id, old_value, utcnow()) != 1:
                return None
            row = uow.refresh_tokens.add(self._new_row(identity_id, new_value))
            return _to_record(row)

    def sweep_expired(self) -> int:
        with storage_guard("sweep"), self._uow() as uow:
            return uow.refresh_tokens.delete_expired(utcnow())

    def list_active(self, identity_id: int) -> list[LedgerRecord]:
        with storage_guard("lookup"), self._uow() as uow:
            return [_to_record(r) for r in uow.refresh_tokens.list_active(identity_id, utcnow())]
