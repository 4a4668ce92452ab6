"""Refresh token repository backing the SQL ledger."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import CursorResult, delete, select

from authcore.models.refresh_token import RefreshToken
from authcore.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Deletes are issued as bulk ``DELETE`` statements so the affected row count
    can serve as a compare-and-delete result.
    """

    model = RefreshToken

    def get_by_token(self, user_id: int, token: str) -> RefreshToken | None:
        stmt = select(RefreshToken).where(
            RefreshToken.user_id == user_id, RefreshToken.token == token
        )
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def delete_token(self, user_id: int, token: str) -> int:
        """Delete the row for ``(user_id, token)``; returns rows removed."""
        stmt = delete(RefreshToken).where(
            RefreshToken.user_id == user_id, RefreshToken.token == token
        )
        return self._execute_delete(stmt)

    def consume_active(self, user_id: int, token: str, now: datetime) -> int:
        """Delete the row only if it has not expired; returns rows removed."""
        stmt = delete(RefreshToken).where(
            RefreshToken.user_id == user_id,
            RefreshToken.token == token,
            RefreshToken.expires_at > now,
        )
        return self._execute_delete(stmt)

    def delete_expired(self, now: datetime) -> int:
        return self._execute_delete(delete(RefreshToken).where(RefreshToken.expires_at <= now))

    def list_active(self, user_id: int, now: datetime) -> list[RefreshToken]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.expires_at > now)
            .order_by(RefreshToken.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def _execute_delete(self, stmt) -> int:
        result = self.session.execute(stmt, execution_options={"synchronize_session": False})
        return int(cast(CursorResult, result).rowcount or 0)
