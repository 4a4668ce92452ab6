# authcore/services/auth/service.py
from __future__ import annotations

import logging

from authcore.services._shared.errors import (
    DuplicateIdentity,
    InvalidCredentials,
    InvalidToken,
    UnknownIdentity,
)
from authcore.services._shared.ports import (
    Identity,
    PasswordHasher,
    TokenCodec,
    TokenLedger,
    UserDirectory,
)
from authcore.services.auth.dto import (
    AuthResultOut,
    IdentityPublicOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    RegisterIn,
    TokenPairOut,
)

logger = logging.getLogger(__name__)


class CredentialService:
    """
    Authentication lifecycle service (register / login / refresh / logout).

    Passwords go through a :class:`PasswordHasher`, tokens through a
    :class:`TokenCodec`, and every outstanding refresh token is backed by a
    :class:`TokenLedger` record. Rotation is delegated to
    :meth:`TokenLedger.rotate`, so two concurrent refreshes of the same token
    cannot both succeed.

    The service holds no lock of its own and caches nothing across calls.
    """

    def __init__(
        self,
        *,
        directory: UserDirectory,
        ledger: TokenLedger,
        hasher: PasswordHasher,
        codec: TokenCodec,
    ) -> None:
        """
        Initialize the service with its dependencies.

        :param directory: Identity store.
        :param ledger: Refresh-token store (atomic rotation).
        :param hasher: One-way password hasher.
        :param codec: Token signer/verifier.
        """
        self.directory = directory
        self.ledger = ledger
        self.hasher = hasher
        self.codec = codec
        # Verified against for unknown emails.
        self._dummy_hash = hasher.hash("authcore-timing-equalizer")

    # ------------------------------------------------------------------ #
    # Register
    # ------------------------------------------------------------------ #

    def register(self, dto: RegisterIn) -> AuthResultOut:
        """
        Create an identity and issue its first token pair.

        :raises DuplicateIdentity: If an active identity already owns the email.
        :raises StorageUnavailable: On directory or ledger failure.
        """
        existing = self.directory.find_by_email(dto.email)
        if existing is not None and existing.is_active:
            raise DuplicateIdentity()

        password_hash = self.hasher.hash(dto.password)
        identity = self.directory.create(
            email=dto.email,
            password_hash=password_hash,
            first_name=dto.first_name,
            last_name=dto.last_name,
        )
        tokens = self._issue_pair(identity)
        logger.info("Identity registered", extra={"identity_id": identity.id})
        return AuthResultOut(user=IdentityPublicOut.from_identity(identity), tokens=tokens)

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> AuthResultOut:
        """
        Authenticate credentials and issue a fresh token pair.

        Unknown email, inactive identity and wrong password all raise the same
        :class:`InvalidCredentials`. Existing sessions stay valid.
        """
        identity = self.directory.find_by_email(dto.email)
        if identity is None:
            self.hasher.verify(dto.password, self._dummy_hash)
            raise InvalidCredentials()

        password_ok = self.hasher.verify(dto.password, identity.password_hash)
        if not password_ok or not identity.is_active:
            raise InvalidCredentials()

        self.directory.touch_last_login(identity.id)
        refreshed = self.directory.find_by_id(identity.id) or identity
        tokens = self._issue_pair(refreshed)
        logger.info("Identity logged in", extra={"identity_id": identity.id})
        return AuthResultOut(user=IdentityPublicOut.from_identity(refreshed), tokens=tokens)

    # ------------------------------------------------------------------ #
    # Refresh with atomic rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Rotate a refresh token and emit a new token pair.

        :raises InvalidToken: Bad token, no active ledger record, or a
            concurrent refresh consumed the token first.
        :raises UnknownIdentity: The subject no longer exists or is inactive.
        """
        claims = self.codec.verify_refresh(dto.refresh_token)
        identity_id = claims.identity_id

        if not self.ledger.is_active(identity_id, dto.refresh_token):
            raise InvalidToken()

        identity = self.directory.find_by_id(identity_id)
        if identity is None or not identity.is_active:
            raise UnknownIdentity()

        access = self.codec.issue_access(identity.id, identity.email)
        refresh = self.codec.issue_refresh(identity.id)
        if self.ledger.rotate(identity_id, dto.refresh_token, refresh) is None:
            logger.warning("Refresh rotation lost", extra={"identity_id": identity_id})
            raise InvalidToken()

        logger.info("Refresh token rotated", extra={"identity_id": identity_id})
        return TokenPairOut(access_token=access, refresh_token=refresh)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> None:
        """Revoke the presented refresh token for the caller. Idempotent."""
        removed = self.ledger.revoke(dto.identity_id, dto.refresh_token)
        logger.info(
            "Identity logged out",
            extra={"identity_id": dto.identity_id, "revoked": removed},
        )

    # ------------------------------------------------------------------ #
    # Queries / maintenance
    # ------------------------------------------------------------------ #

    def get_profile(self, identity_id: int) -> IdentityPublicOut:
        identity = self.directory.find_by_id(identity_id)
        if identity is None or not identity.is_active:
            raise UnknownIdentity()
        return IdentityPublicOut.from_identity(identity)

    def sweep_expired_tokens(self) -> int:
        removed = self.ledger.sweep_expired()
        logger.info("Expired refresh tokens swept", extra={"removed": removed})
        return removed

    # ------------------------------------------------------------------ #
    # Utilities
    # ------------------------------------------------------------------ #

    def _issue_pair(self, identity: Identity) -> TokenPairOut:
        access = self.codec.issue_access(identity.id, identity.email)
        refresh = self.codec.issue_refresh(identity.id)
        self.ledger.store(identity.id, refresh)
        return TokenPairOut(access_token=access, refresh_token=refresh)
