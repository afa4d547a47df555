import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from blightstone.auth.models import AccountDB, AuthSessionDB, AuthTokens
from blightstone.auth.settings import auth_settings
from blightstone.auth.utils import (
    create_access_token,
    decode_access_token,
    generate_refresh_token,
    get_password_hash,
    hash_refresh_token,
    normalize_email,
    verify_password,
)
from blightstone.exceptions import (
    AuthenticationError,
    DuplicateError,
    InvalidSessionError,
)
from blightstone.utils.store_calls import store_call

logger = logging.getLogger(__name__)


class CredentialStore:
    """Accounts and the auth sessions behind their tokens.

    Every mutating call commits its own unit of work and rolls the session
    back on failure, so callers can run compensating actions on the same
    ``AsyncSession``.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _rollback(self) -> None:
        async with store_call("credential store rollback"):
            await self.db.rollback()

    async def get_account(self, account_id: UUID) -> AccountDB | None:
        async with store_call("account lookup"):
            result = await self.db.execute(
                select(AccountDB).where(AccountDB.id == account_id)
            )
            return result.scalar_one_or_none()

    async def get_account_by_email(self, email: str) -> AccountDB | None:
        async with store_call("account lookup"):
            result = await self.db.execute(
                select(AccountDB).where(AccountDB.email == normalize_email(email))
            )
            return result.scalar_one_or_none()

    async def create_account(self, email: str, password: str) -> AccountDB:
        """Create a pre-confirmed account. Raises DuplicateError if the email is taken."""
        email = normalize_email(email)
        if await self.get_account_by_email(email) is not None:
            raise DuplicateError("Email already registered")

        account = AccountDB(
            email=email,
            hashed_password=get_password_hash(password),
            email_confirmed_at=datetime.now(timezone.utc),
        )
        try:
            async with store_call("account creation"):
                self.db.add(account)
                await self.db.commit()
                await self.db.refresh(account)
        except DuplicateError:
            await self._rollback()
            raise DuplicateError("Email already registered")
        except Exception:
            await self._rollback()
            raise
        return account

    async def delete_account(self, account_id: UUID) -> None:
        try:
            async with store_call("account deletion"):
                await self.db.execute(
                    delete(AuthSessionDB).where(AuthSessionDB.account_id == account_id)
                )
                await self.db.execute(delete(AccountDB).where(AccountDB.id == account_id))
                await self.db.commit()
        except Exception:
            await self._rollback()
            raise

    async def sign_in(self, email: str, password: str) -> tuple[AccountDB, AuthTokens]:
        account = await self.get_account_by_email(email)
        if account is None or not verify_password(password, account.hashed_password):
            raise AuthenticationError("Invalid email or password")
        tokens = await self._issue_tokens(account.id)
        return account, tokens

    async def _issue_tokens(self, account_id: UUID) -> AuthTokens:
        refresh_token = generate_refresh_token()
        refresh_expires_at = datetime.now(timezone.utc) + timedelta(
            days=auth_settings.REFRESH_TOKEN_EXPIRE_DAYS
        )
        auth_session = AuthSessionDB(
            account_id=account_id,
            refresh_token_hash=hash_refresh_token(refresh_token),
            expires_at=refresh_expires_at,
        )
        try:
            async with store_call("session creation"):
                self.db.add(auth_session)
                await self.db.commit()
                await self.db.refresh(auth_session)
        except Exception:
            await self._rollback()
            raise

        access_token, expires_at = create_access_token(account_id, auth_session.id)
        return AuthTokens(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            refresh_expires_at=refresh_expires_at,
        )

    async def get_account_by_token(self, access_token: str) -> AccountDB:
        """Resolve a live access token to its account, or raise InvalidSessionError."""
        claims = decode_access_token(access_token)
        if claims is None:
            raise InvalidSessionError()

        now = datetime.now(timezone.utc)
        async with store_call("session lookup"):
            result = await self.db.execute(
                select(AccountDB)
                .join(AuthSessionDB, AuthSessionDB.account_id == AccountDB.id)
                .where(
                    AuthSessionDB.id == claims.session_id,
                    AuthSessionDB.account_id == claims.account_id,
                    AuthSessionDB.revoked_at.is_(None),
                    AuthSessionDB.expires_at > now,
                )
            )
            account = result.scalar_one_or_none()

        if account is None:
            raise InvalidSessionError()
        return account

    async def sign_out(self, access_token: str) -> None:
        """Revoke the auth session behind a token. Unknown or revoked tokens are a no-op."""
        claims = decode_access_token(access_token, verify_exp=False)
        if claims is None:
            return
        try:
            async with store_call("session revocation"):
                await self.db.execute(
                    update(AuthSessionDB)
                    .where(
                        AuthSessionDB.id == claims.session_id,
                        AuthSessionDB.revoked_at.is_(None),
                    )
                    .values(revoked_at=datetime.now(timezone.utc))
                )
                await self.db.commit()
        except Exception:
            await self._rollback()
            raise

    async def refresh(self, refresh_token: str) -> AuthTokens:
        """Rotate the refresh token and mint a new access token on the same auth session."""
        now = datetime.now(timezone.utc)
        async with store_call("session lookup"):
            result = await self.db.execute(
                select(AuthSessionDB).where(
                    AuthSessionDB.refresh_token_hash == hash_refresh_token(refresh_token),
                    AuthSessionDB.revoked_at.is_(None),
                    AuthSessionDB.expires_at > now,
                )
            )
            auth_session = result.scalar_one_or_none()

        if auth_session is None:
            raise InvalidSessionError()

        new_refresh_token = generate_refresh_token()
        # Only the request holding the current hash may rotate it
        try:
            async with store_call("session refresh"):
                result = await self.db.execute(
                    update(AuthSessionDB)
                    .where(
                        AuthSessionDB.id == auth_session.id,
                        AuthSessionDB.refresh_token_hash == auth_session.refresh_token_hash,
                        AuthSessionDB.revoked_at.is_(None),
                    )
                    .values(refresh_token_hash=hash_refresh_token(new_refresh_token))
                    .execution_options(synchronize_session=False)
                )
                await self.db.commit()
        except Exception:
            await self._rollback()
            raise
        if result.rowcount != 1:
            logger.info("Auth session %s was refreshed by a concurrent request", auth_session.id)
            raise InvalidSessionError()

        access_token, expires_at = create_access_token(
            auth_session.account_id, auth_session.id
        )
        logger.debug("Refreshed auth session %s", auth_session.id)
        return AuthTokens(
            access_token=access_token,
            refresh_token=new_refresh_token,
            expires_at=expires_at,
            refresh_expires_at=auth_session.expires_at,
        )
