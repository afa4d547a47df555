# Store failures arrive here already translated into the
# blightstone.exceptions taxonomy.

import logging
from datetime import datetime, timedelta, timezone
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from blightstone.auth.credentials import CredentialStore
from blightstone.auth.models import AuthTokens
from blightstone.auth.settings import auth_settings
from blightstone.auth.utils import generate_invite_token, normalize_email
from blightstone.exceptions import (
    BlightstoneError,
    DuplicateError,
    InconsistentStateError,
    NotFoundError,
    NotificationError,
    ProfileNotFoundError,
    RecordNotFoundError,
)
from blightstone.invites.models import InvitationDB, InvitationStatus
from blightstone.invites.repository import InvitationRepository
from blightstone.invites.schemas import IssuedInvitation
from blightstone.notifications.email import EmailSender
from blightstone.users.models import ProfileDB, ProfileStatus, UserRead
from blightstone.users.repository import ProfileRepository

logger = logging.getLogger(__name__)


def _describe(exc: Exception) -> str:
    if isinstance(exc, BlightstoneError) and exc.detail:
        return exc.detail
    return str(exc) or type(exc).__name__


class LoginResult(BaseModel):
    user: UserRead
    tokens: AuthTokens


class AuthService:
    def __init__(self, db: AsyncSession, email_sender: EmailSender | None = None):
        self.db = db
        self.credentials = CredentialStore(db)
        self.profiles = ProfileRepository(db)
        self.invitations = InvitationRepository(db)
        self.email_sender = email_sender or EmailSender()

    async def create_user(
        self,
        email: str,
        password: str,
        name: str | None,
        role: str = auth_settings.DEFAULT_ROLE,
        invited_by: UUID | None = None,
    ) -> UserRead:
        """Create an account and its profile, or neither.

        If the profile insert fails the account is deleted again. If that
        compensating delete fails too, InconsistentStateError is raised.
        """
        email = normalize_email(email)
        account = await self.credentials.create_account(email, password)

        try:
            profile = await self.profiles.create(
                ProfileDB(
                    id=account.id,
                    email=email,
                    name=name,
                    role=role,
                    status=ProfileStatus.active,
                    invited_by=invited_by,
                )
            )
        except Exception as exc:
            logger.warning(
                "Profile creation failed for account %s, deleting account: %s",
                account.id,
                exc,
            )
            try:
                await self.credentials.delete_account(account.id)
            except Exception as cleanup_exc:
                logger.error(
                    "Could not delete account %s after profile failure; manual cleanup required",
                    account.id,
                )
                raise InconsistentStateError(
                    "account", account.id, detail=_describe(cleanup_exc)
                ) from cleanup_exc
            raise

        logger.info("Created user %s with role %s", account.id, role)
        return UserRead.from_records(account, profile)

    async def invite_team_member(
        self,
        email: str,
        role: str,
        inviter_name: str,
        inviter_id: UUID,
    ) -> IssuedInvitation:
        email = normalize_email(email)
        if await self.profiles.get_by_email(email) is not None:
            raise DuplicateError("User already exists in the system")

        invitation = await self.invitations.create(
            InvitationDB(
                email=email,
                role=role,
                invited_by=inviter_id,
                token=generate_invite_token(),
                status=InvitationStatus.pending,
                expires_at=datetime.now(timezone.utc)
                + timedelta(days=auth_settings.INVITATION_EXPIRE_DAYS),
            )
        )
        logger.info("Invitation %s issued by %s", invitation.id, inviter_id)

        # The invitation row is the source of truth; delivery is best effort.
        email_sent = True
        try:
            await self.email_sender.send_team_invite(
                email=email,
                inviter_name=inviter_name,
                invite_token=invitation.token,
            )
        except NotificationError as exc:
            logger.warning(
                "Invitation %s created but email delivery failed: %s",
                invitation.id,
                exc.detail or exc.message,
            )
            email_sent = False

        return IssuedInvitation(invitation=invitation, email_sent=email_sent)

    async def verify_invitation(self, token: str) -> InvitationDB:
        invitation = await self.invitations.get_valid(token)
        if invitation is None:
            raise NotFoundError()
        return invitation

    async def complete_invitation(self, token: str, password: str, name: str | None) -> UserRead:
        invitation = await self.verify_invitation(token)

        claimed_at = await self.invitations.claim(invitation.id)
        if claimed_at is None:
            logger.info("Invitation %s was completed by a concurrent request", invitation.id)
            raise NotFoundError()

        try:
            user = await self.create_user(
                email=invitation.email,
                password=password,
                name=name,
                role=invitation.role,
                invited_by=invitation.invited_by,
            )
        except Exception:
            try:
                await self.invitations.release(invitation.id, claimed_at)
            except Exception as release_exc:
                logger.error(
                    "Could not release invitation %s after failed registration",
                    invitation.id,
                )
                raise InconsistentStateError(
                    "invitation", invitation.id, detail=_describe(release_exc)
                ) from release_exc
            raise

        logger.info("Invitation %s completed by user %s", invitation.id, user.id)
        return user

    async def login(self, email: str, password: str) -> LoginResult:
        account, tokens = await self.credentials.sign_in(email, password)

        profile = await self.profiles.get(account.id)
        if profile is None:
            # Profile-less accounts are incomplete; do not leave a live session behind.
            await self.credentials.sign_out(tokens.access_token)
            logger.warning("Login refused for account %s: no profile", account.id)
            raise ProfileNotFoundError()

        logger.info("Login succeeded for user %s", account.id)
        return LoginResult(user=UserRead.from_records(account, profile), tokens=tokens)

    async def logout(self, access_token: str | None) -> None:
        if not access_token:
            return
        await self.credentials.sign_out(access_token)

    async def get_current_user(self, access_token: str) -> UserRead:
        account = await self.credentials.get_account_by_token(access_token)
        profile = await self.profiles.get(account.id)
        if profile is None:
            raise ProfileNotFoundError()
        return UserRead.from_records(account, profile)

    async def refresh_session(self, refresh_token: str) -> AuthTokens:
        return await self.credentials.refresh(refresh_token)

    async def delete_user(self, email: str) -> None:
        profile = await self.profiles.get_by_email(email)
        if profile is None:
            raise RecordNotFoundError("User not found")
        await self.profiles.delete(profile)
        try:
            await self.credentials.delete_account(profile.id)
        except Exception as exc:
            logger.error(
                "Deleted profile %s but could not delete its account; manual cleanup required",
                profile.id,
            )
            raise InconsistentStateError("account", profile.id, detail=_describe(exc)) from exc
        logger.info("Deleted user %s", profile.id)
