import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from blightstone.auth.dependencies import get_auth_service, get_current_user, require_admin
from blightstone.auth.models import AccountDB, AuthTokens
from blightstone.auth.service import AuthService
from blightstone.auth.sessions import MemorySessionBackend, get_session_backend
from blightstone.database import get_db
from blightstone.exceptions import (
    AuthenticationError,
    DependencyError,
    DuplicateError,
    InvalidSessionError,
    NotificationError,
)
from blightstone.invites.models import InvitationDB, InvitationStatus
from blightstone.main import app
from blightstone.users.models import ProfileDB, ProfileStatus, UserRead


# ---------------------------------------------------------------------------
# In-memory stand-ins for the credential, profile and invitation stores
# ---------------------------------------------------------------------------

class FakeCredentialStore:
    def __init__(self):
        self.accounts: dict = {}
        self.passwords: dict = {}
        # access token -> account id, only for live tokens
        self.live_tokens: dict = {}
        # refresh token -> account id
        self.refresh_tokens: dict = {}
        self.revoked: list[str] = []
        self.fail_delete = False

    def add_account(self, email: str, password: str) -> AccountDB:
        account = AccountDB(
            id=uuid4(),
            email=email.lower(),
            hashed_password=f"hashed:{password}",
            email_confirmed_at=datetime.now(timezone.utc),
        )
        self.accounts[account.id] = account
        self.passwords[account.id] = password
        return account

    def expire_access_token(self, access_token: str) -> None:
        self.live_tokens.pop(access_token, None)

    def revoke_all(self) -> None:
        self.revoked.extend(self.live_tokens)
        self.live_tokens.clear()
        self.refresh_tokens.clear()

    async def get_account(self, account_id):
        return self.accounts.get(account_id)

    async def get_account_by_email(self, email):
        email = email.strip().lower()
        return next((a for a in self.accounts.values() if a.email == email), None)

    async def create_account(self, email, password):
        if await self.get_account_by_email(email) is not None:
            raise DuplicateError("Email already registered")
        return self.add_account(email.strip(), password)

    async def delete_account(self, account_id):
        if self.fail_delete:
            raise DependencyError(detail="account store unavailable")
        self.accounts.pop(account_id, None)
        self.passwords.pop(account_id, None)

    def _issue(self, account_id) -> AuthTokens:
        now = datetime.now(timezone.utc)
        tokens = AuthTokens(
            access_token=f"access-{uuid4().hex}",
            refresh_token=f"refresh-{uuid4().hex}",
            expires_at=now + timedelta(hours=24),
            refresh_expires_at=now + timedelta(days=7),
        )
        self.live_tokens[tokens.access_token] = account_id
        self.refresh_tokens[tokens.refresh_token] = account_id
        return tokens

    async def sign_in(self, email, password):
        account = await self.get_account_by_email(email)
        if account is None or self.passwords[account.id] != password:
            raise AuthenticationError("Invalid email or password")
        return account, self._issue(account.id)

    async def get_account_by_token(self, access_token):
        account_id = self.live_tokens.get(access_token)
        if account_id is None or account_id not in self.accounts:
            raise InvalidSessionError()
        return self.accounts[account_id]

    async def sign_out(self, access_token):
        if self.live_tokens.pop(access_token, None) is not None:
            self.revoked.append(access_token)

    async def refresh(self, refresh_token):
        account_id = self.refresh_tokens.pop(refresh_token, None)
        if account_id is None:
            raise InvalidSessionError()
        return self._issue(account_id)


class FakeProfileRepository:
    def __init__(self):
        self.profiles: dict = {}
        self.fail_create = False
        # raised as-is by create, for failures outside the error taxonomy
        self.create_error: Exception | None = None

    def add(self, profile: ProfileDB) -> ProfileDB:
        now = datetime.now(timezone.utc)
        profile.created_at = profile.created_at or now
        profile.updated_at = profile.updated_at or now
        self.profiles[profile.id] = profile
        return profile

    async def get(self, profile_id):
        return self.profiles.get(profile_id)

    async def get_by_email(self, email):
        email = email.strip().lower()
        return next((p for p in self.profiles.values() if p.email == email), None)

    async def list_all(self):
        return sorted(self.profiles.values(), key=lambda p: p.created_at, reverse=True)

    async def create(self, profile):
        if self.create_error is not None:
            raise self.create_error
        if self.fail_create:
            raise DependencyError(detail="profile store unavailable")
        return self.add(profile)

    async def delete(self, profile):
        self.profiles.pop(profile.id, None)


class FakeInvitationRepository:
    def __init__(self):
        self.invitations: dict = {}
        self.fail_release = False

    def add(self, invitation: InvitationDB) -> InvitationDB:
        invitation.created_at = invitation.created_at or datetime.now(timezone.utc)
        self.invitations[invitation.id] = invitation
        return invitation

    def _is_valid(self, invitation) -> bool:
        return (
            invitation.status == InvitationStatus.pending
            and invitation.expires_at > datetime.now(timezone.utc)
        )

    async def create(self, invitation):
        if any(i.token == invitation.token for i in self.invitations.values()):
            raise DuplicateError("Invitation token collision")
        return self.add(invitation)

    async def get_valid(self, token):
        invitation = next(
            (i for i in self.invitations.values() if i.token == token and self._is_valid(i)),
            None,
        )
        # Yield after reading so concurrent completions both pass verification
        await asyncio.sleep(0)
        return invitation

    async def list_pending(self):
        return [i for i in self.invitations.values() if self._is_valid(i)]

    async def claim(self, invitation_id):
        invitation = self.invitations.get(invitation_id)
        if invitation is None or not self._is_valid(invitation):
            return None
        invitation.status = InvitationStatus.completed
        invitation.completed_at = datetime.now(timezone.utc)
        return invitation.completed_at

    async def release(self, invitation_id, completed_at):
        if self.fail_release:
            raise DependencyError(detail="invitation store unavailable")
        invitation = self.invitations.get(invitation_id)
        if invitation is None or invitation.completed_at != completed_at:
            return False
        invitation.status = InvitationStatus.pending
        invitation.completed_at = None
        return True


class FakeEmailSender:
    def __init__(self):
        self.sent: list[dict] = []
        self.fail = False

    async def send_team_invite(self, *, email, inviter_name, invite_token, organization_name=None):
        if self.fail:
            raise NotificationError(detail="provider rejected the message")
        self.sent.append(
            {"email": email, "inviter_name": inviter_name, "invite_token": invite_token}
        )
        return f"msg-{len(self.sent)}"


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.delete = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    return db


@pytest.fixture
def credentials():
    return FakeCredentialStore()


@pytest.fixture
def profiles():
    return FakeProfileRepository()


@pytest.fixture
def invitations():
    return FakeInvitationRepository()


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def auth_service(mock_db, credentials, profiles, invitations, email_sender):
    service = AuthService(mock_db, email_sender=email_sender)
    service.credentials = credentials
    service.profiles = profiles
    service.invitations = invitations
    return service


@pytest.fixture
def session_backend():
    return MemorySessionBackend()


@pytest.fixture
def make_user(credentials, profiles):
    """Register an account and profile directly in the fake stores."""

    def _make_user(
        email="alice@example.com",
        password="secret123",
        name="Alice",
        role="Team Member",
        with_profile=True,
    ) -> AccountDB:
        account = credentials.add_account(email, password)
        if with_profile:
            profiles.add(
                ProfileDB(
                    id=account.id,
                    email=account.email,
                    name=name,
                    role=role,
                    status=ProfileStatus.active,
                )
            )
        return account

    return _make_user


@pytest.fixture
def client(mock_db, auth_service, session_backend):
    """Create a test client backed by the fake stores and an in-memory session backend."""

    async def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_session_backend] = lambda: session_backend
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


def make_user_read(**kwargs) -> UserRead:
    defaults = dict(
        id=uuid4(),
        name="Test User",
        email="test@test.com",
        role="Team Member",
        status=ProfileStatus.active,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )
    return UserRead(**{**defaults, **kwargs})


@pytest.fixture
def current_user():
    """Create a test user and override the get_current_user dependency."""
    user = make_user_read()
    app.dependency_overrides[get_current_user] = lambda: user
    yield user
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user():
    """Create an administrator and override both get_current_user and require_admin."""
    user = make_user_read(name="Admin User", email="admin@test.com", role="Administrator")
    app.dependency_overrides[get_current_user] = lambda: user
    app.dependency_overrides[require_admin] = lambda: user
    yield user
    app.dependency_overrides.clear()
