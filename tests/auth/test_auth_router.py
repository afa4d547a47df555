from datetime import datetime, timedelta, timezone
from uuid import uuid4

from fastapi.testclient import TestClient

from blightstone.exceptions import DependencyError
from blightstone.invites.models import InvitationDB, InvitationStatus

COOKIE = "blightstone.sid"


def login(client: TestClient, email="alice@example.com", password="secret123"):
    return client.post("/api/auth/login", json={"email": email, "password": password})


def make_invitation(**kwargs):
    defaults = dict(
        id=uuid4(),
        email="bob@x.com",
        role="Team Member",
        token="ab" * 32,
        status=InvitationStatus.pending,
        invited_by=uuid4(),
        expires_at=datetime.now(timezone.utc) + timedelta(days=7),
    )
    return InvitationDB(**{**defaults, **kwargs})


# ---------------------------------------------------------------------------
# Login / session
# ---------------------------------------------------------------------------

def test_login_opens_session(client: TestClient, make_user, session_backend):
    account = make_user(name="Alice", role="Administrator")

    response = login(client)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Login successful"
    assert data["user"] == {
        "id": str(account.id),
        "email": "alice@example.com",
        "name": "Alice",
        "role": "Administrator",
    }
    assert COOKIE in response.cookies
    assert len(session_backend) == 1


def test_login_cookie_does_not_carry_tokens(client: TestClient, make_user, credentials):
    make_user()

    response = login(client)

    [access_token] = credentials.live_tokens
    assert access_token not in response.cookies[COOKIE]


def test_login_invalid_credentials(client: TestClient, make_user, session_backend):
    make_user()

    response = login(client, password="wrong")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Invalid email or password"}
    assert len(session_backend) == 0


def test_login_without_profile(client: TestClient, make_user, credentials, session_backend):
    make_user(with_profile=False)

    response = login(client)

    assert response.status_code == 401
    assert response.json()["error"] == "User profile not found"
    assert credentials.live_tokens == {}
    assert len(session_backend) == 0


def test_login_missing_field(client: TestClient):
    response = client.post("/api/auth/login", json={"email": "alice@example.com"})

    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["error"].startswith("password")


def test_relogin_replaces_previous_session(client: TestClient, make_user, session_backend):
    make_user()

    login(client)
    login(client)

    assert len(session_backend) == 1


# ---------------------------------------------------------------------------
# /me
# ---------------------------------------------------------------------------

def test_me_requires_session(client: TestClient):
    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Authentication required"}


def test_me_returns_current_user(client: TestClient, make_user):
    account = make_user(name="Alice")
    login(client)

    response = client.get("/api/auth/me")

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["id"] == str(account.id)
    assert user["name"] == "Alice"
    assert user["status"] == "active"


def test_me_refreshes_expired_access_token(
    client: TestClient, make_user, credentials, session_backend
):
    make_user()
    login(client)
    [old_token] = credentials.live_tokens
    credentials.expire_access_token(old_token)

    response = client.get("/api/auth/me")

    assert response.status_code == 200
    [new_token] = credentials.live_tokens
    assert new_token != old_token
    [(_, raw)] = session_backend._records.values()
    assert new_token in raw


def test_me_destroys_dead_session(client: TestClient, make_user, credentials, session_backend):
    make_user()
    login(client)
    credentials.revoke_all()

    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["error"] == "Session expired"
    assert len(session_backend) == 0

    response = client.get("/api/auth/me")
    assert response.json()["error"] == "Authentication required"


def test_me_profile_deleted_mid_session(client: TestClient, make_user, profiles, session_backend):
    account = make_user()
    login(client)
    del profiles.profiles[account.id]

    response = client.get("/api/auth/me")

    assert response.status_code == 401
    assert response.json()["error"] == "User profile not found"
    assert len(session_backend) == 0


def test_me_store_outage_keeps_session(
    client: TestClient, make_user, credentials, session_backend
):
    make_user()
    login(client)

    async def unavailable(access_token):
        raise DependencyError(detail="connection refused")

    credentials.get_account_by_token = unavailable

    response = client.get("/api/auth/me")

    assert response.status_code == 500
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Service temporarily unavailable"
    assert len(session_backend) == 1

    del credentials.get_account_by_token
    assert client.get("/api/auth/me").status_code == 200


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------

def test_logout_revokes_and_is_idempotent(
    client: TestClient, make_user, credentials, session_backend
):
    make_user()
    login(client)
    [access_token] = credentials.live_tokens

    first = client.post("/api/auth/logout")
    second = client.post("/api/auth/logout")

    assert first.status_code == 200
    assert first.json() == {"success": True}
    assert second.status_code == 200
    assert second.json() == {"success": True}
    assert credentials.revoked == [access_token]
    assert len(session_backend) == 0
    assert client.get("/api/auth/me").status_code == 401


def test_logout_without_session(client: TestClient):
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def test_register_then_login(client: TestClient):
    response = client.post(
        "/api/auth/register",
        json={"email": "carol@example.com", "password": "pw123", "name": "Carol"},
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Account created successfully. Please log in.",
    }

    response = login(client, email="carol@example.com", password="pw123")
    assert response.json()["user"]["role"] == "Team Member"


def test_register_duplicate_email(client: TestClient, make_user):
    make_user(email="alice@example.com")

    response = client.post(
        "/api/auth/register",
        json={"email": "alice@example.com", "password": "pw", "name": "Alice"},
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Email already registered"}


def test_register_invalid_email(client: TestClient):
    response = client.post(
        "/api/auth/register",
        json={"email": "not-an-email", "password": "pw", "name": "X"},
    )

    assert response.status_code == 400
    assert response.json()["error"].startswith("email")


# ---------------------------------------------------------------------------
# Invitations
# ---------------------------------------------------------------------------

def test_invite_requires_session(client: TestClient):
    response = client.post("/api/auth/invite", json={"email": "bob@x.com"})

    assert response.status_code == 401


def test_invite_team_member(client: TestClient, make_user, email_sender):
    account = make_user(name="Alice")
    login(client)

    response = client.post(
        "/api/auth/invite", json={"email": "bob@x.com", "role": "Team Member"}
    )

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["email_sent"] is True
    invitation = data["invitation"]
    assert invitation["email"] == "bob@x.com"
    assert invitation["status"] == "pending"
    assert invitation["invited_by"] == str(account.id)
    token = email_sender.sent[0]["invite_token"]
    assert invitation["invite_url"].endswith(f"/auth-register?invite={token}")
    assert email_sender.sent[0]["inviter_name"] == "Alice"


def test_invite_existing_user(client: TestClient, make_user):
    make_user()
    make_user(email="bob@x.com", name="Bob")
    login(client)

    response = client.post("/api/auth/invite", json={"email": "bob@x.com"})

    assert response.status_code == 400
    assert response.json()["error"] == "User already exists in the system"


def test_verify_invitation(client: TestClient, invitations):
    invitation = invitations.add(make_invitation())

    response = client.get(f"/api/auth/verify-invitation/{invitation.token}")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["invitation"]["email"] == "bob@x.com"
    assert data["invitation"]["role"] == "Team Member"
    assert "token" not in data["invitation"]


def test_verify_expired_invitation(client: TestClient, invitations):
    invitation = invitations.add(
        make_invitation(expires_at=datetime.now(timezone.utc) - timedelta(minutes=1))
    )

    response = client.get(f"/api/auth/verify-invitation/{invitation.token}")

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid or expired invitation"}


def test_register_invitation(client: TestClient, invitations):
    invitation = invitations.add(make_invitation())

    response = client.post(
        "/api/auth/register-invitation",
        json={"token": invitation.token, "password": "pw123", "name": "Bob"},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Account created successfully! You can now log in."
    assert data["user"]["email"] == "bob@x.com"
    assert invitation.status == InvitationStatus.completed

    again = client.post(
        "/api/auth/register-invitation",
        json={"token": invitation.token, "password": "pw123", "name": "Bob"},
    )
    assert again.status_code == 400
    assert again.json()["error"] == "Invalid or expired invitation"

    assert login(client, email="bob@x.com", password="pw123").status_code == 200
