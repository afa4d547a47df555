from datetime import datetime, timedelta, timezone
from uuid import uuid4

from fastapi.testclient import TestClient

from blightstone.invites.models import InvitationDB, InvitationStatus


def make_invitation(**kwargs):
    defaults = dict(
        id=uuid4(),
        email="bob@x.com",
        role="Team Member",
        token=uuid4().hex * 2,
        status=InvitationStatus.pending,
        invited_by=uuid4(),
        expires_at=datetime.now(timezone.utc) + timedelta(days=7),
    )
    return InvitationDB(**{**defaults, **kwargs})


def test_list_invitations_requires_session(client: TestClient):
    response = client.get("/api/invitations/")

    assert response.status_code == 401


def test_list_pending_invitations(client: TestClient, current_user, invitations):
    pending = invitations.add(make_invitation())
    invitations.add(make_invitation(email="old@x.com", status=InvitationStatus.completed))
    invitations.add(
        make_invitation(
            email="late@x.com", expires_at=datetime.now(timezone.utc) - timedelta(days=1)
        )
    )

    response = client.get("/api/invitations/")

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert [inv["id"] for inv in data["invitations"]] == [str(pending.id)]
    assert data["invitations"][0]["invite_url"] is None
