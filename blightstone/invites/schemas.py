from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from blightstone.auth.settings import auth_settings
from blightstone.invites.models import InvitationDB
from blightstone.notifications.templates import build_invite_url


class InviteCreate(BaseModel):
    email: EmailStr
    role: str = Field(default=auth_settings.DEFAULT_ROLE, min_length=1, max_length=100)


class InvitationRead(BaseModel):
    id: UUID
    email: str
    role: str
    status: str
    invite_url: str | None = None
    invited_by: UUID | None = None
    expires_at: datetime
    created_at: datetime | None = None


class InvitationSummary(BaseModel):
    """What an unauthenticated invitee is allowed to see."""

    email: str
    role: str
    expires_at: datetime


class IssuedInvitation(BaseModel):
    invitation: InvitationDB
    email_sent: bool


def invitation_to_read(invitation: InvitationDB, include_url: bool = False) -> InvitationRead:
    return InvitationRead(
        id=invitation.id,
        email=invitation.email,
        role=invitation.role,
        status=invitation.status.value,
        invite_url=build_invite_url(invitation.token) if include_url else None,
        invited_by=invitation.invited_by,
        expires_at=invitation.expires_at,
        created_at=invitation.created_at,
    )
