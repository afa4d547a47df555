from pydantic import BaseModel, EmailStr, Field

from blightstone.auth.settings import auth_settings
from blightstone.invites.schemas import InvitationRead, InvitationSummary
from blightstone.users.models import ProfileStatus, SessionUser


class LoginRequest(BaseModel):
    """Request body for password login."""

    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    """Request body for direct registration (internal use)."""

    email: EmailStr
    password: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    role: str = Field(default=auth_settings.DEFAULT_ROLE, min_length=1, max_length=100)


class InvitationRegisterRequest(BaseModel):
    """Request body for completing an invitation."""

    token: str = Field(min_length=1)
    password: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)


class CurrentUser(SessionUser):
    status: ProfileStatus


class LoginResponse(BaseModel):
    success: bool = True
    user: SessionUser
    message: str = "Login successful"


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class RegisterInvitationResponse(BaseModel):
    success: bool = True
    user: SessionUser
    message: str = "Account created successfully! You can now log in."


class InviteResponse(BaseModel):
    success: bool = True
    invitation: InvitationRead
    email_sent: bool


class VerifyInvitationResponse(BaseModel):
    success: bool = True
    invitation: InvitationSummary


class MeResponse(BaseModel):
    success: bool = True
    user: CurrentUser


class SuccessResponse(BaseModel):
    success: bool = True
