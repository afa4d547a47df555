from fastapi import APIRouter, Depends, Request

from blightstone.auth.dependencies import (
    destroy_session,
    get_auth_service,
    get_current_user,
    load_session,
    open_session,
)
from blightstone.auth.schemas import (
    CurrentUser,
    InvitationRegisterRequest,
    InviteResponse,
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    RegisterInvitationResponse,
    RegisterRequest,
    SuccessResponse,
    VerifyInvitationResponse,
)
from blightstone.auth.service import AuthService
from blightstone.auth.sessions import SessionBackend, get_session_backend
from blightstone.invites.schemas import InviteCreate, InvitationSummary, invitation_to_read
from blightstone.users.models import SessionUser, UserRead

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    backend: SessionBackend = Depends(get_session_backend),
) -> LoginResponse:
    """Authenticate with email and password and open a session."""
    result = await auth_service.login(data.email, data.password)
    await open_session(request, backend, result)
    return LoginResponse(user=SessionUser.from_user(result.user))


@router.post("/register", response_model=MessageResponse)
async def register(
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Create an account directly (internal use)."""
    await auth_service.create_user(
        email=data.email,
        password=data.password,
        name=data.name,
        role=data.role,
    )
    return MessageResponse(message="Account created successfully. Please log in.")


@router.post("/register-invitation", response_model=RegisterInvitationResponse)
async def register_invitation(
    data: InvitationRegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> RegisterInvitationResponse:
    """Complete an invitation by choosing a password and name."""
    user = await auth_service.complete_invitation(
        token=data.token,
        password=data.password,
        name=data.name,
    )
    return RegisterInvitationResponse(user=SessionUser.from_user(user))


@router.post("/invite", response_model=InviteResponse)
async def invite(
    data: InviteCreate,
    current_user: UserRead = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> InviteResponse:
    """Invite a new team member by email."""
    issued = await auth_service.invite_team_member(
        email=data.email,
        role=data.role,
        inviter_name=current_user.name or current_user.email,
        inviter_id=current_user.id,
    )
    return InviteResponse(
        invitation=invitation_to_read(issued.invitation, include_url=True),
        email_sent=issued.email_sent,
    )


@router.get("/verify-invitation/{token}", response_model=VerifyInvitationResponse)
async def verify_invitation(
    token: str,
    auth_service: AuthService = Depends(get_auth_service),
) -> VerifyInvitationResponse:
    """Check an invitation token before showing the registration form."""
    invitation = await auth_service.verify_invitation(token)
    return VerifyInvitationResponse(
        invitation=InvitationSummary(
            email=invitation.email,
            role=invitation.role,
            expires_at=invitation.expires_at,
        )
    )


@router.get("/me", response_model=MeResponse)
async def get_me(
    current_user: UserRead = Depends(get_current_user),
) -> MeResponse:
    """Get the currently authenticated user."""
    return MeResponse(
        user=CurrentUser(
            id=current_user.id,
            email=current_user.email,
            name=current_user.name,
            role=current_user.role,
            status=current_user.status,
        )
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    backend: SessionBackend = Depends(get_session_backend),
) -> SuccessResponse:
    """Revoke the session's tokens and drop the session. Succeeds without a session too."""
    _, record = await load_session(request, backend)
    if record is not None:
        await auth_service.logout(record.access_token)
    await destroy_session(request, backend)
    return SuccessResponse()
