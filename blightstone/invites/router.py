from fastapi import APIRouter, Depends

from blightstone.auth.dependencies import get_auth_service, get_current_user
from blightstone.auth.service import AuthService
from blightstone.invites.schemas import InvitationRead, invitation_to_read
from blightstone.users.models import UserRead

router = APIRouter(prefix="/api/invitations", tags=["invitations"])


@router.get("/")
async def list_invitations(
    current_user: UserRead = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict[str, bool | list[InvitationRead]]:
    """List pending, unexpired invitations."""
    invitations = await auth_service.invitations.list_pending()
    return {
        "success": True,
        "invitations": [invitation_to_read(inv) for inv in invitations],
    }
