from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blightstone.auth.dependencies import get_auth_service, get_current_user, require_admin
from blightstone.auth.service import AuthService
from blightstone.database import get_db
from blightstone.exceptions import RecordNotFoundError, ValidationError
from blightstone.users.models import UserRead
from blightstone.users.repository import ProfileRepository

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/", response_model=list[UserRead])
async def get_users(
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[UserRead]:
    """List team members, newest first."""
    profiles = await ProfileRepository(db).list_all()
    return [UserRead.from_records(None, profile) for profile in profiles]


@router.get("/{email}", response_model=UserRead)
async def get_user_by_email(
    email: str,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserRead:
    """Get a team member by email."""
    profile = await ProfileRepository(db).get_by_email(email)
    if not profile:
        raise RecordNotFoundError("User not found")
    return UserRead.from_records(None, profile)


@router.delete("/{email}")
async def delete_user(
    email: str,
    current_user: UserRead = Depends(require_admin),
    auth_service: AuthService = Depends(get_auth_service),
) -> dict[str, bool]:
    """Delete a team member's profile and account. Administrator only."""
    if email.strip().lower() == current_user.email:
        raise ValidationError("You cannot delete your own account")
    await auth_service.delete_user(email)
    return {"success": True}
