from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from blightstone.auth.utils import normalize_email
from blightstone.users.models import ProfileDB
from blightstone.utils.store_calls import store_call


class ProfileRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, profile_id: UUID) -> ProfileDB | None:
        async with store_call("profile lookup"):
            result = await self.db.execute(select(ProfileDB).where(ProfileDB.id == profile_id))
            return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> ProfileDB | None:
        async with store_call("profile lookup"):
            result = await self.db.execute(
                select(ProfileDB).where(ProfileDB.email == normalize_email(email))
            )
            return result.scalar_one_or_none()

    async def list_all(self) -> list[ProfileDB]:
        async with store_call("profile listing"):
            result = await self.db.execute(
                select(ProfileDB).order_by(ProfileDB.created_at.desc())
            )
            return list(result.scalars().all())

    async def create(self, profile: ProfileDB) -> ProfileDB:
        try:
            async with store_call("profile creation"):
                self.db.add(profile)
                await self.db.commit()
                await self.db.refresh(profile)
        except Exception:
            async with store_call("profile rollback"):
                await self.db.rollback()
            raise
        return profile

    async def delete(self, profile: ProfileDB) -> None:
        try:
            async with store_call("profile deletion"):
                await self.db.delete(profile)
                await self.db.commit()
        except Exception:
            async with store_call("profile rollback"):
                await self.db.rollback()
            raise
