from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from blightstone.exceptions import DuplicateError
from blightstone.invites.models import InvitationDB, InvitationStatus
from blightstone.utils.store_calls import store_call


class InvitationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _rollback(self) -> None:
        async with store_call("invitation rollback"):
            await self.db.rollback()

    async def create(self, invitation: InvitationDB) -> InvitationDB:
        """Insert a new invitation. A token collision is an error, never an overwrite."""
        try:
            async with store_call("invitation creation"):
                self.db.add(invitation)
                await self.db.commit()
                await self.db.refresh(invitation)
        except DuplicateError:
            await self._rollback()
            raise DuplicateError("Invitation token collision")
        except Exception:
            await self._rollback()
            raise
        return invitation

    async def get_valid(self, token: str) -> InvitationDB | None:
        """Return the invitation if it is pending and unexpired."""
        async with store_call("invitation lookup"):
            result = await self.db.execute(
                select(InvitationDB).where(
                    InvitationDB.token == token,
                    InvitationDB.status == InvitationStatus.pending,
                    InvitationDB.expires_at > datetime.now(timezone.utc),
                )
            )
            return result.scalar_one_or_none()

    async def list_pending(self) -> list[InvitationDB]:
        async with store_call("invitation listing"):
            result = await self.db.execute(
                select(InvitationDB)
                .where(
                    InvitationDB.status == InvitationStatus.pending,
                    InvitationDB.expires_at > datetime.now(timezone.utc),
                )
                .order_by(InvitationDB.created_at.desc())
            )
            return list(result.scalars().all())

    async def claim(self, invitation_id: UUID) -> datetime | None:
        """Flip pending -> completed if nobody else has.

        Returns the completion timestamp when this caller won the transition,
        None when the invitation was already completed or has expired.
        """
        completed_at = datetime.now(timezone.utc)
        try:
            async with store_call("invitation completion"):
                result = await self.db.execute(
                    update(InvitationDB)
                    .where(
                        InvitationDB.id == invitation_id,
                        InvitationDB.status == InvitationStatus.pending,
                        InvitationDB.expires_at > completed_at,
                    )
                    .values(status=InvitationStatus.completed, completed_at=completed_at)
                    .execution_options(synchronize_session=False)
                )
                await self.db.commit()
        except Exception:
            await self._rollback()
            raise
        return completed_at if result.rowcount == 1 else None

    async def release(self, invitation_id: UUID, completed_at: datetime) -> bool:
        """Undo a claim made at ``completed_at`` so the invitation is pending again."""
        try:
            async with store_call("invitation release"):
                result = await self.db.execute(
                    update(InvitationDB)
                    .where(
                        InvitationDB.id == invitation_id,
                        InvitationDB.status == InvitationStatus.completed,
                        InvitationDB.completed_at == completed_at,
                    )
                    .values(status=InvitationStatus.pending, completed_at=None)
                    .execution_options(synchronize_session=False)
                )
                await self.db.commit()
        except Exception:
            await self._rollback()
            raise
        return result.rowcount == 1
