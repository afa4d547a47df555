from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from blightstone.auth.dependencies import get_current_user
from blightstone.database import get_db
from blightstone.exceptions import RecordNotFoundError
from blightstone.tasks.models import TaskCreate, TaskDB, TaskRead, TaskUpdate
from blightstone.users.models import UserRead
from blightstone.utils.store_calls import store_call

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


async def _get_task_or_404(db: AsyncSession, task_id: UUID) -> TaskDB:
    async with store_call("task lookup"):
        result = await db.execute(select(TaskDB).where(TaskDB.id == task_id))
        task = result.scalar_one_or_none()
    if not task:
        raise RecordNotFoundError("Task not found")
    return task


@router.get("/")
async def list_tasks(
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool | list[TaskRead]]:
    """List tasks, newest first."""
    async with store_call("task listing"):
        result = await db.execute(select(TaskDB).order_by(TaskDB.created_at.desc()))
        tasks = result.scalars().all()
    return {"success": True, "tasks": [TaskRead.model_validate(task) for task in tasks]}


@router.post("/")
async def create_task(
    data: TaskCreate,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool | TaskRead]:
    """Create a task recorded as created by the current user."""
    task = TaskDB.model_validate(
        data.model_dump(exclude_none=True),
        update={"created_by": current_user.id, "status": "Pending"},
    )
    async with store_call("task creation"):
        db.add(task)
        await db.commit()
        await db.refresh(task)
    return {"success": True, "task": TaskRead.model_validate(task)}


@router.put("/{task_id}")
async def update_task(
    task_id: UUID,
    data: TaskUpdate,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool | TaskRead]:
    task = await _get_task_or_404(db, task_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(task, key, value)
    async with store_call("task update"):
        db.add(task)
        await db.commit()
        await db.refresh(task)
    return {"success": True, "task": TaskRead.model_validate(task)}


@router.delete("/{task_id}")
async def delete_task(
    task_id: UUID,
    current_user: UserRead = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, bool]:
    task = await _get_task_or_404(db, task_id)
    async with store_call("task deletion"):
        await db.delete(task)
        await db.commit()
    return {"success": True}
