from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from blightstone.settings import app_settings

engine = create_async_engine(
    app_settings.database_url,
    pool_pre_ping=True,
    future=True,
    connect_args={"connect_timeout": int(app_settings.store_timeout_seconds)},
)

AsyncSessionLocal = sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session
