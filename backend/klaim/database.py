from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from klaim.config import settings

_engine_kwargs = {} if settings.DATABASE_URL.startswith("sqlite") else {"pool_pre_ping": True, "pool_recycle": 3600}

engine = create_async_engine(settings.DATABASE_URL, echo=False, **_engine_kwargs)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)

class Base(DeclarativeBase):
    """Declarative base for users and assets."""

async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session
