from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from canvasforge.config import settings

engine = create_async_engine(settings.DATABASE_URL, echo=False)

# Store operations commit their own work; objects stay usable after a commit.
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db():
    """Request-scoped session; anything a failed request left pending is rolled back."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """Create the games and checkpoints tables if missing. Migrations live in alembic/."""
    from canvasforge.models.base import Base
    from canvasforge.models import game, checkpoint  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
