import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from canvasforge.artifacts import ArtifactTriple
from canvasforge.errors import GenerationUnavailable
from canvasforge.generation import GenerationResult
from canvasforge.models.base import Base
from canvasforge.models import game, checkpoint  # noqa: F401
from canvasforge.database import get_db
from canvasforge.main import create_app

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OWNER_A = "0xA11CE00000000000000000000000000000000001"
OWNER_B = "0xB0B0000000000000000000000000000000000002"


def triple(tag: str) -> ArtifactTriple:
    return ArtifactTriple(
        markup=f"<canvas id='{tag}'></canvas>",
        styles=f"canvas#{tag} {{ border: 1px solid; }}",
        logic=f"// {tag}\nrequestAnimationFrame(loop);",
    )


class FakeGenerator:
    """In-process stand-in for the model; records every call."""

    def __init__(self, result: GenerationResult | None = None, error: Exception | None = None):
        self.result = result or GenerationResult(artifacts=triple("generated"), description="Made a game")
        self.error = error
        self.calls = []

    async def generate(self, prompt, previous=None):
        self.calls.append((prompt, previous))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fake_generator():
    return FakeGenerator()


@pytest.fixture
def failing_generator():
    return FakeGenerator(error=GenerationUnavailable("model offline"))


@pytest_asyncio.fixture
async def db_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(db_engine):
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app = create_app()
    app.dependency_overrides[get_db] = override_get_db
    return app


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
