"""
Test infrastructure for the Postboard API.

Strategy
--------
- SQLite in-memory via aiosqlite stands in for Postgres; the posts table
  only needs JSON columns and a plain UPDATE ... WHERE version = ?, both of
  which SQLite supports.
- StaticPool keeps every session on the same in-memory connection, since a
  new connection would see an empty database.
- The app's get_db dependency is overridden so every test request uses the
  test session factory.
- Tables are created before and dropped after each test.
- Redis is disabled by setting cache._redis = None; the CacheManager treats
  that as a permanent miss, so tests always hit the store.  Tests that need
  the cache use the redis_cache fixture (fakeredis).
"""
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fakeredis import FakeAsyncRedis, FakeServer
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool

from postboard.aggregate import Post
from postboard.database import Base, commit, get_db
from postboard.main import app
from postboard.cache import cache
from postboard.middleware import install_query_counter
from postboard.store import PostStore

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

install_query_counter(engine_test)

async_session_test = async_sessionmaker(
    engine_test,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    cache._redis = None
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def redis_cache():
    """
    Plug an in-memory Redis into the cache singleton for one test, so the
    cache-aside reads and write invalidation run for real.
    """
    fake = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
    cache._redis = fake
    cache._hits = cache._misses = 0
    yield cache
    cache._redis = None
    await fake.aclose()


@pytest.fixture
def make_post():
    """Build an unsaved Post with sensible defaults; keyword args override."""
    def _make(**overrides) -> Post:
        fields = {
            "id": "P1",
            "text": "A post about embedded documents",
            "user": "U1",
            "name": "Owner",
            "avatar": "https://example.com/u1.png",
            "date": datetime(2024, 1, 1, tzinfo=timezone.utc),
        }
        fields.update(overrides)
        return Post(**fields)

    return _make


@pytest_asyncio.fixture
async def stored_post(db_session: AsyncSession, make_post) -> Post:
    """Post "P1" owned by "U1", inserted and committed."""
    post = make_post()
    await PostStore(db_session).insert(post)
    await db_session.commit()
    return post