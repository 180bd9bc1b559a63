from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from postboard.cache import cache
from postboard.config import settings
from postboard.middleware import install_query_counter

# PostStore.save is a single ``UPDATE ... WHERE id = ? AND version = ?``.
# Under READ COMMITTED a second writer blocks on the row lock, re-checks the
# WHERE clause against the committed version and matches zero rows, which is
# what turns a lost update into ConcurrentModification.  Stricter levels
# would surface the same race as a serialization error instead.
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
    isolation_level=settings.DATABASE_ISOLATION_LEVEL,
)

# Register the per-request SQL query counter on the production engine.
install_query_counter(engine)

# expire_on_commit=False: Post aggregates are built from rows before the
# commit and serialised after it.
async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    pass


async def commit(session: AsyncSession) -> None:
    """
    Commit the request's single post write, then evict the cache keys that
    write invalidated a second time (see ``CacheManager.invalidate_post``).
    """
    await session.commit()
    await cache.evict_after_commit(session)


async def get_db():
    """One session per request; the router layer's transaction boundary."""
    async with async_session() as session:
        try:
            yield session
            await commit(session)
        except Exception:
            await session.rollback()
            raise
