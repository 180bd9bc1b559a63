"""
Cache-aside tests: reads served from Redis (fakeredis), and every write
evicting the feed and detail entries it made stale.
"""
import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.cache import LIST_KEY, detail_key
from postboard.database import commit
from postboard.errors import NotLiked, PostNotFound
from postboard.schemas import CommentCreate, PostCreate
from postboard.services import post_service
from postboard.store import PostStore


async def _edit_behind_cache(db: AsyncSession, post_id: str, text: str) -> None:
    """Change a stored post without going through the service layer."""
    store = PostStore(db)
    post = await store.find_by_id(post_id)
    post.text = text
    await store.save(post)


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_post_served_from_cache(db_session: AsyncSession, stored_post, redis_cache):
    first = await post_service.get_post(db_session, "P1")
    await _edit_behind_cache(db_session, "P1", "Edited behind the cache")

    cached = await post_service.get_post(db_session, "P1")
    assert cached.text == first.text
    assert cached.date == first.date
    assert redis_cache.stats["hits"] == 1


@pytest.mark.asyncio
async def test_list_posts_served_from_cache(db_session: AsyncSession, stored_post, make_post, redis_cache):
    assert [p.id for p in await post_service.list_posts(db_session)] == ["P1"]
    await PostStore(db_session).insert(make_post(id="P2"))

    cached = await post_service.list_posts(db_session)
    assert [p.id for p in cached] == ["P1"]
    assert cached[0].user == "U1"
    assert redis_cache.stats["hits"] == 1


# ---------------------------------------------------------------------------
# Write invalidation
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_like_refreshes_detail_and_feed(db_session: AsyncSession, stored_post, redis_cache):
    await post_service.get_post(db_session, "P1")
    await post_service.list_posts(db_session)

    await post_service.like_post(db_session, "P1", "U2")

    post = await post_service.get_post(db_session, "P1")
    assert [like.user for like in post.likes] == ["U2"]
    feed = await post_service.list_posts(db_session)
    assert [like.user for like in feed[0].likes] == ["U2"]


@pytest.mark.asyncio
async def test_unlike_refreshes_detail(db_session: AsyncSession, stored_post, redis_cache):
    await post_service.like_post(db_session, "P1", "U2")
    assert len((await post_service.get_post(db_session, "P1")).likes) == 1

    await post_service.unlike_post(db_session, "P1", "U2")
    assert (await post_service.get_post(db_session, "P1")).likes == []


@pytest.mark.asyncio
async def test_comments_refresh_detail(db_session: AsyncSession, stored_post, redis_cache):
    await post_service.get_post(db_session, "P1")

    post = await post_service.add_comment(db_session, "P1", "U2", CommentCreate(text="Fresh comment"))
    cached = await post_service.get_post(db_session, "P1")
    assert [c.text for c in cached.comments] == ["Fresh comment"]

    await post_service.remove_comment(db_session, "P1", post.comments[0].id)
    assert (await post_service.get_post(db_session, "P1")).comments == []


@pytest.mark.asyncio
async def test_create_refreshes_feed(db_session: AsyncSession, stored_post, redis_cache):
    await post_service.list_posts(db_session)

    created = await post_service.create_post(
        db_session, "U2", PostCreate(text="A brand new post in the feed")
    )
    feed = await post_service.list_posts(db_session)
    assert {p.id for p in feed} == {"P1", created.id}


@pytest.mark.asyncio
async def test_delete_evicts_detail(db_session: AsyncSession, stored_post, redis_cache):
    await post_service.get_post(db_session, "P1")

    await post_service.delete_post(db_session, "P1", "U1")

    with pytest.raises(PostNotFound):
        await post_service.get_post(db_session, "P1")
    assert await post_service.list_posts(db_session) == []


@pytest.mark.asyncio
async def test_failed_mutation_keeps_cache(db_session: AsyncSession, stored_post, redis_cache):
    await post_service.get_post(db_session, "P1")

    with pytest.raises(NotLiked):
        await post_service.unlike_post(db_session, "P1", "U2")

    assert await redis_cache.get(detail_key("P1")) is not None


# ---------------------------------------------------------------------------
# Eviction after commit
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_keys_evicted_again_after_commit(db_session: AsyncSession, stored_post, redis_cache):
    """
    A read between the write and its commit can re-cache the old document.
    Committing evicts the invalidated keys a second time.
    """
    old = await post_service.get_post(db_session, "P1")
    await post_service.like_post(db_session, "P1", "U2")

    # Concurrent reader, still seeing the pre-commit row.
    await redis_cache.set(detail_key("P1"), old.to_dict())
    await redis_cache.set(LIST_KEY, [old.to_dict()])

    await commit(db_session)

    assert await redis_cache._redis.get(detail_key("P1")) is None
    assert await redis_cache._redis.get(LIST_KEY) is None
    post = await post_service.get_post(db_session, "P1")
    assert [like.user for like in post.likes] == ["U2"]


@pytest.mark.asyncio
async def test_commit_without_writes_evicts_nothing(db_session: AsyncSession, stored_post, redis_cache):
    await post_service.get_post(db_session, "P1")
    await commit(db_session)
    assert await redis_cache._redis.get(detail_key("P1")) is not None
