"""
Post service: orchestrates PostStore and the post aggregate per request.

Design notes
------------
- Every operation follows the same shape: load the post, check it exists,
  authorize if needed, let ``postboard.aggregate`` apply the change, then
  persist with a single ``PostStore`` call.
- Mutations are read-modify-write cycles guarded by optimistic concurrency.
  ``PostStore.save`` refuses to overwrite a document that changed since it
  was loaded; the cycle is then re-run from a fresh load, at most
  ``settings.MAX_WRITE_ATTEMPTS`` times in total.  Preconditions are checked
  again on the fresh state, so two simultaneous likes from one user end as
  one like and one ``AlreadyLiked``.
- Domain errors and ``StoreError`` are raised straight to the caller and
  never retried.
- Reads go through the cache-aside layer; every successful write
  invalidates the feed entry and the post's detail entry.
- Caller identity is always an explicit argument.
"""
import logging
from typing import Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from postboard import aggregate
from postboard.aggregate import Comment, Like, Post
from postboard.cache import LIST_KEY, cache, detail_key
from postboard.config import settings
from postboard.errors import ConcurrentModification, PostNotFound, ValidationFailed
from postboard.schemas import CommentCreate, PostCreate
from postboard.store import PostStore
from postboard.validation import validate_comment_input, validate_post_input

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Read-modify-write helper
# ---------------------------------------------------------------------------

async def _load(store: PostStore, post_id: str) -> Post:
    post = await store.find_by_id(post_id)
    if post is None:
        raise PostNotFound()
    return post


async def _mutate(db: AsyncSession, post_id: str, change: Callable[[Post], T]) -> tuple[Post, T]:
    """
    Run load -> *change* -> save against *post_id*, re-running the whole
    cycle when the save loses a version race.

    Returns the saved post and whatever *change* returned.
    """
    store = PostStore(db)
    attempts = max(settings.MAX_WRITE_ATTEMPTS, 1)
    for attempt in range(1, attempts + 1):
        post = await _load(store, post_id)
        result = change(post)
        try:
            await store.save(post)
        except ConcurrentModification:
            logger.warning(
                "Write conflict on post %s (attempt %d/%d)", post_id, attempt, attempts
            )
            if attempt == attempts:
                raise
            continue
        await cache.invalidate_post(db, post_id)
        return post, result
    raise ConcurrentModification()  # pragma: no cover


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def list_posts(db: AsyncSession) -> list[Post]:
    """Return every post, newest first."""
    cached = await cache.get(LIST_KEY)
    if cached is not None:
        return [Post.from_dict(item) for item in cached]

    posts = await PostStore(db).find_all()
    await cache.set(LIST_KEY, [p.to_dict() for p in posts], ttl=settings.CACHE_TTL_LIST)
    return posts


async def get_post(db: AsyncSession, post_id: str) -> Post:
    cached = await cache.get(detail_key(post_id))
    if cached is not None:
        return Post.from_dict(cached)

    post = await PostStore(db).find_by_id(post_id)
    if post is None:
        raise PostNotFound("No post found with that id", code="nopostfound")
    await cache.set(detail_key(post_id), post.to_dict(), ttl=settings.CACHE_TTL_DETAIL)
    return post


# ---------------------------------------------------------------------------
# Create / delete
# ---------------------------------------------------------------------------

async def create_post(db: AsyncSession, author_id: str, data: PostCreate) -> Post:
    errors, is_valid = validate_post_input(data.model_dump())
    if not is_valid:
        raise ValidationFailed(errors)

    post = aggregate.new_post(author_id, data.text, data.name, data.avatar)
    await PostStore(db).insert(post)
    await cache.invalidate_post(db)
    logger.info("Post %s created by %s", post.id, author_id)
    return post


async def delete_post(db: AsyncSession, post_id: str, caller_id: str) -> None:
    """Delete *post_id*; only its owner may do so."""
    store = PostStore(db)
    post = await _load(store, post_id)
    aggregate.assert_owner(post, caller_id)
    await store.delete(post)
    await cache.invalidate_post(db, post_id)
    logger.info("Post %s deleted by %s", post_id, caller_id)


# ---------------------------------------------------------------------------
# Likes
# ---------------------------------------------------------------------------

async def like_post(db: AsyncSession, post_id: str, caller_id: str) -> list[Like]:
    _, likes = await _mutate(db, post_id, lambda post: aggregate.add_like(post, caller_id))
    return likes


async def unlike_post(db: AsyncSession, post_id: str, caller_id: str) -> list[Like]:
    _, likes = await _mutate(db, post_id, lambda post: aggregate.remove_like(post, caller_id))
    return likes


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

async def add_comment(db: AsyncSession, post_id: str, author_id: str, data: CommentCreate) -> Post:
    """
    Prepend a comment by *author_id* and return the whole updated post.

    The post is loaded before the input is checked, so a missing post is
    reported as PostNotFound whatever the payload.
    """
    def change(post: Post) -> list[Comment]:
        errors, is_valid = validate_comment_input(data.model_dump())
        if not is_valid:
            raise ValidationFailed(errors)
        return aggregate.add_comment(post, author_id, data.text, data.name, data.avatar)

    post, _ = await _mutate(db, post_id, change)
    return post


async def remove_comment(db: AsyncSession, post_id: str, comment_id: str) -> Post:
    """
    Remove *comment_id* from the post and return the updated post.

    Neither the comment author nor the post owner is checked here.
    """
    post, _ = await _mutate(db, post_id, lambda post: aggregate.remove_comment(post, comment_id))
    return post
