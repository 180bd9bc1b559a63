"""
PostStore: persistence for the post document.

Design notes
------------
- The store speaks ``Post`` aggregates in and out; ``PostRecord`` rows never
  leave this module.
- ``save`` is a whole-document overwrite guarded by a compare-and-swap on
  ``version``.  A save against a row that changed (or vanished) since it was
  loaded affects zero rows and raises ``ConcurrentModification``; the service
  layer decides whether to re-run the cycle.
- ``find_by_id`` always re-reads the row (``populate_existing``) because
  ``save`` and ``delete`` bypass the ORM unit of work, so the session's
  identity map may hold an outdated copy.
- Engine failures surface immediately as ``StoreError``.  Nothing here
  retries.
- The store flushes but never commits; the transaction boundary is owned by
  the ``get_db`` dependency.
"""
import logging
from contextlib import contextmanager

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from postboard.aggregate import Comment, Like, Post
from postboard.errors import ConcurrentModification, StoreError
from postboard.models import PostRecord

logger = logging.getLogger(__name__)


@contextmanager
def _store_errors(operation: str):
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Store %s failed: %s", operation, exc)
        raise StoreError() from exc


# ---------------------------------------------------------------------------
# Row <-> aggregate mapping
# ---------------------------------------------------------------------------

def _record_to_post(record: PostRecord) -> Post:
    return Post(
        id=record.id,
        text=record.text,
        name=record.name,
        avatar=record.avatar,
        user=record.user,
        date=record.date,
        likes=[Like.from_dict(item) for item in record.likes or []],
        comments=[Comment.from_dict(item) for item in record.comments or []],
        version=record.version,
    )


def _document_fields(post: Post) -> dict:
    """Mutable part of the document, as written by ``save``."""
    return {
        "text": post.text,
        "name": post.name,
        "avatar": post.avatar,
        "likes": [like.to_dict() for like in post.likes],
        "comments": [comment.to_dict() for comment in post.comments],
    }


class PostStore:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def find_all(self) -> list[Post]:
        """All posts, newest first."""
        q = select(PostRecord).order_by(PostRecord.date.desc())
        with _store_errors("find_all"):
            result = await self._session.execute(q.execution_options(populate_existing=True))
            return [_record_to_post(r) for r in result.scalars().all()]

    async def find_by_id(self, post_id: str) -> Post | None:
        q = (
            select(PostRecord)
            .where(PostRecord.id == post_id)
            .execution_options(populate_existing=True)
        )
        with _store_errors("find_by_id"):
            result = await self._session.execute(q)
            record = result.scalar_one_or_none()
        return _record_to_post(record) if record is not None else None

    async def insert(self, post: Post) -> Post:
        record = PostRecord(
            id=post.id,
            user=post.user,
            date=post.date,
            version=post.version,
            **_document_fields(post),
        )
        with _store_errors("insert"):
            self._session.add(record)
            await self._session.flush()
        return post

    async def save(self, post: Post) -> Post:
        """
        Overwrite the stored document with *post* if nobody else wrote it
        since it was loaded.

        Raises ConcurrentModification when the stored version no longer
        matches ``post.version``.  On success ``post.version`` is advanced.
        """
        stmt = (
            update(PostRecord)
            .where(PostRecord.id == post.id, PostRecord.version == post.version)
            .values(version=post.version + 1, **_document_fields(post))
            .execution_options(synchronize_session=False)
        )
        with _store_errors("save"):
            result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise ConcurrentModification()
        post.version += 1
        return post

    async def delete(self, post: Post) -> None:
        stmt = (
            delete(PostRecord)
            .where(PostRecord.id == post.id)
            .execution_options(synchronize_session=False)
        )
        with _store_errors("delete"):
            await self._session.execute(stmt)
