"""
Post aggregate: the post document and its embedded likes and comments.

Design notes
------------
- ``Post`` is a transient in-memory projection of one ``posts`` row.  It is
  built by ``PostStore`` on load and thrown away after the save (or after a
  failed precondition).
- Likes and comments are value objects owned by the post.  All changes go
  through the functions below; nothing else edits ``post.likes`` or
  ``post.comments``.
- Each mutation checks its precondition first and raises without touching
  the post, so a failed call leaves the aggregate unchanged.  On success the
  list is replaced by a new list (most recent first) and returned.
- Like/unlike is not a toggle.  Repeating either call is rejected.
"""
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from postboard.errors import (
    AlreadyLiked,
    CommentNotFound,
    InvalidComment,
    NotAuthorized,
    NotLiked,
)


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_date(value) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass
class Like:
    id: str
    user: str

    def to_dict(self) -> dict:
        return {"id": self.id, "user": self.user}

    @classmethod
    def from_dict(cls, data: dict) -> "Like":
        return cls(id=data["id"], user=data["user"])


@dataclass
class Comment:
    id: str
    text: str
    user: str
    name: str | None = None
    avatar: str | None = None
    date: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "name": self.name,
            "avatar": self.avatar,
            "user": self.user,
            "date": self.date.isoformat() if self.date else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Comment":
        return cls(
            id=data["id"],
            text=data["text"],
            user=data["user"],
            name=data.get("name"),
            avatar=data.get("avatar"),
            date=_parse_date(data.get("date")),
        )


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------

@dataclass
class Post:
    id: str
    text: str
    user: str
    name: str | None = None
    avatar: str | None = None
    date: datetime = field(default_factory=utcnow)
    likes: list[Like] = field(default_factory=list)
    comments: list[Comment] = field(default_factory=list)
    # Compare-and-swap token, owned by PostStore.
    version: int = 1

    def to_dict(self) -> dict:
        """JSON-safe dict, used for cache entries."""
        return {
            "id": self.id,
            "text": self.text,
            "name": self.name,
            "avatar": self.avatar,
            "user": self.user,
            "date": self.date.isoformat() if self.date else None,
            "likes": [like.to_dict() for like in self.likes],
            "comments": [comment.to_dict() for comment in self.comments],
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Post":
        return cls(
            id=data["id"],
            text=data["text"],
            user=data["user"],
            name=data.get("name"),
            avatar=data.get("avatar"),
            date=_parse_date(data.get("date")),
            likes=[Like.from_dict(item) for item in data.get("likes", [])],
            comments=[Comment.from_dict(item) for item in data.get("comments", [])],
            version=data.get("version", 1),
        )


def new_post(author_id: str, text: str, name: str | None = None, avatar: str | None = None) -> Post:
    """Build a fresh post owned by *author_id* with no likes or comments."""
    return Post(id=new_id(), text=text, user=author_id, name=name, avatar=avatar, date=utcnow())


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

def add_like(post: Post, user_id: str) -> list[Like]:
    if any(like.user == user_id for like in post.likes):
        raise AlreadyLiked()
    post.likes = [Like(id=new_id(), user=user_id)] + post.likes
    return post.likes


def remove_like(post: Post, user_id: str) -> list[Like]:
    """Remove the first like by *user_id* (lowest index wins)."""
    users = [like.user for like in post.likes]
    if user_id not in users:
        raise NotLiked()
    index = users.index(user_id)
    post.likes = post.likes[:index] + post.likes[index + 1:]
    return post.likes


def add_comment(
    post: Post,
    author_id: str,
    text: str,
    name: str | None = None,
    avatar: str | None = None,
) -> list[Comment]:
    if not text or not text.strip():
        raise InvalidComment()
    comment = Comment(id=new_id(), text=text, user=author_id, name=name, avatar=avatar, date=utcnow())
    post.comments = [comment] + post.comments
    return post.comments


def remove_comment(post: Post, comment_id: str) -> list[Comment]:
    ids = [comment.id for comment in post.comments]
    if comment_id not in ids:
        raise CommentNotFound()
    index = ids.index(comment_id)
    post.comments = post.comments[:index] + post.comments[index + 1:]
    return post.comments


def assert_owner(post: Post, caller_id: str) -> None:
    """Only the owner may delete a post.  Likes and comments are open to all."""
    if post.user != caller_id:
        raise NotAuthorized()
