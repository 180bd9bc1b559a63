from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from postboard.database import Base


# ---------------------------------------------------------------------------
# Post
#
# One row per post document.  Likes and comments are embedded as JSON lists
# of plain dicts and have no table of their own: they live and die with the
# row.  ``version`` is bumped by every successful save and is the
# compare-and-swap token used by PostStore.save.
# ---------------------------------------------------------------------------
class PostRecord(Base):
    __tablename__ = "posts"

    __table_args__ = (
        # Newest-first feed
        Index("ix_posts_date", "date"),
        # Owner's posts
        Index("ix_posts_user_date", "user", "date"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    user: Mapped[str] = mapped_column(String(64), nullable=False)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    likes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    comments: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
