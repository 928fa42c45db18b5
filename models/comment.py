"""Comment, mention and reaction models."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship, validates

from .base import UUID, BaseModel, ModelValidationError

REACTIONS = ("👍", "👎", "❤️", "😂", "😮", "😢", "🎉")
MAX_COMMENT_LENGTH = 2000


class Comment(BaseModel):
    """
    A comment on a task, optionally replying to another comment of the same task.

    Threading is one level deep: replies point at a top-level comment through
    ``parent_comment_id``.
    """

    __tablename__ = "comments"

    content = Column(Text, nullable=False)
    task_id = Column(UUID(), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    parent_comment_id = Column(
        UUID(), ForeignKey("comments.id", ondelete="CASCADE"), index=True
    )
    attachments = Column(JSON, nullable=False, default=list)
    is_edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime)

    author = relationship("User", lazy="selectin")
    mention_links = relationship(
        "CommentMention",
        back_populates="comment",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    reactions = relationship(
        "CommentReaction",
        back_populates="comment",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def mentions(self) -> list:
        return [link.user_id for link in self.mention_links]

    @validates("content")
    def validate_content(self, _key, value):
        value = (value or "").strip()
        if not value:
            raise ModelValidationError("content", "Comment content is required")
        if len(value) > MAX_COMMENT_LENGTH:
            raise ModelValidationError(
                "content", f"Comment cannot be more than {MAX_COMMENT_LENGTH} characters"
            )
        return value


class CommentMention(BaseModel):
    __tablename__ = "comment_mentions"
    __table_args__ = (UniqueConstraint("comment_id", "user_id", name="uq_comment_mention"),)

    comment_id = Column(
        UUID(), ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    comment = relationship("Comment", back_populates="mention_links")


class CommentReaction(BaseModel):
    """At most one reaction per user per comment; the latest write wins."""

    __tablename__ = "comment_reactions"
    __table_args__ = (UniqueConstraint("comment_id", "user_id", name="uq_comment_reaction"),)

    comment_id = Column(
        UUID(), ForeignKey("comments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(UUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reaction = Column(String(16), nullable=False)

    comment = relationship("Comment", back_populates="reactions")

    @validates("reaction")
    def validate_reaction(self, _key, value):
        if value not in REACTIONS:
            raise ModelValidationError("reaction", "Unsupported reaction")
        return value
