"""SQLAlchemy ORM models for kbase.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Types are kept portable so the same models run on SQLite (the default store)
and PostgreSQL.

Referential rules live in the schema, not in application code:
- categories.parent_id ON DELETE CASCADE (deleting a category removes descendants)
- articles.category_id ON DELETE SET NULL (articles become uncategorized)
- article_tags rows cascade with their article or tag
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

DEFAULT_CATEGORY_COLOR = "#6B7280"


def utcnow() -> datetime:
    """Timezone-aware current UTC time used for every timestamp column."""
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Models
# =============================================================================


class Category(Base):
    """Category model - a node in the category tree."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    color: Mapped[str] = mapped_column(
        Text, nullable=False, default=DEFAULT_CATEGORY_COLOR, server_default=DEFAULT_CATEGORY_COLOR
    )
    display_order: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Relationships
    children: Mapped[list["Category"]] = relationship(
        "Category", back_populates="parent", passive_deletes=True
    )
    parent: Mapped["Category | None"] = relationship(
        "Category", back_populates="children", remote_side=[id]
    )
    articles: Mapped[list["Article"]] = relationship(
        "Article", back_populates="category", passive_deletes=True
    )


class Article(Base):
    """Article metadata model.

    The Markdown body lives in the blob store under content_key. The three
    content_* columns are either all NULL (content never saved) or all set.
    """

    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content_key: Mapped[str | None] = mapped_column(Text, nullable=True)
    content_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    content_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("length(title) > 0", name="ck_articles_title_not_empty"),
        CheckConstraint(
            "(content_key IS NULL AND content_size IS NULL AND content_hash IS NULL)"
            " OR (content_key IS NOT NULL AND content_size IS NOT NULL"
            " AND content_hash IS NOT NULL)",
            name="ck_articles_content_fields_together",
        ),
        Index("ix_articles_deleted_at_created_at", "deleted_at", "created_at"),
    )

    # Relationships
    category: Mapped["Category | None"] = relationship("Category", back_populates="articles")


class Tag(Base):
    """Tag model. Names are unique and matched case-sensitively."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


class ArticleTag(Base):
    """Join row between an article and a tag."""

    __tablename__ = "article_tags"

    article_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("articles.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
