"""Initial schema - categories, articles, tags, article_tags

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Article bodies live in the blob store; articles only carry the content key,
byte size and SHA-256 of the last write.
Types and defaults are portable between SQLite and PostgreSQL.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=None if nullable else sa.text("CURRENT_TIMESTAMP"),
        nullable=nullable,
    )


def upgrade() -> None:
    # ==========================================================================
    # categories table
    # ==========================================================================
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("color", sa.Text(), server_default="#6B7280", nullable=False),
        sa.Column("display_order", sa.Integer(), server_default="0", nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
        # Deleting a category deletes its descendants
        sa.ForeignKeyConstraint(["parent_id"], ["categories.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_categories_parent_id", "categories", ["parent_id"])

    # ==========================================================================
    # articles table
    # ==========================================================================
    op.create_table(
        "articles",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("content_key", sa.Text(), nullable=True),
        sa.Column("content_size", sa.Integer(), nullable=True),
        sa.Column("content_hash", sa.Text(), nullable=True),
        sa.Column("memo", sa.Text(), nullable=True),
        sa.Column("category_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        _timestamp("deleted_at", nullable=True),
        sa.PrimaryKeyConstraint("id"),
        # Deleting a category leaves its articles uncategorized
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="SET NULL"),
        sa.CheckConstraint("length(title) > 0", name="ck_articles_title_not_empty"),
        sa.CheckConstraint(
            "(content_key IS NULL AND content_size IS NULL AND content_hash IS NULL)"
            " OR (content_key IS NOT NULL AND content_size IS NOT NULL"
            " AND content_hash IS NOT NULL)",
            name="ck_articles_content_fields_together",
        ),
    )
    op.create_index("ix_articles_category_id", "articles", ["category_id"])
    op.create_index(
        "ix_articles_deleted_at_created_at", "articles", ["deleted_at", "created_at"]
    )

    # ==========================================================================
    # tags table
    # ==========================================================================
    op.create_table(
        "tags",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # ==========================================================================
    # article_tags table
    # ==========================================================================
    op.create_table(
        "article_tags",
        sa.Column("article_id", sa.Integer(), nullable=False),
        sa.Column("tag_id", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("article_id", "tag_id"),
        sa.ForeignKeyConstraint(["article_id"], ["articles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_article_tags_tag_id", "article_tags", ["tag_id"])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key dependencies)
    op.drop_index("ix_article_tags_tag_id", table_name="article_tags")
    op.drop_table("article_tags")
    op.drop_table("tags")
    op.drop_index("ix_articles_deleted_at_created_at", table_name="articles")
    op.drop_index("ix_articles_category_id", table_name="articles")
    op.drop_table("articles")
    op.drop_index("ix_categories_parent_id", table_name="categories")
    op.drop_table("categories")
