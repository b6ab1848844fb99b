"""Metadata repository.

The only writer of article, tag and category rows. Content bytes never pass
through here; the repository only records where content lives (content_key)
and what it was when last written (content_size, content_hash).

Key invariants:
- List/search calls attach tags with exactly one batch query over the full
  id set (never one query per article)
- content_key/content_size/content_hash are only written together,
  by attach_content_metadata()
- Each mutating call commits on its own; multi-step operations such as
  replace_tags() and reorder_categories() are not atomic as a whole
- Category cascade (descendants deleted, articles uncategorized) is enforced
  by foreign-key rules, not by code here
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import and_, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kbase.db.models import DEFAULT_CATEGORY_COLOR, Article, ArticleTag, Category, Tag, utcnow
from kbase.db.session import transaction
from kbase.logging import get_logger
from kbase.schemas.article import ArticleMetadata
from kbase.schemas.category import CategoryOut
from kbase.schemas.tag import TagOut, TagWithCount

logger = get_logger(__name__)

# Sentinel for "argument not passed" where None is a meaningful value
UNSET: Any = object()

# Metadata-only projection. There is no content column, but list views must
# never grow one by accident through select(Article).
ARTICLE_METADATA_COLUMNS = (
    Article.id,
    Article.title,
    Article.content_key,
    Article.content_size,
    Article.content_hash,
    Article.memo,
    Article.category_id,
    Article.created_at,
    Article.updated_at,
    Article.deleted_at,
)

CATEGORY_COLUMNS = (
    Category.id,
    Category.name,
    Category.parent_id,
    Category.color,
    Category.display_order,
    Category.created_at,
    Category.updated_at,
)

LIKE_ESCAPE = "\\"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input is matched literally."""
    return (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


class MetadataRepository:
    """Relational reads and writes for articles, tags and categories."""

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # Article reads
    # =========================================================================

    def list_active(self) -> list[ArticleMetadata]:
        """Active articles, newest first, metadata only."""
        stmt = (
            select(*ARTICLE_METADATA_COLUMNS)
            .where(Article.deleted_at.is_(None))
            .order_by(Article.created_at.desc(), Article.id.desc())
        )
        return self._with_tags(self.db.execute(stmt).mappings().all())

    def list_trashed(self) -> list[ArticleMetadata]:
        """Soft-deleted articles, most recently deleted first."""
        stmt = (
            select(*ARTICLE_METADATA_COLUMNS)
            .where(Article.deleted_at.is_not(None))
            .order_by(Article.deleted_at.desc(), Article.id.desc())
        )
        return self._with_tags(self.db.execute(stmt).mappings().all())

    def search(self, query: str, tag: str | None = None) -> list[ArticleMetadata]:
        """Case-insensitive substring match on title or memo among active articles.

        Content is not searched; it lives in the blob store.

        Args:
            query: Substring to look for. An empty query matches every article.
            tag: Optional exact tag name the article must carry.
        """
        pattern = f"%{escape_like(query)}%"
        stmt = (
            select(*ARTICLE_METADATA_COLUMNS)
            .where(
                Article.deleted_at.is_(None),
                or_(
                    Article.title.ilike(pattern, escape=LIKE_ESCAPE),
                    Article.memo.ilike(pattern, escape=LIKE_ESCAPE),
                ),
            )
            .order_by(Article.created_at.desc(), Article.id.desc())
        )

        if tag:
            tagged = (
                select(ArticleTag.article_id)
                .join(Tag, Tag.id == ArticleTag.tag_id)
                .where(Tag.name == tag)
            )
            stmt = stmt.where(Article.id.in_(tagged))

        return self._with_tags(self.db.execute(stmt).mappings().all())

    def get_by_id(self, article_id: int) -> ArticleMetadata | None:
        """Fetch one active article with its tags. Trashed rows are not returned."""
        row = (
            self.db.execute(
                select(*ARTICLE_METADATA_COLUMNS).where(
                    Article.id == article_id, Article.deleted_at.is_(None)
                )
            )
            .mappings()
            .one_or_none()
        )
        if row is None:
            return None

        tags = self._load_tags_for([article_id]).get(article_id, [])
        return ArticleMetadata(**row, tags=tags)

    def find_orphaned_shells(self, older_than: datetime) -> list[ArticleMetadata]:
        """Active articles whose content was never attached, created before older_than."""
        stmt = (
            select(*ARTICLE_METADATA_COLUMNS)
            .where(
                Article.deleted_at.is_(None),
                Article.content_key.is_(None),
                Article.created_at < older_than,
            )
            .order_by(Article.created_at.asc(), Article.id.asc())
        )
        return self._with_tags(self.db.execute(stmt).mappings().all())

    def list_articles_with_content(self) -> list[ArticleMetadata]:
        """Active articles that have content metadata, oldest first."""
        stmt = (
            select(*ARTICLE_METADATA_COLUMNS)
            .where(Article.deleted_at.is_(None), Article.content_key.is_not(None))
            .order_by(Article.id.asc())
        )
        return self._with_tags(self.db.execute(stmt).mappings().all())

    # =========================================================================
    # Article writes
    # =========================================================================

    def insert_article_shell(
        self, title: str, memo: str | None = None, category_id: int | None = None
    ) -> int:
        """Insert an article row with no content fields and return its id.

        The id is needed before content can be stored, since the blob key embeds it.
        """
        with transaction(self.db):
            result = self.db.execute(
                insert(Article.__table__).values(
                    title=title,
                    memo=memo or None,
                    category_id=category_id,
                )
            )
            article_id = result.inserted_primary_key[0]

        return int(article_id)

    def attach_content_metadata(self, article_id: int, key: str, size: int, hash: str) -> None:
        """Record content location, size and digest together and bump updated_at."""
        with transaction(self.db):
            self.db.execute(
                update(Article)
                .where(Article.id == article_id)
                .values(
                    content_key=key,
                    content_size=size,
                    content_hash=hash,
                    updated_at=utcnow(),
                )
            )

    def update_fields(
        self,
        article_id: int,
        *,
        title: str | None = UNSET,
        memo: str | None = UNSET,
        category_id: int | None = UNSET,
    ) -> bool:
        """Partially update article metadata.

        title and memo keep their old value when omitted, None or blank.
        category_id overwrites whenever it is passed, including None
        (uncategorized).

        Returns:
            True if a row was updated, False if nothing was passed or no row matched.
        """
        if title is UNSET and memo is UNSET and category_id is UNSET:
            return False

        values: dict[str, Any] = {"updated_at": utcnow()}
        if title is not UNSET and title and title.strip():
            values["title"] = title
        if memo is not UNSET and memo:
            values["memo"] = memo
        if category_id is not UNSET:
            values["category_id"] = category_id

        with transaction(self.db):
            result = self.db.execute(
                update(Article).where(Article.id == article_id).values(**values)
            )

        return result.rowcount > 0

    def soft_delete(self, article_id: int) -> bool:
        """Move an article to the trash.

        Returns:
            True if a row was affected. An already-trashed article is stamped
            again and also reports True.
        """
        with transaction(self.db):
            result = self.db.execute(
                update(Article).where(Article.id == article_id).values(deleted_at=utcnow())
            )
        return result.rowcount > 0

    def restore(self, article_id: int) -> bool:
        """Clear deleted_at. Restoring an active article is a harmless no-op update."""
        with transaction(self.db):
            result = self.db.execute(
                update(Article).where(Article.id == article_id).values(deleted_at=None)
            )
        return result.rowcount > 0

    # =========================================================================
    # Tags
    # =========================================================================

    def replace_tags(self, article_id: int, tag_names: Iterable[str]) -> None:
        """Replace an article's tag set.

        Deletes every join row for the article, then find-or-creates each tag
        and links it. Each step commits on its own, so a failure partway leaves
        a partial tag set.
        """
        names = list(dict.fromkeys(name.strip() for name in tag_names if name and name.strip()))

        with transaction(self.db):
            self.db.execute(delete(ArticleTag).where(ArticleTag.article_id == article_id))

        for name in names:
            tag_id = self._get_or_create_tag(name)
            with transaction(self.db):
                self.db.execute(
                    insert(ArticleTag.__table__).values(article_id=article_id, tag_id=tag_id)
                )

    def _get_or_create_tag(self, name: str) -> int:
        existing = self._find_tag_id(name)
        if existing is not None:
            return existing

        try:
            with transaction(self.db):
                result = self.db.execute(insert(Tag.__table__).values(name=name))
                return int(result.inserted_primary_key[0])
        except IntegrityError:
            # Another writer created the same name first
            logger.info("tag_insert_conflict", tag_name=name)
            return self._find_tag_id(name)

    def _find_tag_id(self, name: str) -> int | None:
        return self.db.execute(select(Tag.id).where(Tag.name == name)).scalar_one_or_none()

    def list_tags_with_counts(self) -> list[TagWithCount]:
        """All tags with the number of non-deleted articles using each.

        Ordered by count descending, then name ascending.
        """
        article_count = func.count(Article.id).label("article_count")
        stmt = (
            select(Tag.id, Tag.name, Tag.created_at, article_count)
            .select_from(Tag)
            .outerjoin(ArticleTag, ArticleTag.tag_id == Tag.id)
            .outerjoin(
                Article,
                and_(Article.id == ArticleTag.article_id, Article.deleted_at.is_(None)),
            )
            .group_by(Tag.id, Tag.name, Tag.created_at)
            .order_by(article_count.desc(), Tag.name.asc())
        )
        return [TagWithCount(**row) for row in self.db.execute(stmt).mappings().all()]

    def _load_tags_for(self, article_ids: Sequence[int]) -> dict[int, list[TagOut]]:
        """Load tags for many articles with a single IN query."""
        if not article_ids:
            return {}

        rows = self.db.execute(
            select(ArticleTag.article_id, Tag.id, Tag.name, Tag.created_at)
            .join(Tag, Tag.id == ArticleTag.tag_id)
            .where(ArticleTag.article_id.in_(list(article_ids)))
            .order_by(Tag.name.asc())
        ).all()

        tag_map: dict[int, list[TagOut]] = {}
        for article_id, tag_id, name, created_at in rows:
            tag_map.setdefault(article_id, []).append(
                TagOut(id=tag_id, name=name, created_at=created_at)
            )
        return tag_map

    def _with_tags(self, rows: Sequence[Mapping[str, Any]]) -> list[ArticleMetadata]:
        if not rows:
            return []

        tag_map = self._load_tags_for([row["id"] for row in rows])
        return [ArticleMetadata(**row, tags=tag_map.get(row["id"], [])) for row in rows]

    # =========================================================================
    # Categories
    # =========================================================================

    def list_categories(self) -> list[CategoryOut]:
        """All categories ordered by display_order, then name."""
        stmt = select(*CATEGORY_COLUMNS).order_by(
            Category.display_order.asc(), Category.name.asc()
        )
        return [CategoryOut(**row) for row in self.db.execute(stmt).mappings().all()]

    def get_category(self, category_id: int) -> CategoryOut | None:
        row = (
            self.db.execute(select(*CATEGORY_COLUMNS).where(Category.id == category_id))
            .mappings()
            .one_or_none()
        )
        return CategoryOut(**row) if row is not None else None

    def create_category(
        self, name: str, parent_id: int | None = None, color: str | None = None
    ) -> int:
        """Insert a category at the end of the display order and return its id."""
        with transaction(self.db):
            max_order = self.db.execute(select(func.max(Category.display_order))).scalar()
            result = self.db.execute(
                insert(Category.__table__).values(
                    name=name,
                    parent_id=parent_id,
                    color=color or DEFAULT_CATEGORY_COLOR,
                    display_order=(max_order or 0) + 1,
                )
            )
            category_id = result.inserted_primary_key[0]

        return int(category_id)

    def update_category(self, category_id: int, name: str, color: str | None = None) -> bool:
        """Rename/recolor a category. An omitted color resets to the default."""
        with transaction(self.db):
            result = self.db.execute(
                update(Category)
                .where(Category.id == category_id)
                .values(
                    name=name,
                    color=color or DEFAULT_CATEGORY_COLOR,
                    updated_at=utcnow(),
                )
            )
        return result.rowcount > 0

    def delete_category(self, category_id: int) -> bool:
        """Delete a category.

        Descendant categories are removed and referencing articles are
        uncategorized by the foreign-key rules.
        """
        with transaction(self.db):
            result = self.db.execute(delete(Category).where(Category.id == category_id))
        return result.rowcount > 0

    def reorder_categories(self, ordered_ids: Sequence[int]) -> None:
        """Assign display_order 1..N following ordered_ids.

        Each update commits independently; a failure partway leaves a
        partially reordered list.
        """
        for position, category_id in enumerate(ordered_ids, start=1):
            with transaction(self.db):
                self.db.execute(
                    update(Category)
                    .where(Category.id == category_id)
                    .values(display_order=position)
                )
