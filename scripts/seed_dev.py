#!/usr/bin/env python
"""Seed development database with sample categories and articles.

Constraints:
- Refuses to run in staging or prod (KBASE_ENV check)
- Skips seeding when any article already exists
- Never runs automatically (manual invocation only)
- With BLOB_BACKEND=memory the article bodies only live as long as this
  process, so point it at a real blob store for anything beyond a smoke test

Usage:
    cd python && DATABASE_URL=sqlite:///../kbase.db python ../scripts/seed_dev.py
"""

import sys

SEED_CATEGORIES = [
    ("Engineering", "#2563EB", ["Python", "Databases"]),
    ("Notes", "#16A34A", []),
]

SEED_ARTICLES = [
    {
        "title": "Getting started",
        "content": "# Getting started\n\nWrite Markdown here. Tags and categories are optional.\n",
        "memo": "pinned",
        "tags": ["intro"],
        "category": "Notes",
    },
    {
        "title": "SQLAlchemy batch loading",
        "content": "# Batch loading\n\nLoad tags for many rows with one `IN (...)` query.\n",
        "tags": ["python", "sqlalchemy"],
        "category": "Python",
    },
    {
        "title": "Soft delete",
        "content": "# Soft delete\n\nTrash sets `deleted_at`; restore clears it.\n",
        "tags": ["databases"],
        "category": "Databases",
    },
]


def main():
    from kbase.config import Environment, get_settings

    # 1. Environment check (hard fail in staging/prod)
    settings = get_settings()
    if settings.kbase_env not in (Environment.LOCAL, Environment.TEST):
        print(f"ERROR: seed_dev.py refuses to run in KBASE_ENV={settings.kbase_env.value}")
        sys.exit(1)

    from kbase.db.engine import get_engine
    from kbase.db.models import Base
    from kbase.db.repository import MetadataRepository
    from kbase.db.session import get_session_factory
    from kbase.schemas.article import ArticleCreate
    from kbase.services.articles import ArticleService
    from kbase.storage.client import get_blob_store
    from kbase.storage.content import ArticleContentStore

    # 2. Tables for a fresh local SQLite file (alembic is the source of truth elsewhere)
    Base.metadata.create_all(get_engine())

    db = get_session_factory()()
    try:
        repo = MetadataRepository(db)

        # 3. Only seed an empty store
        if repo.list_active() or repo.list_trashed():
            print("• Exists: articles already present, nothing seeded")
            return

        category_ids: dict[str, int] = {}
        for name, color, children in SEED_CATEGORIES:
            category_ids[name] = repo.create_category(name, color=color)
            for child in children:
                category_ids[child] = repo.create_category(child, parent_id=category_ids[name])

        service = ArticleService(
            repo,
            ArticleContentStore(get_blob_store(settings), key_prefix=settings.storage_key_prefix),
        )
        for seed in SEED_ARTICLES:
            article_id = service.create(
                ArticleCreate(
                    title=seed["title"],
                    content=seed["content"],
                    memo=seed.get("memo"),
                    tags=seed["tags"],
                    category_id=category_ids[seed["category"]],
                )
            )
            print(f"✓ Created: article {article_id} ({seed['title']})")

        # 4. Report
        print()
        print(f"Database: {settings.database_url}")
        print(f"Blob backend: {settings.blob_backend.value}")
        print(f"Categories: {len(category_ids)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
