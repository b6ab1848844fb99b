"""Tests for the orphaned-shell repair sweep and content audit.

Tests cover:
- Shells with a blob under their key get content metadata re-attached
- Shells without a blob are moved to the trash
- Recent shells and complete articles are left alone
- Storage errors skip a shell without aborting the sweep
- Undecodable blobs are handled as raw bytes
- The Celery task wiring
"""

import hashlib
from datetime import UTC, datetime, timedelta

from kbase.services.repair import audit_content, sweep_orphaned_shells
from kbase.storage.content import ArticleContentStore
from tests.helpers import FailingBlobStore, create_article, set_created_at

NOW = datetime.now(UTC)
OLD = NOW - timedelta(hours=2)


class TestSweepOrphanedShells:
    """Tests for sweep_orphaned_shells."""

    def test_reattaches_when_blob_exists(self, repo, db_session, content_store):
        shell = repo.insert_article_shell("interrupted")
        set_created_at(db_session, shell, OLD)
        stored = content_store.save(shell, "written before the crash")

        result = sweep_orphaned_shells(repo, content_store, threshold_minutes=15, now=NOW)

        assert result.reattached == [shell]
        article = repo.get_by_id(shell)
        assert article.content_key == stored.key
        assert article.content_hash == stored.hash
        assert article.content_size == stored.size

    def test_trashes_when_blob_missing(self, repo, db_session, content_store):
        shell = repo.insert_article_shell("never stored")
        set_created_at(db_session, shell, OLD)

        result = sweep_orphaned_shells(repo, content_store, threshold_minutes=15, now=NOW)

        assert result.trashed == [shell]
        assert repo.get_by_id(shell) is None
        assert [a.id for a in repo.list_trashed()] == [shell]

    def test_ignores_recent_shells_and_complete_articles(
        self, repo, db_session, content_store, article_service
    ):
        recent = repo.insert_article_shell("in flight")
        complete = create_article(article_service)
        set_created_at(db_session, complete, OLD)

        result = sweep_orphaned_shells(repo, content_store, threshold_minutes=15, now=NOW)

        assert result.total == 0
        assert repo.get_by_id(recent) is not None
        assert repo.get_by_id(complete) is not None

    def test_reports_oldest_age(self, repo, db_session, content_store):
        shell = repo.insert_article_shell("old")
        set_created_at(db_session, shell, NOW - timedelta(minutes=90))

        result = sweep_orphaned_shells(repo, content_store, threshold_minutes=15, now=NOW)

        assert result.oldest_age_seconds == 90 * 60

    def test_reattaches_undecodable_blob_by_raw_bytes(self, repo, db_session, content_store):
        shell = repo.insert_article_shell("binary leftovers")
        set_created_at(db_session, shell, OLD)
        raw = b"\xff\xfe\x00bad"
        content_store.backend.put_object(
            content_store.key_for(shell), raw, content_type="text/markdown"
        )

        result = sweep_orphaned_shells(repo, content_store, threshold_minutes=15, now=NOW)

        assert result.reattached == [shell]
        article = repo.get_by_id(shell)
        assert article.content_size == len(raw)
        assert article.content_hash == hashlib.sha256(raw).hexdigest()

    def test_storage_error_skips_shell(self, repo, db_session):
        shell = repo.insert_article_shell("unreachable")
        set_created_at(db_session, shell, OLD)
        store = ArticleContentStore(FailingBlobStore(fail_reads=True))

        result = sweep_orphaned_shells(repo, store, threshold_minutes=15, now=NOW)

        assert result.failed == [shell]
        assert repo.get_by_id(shell) is not None


class TestAuditContent:
    """Tests for audit_content."""

    def test_reports_only_problems(self, repo, article_service, blob_store):
        ok = create_article(article_service, content="fine")
        missing = create_article(article_service, content="will vanish")
        blob_store.delete_object(f"articles/{missing}.md")

        problems = audit_content(repo, article_service.content)

        assert [(p.article_id, p.status) for p in problems] == [(missing, "missing")]
        assert ok not in [p.article_id for p in problems]

    def test_undecodable_blob_reported_and_audit_continues(
        self, repo, article_service, blob_store
    ):
        corrupt = create_article(article_service, content="was text")
        healthy = create_article(article_service, content="still text")
        missing = create_article(article_service, content="gone")
        blob_store.put_object(
            f"articles/{corrupt}.md", b"\xff\xfe\x00bad", content_type="text/markdown"
        )
        blob_store.delete_object(f"articles/{missing}.md")

        problems = audit_content(repo, article_service.content)

        assert sorted((p.article_id, p.status) for p in problems) == [
            (corrupt, "mismatch"),
            (missing, "missing"),
        ]
        assert healthy not in [p.article_id for p in problems]


class TestSweepTask:
    """Tests for the Celery task wrapper (executed eagerly)."""

    def test_task_runs_sweep(self, monkeypatch, session_factory, repo, db_session, content_store):
        from kbase.tasks import repair as repair_tasks

        monkeypatch.setattr(repair_tasks, "get_session_factory", lambda: session_factory)
        monkeypatch.setattr(repair_tasks, "_content_store", lambda: content_store)

        shell = repo.insert_article_shell("task target")
        set_created_at(db_session, shell, OLD)

        result = repair_tasks.sweep_orphaned_shells.apply().get()

        assert result == {"reattached": [], "trashed": [shell], "failed": []}

    def test_audit_task_reports_problems(
        self, monkeypatch, session_factory, article_service, blob_store
    ):
        from kbase.tasks import repair as repair_tasks

        monkeypatch.setattr(repair_tasks, "get_session_factory", lambda: session_factory)
        monkeypatch.setattr(repair_tasks, "_content_store", lambda: article_service.content)

        article_id = create_article(article_service, content="original")
        blob_store.put_object(f"articles/{article_id}.md", b"edited", content_type="text/markdown")

        result = repair_tasks.audit_article_content.apply().get()

        [problem] = result["problems"]
        assert problem["article_id"] == article_id
        assert problem["status"] == "mismatch"
