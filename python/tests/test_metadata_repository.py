"""Tests for the metadata repository.

Tests cover:
- Batch tag loading uses one query regardless of result size
- Active/trash listing, ordering and mutual exclusivity
- Search matching, wildcard escaping and tag filter
- Partial updates (title/memo keep old values, category_id overwrites)
- Tag replacement semantics and counts
- Tag insert conflicts fall back to the existing row
- Category create/update/delete/reorder, including FK cascade
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy import func, insert, select

from kbase.db.models import Tag
from kbase.db.repository import MetadataRepository, escape_like
from tests.helpers import count_statements, select_statements, set_created_at


def _article(repo: MetadataRepository, title: str, **kwargs) -> int:
    """Insert a shell and attach fake content metadata."""
    article_id = repo.insert_article_shell(title, kwargs.get("memo"), kwargs.get("category_id"))
    repo.attach_content_metadata(article_id, f"articles/{article_id}.md", 4, "f" * 64)
    if "tags" in kwargs:
        repo.replace_tags(article_id, kwargs["tags"])
    return article_id


class TestBatchTagLoading:
    """Tag attachment must not issue one query per article."""

    def test_list_active_uses_two_selects(self, repo, engine):
        for i in range(6):
            _article(repo, f"Article {i}", tags=[f"t{i}", "shared"])

        with count_statements(engine) as statements:
            articles = repo.list_active()

        assert len(articles) == 6
        assert len(select_statements(statements)) == 2
        assert all(len(a.tags) == 2 for a in articles)

    def test_query_count_independent_of_size(self, repo, engine):
        _article(repo, "one", tags=["a"])
        with count_statements(engine) as small:
            repo.list_active()

        for i in range(10):
            _article(repo, f"more {i}", tags=["a", "b"])
        with count_statements(engine) as large:
            repo.list_active()

        assert len(select_statements(small)) == len(select_statements(large)) == 2

    def test_search_and_trash_use_two_selects(self, repo, engine):
        ids = [_article(repo, f"Note {i}", tags=["x"]) for i in range(4)]
        for article_id in ids[:2]:
            repo.soft_delete(article_id)

        with count_statements(engine) as statements:
            repo.list_trashed()
        assert len(select_statements(statements)) == 2

        with count_statements(engine) as statements:
            repo.search("note")
        assert len(select_statements(statements)) == 2

    def test_empty_result_skips_tag_query(self, repo, engine):
        with count_statements(engine) as statements:
            assert repo.list_active() == []

        assert len(select_statements(statements)) == 1

    def test_articles_without_tags_get_empty_list(self, repo):
        _article(repo, "bare")

        [article] = repo.list_active()

        assert article.tags == []


class TestArticleLifecycle:
    """Tests for shells, soft delete and restore."""

    def test_shell_has_no_content_fields(self, repo):
        article_id = repo.insert_article_shell("Shell")

        article = repo.get_by_id(article_id)

        assert article.content_key is None
        assert article.content_size is None
        assert article.content_hash is None
        assert article.has_content is False

    def test_attach_content_metadata_sets_all_fields(self, repo):
        article_id = repo.insert_article_shell("Doc")
        before = repo.get_by_id(article_id).updated_at

        repo.attach_content_metadata(article_id, "articles/1.md", 10, "a" * 64)

        article = repo.get_by_id(article_id)
        assert (article.content_key, article.content_size, article.content_hash) == (
            "articles/1.md",
            10,
            "a" * 64,
        )
        assert article.updated_at >= before

    def test_empty_memo_stored_as_null(self, repo):
        article_id = repo.insert_article_shell("Doc", memo="")

        assert repo.get_by_id(article_id).memo is None

    def test_list_active_newest_first(self, repo, db_session):
        first = _article(repo, "first")
        second = _article(repo, "second")
        third = _article(repo, "third")
        now = datetime.now(UTC)
        set_created_at(db_session, first, now - timedelta(minutes=3))
        set_created_at(db_session, second, now - timedelta(minutes=2))
        set_created_at(db_session, third, now - timedelta(minutes=1))

        assert [a.id for a in repo.list_active()] == [third, second, first]

    def test_soft_delete_moves_to_trash(self, repo):
        article_id = _article(repo, "doomed")

        assert repo.soft_delete(article_id) is True

        assert repo.get_by_id(article_id) is None
        assert [a.id for a in repo.list_active()] == []
        trashed = repo.list_trashed()
        assert [a.id for a in trashed] == [article_id]
        assert trashed[0].deleted_at is not None

    def test_trash_most_recently_deleted_first(self, repo):
        a = _article(repo, "a")
        b = _article(repo, "b")

        repo.soft_delete(a)
        repo.soft_delete(b)

        assert [x.id for x in repo.list_trashed()] == [b, a]

    def test_restore_returns_to_active(self, repo):
        article_id = _article(repo, "comeback", tags=["keep"])
        before = repo.get_by_id(article_id)
        repo.soft_delete(article_id)

        assert repo.restore(article_id) is True

        after = repo.get_by_id(article_id)
        assert after == before
        assert repo.list_trashed() == []

    def test_restore_active_article_is_harmless(self, repo):
        article_id = _article(repo, "active")

        assert repo.restore(article_id) is True
        assert repo.get_by_id(article_id) is not None

    def test_missing_ids_report_false(self, repo):
        assert repo.soft_delete(999) is False
        assert repo.restore(999) is False
        assert repo.get_by_id(999) is None

    def test_never_in_both_lists(self, repo):
        ids = [_article(repo, f"n{i}") for i in range(4)]
        repo.soft_delete(ids[1])
        repo.soft_delete(ids[3])
        repo.restore(ids[3])

        active = {a.id for a in repo.list_active()}
        trashed = {a.id for a in repo.list_trashed()}

        assert active.isdisjoint(trashed)
        assert active | trashed == set(ids)


class TestUpdateFields:
    """title/memo keep old values when empty; category_id always overwrites."""

    def test_updates_title_and_memo(self, repo):
        article_id = _article(repo, "old", memo="old memo")

        assert repo.update_fields(article_id, title="new", memo="new memo") is True

        article = repo.get_by_id(article_id)
        assert article.title == "new"
        assert article.memo == "new memo"

    def test_empty_or_none_title_and_memo_keep_old_values(self, repo):
        article_id = _article(repo, "keep", memo="keep memo")

        repo.update_fields(article_id, title="", memo=None)

        article = repo.get_by_id(article_id)
        assert article.title == "keep"
        assert article.memo == "keep memo"

    def test_blank_title_keeps_old_value(self, repo):
        article_id = _article(repo, "keep")

        repo.update_fields(article_id, title="   ")

        assert repo.get_by_id(article_id).title == "keep"

    def test_category_id_none_clears_category(self, repo):
        category_id = repo.create_category("Cat")
        article_id = _article(repo, "doc", category_id=category_id)

        repo.update_fields(article_id, category_id=None)

        assert repo.get_by_id(article_id).category_id is None

    def test_omitted_category_id_is_untouched(self, repo):
        category_id = repo.create_category("Cat")
        article_id = _article(repo, "doc", category_id=category_id)

        repo.update_fields(article_id, title="renamed")

        assert repo.get_by_id(article_id).category_id == category_id

    def test_nothing_passed_is_noop(self, repo):
        article_id = _article(repo, "doc")

        assert repo.update_fields(article_id) is False

    def test_missing_article(self, repo):
        assert repo.update_fields(999, title="x") is False


class TestSearch:
    """Tests for substring search over title and memo."""

    def test_matches_title_and_memo_case_insensitively(self, repo):
        by_title = _article(repo, "Python Tips")
        by_memo = _article(repo, "Misc", memo="some PYTHON notes")
        _article(repo, "Unrelated")

        found = {a.id for a in repo.search("python")}

        assert found == {by_title, by_memo}

    def test_excludes_trashed(self, repo):
        article_id = _article(repo, "gone python")
        repo.soft_delete(article_id)

        assert repo.search("python") == []

    def test_wildcards_match_literally(self, repo):
        percent = _article(repo, "100% done")
        _article(repo, "100 items done")
        underscore = _article(repo, "snake_case")
        _article(repo, "snakeXcase")

        assert [a.id for a in repo.search("100%")] == [percent]
        assert [a.id for a in repo.search("e_c")] == [underscore]

    def test_empty_query_returns_all_active(self, repo):
        ids = {_article(repo, "a"), _article(repo, "b")}

        assert {a.id for a in repo.search("")} == ids

    def test_tag_filter(self, repo):
        tagged = _article(repo, "guide one", tags=["howto"])
        _article(repo, "guide two", tags=["other"])

        assert [a.id for a in repo.search("guide", tag="howto")] == [tagged]

    def test_escape_like(self):
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


class TestTags:
    """Tests for tag replacement and counts."""

    def test_replace_tags_replaces_set(self, repo, db_session):
        article_id = _article(repo, "doc")

        repo.replace_tags(article_id, ["a", "b"])
        repo.replace_tags(article_id, ["b", "c"])

        assert {t.name for t in repo.get_by_id(article_id).tags} == {"b", "c"}
        # Tag "a" still exists globally
        assert db_session.execute(select(Tag.id).where(Tag.name == "a")).scalar_one() is not None

    def test_replace_tags_reuses_existing_tag_rows(self, repo, db_session):
        first = _article(repo, "one", tags=["shared"])
        second = _article(repo, "two", tags=["shared"])

        assert db_session.execute(select(func.count()).select_from(Tag)).scalar_one() == 1
        assert repo.get_by_id(first).tags[0].id == repo.get_by_id(second).tags[0].id

    def test_insert_conflict_reuses_tag_created_elsewhere(
        self, repo, session_factory, monkeypatch
    ):
        """A tag committed by another session after our lookup is reused."""
        article_id = _article(repo, "raced")

        other = session_factory()
        try:
            other.execute(insert(Tag.__table__).values(name="shared"))
            other.commit()
            existing_id = other.execute(select(Tag.id).where(Tag.name == "shared")).scalar_one()
        finally:
            other.close()

        real_find = repo._find_tag_id
        lookups = []

        def stale_then_real(name):
            lookups.append(name)
            return None if len(lookups) == 1 else real_find(name)

        monkeypatch.setattr(repo, "_find_tag_id", stale_then_real)

        repo.replace_tags(article_id, ["shared"])

        assert lookups == ["shared", "shared"]
        assert [(t.id, t.name) for t in repo.get_by_id(article_id).tags] == [
            (existing_id, "shared")
        ]

    def test_replace_tags_collapses_duplicates(self, repo):
        article_id = _article(repo, "doc", tags=["dup", "dup", " dup "])

        assert [t.name for t in repo.get_by_id(article_id).tags] == ["dup"]

    def test_tag_names_are_case_sensitive(self, repo):
        article_id = _article(repo, "doc", tags=["AI", "ai"])

        assert sorted(t.name for t in repo.get_by_id(article_id).tags) == ["AI", "ai"]

    def test_replace_with_empty_clears(self, repo):
        article_id = _article(repo, "doc", tags=["x"])

        repo.replace_tags(article_id, [])

        assert repo.get_by_id(article_id).tags == []

    def test_counts_exclude_trashed_articles(self, repo):
        a = _article(repo, "a", tags=["common", "rare"])
        _article(repo, "b", tags=["common"])
        c = _article(repo, "c", tags=["common"])
        repo.soft_delete(c)
        repo.replace_tags(a, ["common"])

        counts = [(t.name, t.article_count) for t in repo.list_tags_with_counts()]

        assert counts == [("common", 2), ("rare", 0)]

    def test_counts_tie_break_by_name(self, repo):
        _article(repo, "a", tags=["zeta", "alpha"])

        assert [t.name for t in repo.list_tags_with_counts()] == ["alpha", "zeta"]


class TestCategories:
    """Tests for category persistence and cascade rules."""

    def test_create_appends_display_order_with_default_color(self, repo):
        first = repo.create_category("First")
        second = repo.create_category("Second", color="#FF0000")

        categories = {c.id: c for c in repo.list_categories()}

        assert categories[first].display_order == 1
        assert categories[second].display_order == 2
        assert categories[first].color == "#6B7280"
        assert categories[second].color == "#FF0000"

    def test_update_category(self, repo):
        category_id = repo.create_category("Old", color="#000000")

        assert repo.update_category(category_id, "New") is True

        category = repo.get_category(category_id)
        assert category.name == "New"
        assert category.color == "#6B7280"

    def test_update_missing_category(self, repo):
        assert repo.update_category(999, "x") is False

    def test_delete_cascades_to_descendants_and_uncategorizes_articles(self, repo):
        c = repo.create_category("C")
        d = repo.create_category("D", parent_id=c)
        e = repo.create_category("E", parent_id=c)
        keep = repo.create_category("Keep")
        a1 = _article(repo, "A1", category_id=c)
        a2 = _article(repo, "A2", category_id=d)
        a3 = _article(repo, "A3", category_id=keep)

        assert repo.delete_category(c) is True

        remaining = {cat.id for cat in repo.list_categories()}
        assert remaining == {keep}
        assert not {c, d, e} & remaining
        assert repo.get_by_id(a1).category_id is None
        assert repo.get_by_id(a2).category_id is None
        assert repo.get_by_id(a3).category_id == keep

    def test_delete_missing_category(self, repo):
        assert repo.delete_category(999) is False

    def test_reorder_sets_positions(self, repo):
        a = repo.create_category("A")
        b = repo.create_category("B")
        c = repo.create_category("C")

        repo.reorder_categories([c, a, b])

        assert [cat.id for cat in repo.list_categories()] == [c, a, b]
        assert [cat.display_order for cat in repo.list_categories()] == [1, 2, 3]


class TestRepairQueries:
    """Tests for the queries behind the repair sweep."""

    def test_find_orphaned_shells(self, repo, db_session):
        old_shell = repo.insert_article_shell("old shell")
        recent_shell = repo.insert_article_shell("recent shell")
        complete = _article(repo, "complete")
        trashed_shell = repo.insert_article_shell("trashed shell")
        repo.soft_delete(trashed_shell)

        now = datetime.now(UTC)
        for article_id in (old_shell, complete, trashed_shell):
            set_created_at(db_session, article_id, now - timedelta(hours=1))

        shells = repo.find_orphaned_shells(now - timedelta(minutes=15))

        assert [s.id for s in shells] == [old_shell]
        assert recent_shell not in [s.id for s in shells]

    def test_list_articles_with_content(self, repo):
        repo.insert_article_shell("shell")
        complete = _article(repo, "complete")

        assert [a.id for a in repo.list_articles_with_content()] == [complete]
