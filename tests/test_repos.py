import pytest

from domain.models import AnalyticsRange, Phase, SessionRecord
from storage.repos import AppStateRepo, ProjectRepo, SessionRepo, TagRepo


def focus(ended_at: int, duration: int = 1500, **kw) -> SessionRecord:
    return SessionRecord(
        started_at=ended_at - duration,
        ended_at=ended_at,
        phase=Phase.FOCUS,
        duration_sec=duration,
        completed=True,
        interruptions=0,
        **kw,
    )


class TestAppStateRepo:
    def test_json_round_trip(self, db):
        repo = AppStateRepo(db)
        repo.set_json("k", {"a": [1, 2]})
        assert repo.get_json("k") == {"a": [1, 2]}

    def test_missing_is_none(self, db):
        assert AppStateRepo(db).get_json("nope") is None

    def test_invalid_json_raises(self, db):
        repo = AppStateRepo(db)
        repo.set("k", "{not json")
        with pytest.raises(ValueError):
            repo.get_json("k")


class TestSessionRepo:
    def test_insert_assigns_id_and_tags(self, db):
        project = ProjectRepo(db).create("Thesis", None, False)
        tag = TagRepo(db).create("deep")
        rec = SessionRepo(db).insert(focus(1000, project_id=project.id, tag_ids=(tag.id, tag.id)))
        assert rec.id is not None
        assert rec.project_id == project.id
        assert rec.tag_ids == (tag.id,)
        assert SessionRepo(db).tags_for(rec.id) == [tag.id]

    def test_insert_drops_unknown_ids(self, db):
        rec = SessionRepo(db).insert(focus(1000, project_id=42, tag_ids=(9,)))
        assert rec.project_id is None
        assert rec.tag_ids == ()

    def test_query_newest_first_with_range(self, db):
        repo = SessionRepo(db)
        for ended in (1000, 3000, 2000):
            repo.insert(focus(ended))
        ended = [s.ended_at for s in repo.query(AnalyticsRange())]
        assert ended == [3000, 2000, 1000]
        ended = [s.ended_at for s in repo.query(AnalyticsRange(from_ts=1500, to_ts=2500))]
        assert ended == [2000]

    def test_query_filters_project_and_tag(self, db):
        a = ProjectRepo(db).create("A", None, False)
        t = TagRepo(db).create("x")
        repo = SessionRepo(db)
        repo.insert(focus(1000, project_id=a.id))
        repo.insert(focus(2000, tag_ids=(t.id,)))
        repo.insert(focus(3000))
        assert [s.ended_at for s in repo.query(AnalyticsRange(project_id=a.id))] == [1000]
        assert [s.ended_at for s in repo.query(AnalyticsRange(tag_id=t.id))] == [2000]


class TestCatalogRepos:
    def test_projects_sorted_archived_last(self, db):
        repo = ProjectRepo(db)
        repo.create("b", None, False)
        repo.create("a", None, True)
        repo.create("c", "#fff", False)
        assert [p.name for p in repo.list()] == ["b", "c", "a"]

    def test_rename_tag(self, db):
        repo = TagRepo(db)
        t = repo.create("old")
        assert repo.rename(t.id, "new").name == "new"


class TestWipe:
    def test_wipe_restarts_ids(self, db):
        ProjectRepo(db).create("A", None, False)
        SessionRepo(db).insert(focus(1000))
        AppStateRepo(db).set("k", "v")
        db.wipe()
        assert SessionRepo(db).query(AnalyticsRange()) == []
        assert AppStateRepo(db).get("k") is None
        assert ProjectRepo(db).create("B", None, False).id == 1
