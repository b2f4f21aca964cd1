import pytest


class TestProjects:
    def test_create_and_update(self, catalog_service):
        p = catalog_service.upsert_project("  Thesis ", color="#f00")
        assert p.name == "Thesis"
        assert p.color == "#f00"
        p = catalog_service.upsert_project("Thesis", archived=True, project_id=p.id)
        assert p.archived
        assert p.color is None

    def test_archived_hidden_on_request(self, catalog_service):
        catalog_service.upsert_project("Old", archived=True)
        catalog_service.upsert_project("New")
        assert [p.name for p in catalog_service.list_projects(include_archived=False)] == ["New"]
        assert len(catalog_service.list_projects()) == 2

    def test_empty_name(self, catalog_service):
        with pytest.raises(ValueError):
            catalog_service.upsert_project("   ")

    def test_duplicate_name(self, catalog_service):
        catalog_service.upsert_project("A")
        with pytest.raises(ValueError, match="already exists"):
            catalog_service.upsert_project("A")
        assert len(catalog_service.list_projects()) == 1

    def test_unknown_id(self, catalog_service):
        with pytest.raises(ValueError, match="not found"):
            catalog_service.upsert_project("A", project_id=99)


class TestTags:
    def test_create_rename_list(self, catalog_service):
        t = catalog_service.upsert_tag("b")
        catalog_service.upsert_tag("a")
        catalog_service.upsert_tag("c", tag_id=t.id)
        assert [x.name for x in catalog_service.list_tags()] == ["a", "c"]

    def test_duplicate_tag(self, catalog_service):
        catalog_service.upsert_tag("x")
        with pytest.raises(ValueError):
            catalog_service.upsert_tag("x")
