"""Tests for the prompt store."""

import json
from datetime import timedelta

import pytest

from prompt_library.core.prompt_store import (
    STORAGE_NAME,
    DataImportError,
    DuplicateNameError,
    PromptStore,
    filter_prompts,
)


class TestPromptCrud:
    def test_add_prompt_assigns_store_fields(self, prompt_store):
        prompt = prompt_store.add_prompt("Summarize", "Summarize the text.", tags=["a", "b"])
        assert prompt.id
        assert prompt.usage_count == 0
        assert prompt.versions == []
        assert prompt.is_favorite is False
        assert prompt.created_at == prompt.updated_at
        assert prompt.category == "General"

    def test_ids_are_unique(self, prompt_store):
        ids = {prompt_store.add_prompt(f"P{i}", "body").id for i in range(20)}
        assert len(ids) == 20

    def test_add_prompt_persists(self, prompt_store, mock_db):
        prompt_store.add_prompt("Persisted", "body")
        doc = mock_db.documents[STORAGE_NAME]
        assert doc["prompts"][0]["title"] == "Persisted"
        # Documents use the camelCase wire names.
        assert "usageCount" in doc["prompts"][0]

    def test_reload_from_document(self, prompt_store, mock_db):
        created = prompt_store.add_prompt("Reloaded", "body", tags=["x"])
        reopened = PromptStore(mock_db)
        assert reopened.get_prompt(created.id) == created

    @pytest.mark.parametrize("title,content", [("", "body"), ("   ", "body"), ("T", "")])
    def test_empty_title_or_content_rejected(self, prompt_store, title, content):
        with pytest.raises(ValueError, match="must not be empty"):
            prompt_store.add_prompt(title, content)
        assert prompt_store.list_prompts() == []

    def test_duplicate_tags_collapsed(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body", tags=["x", "y", "x"])
        assert prompt.tags == ["x", "y"]

    def test_update_prompt(self, prompt_store):
        prompt = prompt_store.add_prompt("Old", "body")
        updated = prompt_store.update_prompt(prompt.id, title="New", tags=["t"])
        assert updated.title == "New"
        assert updated.tags == ["t"]
        assert updated.updated_at >= prompt.updated_at
        assert updated.created_at == prompt.created_at

    def test_update_unknown_returns_none(self, prompt_store):
        assert prompt_store.update_prompt("missing", title="X") is None

    def test_update_immutable_field_rejected(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        with pytest.raises(ValueError, match="immutable"):
            prompt_store.update_prompt(prompt.id, id="other")

    def test_update_empty_title_rejected(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        with pytest.raises(ValueError):
            prompt_store.update_prompt(prompt.id, title="")
        assert prompt_store.get_prompt(prompt.id).title == "T"

    def test_getters_return_copies(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body", tags=["a"])
        fetched = prompt_store.get_prompt(prompt.id)
        fetched.tags.append("mutated")
        assert prompt_store.get_prompt(prompt.id).tags == ["a"]

    def test_delete_prompt_cascades_to_collections(self, prompt_store):
        keep = prompt_store.add_prompt("Keep", "body")
        drop = prompt_store.add_prompt("Drop", "body")
        collection = prompt_store.create_collection("Mine")
        prompt_store.add_to_collection(collection.id, keep.id)
        prompt_store.add_to_collection(collection.id, drop.id)

        assert prompt_store.delete_prompt(drop.id) is True
        assert prompt_store.get_prompt(drop.id) is None
        assert prompt_store.get_collection(collection.id).prompt_ids == [keep.id]

    def test_delete_unknown_prompt(self, prompt_store):
        assert prompt_store.delete_prompt("missing") is False

    def test_failed_save_leaves_state_unchanged(self, prompt_store, mock_db):
        prompt_store.add_prompt("First", "body")
        mock_db.fail_saves = True
        with pytest.raises(OSError):
            prompt_store.add_prompt("Second", "body")
        assert [p.title for p in prompt_store.list_prompts()] == ["First"]


class TestDuplicateFavoriteUsage:
    def test_duplicate_prompt(self, prompt_store):
        source = prompt_store.add_prompt("Draft", "body", tags=["t"], is_favorite=True)
        prompt_store.increment_usage_count(source.id)
        prompt_store.add_version(source.id, "older body")
        prompt_store.record_execution(source.id, "gpt-4", 100, estimated_cost=0.01)

        copy = prompt_store.duplicate_prompt(source.id)
        assert copy.id != source.id
        assert copy.title == "Draft (Copy)"
        assert copy.content == "body"
        assert copy.tags == ["t"]
        assert copy.usage_count == 0
        assert copy.is_favorite is False
        assert copy.versions == []
        assert len(copy.execution_history) == 1
        assert copy.execution_history[0].prompt_id == copy.id

        original = prompt_store.get_prompt(source.id)
        assert copy.execution_history[0].id != original.execution_history[0].id
        assert original.usage_count == 1
        assert len(original.versions) == 1

    def test_duplicate_unknown(self, prompt_store):
        assert prompt_store.duplicate_prompt("missing") is None

    def test_toggle_favorite(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        assert prompt_store.toggle_favorite(prompt.id).is_favorite is True
        assert prompt_store.toggle_favorite(prompt.id).is_favorite is False

    def test_usage_count_does_not_touch_updated_at(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        for _ in range(3):
            bumped = prompt_store.increment_usage_count(prompt.id)
        assert bumped.usage_count == 3
        assert bumped.updated_at == prompt.updated_at

    def test_usage_count_unknown(self, prompt_store):
        assert prompt_store.increment_usage_count("missing") is None


class TestVersionsAndExecutions:
    def test_add_version(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "v1")
        version = prompt_store.add_version(prompt.id, "v1")
        assert version.type == "manual"
        versions = prompt_store.get_prompt(prompt.id).versions
        assert [v.content for v in versions] == ["v1"]

    def test_versions_append_in_order(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "v1")
        prompt_store.add_version(prompt.id, "a")
        prompt_store.add_version(prompt.id, "b", type="optimized")
        versions = prompt_store.get_prompt(prompt.id).versions
        assert [(v.content, v.type) for v in versions] == [("a", "manual"), ("b", "optimized")]

    def test_add_version_unknown_prompt(self, prompt_store):
        assert prompt_store.add_version("missing", "text") is None

    def test_record_execution_prices_from_catalog(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        entry = prompt_store.record_execution(prompt.id, "claude-3-5-sonnet-20241022", 2000)
        assert entry.estimated_cost == pytest.approx(0.006)
        assert entry.prompt_id == prompt.id

    def test_record_execution_unknown_model_costs_nothing(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        entry = prompt_store.record_execution(prompt.id, "homegrown-llm", 500)
        assert entry.estimated_cost == 0.0

    def test_record_execution_explicit_cost(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        entry = prompt_store.record_execution(
            prompt.id, "gpt-4", 10, estimated_cost=1.5, response_time=0.8, notes="ok"
        )
        stored = prompt_store.get_prompt(prompt.id).execution_history
        assert stored == [entry]
        assert stored[0].estimated_cost == 1.5

    def test_record_execution_unknown_prompt(self, prompt_store):
        assert prompt_store.record_execution("missing", "gpt-4", 10) is None

    def test_apply_optimization(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "rough draft")
        updated = prompt_store.apply_optimization(prompt.id, "polished prompt")
        assert updated.content == "polished prompt"
        assert [(v.content, v.type) for v in updated.versions] == [
            ("rough draft", "manual"),
            ("polished prompt", "optimized"),
        ]

    def test_apply_empty_optimization_rejected(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "draft")
        with pytest.raises(ValueError):
            prompt_store.apply_optimization(prompt.id, "  ")
        assert prompt_store.get_prompt(prompt.id).content == "draft"


class TestCollections:
    def test_add_to_collection_is_idempotent(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        collection = prompt_store.create_collection("C")
        prompt_store.add_to_collection(collection.id, prompt.id)
        again = prompt_store.add_to_collection(collection.id, prompt.id)
        assert again.prompt_ids == [prompt.id]

    def test_add_unknown_prompt_to_collection(self, prompt_store):
        collection = prompt_store.create_collection("C")
        assert prompt_store.add_to_collection(collection.id, "missing") is None

    def test_remove_from_collection(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        collection = prompt_store.create_collection("C")
        prompt_store.add_to_collection(collection.id, prompt.id)
        assert prompt_store.remove_from_collection(collection.id, prompt.id).prompt_ids == []

    def test_update_collection_dedupes_members(self, prompt_store):
        collection = prompt_store.create_collection("C")
        updated = prompt_store.update_collection(collection.id, prompt_ids=["a", "b", "a"])
        assert updated.prompt_ids == ["a", "b"]

    def test_delete_collection_keeps_prompts(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body")
        collection = prompt_store.create_collection("C")
        prompt_store.add_to_collection(collection.id, prompt.id)
        assert prompt_store.delete_collection(collection.id) is True
        assert prompt_store.get_prompt(prompt.id) is not None
        assert prompt_store.delete_collection(collection.id) is False


class TestCategories:
    def test_default_categories(self, prompt_store):
        names = [c.name for c in prompt_store.list_categories()]
        assert names == ["General", "Development", "Writing", "Analysis", "Creative"]

    def test_create_category(self, prompt_store):
        category = prompt_store.create_category("Research", color="bg-blue-500")
        assert category.name == "Research"
        assert prompt_store.get_category(category.id) == category

    def test_duplicate_category_name_rejected(self, prompt_store):
        with pytest.raises(DuplicateNameError, match="already exists"):
            prompt_store.create_category("general")

    def test_rename_category_to_existing_rejected(self, prompt_store):
        with pytest.raises(DuplicateNameError, match="already exists"):
            prompt_store.update_category("2", name="Writing")

    def test_rename_category_keeps_its_own_name(self, prompt_store):
        updated = prompt_store.update_category("2", name="Development", color="bg-green-500")
        assert updated.color == "bg-green-500"

    def test_delete_category_leaves_prompts_alone(self, prompt_store):
        prompt = prompt_store.add_prompt("T", "body", category="Creative")
        assert prompt_store.delete_category("5") is True
        assert prompt_store.get_prompt(prompt.id).category == "Creative"


class TestFiltering:
    @pytest.fixture
    def populated(self, prompt_store):
        a = prompt_store.add_prompt(
            "Code review", "Review this diff", category="Development", tags=["code", "review"]
        )
        b = prompt_store.add_prompt("Blog intro", "Write an intro", category="Writing", tags=["blog"])
        c = prompt_store.add_prompt(
            "Refactor", "Clean up the code", category="Development", tags=["code"]
        )
        return prompt_store, a, b, c

    def test_search_matches_title_content_and_tags(self, populated):
        store, a, b, c = populated
        assert {p.id for p in filter_prompts(store.list_prompts(), query="CODE")} == {a.id, c.id}
        assert [p.id for p in filter_prompts(store.list_prompts(), query="blog")] == [b.id]

    def test_category_filter(self, populated):
        store, a, b, c = populated
        result = filter_prompts(store.list_prompts(), category="Writing")
        assert [p.id for p in result] == [b.id]

    def test_tags_require_every_selected_tag(self, populated):
        store, a, b, c = populated
        result = filter_prompts(store.list_prompts(), tags=["code", "review"])
        assert [p.id for p in result] == [a.id]

    def test_tags_with_no_match(self, populated):
        store, *_ = populated
        assert filter_prompts(store.list_prompts(), tags=["code", "blog"]) == []

    def test_sort_recent(self, populated):
        store, a, b, c = populated
        store.update_prompt(a.id, description="touched")
        assert filter_prompts(store.list_prompts(), sort_by="recent")[0].id == a.id

    def test_sort_popular(self, populated):
        store, a, b, c = populated
        store.increment_usage_count(b.id)
        store.increment_usage_count(b.id)
        store.increment_usage_count(c.id)
        result = filter_prompts(store.list_prompts(), sort_by="popular")
        assert [p.id for p in result] == [b.id, c.id, a.id]

    def test_sort_favorite_filters(self, populated):
        store, a, b, c = populated
        store.toggle_favorite(c.id)
        result = filter_prompts(store.list_prompts(), sort_by="favorite")
        assert [p.id for p in result] == [c.id]

    def test_unknown_sort_rejected(self, populated):
        store, *_ = populated
        with pytest.raises(ValueError, match="Unknown sort"):
            filter_prompts(store.list_prompts(), sort_by="alphabetical")

    def test_filter_state(self, populated):
        store, a, b, c = populated
        store.set_selected_category("Development")
        store.toggle_tag("review")
        assert [p.id for p in store.filtered_prompts()] == [a.id]

        store.toggle_tag("review")
        assert store.selected_tags == []
        assert {p.id for p in store.filtered_prompts()} == {a.id, c.id}

        store.set_search_query("intro")
        store.clear_filters()
        assert len(store.filtered_prompts()) == 3

    def test_set_selected_tags_dedupes(self, prompt_store):
        prompt_store.set_selected_tags(["a", "b", "a"])
        assert prompt_store.selected_tags == ["a", "b"]


class TestImportExport:
    def test_export_import_round_trip(self, prompt_store, mock_db):
        prompt = prompt_store.add_prompt("T", "body", tags=["x"])
        prompt_store.record_execution(prompt.id, "gpt-4", 10)
        collection = prompt_store.create_collection("C")
        prompt_store.add_to_collection(collection.id, prompt.id)
        exported = prompt_store.export_data()

        other = PromptStore(type(mock_db)())
        other.import_data(exported)
        assert other.list_prompts() == prompt_store.list_prompts()
        assert other.list_collections() == prompt_store.list_collections()
        assert other.list_categories() == prompt_store.list_categories()

    def test_export_is_camel_case_json(self, prompt_store):
        prompt_store.add_prompt("T", "body")
        data = json.loads(prompt_store.export_data())
        assert set(data) == {"prompts", "collections", "categories"}
        assert "createdAt" in data["prompts"][0]

    def test_import_malformed_json_leaves_state(self, prompt_store):
        prompt = prompt_store.add_prompt("Keep me", "body")
        with pytest.raises(DataImportError, match="Malformed JSON"):
            prompt_store.import_data("{not json")
        assert [p.id for p in prompt_store.list_prompts()] == [prompt.id]

    def test_import_wrong_shape_leaves_state(self, prompt_store):
        prompt_store.add_prompt("Keep me", "body")
        with pytest.raises(DataImportError):
            prompt_store.import_data(json.dumps({"prompts": [{"title": "no content"}]}))
        with pytest.raises(DataImportError):
            prompt_store.import_data(json.dumps(["not", "an", "object"]))
        assert len(prompt_store.list_prompts()) == 1

    def test_import_rejects_duplicate_ids(self, prompt_store):
        doc = {"prompts": [{"id": "x", "title": "A", "content": "a"}, {"id": "x", "title": "B", "content": "b"}]}
        with pytest.raises(DataImportError, match="Duplicate"):
            prompt_store.import_data(json.dumps(doc))

    def test_import_without_categories_uses_defaults(self, prompt_store):
        prompt_store.create_category("Custom")
        prompt_store.import_data(json.dumps({"prompts": [], "collections": [], "categories": None}))
        assert len(prompt_store.list_categories()) == 5

    def test_import_accepts_naive_timestamps(self, prompt_store):
        doc = {
            "prompts": [
                {
                    "id": "x",
                    "title": "Legacy",
                    "content": "body",
                    "createdAt": "2024-01-01T10:00:00",
                    "updatedAt": "2024-01-02T10:00:00",
                }
            ]
        }
        prompt_store.import_data(json.dumps(doc))
        prompt = prompt_store.get_prompt("x")
        assert prompt.created_at.tzinfo is not None
        assert prompt.updated_at - prompt.created_at == timedelta(days=1)

    def test_clear_all(self, prompt_store):
        prompt_store.add_prompt("T", "body")
        prompt_store.create_collection("C")
        prompt_store.create_category("Extra")
        prompt_store.set_search_query("T")
        prompt_store.clear_all()
        assert prompt_store.list_prompts() == []
        assert prompt_store.list_collections() == []
        assert len(prompt_store.list_categories()) == 5
        assert prompt_store.search_query == ""
