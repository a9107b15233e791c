"""Tests for the tag/category store and keyword tag suggestions."""

import pytest

from snippet_svc.tags import (
    DEFAULT_CATEGORIES,
    TAG_COLORS,
    Category,
    Tag,
    TagRegistry,
    load_tags_from_yaml,
    save_tags_to_yaml,
    suggest_tags,
)


class TestTags:
    """Tag CRUD and lookups."""

    def test_create_tag(self, tag_registry):
        tag = tag_registry.create_tag("  reporting ", "  Monthly reports ")

        assert tag.name == "reporting"
        assert tag.description == "Monthly reports"
        assert tag.color in TAG_COLORS
        assert tag.usage_count == 0
        assert tag.created_at.endswith("Z")
        assert tag.id in tag_registry

    def test_duplicate_name_is_rejected_ignoring_case(self, tag_registry):
        tag_registry.create_tag("Reporting")
        with pytest.raises(ValueError, match="Tag already exists"):
            tag_registry.create_tag("reporting")

    def test_find_tag_by_name(self, tag_registry):
        tag = tag_registry.create_tag("Finance")
        assert tag_registry.find_tag_by_name("  FINANCE ") is tag
        assert tag_registry.find_tag_by_name("ops") is None

    def test_tag_name_falls_back_to_id(self, tag_registry):
        tag = tag_registry.create_tag("ops")
        assert tag_registry.tag_name(tag.id) == "ops"
        assert tag_registry.tag_name("missing-id") == "missing-id"

    def test_update_tag(self, tag_registry):
        tag = tag_registry.create_tag("ops")
        updated = tag_registry.update_tag(tag.id, name="operations", color=None)

        assert updated.name == "operations"
        assert updated.color == tag.color

    def test_update_missing_tag(self, tag_registry):
        with pytest.raises(KeyError):
            tag_registry.update_tag("nope", name="x")

    def test_delete_tag(self, tag_registry):
        tag = tag_registry.create_tag("ops")
        assert tag_registry.delete_tag(tag.id) is True
        assert tag_registry.delete_tag(tag.id) is False
        assert len(tag_registry) == 0

    def test_search_tags(self, tag_registry):
        tag_registry.create_tag("reporting", "Monthly numbers")
        tag_registry.create_tag("etl")

        assert [t.name for t in tag_registry.search_tags("MONTHLY")] == ["reporting"]
        assert [t.name for t in tag_registry.search_tags("et")] == ["etl"]


class TestUsageCounters:
    """Counters are maintained by callers and never drop below zero."""

    def test_increment_and_decrement(self, tag_registry):
        tag = tag_registry.create_tag("ops")
        tag_registry.increment_tag_usage(tag.id)
        tag_registry.increment_tag_usage(tag.id)
        tag_registry.decrement_tag_usage(tag.id)
        assert tag.usage_count == 1

    def test_decrement_clamps_at_zero(self, tag_registry):
        tag = tag_registry.create_tag("ops")
        tag_registry.decrement_tag_usage(tag.id)
        tag_registry.decrement_tag_usage(tag.id)
        assert tag.usage_count == 0

    def test_unknown_ids_are_ignored(self, tag_registry):
        tag_registry.increment_tag_usage("missing")
        tag_registry.decrement_category_usage("missing")

    def test_category_counter_clamps(self, tag_registry):
        category = tag_registry.list_categories()[0]
        tag_registry.increment_category_usage(category.id)
        tag_registry.decrement_category_usage(category.id)
        tag_registry.decrement_category_usage(category.id)
        assert category.query_count == 0

    def test_popular_tags(self, tag_registry):
        low = tag_registry.create_tag("low")
        high = tag_registry.create_tag("high")
        for _ in range(3):
            tag_registry.increment_tag_usage(high.id)
        tag_registry.increment_tag_usage(low.id)

        assert [t.name for t in tag_registry.popular_tags()] == ["high", "low"]
        assert [t.name for t in tag_registry.popular_tags(limit=1)] == ["high"]


class TestCategories:
    """Category CRUD and default seeding."""

    def test_defaults_seeded_on_first_access(self, tag_registry):
        categories = tag_registry.list_categories()

        assert [c.name for c in categories] == [d["name"] for d in DEFAULT_CATEGORIES]
        assert all(c.icon for c in categories)

    def test_seeding_can_be_disabled(self):
        assert TagRegistry(seed_categories=False).list_categories() == []

    def test_create_category_rejects_duplicates(self, tag_registry):
        with pytest.raises(ValueError, match="Category already exists"):
            tag_registry.create_category("analytics")

    def test_create_category_with_defaults(self, tag_registry):
        category = tag_registry.create_category("Finance", color=None)
        assert category.color in TAG_COLORS
        assert category.query_count == 0

    def test_update_and_delete_category(self, tag_registry):
        category = tag_registry.create_category("Finance")
        tag_registry.update_category(category.id, icon="💰")
        assert tag_registry.get_category(category.id).icon == "💰"

        assert tag_registry.delete_category(category.id) is True
        with pytest.raises(KeyError):
            tag_registry.update_category(category.id, name="x")

    def test_search_categories(self, tag_registry):
        names = [c.name for c in tag_registry.search_categories("restore")]
        assert names == ["Backup"]


class TestSerialization:
    """camelCase exchange dictionaries and YAML persistence."""

    def test_tag_to_dict_keys(self):
        tag = Tag(id="t1", name="ops", color="#ef4444", created_at="2024-01-15T09:30:00.000Z")
        assert list(tag.to_dict()) == ["id", "name", "color", "createdAt", "usageCount"]

    def test_negative_counts_are_clamped_on_load(self):
        tag = Tag.from_dict({"id": "t1", "name": "ops", "usageCount": -4})
        category = Category.from_dict({"id": "c1", "name": "Ops", "queryCount": -1})
        assert tag.usage_count == 0
        assert category.query_count == 0

    def test_yaml_round_trip(self, tmp_path, tag_registry):
        yaml_path = tmp_path / "tags.yaml"
        tag = tag_registry.create_tag("reporting", "Monthly reports")
        tag_registry.increment_tag_usage(tag.id)
        tag_registry.create_category("Finance", icon="💰")

        assert save_tags_to_yaml(yaml_path, tag_registry) == 1

        restored = TagRegistry()
        tags, categories = load_tags_from_yaml(yaml_path, restored)

        assert tags == [tag]
        assert len(categories) == len(DEFAULT_CATEGORIES) + 1
        assert restored.find_tag_by_name("reporting").usage_count == 1
        assert any(c.icon == "💰" for c in restored.list_categories())

    def test_missing_file_leaves_store_untouched(self, tmp_path, tag_registry):
        tag_registry.create_tag("ops")
        assert load_tags_from_yaml(tmp_path / "absent.yaml", tag_registry) == ([], [])
        assert len(tag_registry) == 1


class TestSuggestTags:
    """Keyword-driven tag name suggestions."""

    def test_analytics_needs_select_and_count(self):
        assert suggest_tags("SELECT COUNT(*) FROM t") == ["analytics"]
        assert "analytics" not in suggest_tags("SELECT id FROM t")

    def test_multiple_rules(self):
        suggestions = suggest_tags("select a from t join u on t.id = u.id union select 1")
        assert suggestions == ["complex", "advanced"]

    def test_schema_and_performance(self):
        assert suggest_tags("CREATE INDEX idx_users ON users (email)") == ["schema", "performance"]

    def test_crud(self):
        assert suggest_tags("delete from sessions") == ["crud"]

    def test_no_keywords(self):
        assert suggest_tags("SHOW TABLES") == []


class TestBundleMerge:
    """Merging tags and categories carried by an export bundle."""

    def test_restore_into_empty_store(self, tag_registry):
        source = TagRegistry()
        tag = source.create_tag("reporting", "Monthly reports")
        source.increment_tag_usage(tag.id)
        category = source.create_category("Finance", icon="💰")

        result = tag_registry.merge_tags_and_categories(
            [t.to_dict() for t in source.list_tags()],
            [c.to_dict() for c in source.list_categories()],
        )

        restored = tag_registry.get_tag(tag.id)
        assert restored.name == "reporting"
        assert restored.usage_count == 0
        assert [t.id for t in result.tags] == [tag.id]
        assert [c.id for c in result.categories] == [category.id]
        assert tag_registry.get_category(category.id).icon == "💰"
        assert len(tag_registry.list_categories()) == len(DEFAULT_CATEGORIES) + 1

    def test_existing_name_maps_to_existing_id(self, tag_registry):
        existing = tag_registry.create_tag("Reporting")

        result = tag_registry.merge_tags_and_categories(
            [{"id": "bundle-id", "name": "reporting"}], []
        )

        assert result.tags == []
        assert result.id_map == {"bundle-id": existing.id}
        assert len(tag_registry) == 1

    def test_existing_id_is_left_alone(self, tag_registry):
        tag = tag_registry.create_tag("ops")

        result = tag_registry.merge_tags_and_categories([{"id": tag.id, "name": "renamed"}], [])

        assert result.tags == []
        assert result.id_map == {}
        assert tag_registry.get_tag(tag.id).name == "ops"

    def test_duplicate_category_names_skipped(self, tag_registry):
        result = tag_registry.merge_tags_and_categories([], [{"id": "c9", "name": "ANALYTICS"}])
        assert result.categories == []
        assert tag_registry.get_category("c9") is None

    def test_malformed_entries_are_counted(self, tag_registry):
        result = tag_registry.merge_tags_and_categories(
            ["not a dict", {"name": "no id"}, {"id": "t1", "name": ""}, {"id": "t2", "name": 7}],
            [{"id": "c1"}, {"id": "c2", "name": "Ops", "queryCount": "many"}],
        )

        assert result.skipped == 6
        assert len(tag_registry) == 0
