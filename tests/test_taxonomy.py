"""
Tests for fafcore.core.taxonomy — type resolution, slot sets and inference.
"""

import pytest

from fafcore.core.taxonomy import (
    CATEGORIES,
    DEFAULT_TAXONOMY,
    GENERIC_TYPE,
    SLOTS,
    TYPE_ALIASES,
    TYPE_CATEGORIES,
    SlotTaxonomy,
)


# =============================================================================
# Slot registry
# =============================================================================

class TestSlots:

    def test_twenty_one_slots(self):
        assert len(SLOTS) == 21
        assert len({s.path for s in SLOTS}) == 21

    @pytest.mark.parametrize("category, count", [
        ("project", 3),
        ("frontend", 4),
        ("backend", 5),
        ("universal", 3),
        ("human", 6),
    ])
    def test_category_sizes(self, category, count):
        assert sum(1 for s in SLOTS if s.category == category) == count

    def test_canonical_key_is_last_path_segment(self):
        for slot in SLOTS:
            assert slot.path.endswith("." + slot.canonical_key)

    def test_generator_defaults_are_sentinels(self):
        goal = DEFAULT_TAXONOMY.lookup_slot("project.goal")
        api_type = DEFAULT_TAXONOMY.lookup_slot("stack.api_type")
        assert "project development and deployment" in goal.sentinels
        assert "rest api" in api_type.sentinels

    def test_to_dict(self):
        data = DEFAULT_TAXONOMY.lookup_slot("stack.build").to_dict()
        assert data["path"] == "stack.build"
        assert data["category"] == "universal"
        assert "buildTool" in data["legacy_keys"]


# =============================================================================
# Type resolution
# =============================================================================

class TestResolveType:

    @pytest.mark.parametrize("project_type, expected", [
        ("cli", 9),
        ("cli-ts", 9),
        ("library", 9),
        ("k8s", 9),
        ("mobile", 13),
        ("python-app", 14),
        ("svelte", 16),
        ("backend-api", 17),
        ("fastapi", 17),
        ("nextjs", 21),
        ("next", 21),
        ("generic", 12),
    ])
    def test_slot_counts(self, project_type, expected):
        assert DEFAULT_TAXONOMY.slot_count(project_type) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "not-a-type", 42, ["cli"], {"t": 1}])
    def test_unknown_falls_back_to_generic(self, value):
        assert DEFAULT_TAXONOMY.resolve_type(value) == GENERIC_TYPE
        assert DEFAULT_TAXONOMY.slot_count(value) == 12

    def test_strip_and_lower(self):
        assert DEFAULT_TAXONOMY.resolve_type("  NextJS ") == "nextjs"
        assert DEFAULT_TAXONOMY.resolve_type("CLI-TS") == "cli"

    def test_canonical_resolves_to_itself(self):
        for name in TYPE_CATEGORIES:
            assert DEFAULT_TAXONOMY.resolve_type(name) == name

    def test_alias_resolution_is_idempotent(self):
        for alias in TYPE_ALIASES:
            once = DEFAULT_TAXONOMY.resolve_type(alias)
            assert DEFAULT_TAXONOMY.resolve_type(once) == once

    def test_every_alias_has_its_target_slot_count(self):
        for alias, target in TYPE_ALIASES.items():
            assert DEFAULT_TAXONOMY.slot_count(alias) == DEFAULT_TAXONOMY.slot_count(target), alias

    def test_is_known(self):
        assert DEFAULT_TAXONOMY.is_known("k8s")
        assert DEFAULT_TAXONOMY.is_known("Kubernetes")
        assert not DEFAULT_TAXONOMY.is_known("mainframe")
        assert not DEFAULT_TAXONOMY.is_known(None)


class TestSlotsFor:

    def test_category_order_is_stable(self):
        categories = [s.category for s in DEFAULT_TAXONOMY.slots_for("nextjs")]
        assert categories == sorted(categories, key=CATEGORIES.index)

    def test_cli_counts_project_and_human(self):
        assert DEFAULT_TAXONOMY.categories_for("cli") == ("project", "human")
        paths = [s.path for s in DEFAULT_TAXONOMY.slots_for("cli")]
        assert paths[:3] == ["project.name", "project.goal", "project.main_language"]
        assert paths[3:] == [
            "human_context.who", "human_context.what", "human_context.why",
            "human_context.where", "human_context.when", "human_context.how",
        ]

    def test_deterministic(self):
        assert DEFAULT_TAXONOMY.slots_for("svelte") == DEFAULT_TAXONOMY.slots_for("svelte")


# =============================================================================
# Lookup & introspection
# =============================================================================

class TestLookup:

    @pytest.mark.parametrize("key, path", [
        ("stack.hosting", "stack.hosting"),
        ("hosting", "stack.hosting"),
        ("instant_context.deployment", "stack.hosting"),
        ("buildTool", "stack.build"),
        ("projectName", "project.name"),
        ("who", "human_context.who"),
    ])
    def test_lookup_spellings(self, key, path):
        assert DEFAULT_TAXONOMY.lookup_slot(key).path == path

    @pytest.mark.parametrize("key", ["nope", "", 42, None])
    def test_lookup_unknown(self, key):
        assert DEFAULT_TAXONOMY.lookup_slot(key) is None

    def test_types_sorted_and_include_generic(self):
        names = DEFAULT_TAXONOMY.types()
        assert list(names) == sorted(names)
        assert GENERIC_TYPE in names

    def test_aliases_for(self):
        assert "cli-ts" in DEFAULT_TAXONOMY.aliases_for("cli")
        assert "k8s" in DEFAULT_TAXONOMY.aliases_for("k8s")

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_TAXONOMY.aliases["new"] = "cli"

    def test_repr_mentions_version(self):
        assert DEFAULT_TAXONOMY.version in repr(DEFAULT_TAXONOMY)


# =============================================================================
# Construction checks
# =============================================================================

class TestTaxonomyConstruction:

    def test_alias_to_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="unknown type"):
            SlotTaxonomy(aliases={"x": "does-not-exist"})

    def test_alias_shadowing_type_rejected(self):
        with pytest.raises(ValueError, match="shadows"):
            SlotTaxonomy(aliases={"cli": "library"})

    def test_generic_required(self):
        with pytest.raises(ValueError, match="generic"):
            SlotTaxonomy(type_categories={"cli": ("project", "human")}, aliases={})

    def test_unknown_category_rejected(self):
        types = dict(TYPE_CATEGORIES, odd=("project", "quantum"))
        with pytest.raises(ValueError, match="unknown categories"):
            SlotTaxonomy(type_categories=types)

    def test_custom_version(self):
        assert SlotTaxonomy(version="test-1").version == "test-1"

    def test_new_alias_keeps_canonical_counts(self):
        extended = SlotTaxonomy(aliases=dict(TYPE_ALIASES, commandline="cli"))
        for name in TYPE_CATEGORIES:
            assert extended.slot_count(name) == DEFAULT_TAXONOMY.slot_count(name)
        assert extended.slot_count("commandline") == 9


# =============================================================================
# Type inference
# =============================================================================

class TestInferType:

    @pytest.mark.parametrize("document, expected", [
        ({"project": {"type": "k8s"}}, "kubernetes"),
        ({"projectType": "cli"}, "cli"),
        ({"project": {"goal": "A command line tool for release notes"}}, "cli"),
        ({"project": {"goal": "Public API for order tracking"}}, "backend-api"),
        ({"project": {"goal": "An MCP server for tickets"}}, "mcp-server"),
        ({"project": {"goal": "Gardening blog"}}, GENERIC_TYPE),
        ({}, GENERIC_TYPE),
        (None, GENERIC_TYPE),
        (["cli"], GENERIC_TYPE),
    ])
    def test_infer(self, document, expected):
        assert DEFAULT_TAXONOMY.infer_type(document) == expected

    def test_declared_type_beats_goal(self):
        doc = {"project": {"type": "nextjs", "goal": "a cli"}}
        assert DEFAULT_TAXONOMY.infer_type(doc) == "nextjs"
