"""
fafcore Slot Taxonomy

The versioned registry that decides which slots a project is scored on.
Every project has the same 21 slots; a project *type* selects which of the
five slot categories count toward its score.  Types may be spelled through
aliases (``k8s``, ``fastapi``, ``cli-tool``), which resolve to exactly one
canonical type.  Anything unrecognised resolves to ``generic``.

The tables are built once at import time into :data:`DEFAULT_TAXONOMY` and
are never mutated afterwards, so a single registry can be shared across
any number of concurrent compilations.
"""

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

TAXONOMY_VERSION = "2025.12"

GENERIC_TYPE = "generic"


# =============================================================================
# Slots
# =============================================================================

CATEGORIES: Tuple[str, ...] = ("project", "frontend", "backend", "universal", "human")


@dataclass(frozen=True)
class Slot:
    """A single scorable field of a context document."""
    path: str
    """Canonical nested path in the current schema (e.g. ``stack.hosting``)."""
    category: str
    canonical_key: str
    """Short key used in listings and accepted as a discovered-context key."""
    legacy_keys: Tuple[str, ...] = ()
    """Top-level keys of the legacy flat schema (e.g. ``buildTool``)."""
    alternate_paths: Tuple[str, ...] = ()
    """Other nested paths of the current schema that carry the same value."""
    sentinels: frozenset = field(default_factory=frozenset)
    """Slot-specific placeholder values counted as unfilled (lower-case)."""

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "category": self.category,
            "canonical_key": self.canonical_key,
            "legacy_keys": list(self.legacy_keys),
        }


def _slot(path: str, category: str, legacy: Iterable[str] = (),
          alternates: Iterable[str] = (), sentinels: Iterable[str] = ()) -> Slot:
    return Slot(
        path=path,
        category=category,
        canonical_key=path.rsplit(".", 1)[-1],
        legacy_keys=tuple(legacy),
        alternate_paths=tuple(alternates),
        sentinels=frozenset(s.lower() for s in sentinels),
    )


SLOTS: Tuple[Slot, ...] = (
    # Project (3)
    _slot("project.name", "project", legacy=("projectName",)),
    _slot("project.goal", "project", legacy=("projectGoal",),
          alternates=("instant_context.what_building",),
          sentinels=("Project development and deployment",)),
    _slot("project.main_language", "project", legacy=("mainLanguage",),
          alternates=("instant_context.main_language",)),
    # Frontend (4)
    _slot("stack.frontend", "frontend", legacy=("framework",)),
    _slot("stack.css_framework", "frontend", legacy=("cssFramework",)),
    _slot("stack.ui_library", "frontend", legacy=("uiLibrary",)),
    _slot("stack.state_management", "frontend", legacy=("stateManagement",)),
    # Backend (5)
    _slot("stack.backend", "backend", legacy=("backend",)),
    _slot("stack.api_type", "backend", legacy=("apiType",), sentinels=("REST API",)),
    _slot("stack.runtime", "backend", legacy=("server", "runtime")),
    _slot("stack.database", "backend", legacy=("database",)),
    _slot("stack.connection", "backend", legacy=("connection",)),
    # Universal (3)
    _slot("stack.hosting", "universal", legacy=("hosting",),
          alternates=("instant_context.deployment",)),
    _slot("stack.build", "universal", legacy=("buildTool",)),
    _slot("stack.cicd", "universal", legacy=("cicd",)),
    # Human context, the six W's (6)
    _slot("human_context.who", "human", legacy=("targetUser",)),
    _slot("human_context.what", "human", legacy=("coreProblem",)),
    _slot("human_context.why", "human", legacy=("missionPurpose",)),
    _slot("human_context.where", "human", legacy=("deploymentMarket",)),
    _slot("human_context.when", "human", legacy=("timeline",)),
    _slot("human_context.how", "human", legacy=("approach",)),
)


# =============================================================================
# Types
# =============================================================================

_P_H = ("project", "human")
_P_F_H = ("project", "frontend", "human")
_P_B_H = ("project", "backend", "human")
_P_U_H = ("project", "universal", "human")
_P_F_U_H = ("project", "frontend", "universal", "human")
_P_B_U_H = ("project", "backend", "universal", "human")
_ALL = CATEGORIES


def _family(categories: Tuple[str, ...], *names: str) -> Dict[str, Tuple[str, ...]]:
    return {name: categories for name in names}


TYPE_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    # Tools and packages
    **_family(_P_H, "cli", "library", "npm-package", "pip-package", "crate", "gem"),
    # Browser extensions
    **_family(_P_H, "chrome-extension", "firefox-extension", "safari-extension"),
    # DevOps / infrastructure
    **_family(_P_H, "terraform", "kubernetes", "docker", "ansible", "pulumi",
              "infrastructure", "github-action"),
    # Embedded
    **_family(_P_H, "embedded", "arduino", "raspberry-pi", "wasm"),
    # Notebooks, contracts and test projects
    **_family(_P_H, "jupyter", "smart-contract", "hardhat", "foundry",
              "test-suite", "e2e-tests"),
    # Mobile, desktop, games, dapps
    **_family(_P_F_H, "mobile", "react-native", "flutter", "ios", "android", "ionic",
              "desktop", "electron", "tauri", "qt", "gtk",
              "game", "unity", "godot", "unreal", "phaser", "threejs", "dapp"),
    # Data, ML and automation
    **_family(_P_B_H, "mcp-server", "data-science", "ml-model", "data-pipeline",
              "n8n-workflow", "zapier", "python-app"),
    # Frontend and static sites
    **_family(_P_F_U_H, "frontend", "svelte", "react", "vue", "angular", "astro",
              "solid", "qwik", "static-html", "landing-page", "documentation",
              "docusaurus", "mkdocs", "vitepress", "storybook"),
    # Backend APIs and headless CMS
    **_family(_P_B_U_H, "backend-api", "node-api", "python-api", "go-api", "rust-api",
              "graphql", "microservice", "cms", "strapi", "sanity", "contentful"),
    # Fullstack and monorepos
    **_family(_ALL, "fullstack", "nextjs", "remix", "t3", "mern", "mean", "lamp",
              "django", "rails", "laravel", "wordpress",
              "monorepo", "turborepo", "nx", "lerna", "pnpm-workspace", "yarn-workspace"),
    # Fallback
    GENERIC_TYPE: _P_U_H,
}

TYPE_ALIASES: Dict[str, str] = {
    "cli-tool": "cli", "command-line": "cli", "cli-ts": "cli", "cli-js": "cli",
    "cli-py": "cli",
    "lib": "library", "package": "library", "sdk": "library",
    "npm": "npm-package", "pypi": "pip-package", "rust-crate": "crate",
    "ruby-gem": "gem",
    "extension": "chrome-extension",
    "k8s": "kubernetes", "helm": "kubernetes", "tf": "terraform",
    "gha": "github-action", "iac": "infrastructure",
    "iot": "embedded", "firmware": "embedded", "webassembly": "wasm",
    "notebook": "jupyter", "solidity": "smart-contract",
    "e2e": "e2e-tests", "playwright": "e2e-tests", "cypress": "e2e-tests",
    "rn": "react-native", "expo": "react-native", "dart": "flutter",
    "swift": "ios", "kotlin": "android",
    "web3": "dapp", "blockchain": "dapp",
    "mcp": "mcp-server", "ml": "ml-model", "n8n": "n8n-workflow",
    "sveltekit": "svelte", "reactjs": "react", "vuejs": "vue", "nuxt": "vue",
    "solidjs": "solid", "html": "static-html", "docs": "documentation",
    "api": "backend-api", "backend": "backend-api", "rest-api": "backend-api",
    "express": "node-api", "fastify": "node-api", "nestjs": "node-api",
    "flask": "python-api", "fastapi": "python-api",
    "gin": "go-api", "actix": "rust-api", "axum": "rust-api",
    "next": "nextjs", "full-stack": "fullstack",
    "turbo": "turborepo", "mono": "monorepo", "workspace": "monorepo",
}

# Goal keywords used when a document declares no type.  First match wins.
_GOAL_HINTS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\bmcp[ -]server\b"), "mcp-server"),
    (re.compile(r"\b(?:chrome|browser) extension\b"), "chrome-extension"),
    (re.compile(r"\bcli\b|\bcommand[ -]line\b"), "cli"),
    (re.compile(r"\b(?:library|sdk)\b"), "library"),
    (re.compile(r"\bapi\b"), "backend-api"),
)


# =============================================================================
# Registry
# =============================================================================

class SlotTaxonomy:
    """
    Immutable project-type → slot registry.

    Args:
        slots: Every slot, in canonical category order.
        type_categories: Canonical type → included categories.
        aliases: Alias → canonical type.
        version: Version tag recorded in traces and checksums.

    Raises ``ValueError`` at construction when an alias targets an unknown
    type or shadows a canonical type name.
    """

    def __init__(
        self,
        slots: Iterable[Slot] = SLOTS,
        type_categories: Mapping[str, Tuple[str, ...]] = TYPE_CATEGORIES,
        aliases: Mapping[str, str] = TYPE_ALIASES,
        version: str = TAXONOMY_VERSION,
    ):
        ordered = sorted(slots, key=lambda s: CATEGORIES.index(s.category))
        self._slots: Tuple[Slot, ...] = tuple(ordered)
        self._by_category: Dict[str, Tuple[Slot, ...]] = {
            cat: tuple(s for s in self._slots if s.category == cat) for cat in CATEGORIES
        }

        if GENERIC_TYPE not in type_categories:
            raise ValueError(f"Taxonomy must define the '{GENERIC_TYPE}' type")
        for name, cats in type_categories.items():
            unknown = set(cats) - set(CATEGORIES)
            if unknown:
                raise ValueError(f"Type '{name}' uses unknown categories {sorted(unknown)}")
        for alias, target in aliases.items():
            if target not in type_categories:
                raise ValueError(f"Alias '{alias}' targets unknown type '{target}'")
            if alias in type_categories:
                raise ValueError(f"Alias '{alias}' shadows a canonical type")

        self._types = MappingProxyType({
            name: tuple(c for c in CATEGORIES if c in cats)
            for name, cats in type_categories.items()
        })
        self._aliases = MappingProxyType(dict(aliases))
        self._lookup = MappingProxyType(self._build_key_lookup(self._slots))
        self.version = version

    @staticmethod
    def _build_key_lookup(slots: Tuple[Slot, ...]) -> Dict[str, Slot]:
        """Index every accepted spelling of a slot (path, short key, legacy keys)."""
        lookup: Dict[str, Slot] = {}
        for slot in slots:
            for key in (slot.path, *slot.alternate_paths, slot.canonical_key, *slot.legacy_keys):
                lookup.setdefault(key, slot)
        return lookup

    # ── Type resolution ──────────────────────────────────────────

    def resolve_type(self, project_type: Any) -> str:
        """Resolve *project_type* (canonical name or alias) to a canonical type.

        Total: ``None``, non-strings and unknown names all yield ``generic``.
        """
        if not isinstance(project_type, str):
            return GENERIC_TYPE
        key = project_type.strip().lower()
        if key in self._types:
            return key
        return self._aliases.get(key, GENERIC_TYPE)

    def is_known(self, project_type: Any) -> bool:
        """True when *project_type* names a canonical type or an alias."""
        if not isinstance(project_type, str):
            return False
        key = project_type.strip().lower()
        return key in self._types or key in self._aliases

    def infer_type(self, document: Any) -> str:
        """Pick a canonical type from the document itself.

        Uses ``project.type`` (or legacy ``projectType``) when present, then
        keywords in the project goal, then ``generic``.
        """
        if not isinstance(document, Mapping):
            return GENERIC_TYPE
        project = document.get("project")
        project = project if isinstance(project, Mapping) else {}

        declared = project.get("type") or document.get("projectType")
        if isinstance(declared, str) and declared.strip():
            return self.resolve_type(declared)

        goal = project.get("goal") or document.get("projectGoal")
        if isinstance(goal, str):
            lowered = goal.lower()
            for pattern, type_name in _GOAL_HINTS:
                if pattern.search(lowered):
                    logger.debug("Inferred project type %r from goal", type_name)
                    return type_name
        return GENERIC_TYPE

    # ── Slot lookup ──────────────────────────────────────────────

    def categories_for(self, project_type: Any) -> Tuple[str, ...]:
        return self._types[self.resolve_type(project_type)]

    def slots_for(self, project_type: Any) -> Tuple[Slot, ...]:
        """Slots counted for *project_type*, in stable category order."""
        slots: List[Slot] = []
        for category in self.categories_for(project_type):
            slots.extend(self._by_category[category])
        return tuple(slots)

    def slot_count(self, project_type: Any) -> int:
        return len(self.slots_for(project_type))

    def lookup_slot(self, key: Any) -> Optional[Slot]:
        """Find a slot by path, alternate path, short key or legacy key."""
        if not isinstance(key, str):
            return None
        return self._lookup.get(key.strip())

    @property
    def all_slots(self) -> Tuple[Slot, ...]:
        return self._slots

    # ── Introspection ────────────────────────────────────────────

    def types(self) -> Tuple[str, ...]:
        """Canonical type names, sorted."""
        return tuple(sorted(self._types))

    @property
    def aliases(self) -> Mapping[str, str]:
        return self._aliases

    def aliases_for(self, project_type: Any) -> Tuple[str, ...]:
        canonical = self.resolve_type(project_type)
        return tuple(sorted(a for a, t in self._aliases.items() if t == canonical))

    def __repr__(self) -> str:
        return (f"SlotTaxonomy(version={self.version!r}, types={len(self._types)}, "
                f"aliases={len(self._aliases)}, slots={len(self._slots)})")


DEFAULT_TAXONOMY = SlotTaxonomy()
