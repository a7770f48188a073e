"""
fafcore Field Resolution

Turns a context document plus optional discovered context into one
:class:`ResolvedField` per slot.

Each slot is resolved on its own by walking an ordered tuple of small
extractor strategies:

1. :class:`NestedPathExtractor`: the current nested schema
   (``project.goal``, then alternates such as ``instant_context.what_building``)
2. :class:`FlatKeyExtractor`: the legacy flat schema (``projectGoal``)
3. :class:`DiscoveredExtractor`: values found by file/README heuristics

The first extractor that yields a *filled* value wins.  Discovered values
only ever fill gaps: :class:`ContextNormalizer` drops any discovered value
for a slot the document already fills, and the resolver consults the
remaining ones last.
"""

import logging
import math
import numbers
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from fafcore.core.taxonomy import DEFAULT_TAXONOMY, Slot, SlotTaxonomy

logger = logging.getLogger(__name__)

SOURCE_DOCUMENT = "document"
SOURCE_DISCOVERED = "discovered"
SOURCE_NONE = "none"

# Placeholders that never count as filled, whatever the slot.
GLOBAL_SENTINELS = frozenset({
    "none", "null", "undefined", "~", "unknown", "not specified", "n/a", "tbd",
})

QUALITY_PREFIX = "quality."

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f\u200b-\u200f\u2028\u2029\ufeff]")

_EMPTY: Mapping[str, Any] = MappingProxyType({})


# =============================================================================
# Value classification
# =============================================================================

def is_filled(value: Any, sentinels: frozenset = frozenset()) -> bool:
    """Return True when *value* carries real content for a slot.

    Strings must be non-empty once whitespace and control characters are
    stripped, and must not be a global or slot-specific sentinel.  Mappings
    and sequences must be non-empty.  Finite numbers and dates count;
    booleans never do.
    """
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        text = _CONTROL_CHARS.sub("", value).strip()
        if not text:
            return False
        lowered = text.lower()
        return lowered not in GLOBAL_SENTINELS and lowered not in sentinels
    if isinstance(value, numbers.Integral):
        return True
    if isinstance(value, numbers.Real):
        return math.isfinite(value)
    if isinstance(value, (date, datetime)):
        return True
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return len(value) > 0
    return False


def get_path(document: Mapping[str, Any], path: str) -> Any:
    """Follow a dotted *path* through nested mappings; None when absent."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


# =============================================================================
# Data Models
# =============================================================================

@dataclass(frozen=True)
class ResolvedField:
    """The outcome of resolving one slot."""
    slot: Slot
    value: Any
    filled: bool
    source: str = SOURCE_NONE
    """``document``, ``discovered`` or ``none``."""

    @property
    def path(self) -> str:
        return self.slot.path

    def to_dict(self) -> dict:
        return {
            "path": self.slot.path,
            "category": self.slot.category,
            "value": self.value,
            "filled": self.filled,
            "source": self.source,
        }


@dataclass(frozen=True)
class NormalizedContext:
    """Read-only resolution view built by :class:`ContextNormalizer`."""
    document: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    discovered: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    """Gap-filling discovered values keyed by slot path."""
    signals: Mapping[str, Any] = field(default_factory=lambda: _EMPTY)
    """``quality.*`` discovered entries, prefix stripped."""
    shadowed: Tuple[str, ...] = ()
    """Slot paths whose discovered value lost to the document."""
    ignored_keys: Tuple[str, ...] = ()
    """Discovered keys that match no slot."""
    is_mapping: bool = True
    """False when the input document was not a mapping."""


# =============================================================================
# Extractor strategies
# =============================================================================

class Extractor:
    """One step of the per-slot precedence chain."""

    source = SOURCE_DOCUMENT

    def candidates(self, context: NormalizedContext, slot: Slot) -> Iterator[Any]:
        raise NotImplementedError


class NestedPathExtractor(Extractor):
    """Current schema: the slot's nested path, then its alternate paths."""

    def candidates(self, context, slot):
        yield get_path(context.document, slot.path)
        for alternate in slot.alternate_paths:
            yield get_path(context.document, alternate)


class FlatKeyExtractor(Extractor):
    """Legacy flat schema: top-level camelCase keys."""

    def candidates(self, context, slot):
        for key in slot.legacy_keys:
            yield context.document.get(key)


class DiscoveredExtractor(Extractor):
    """Heuristically discovered values, regardless of confidence tier."""

    source = SOURCE_DISCOVERED

    def candidates(self, context, slot):
        yield context.discovered.get(slot.path)


DOCUMENT_EXTRACTORS: Tuple[Extractor, ...] = (NestedPathExtractor(), FlatKeyExtractor())
DEFAULT_EXTRACTORS: Tuple[Extractor, ...] = DOCUMENT_EXTRACTORS + (DiscoveredExtractor(),)


# =============================================================================
# Resolver
# =============================================================================

class FieldResolver:
    """Resolve slots through an ordered chain of extractors."""

    def __init__(self, extractors: Tuple[Extractor, ...] = DEFAULT_EXTRACTORS,
                 taxonomy: SlotTaxonomy = DEFAULT_TAXONOMY):
        self._extractors = tuple(extractors)
        self._taxonomy = taxonomy

    def resolve(self, document: Any, slot: Slot,
                discovered: Optional[Mapping[str, Any]] = None) -> ResolvedField:
        """Resolve a single *slot* of *document*."""
        context = ContextNormalizer(self._taxonomy).normalize(document, discovered)
        return self.resolve_in(context, slot)

    def resolve_in(self, context: NormalizedContext, slot: Slot) -> ResolvedField:
        """Resolve *slot* against an already normalized context.

        When nothing is filled, the first raw value seen is kept so that a
        placeholder still shows up in the IR and its checksum.
        """
        first_raw: Any = None
        first_source = SOURCE_NONE
        for extractor in self._extractors:
            for value in extractor.candidates(context, slot):
                if value is None:
                    continue
                if is_filled(value, slot.sentinels):
                    return ResolvedField(slot, value, True, extractor.source)
                if first_source == SOURCE_NONE:
                    first_raw, first_source = value, extractor.source
        return ResolvedField(slot, first_raw, False, first_source)

    def resolve_all(self, context: NormalizedContext,
                    slots: Tuple[Slot, ...]) -> Tuple[ResolvedField, ...]:
        return tuple(self.resolve_in(context, slot) for slot in slots)


# =============================================================================
# Normalizer
# =============================================================================

class ContextNormalizer:
    """
    Build the read-only resolution view for one compilation.

    The document is never copied or mutated.  Discovered keys may be a slot
    path, an alternate path, a short key or a legacy key; they are mapped to
    the slot path.  Empty or placeholder discovered values are dropped, and
    so is any discovered value for a slot the document already fills.
    """

    def __init__(self, taxonomy: SlotTaxonomy = DEFAULT_TAXONOMY):
        self._taxonomy = taxonomy
        self._document_resolver = FieldResolver(DOCUMENT_EXTRACTORS, taxonomy)

    def normalize(self, document: Any,
                  discovered: Optional[Mapping[str, Any]] = None) -> NormalizedContext:
        is_mapping = isinstance(document, Mapping)
        view = document if is_mapping else _EMPTY
        base = NormalizedContext(document=view, is_mapping=is_mapping)

        if not isinstance(discovered, Mapping) or not discovered:
            return base

        candidates: Dict[str, List[Tuple[bool, str, Any]]] = {}
        signals: Dict[str, Any] = {}
        ignored: List[str] = []
        for key, value in discovered.items():
            if not isinstance(key, str):
                ignored.append(repr(key))
                continue
            if key.startswith(QUALITY_PREFIX):
                signals[key[len(QUALITY_PREFIX):]] = value
                continue
            slot = self._taxonomy.lookup_slot(key)
            if slot is None:
                ignored.append(key)
                continue
            if is_filled(value, slot.sentinels):
                # Exact path spellings win over short/legacy spellings.
                candidates.setdefault(slot.path, []).append((key != slot.path, key, value))

        gap_fills: Dict[str, Any] = {}
        shadowed: List[str] = []
        for slot in self._taxonomy.all_slots:
            options = candidates.get(slot.path)
            if not options:
                continue
            if self._document_resolver.resolve_in(base, slot).filled:
                shadowed.append(slot.path)
                continue
            _, _, value = min(options, key=lambda item: (item[0], item[1]))
            gap_fills[slot.path] = value

        if shadowed:
            logger.debug("Document already fills %s; discovered values ignored", shadowed)
        if ignored:
            logger.debug("Discovered keys with no matching slot: %s", ignored)

        return NormalizedContext(
            document=view,
            discovered=MappingProxyType(gap_fills),
            signals=MappingProxyType(signals),
            shadowed=tuple(shadowed),
            ignored_keys=tuple(sorted(ignored)),
            is_mapping=is_mapping,
        )
