"""
fafcore Compilation Pipeline

Runs a context document through six named passes::

    parse -> normalize -> resolve -> aggregate -> diagnose -> finalize

and produces a :class:`CompilationResult` carrying the score, the section
breakdown, structural diagnostics, an intermediate representation (IR) of
every resolved slot and a checksum over that IR.  The same inputs always
yield the same checksum, which is what :class:`VerificationService` relies
on.

``compile`` never raises.  Malformed documents are reported through
diagnostics, and an unexpected failure inside a pass becomes a zero-score
result with a single error diagnostic.
"""

import hashlib
import hmac
import json
import logging
import math
import time
from dataclasses import dataclass, field
from datetime import date, datetime, time as dt_time
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fafcore.core.config import RULES_VERSION
from fafcore.core.diagnostics import ERROR, Diagnostic, DiagnosticsEngine
from fafcore.core.resolver import (
    ContextNormalizer,
    FieldResolver,
    NormalizedContext,
    ResolvedField,
)
from fafcore.core.scoring import Aggregate, ScoreAggregator, SectionScore, TrustPolicy
from fafcore.core.taxonomy import DEFAULT_TAXONOMY, GENERIC_TYPE, Slot, SlotTaxonomy

logger = logging.getLogger(__name__)

PASSES = ("parse", "normalize", "resolve", "aggregate", "diagnose", "finalize")

CYCLE_MARKER = "<cycle>"
DEEP_MARKER = "<deep>"

# Containers nested deeper than this are replaced by a digest of the subtree.
MAX_CANONICAL_DEPTH = 64

_MAX_INT_BITS = 13000


# =============================================================================
# Canonical JSON
# =============================================================================

def _scalar(value: Any) -> Any:
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        # decimal conversion of huge ints is capped by the interpreter; hex is not
        return value if value.bit_length() <= _MAX_INT_BITS else f"<int:{value:#x}>"
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, (datetime, date, dt_time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _is_container(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple, set, frozenset))


def _children(value: Any) -> List[Tuple[Optional[str], Any]]:
    if isinstance(value, Mapping):
        return [(str(k), v) for k, v in sorted(value.items(), key=lambda kv: str(kv[0]))]
    if isinstance(value, (set, frozenset)):
        return [(None, item) for item in sorted(value, key=subtree_digest)]
    return [(None, item) for item in value]


@dataclass(frozen=True)
class _Close:
    marker: int
    token: bytes


def subtree_digest(value: Any) -> str:
    """sha256 over *value* without recursion, for arbitrarily deep data."""
    digest = hashlib.sha256()
    ancestors: set = set()
    stack: List[Any] = [(None, value)]
    while stack:
        entry = stack.pop()
        if isinstance(entry, _Close):
            ancestors.discard(entry.marker)
            digest.update(entry.token)
            continue
        key, item = entry
        if key is not None:
            digest.update(json.dumps(key).encode("ascii") + b":")
        if not _is_container(item):
            digest.update(json.dumps(_scalar(item), sort_keys=True).encode("ascii") + b",")
            continue
        marker = id(item)
        if marker in ancestors:
            digest.update(json.dumps(CYCLE_MARKER).encode("ascii") + b",")
            continue
        ancestors.add(marker)
        is_mapping = isinstance(item, Mapping)
        digest.update(b"{" if is_mapping else b"[")
        stack.append(_Close(marker, b"}," if is_mapping else b"],"))
        stack.extend(reversed(_children(item)))
    return digest.hexdigest()


def _canonical(value: Any, ancestors: set, depth: int = 0) -> Any:
    """Convert *value* into plain JSON data with deterministic ordering."""
    if not _is_container(value):
        return _scalar(value)

    marker = id(value)
    if marker in ancestors:
        return CYCLE_MARKER
    if depth >= MAX_CANONICAL_DEPTH:
        return f"{DEEP_MARKER}{subtree_digest(value)}"
    ancestors.add(marker)
    try:
        if isinstance(value, Mapping):
            return {
                str(key): _canonical(item, ancestors, depth + 1)
                for key, item in sorted(value.items(), key=lambda kv: str(kv[0]))
            }
        items = [_canonical(item, ancestors, depth + 1) for item in value]
        if isinstance(value, (set, frozenset)):
            items.sort(key=lambda item: json.dumps(item, sort_keys=True))
        return items
    finally:
        ancestors.discard(marker)


def canonicalize(value: Any) -> Any:
    """Return a JSON-safe copy of *value*.

    Self-references become ``"<cycle>"``.  Containers nested deeper than
    :data:`MAX_CANONICAL_DEPTH` become ``"<deep>"`` followed by the sha256 of
    the subtree, so arbitrarily deep input still hashes deterministically.
    """
    return _canonical(value, set())


def canonical_json(value: Any) -> str:
    """Serialize *value* as canonical JSON (sorted keys, no whitespace, ASCII)."""
    return json.dumps(
        canonicalize(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
    )


def sha256_hex(value: Any) -> str:
    return hashlib.sha256(canonical_json(value).encode("ascii")).hexdigest()


def _input_hash(document: Any, type_hint: Any, discovered: Any) -> str:
    """sha256 over the raw inputs; empty when they cannot be serialized."""
    try:
        return sha256_hex({"document": document, "type": type_hint, "discovered": discovered})
    except (RecursionError, TypeError, ValueError) as exc:
        logger.warning("Could not hash compilation input: %s", exc)
        return ""


# =============================================================================
# Data Models
# =============================================================================

@dataclass(frozen=True)
class PassTiming:
    """Wall-clock duration of one pipeline pass."""
    name: str
    duration_ms: float

    def to_dict(self) -> dict:
        return {"name": self.name, "duration_ms": self.duration_ms}


@dataclass
class Trace:
    """Execution trace recorded by :meth:`CompilationPipeline.compile_with_trace`."""
    version: str
    input_hash: str
    """sha256 over the canonical JSON of document, type hint and discovered context."""
    taxonomy_version: str = ""
    passes: List[PassTiming] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "taxonomy_version": self.taxonomy_version,
            "input_hash": self.input_hash,
            "passes": [p.to_dict() for p in self.passes],
        }


@dataclass
class CompilationResult:
    """Typed result of compiling one context document."""
    score: int = 0
    filled: int = 0
    total: int = 0
    project_type: str = GENERIC_TYPE
    section_scores: Dict[str, SectionScore] = field(default_factory=dict)
    diagnostics: List[Diagnostic] = field(default_factory=list)
    checksum: str = ""
    ir: dict = field(default_factory=dict)
    """JSON-safe intermediate representation the checksum is computed over."""
    bonuses: Dict[str, int] = field(default_factory=dict)
    embedded: bool = False
    """True when a trusted embedded score was returned instead of recomputing."""
    fields: Tuple[ResolvedField, ...] = ()
    trace: Optional[Trace] = None

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == ERROR]

    def to_dict(self) -> dict:
        """Return a JSON-serializable dict for API/agent pipelines."""
        return {
            "score": self.score,
            "filled": self.filled,
            "total": self.total,
            "project_type": self.project_type,
            "section_scores": {k: v.to_dict() for k, v in self.section_scores.items()},
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "checksum": self.checksum,
            "ir": self.ir,
            "bonuses": dict(self.bonuses),
            "embedded": self.embedded,
            "trace": self.trace.to_dict() if self.trace else None,
        }


@dataclass
class _PassState:
    """Per-call scratch space handed from pass to pass."""
    document: Any
    type_hint: Any
    discovered: Any
    project_type: str = GENERIC_TYPE
    slots: Tuple[Slot, ...] = ()
    context: NormalizedContext = field(default_factory=NormalizedContext)
    fields: Tuple[ResolvedField, ...] = ()
    aggregate: Optional[Aggregate] = None
    diagnostics: List[Diagnostic] = field(default_factory=list)
    ir: dict = field(default_factory=dict)
    checksum: str = ""


# =============================================================================
# Pipeline
# =============================================================================

class CompilationPipeline:
    """
    Orchestrates the scoring passes for one document at a time.

    A pipeline holds only immutable collaborators, so one instance can be
    shared across threads; all per-call state lives in a fresh
    :class:`_PassState`.

    Args:
        taxonomy: Slot registry.  Defaults to :data:`DEFAULT_TAXONOMY`.
        trust_policy: Embedded-score trust rule.
        bonus_rules: Quality bonus caps passed to :class:`ScoreAggregator`.
        checksum_length: Hex characters kept from the sha256 digest.
        default_type: Type used when the caller gives no hint.  When None
            the type is inferred from the document.
    """

    def __init__(
        self,
        taxonomy: SlotTaxonomy = DEFAULT_TAXONOMY,
        trust_policy: TrustPolicy | None = None,
        bonus_rules: Mapping[str, Any] | None = None,
        checksum_length: int = 16,
        default_type: str | None = None,
    ):
        self.taxonomy = taxonomy
        self.trust_policy = trust_policy or TrustPolicy.default()
        self.checksum_length = checksum_length
        self.default_type = default_type
        self._normalizer = ContextNormalizer(taxonomy)
        self._resolver = FieldResolver(taxonomy=taxonomy)
        self._aggregator = ScoreAggregator(self.trust_policy, bonus_rules)
        self._diagnostics = DiagnosticsEngine(taxonomy, self.trust_policy)

    @classmethod
    def from_config(cls, config, taxonomy: SlotTaxonomy = DEFAULT_TAXONOMY) -> "CompilationPipeline":
        """Build a pipeline from a :class:`~fafcore.core.config.FafConfig`."""
        return cls(
            taxonomy=taxonomy,
            trust_policy=config.trust_policy(),
            bonus_rules=config.quality_bonuses,
            checksum_length=config.checksum_length,
            default_type=config.default_type,
        )

    # ── Public API ───────────────────────────────────────────────

    def compile(self, document: Any, project_type: Any = None,
                discovered: Optional[Mapping[str, Any]] = None) -> CompilationResult:
        """Score *document*; never raises."""
        return self._run(document, project_type, discovered, timings=None)

    def compile_with_trace(self, document: Any, project_type: Any = None,
                           discovered: Optional[Mapping[str, Any]] = None) -> CompilationResult:
        """Like :meth:`compile`, plus a :class:`Trace` of pass timings and the input hash."""
        timings: List[PassTiming] = []
        result = self._run(document, project_type, discovered, timings=timings)
        result.trace = Trace(
            version=RULES_VERSION,
            taxonomy_version=self.taxonomy.version,
            input_hash=_input_hash(document, project_type, discovered),
            passes=timings,
        )
        return result

    # ── Pass runner ──────────────────────────────────────────────

    def _run(self, document, type_hint, discovered, timings) -> CompilationResult:
        state = _PassState(document=document, type_hint=type_hint, discovered=discovered)
        current = PASSES[0]
        try:
            for current in PASSES:
                started = time.perf_counter()
                getattr(self, f"_pass_{current}")(state)
                elapsed = (time.perf_counter() - started) * 1000
                logger.debug("Pass %s took %.3f ms", current, elapsed)
                if timings is not None:
                    timings.append(PassTiming(current, round(elapsed, 3)))
        except Exception as exc:
            logger.exception("Compilation failed in pass %s", current)
            return self._failure(state, current, exc)

        agg = state.aggregate
        return CompilationResult(
            score=agg.score,
            filled=agg.filled,
            total=agg.total,
            project_type=state.project_type,
            section_scores=agg.section_scores,
            diagnostics=state.diagnostics,
            checksum=state.checksum,
            ir=state.ir,
            bonuses=agg.bonuses,
            embedded=agg.embedded,
            fields=state.fields,
        )

    def _failure(self, state: _PassState, pass_name: str, exc: Exception) -> CompilationResult:
        project_type = state.project_type
        ir = {
            "rules_version": RULES_VERSION,
            "taxonomy_version": self.taxonomy.version,
            "project_type": project_type,
            "error": pass_name,
            "input": _input_hash(state.document, state.type_hint, state.discovered),
        }
        return CompilationResult(
            score=0,
            filled=0,
            total=self.taxonomy.slot_count(project_type),
            project_type=project_type,
            diagnostics=[Diagnostic(
                ERROR,
                f"Compilation failed during {pass_name}: {type(exc).__name__}: {exc}",
                suggestion="Check the document for unusual nesting or value types",
            )],
            checksum=self._digest(ir),
            ir=ir,
        )

    # ── Passes ───────────────────────────────────────────────────

    def _pass_parse(self, state: _PassState) -> None:
        hint = state.type_hint if state.type_hint is not None else self.default_type
        if hint is not None:
            state.project_type = self.taxonomy.resolve_type(hint)
        else:
            state.project_type = self.taxonomy.infer_type(state.document)
        state.slots = self.taxonomy.slots_for(state.project_type)

    def _pass_normalize(self, state: _PassState) -> None:
        state.context = self._normalizer.normalize(state.document, state.discovered)

    def _pass_resolve(self, state: _PassState) -> None:
        state.fields = self._resolver.resolve_all(state.context, state.slots)

    def _pass_aggregate(self, state: _PassState) -> None:
        state.aggregate = self._aggregator.aggregate(
            state.fields,
            document=state.context.document if state.context.is_mapping else None,
            signals=state.context.signals,
        )

    def _pass_diagnose(self, state: _PassState) -> None:
        state.diagnostics = self._diagnostics.diagnose(state.document)

    def _pass_finalize(self, state: _PassState) -> None:
        agg = state.aggregate
        state.ir = canonicalize({
            "rules_version": RULES_VERSION,
            "taxonomy_version": self.taxonomy.version,
            "project_type": state.project_type,
            "slots": {
                f.path: {"value": f.value, "filled": f.filled, "source": f.source}
                for f in state.fields
            },
            "bonuses": agg.bonuses,
            "embedded_score": agg.embedded_score,
        })
        state.checksum = self._digest(state.ir)

    def _digest(self, ir: Any) -> str:
        return sha256_hex(ir)[: self.checksum_length]


# =============================================================================
# Verification
# =============================================================================

class VerificationService:
    """Recompute a document's checksum and compare it to a stored value."""

    def __init__(self, pipeline: CompilationPipeline | None = None):
        self.pipeline = pipeline or CompilationPipeline()

    def verify(self, document: Any, project_type: Any, expected_checksum: Any,
               discovered: Optional[Mapping[str, Any]] = None) -> bool:
        """True when *document* still compiles to *expected_checksum*.

        Never raises: a non-string or non-ASCII checksum simply fails.
        """
        if not isinstance(expected_checksum, str) or not expected_checksum.isascii():
            return False
        result = self.pipeline.compile(document, project_type, discovered)
        if not result.checksum:
            return False
        if "error" in result.ir and not result.ir.get("input"):
            # a failure with no input hash cannot tell documents apart
            return False
        return hmac.compare_digest(result.checksum, expected_checksum.strip().lower())


# =============================================================================
# Module-level convenience API (default taxonomy and trust policy)
# =============================================================================

_DEFAULT_PIPELINE = CompilationPipeline()
_DEFAULT_VERIFIER = VerificationService(_DEFAULT_PIPELINE)


def compile(document: Any, project_type: Any = None,
            discovered: Optional[Mapping[str, Any]] = None) -> CompilationResult:
    return _DEFAULT_PIPELINE.compile(document, project_type, discovered)


def compile_with_trace(document: Any, project_type: Any = None,
                       discovered: Optional[Mapping[str, Any]] = None) -> CompilationResult:
    return _DEFAULT_PIPELINE.compile_with_trace(document, project_type, discovered)


def verify(document: Any, project_type: Any, checksum: Any,
           discovered: Optional[Mapping[str, Any]] = None) -> bool:
    return _DEFAULT_VERIFIER.verify(document, project_type, checksum, discovered)


def get_slots_for_type(project_type: Any) -> Tuple[Slot, ...]:
    return DEFAULT_TAXONOMY.slots_for(project_type)


def get_slot_count_for_type(project_type: Any) -> int:
    return DEFAULT_TAXONOMY.slot_count(project_type)
