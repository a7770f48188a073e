"""
fafcore Core — taxonomy, resolution, scoring, diagnostics and compilation.

Re-exports the primary classes for convenience::

    from fafcore.core import CompilationPipeline, SlotTaxonomy, TrustPolicy
"""

from fafcore.core.compiler import (
    CompilationPipeline,
    CompilationResult,
    Trace,
    VerificationService,
    canonical_json,
)
from fafcore.core.config import FafConfig
from fafcore.core.diagnostics import Diagnostic, DiagnosticsEngine
from fafcore.core.resolver import (
    ContextNormalizer,
    FieldResolver,
    NormalizedContext,
    ResolvedField,
)
from fafcore.core.scoring import ScoreAggregator, SectionScore, TrustPolicy
from fafcore.core.taxonomy import DEFAULT_TAXONOMY, Slot, SlotTaxonomy

__all__ = [
    "CompilationPipeline",
    "CompilationResult",
    "Trace",
    "VerificationService",
    "canonical_json",
    "FafConfig",
    "Diagnostic",
    "DiagnosticsEngine",
    "ContextNormalizer",
    "FieldResolver",
    "NormalizedContext",
    "ResolvedField",
    "ScoreAggregator",
    "SectionScore",
    "TrustPolicy",
    "DEFAULT_TAXONOMY",
    "Slot",
    "SlotTaxonomy",
]
