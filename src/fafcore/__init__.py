"""
fafcore — Deterministic scoring for .faf project context files.

The ``fafcore`` package measures how completely a project context document
describes a project: it resolves a fixed set of slots for the project's
type, scores filled/total, reports structural diagnostics and seals the
result with a reproducible checksum.

Quick start (programmatic API)::

    from fafcore import Faf

    client = Faf()                                     # reads env vars
    result = client.compile(document, "nextjs")        # score a mapping
    client.verify(document, "nextjs", result.checksum) # True

Quick start (CLI)::

    faf score project.faf
    faf verify project.faf 3f2a9c41d0b7e815

Configuration override::

    from fafcore import Faf, FafConfig

    config = FafConfig(trusted_scoring_versions=frozenset())
    client = Faf(config=config)
"""

__version__ = "1.0.0"

# Primary public API — the Faf facade
from fafcore.client import Faf

# Configuration
from fafcore.core.config import FafConfig

# Core data types and module-level functions
from fafcore.core.compiler import (
    CompilationResult,
    compile,
    compile_with_trace,
    get_slot_count_for_type,
    get_slots_for_type,
    verify,
)
from fafcore.core.diagnostics import Diagnostic
from fafcore.core.scoring import SectionScore, TrustPolicy
from fafcore.core.taxonomy import Slot

# Exception hierarchy
from fafcore.exceptions import ConfigError, DocumentLoadError, FafError


def health(config: FafConfig | None = None) -> dict:
    """
    Return a small status dict for agents or REST health checks (no file access).

    When *config* is None, uses :meth:`FafConfig.from_env()` for the snapshot.
    """
    from fafcore.core.config import RULES_VERSION
    from fafcore.core.taxonomy import DEFAULT_TAXONOMY

    cfg = config or FafConfig.from_env()
    return {
        "version": __version__,
        "rules_version": RULES_VERSION,
        "taxonomy_version": DEFAULT_TAXONOMY.version,
        "trusted_scoring_versions": sorted(cfg.trusted_scoring_versions),
    }


__all__ = [
    "__version__",
    # Facade
    "Faf",
    # Config
    "FafConfig",
    # Core API
    "compile",
    "compile_with_trace",
    "verify",
    "get_slots_for_type",
    "get_slot_count_for_type",
    # Data types
    "CompilationResult",
    "Diagnostic",
    "SectionScore",
    "Slot",
    "TrustPolicy",
    # Exceptions
    "FafError",
    "ConfigError",
    "DocumentLoadError",
    # Status
    "health",
]
