"""
fafcore Client Facade

Single entry point for programmatic use of fafcore.  Wraps compilation,
verification and taxonomy lookups behind an instance-based API with
optional async support.

Usage::

    from fafcore import Faf

    # From environment variables
    client = Faf()

    # With explicit configuration
    from fafcore.core.config import FafConfig
    client = Faf(config=FafConfig(trusted_scoring_versions=frozenset()))

    # Score a document
    result = client.compile({"project": {"name": "demo"}}, "cli")
    print(f"{result.score}% ({result.filled}/{result.total})")

    # Score a file on disk
    result = client.compile_file("project.faf")

    # Async variants (for FastAPI / Django async views)
    result = await client.acompile(document, "nextjs")
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from fafcore.core.compiler import CompilationPipeline, CompilationResult, VerificationService
from fafcore.core.config import FafConfig
from fafcore.core.taxonomy import DEFAULT_TAXONOMY, Slot, SlotTaxonomy

logger = logging.getLogger(__name__)


class Faf:
    """
    High-level fafcore client.

    Each instance carries its own :class:`FafConfig` and pipeline and never
    touches global state, so differently configured clients can coexist in
    one process.

    Args:
        config: Explicit configuration object.  When *None*, a config
            is built from environment variables or keyword overrides.
        taxonomy: Slot registry to score against.
        validate_on_init: If True, call :meth:`FafConfig.validate` in
            __init__ so invalid settings surface immediately.
        **kwargs: Forwarded to :class:`FafConfig` when *config* is
            ``None`` (e.g. ``checksum_length=32``).
    """

    def __init__(
        self,
        config: FafConfig | None = None,
        *,
        taxonomy: SlotTaxonomy = DEFAULT_TAXONOMY,
        validate_on_init: bool = False,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            # Build a config from env, then overlay keyword overrides
            base = FafConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            self._config = FafConfig(**merged)
        else:
            self._config = FafConfig.from_env()

        if validate_on_init:
            self._config.validate()

        self._taxonomy = taxonomy
        self._pipeline = CompilationPipeline.from_config(self._config, taxonomy)
        self._verifier = VerificationService(self._pipeline)

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> FafConfig:
        """The active configuration for this client."""
        return self._config

    @property
    def taxonomy(self) -> SlotTaxonomy:
        return self._taxonomy

    # ── Compilation ───────────────────────────────────────────────

    def compile(
        self,
        document: Any,
        project_type: str | None = None,
        discovered: Optional[Mapping[str, Any]] = None,
    ) -> CompilationResult:
        """
        Score *document* against the slots of *project_type*.

        Args:
            document: Parsed context document (normally a mapping).
            project_type: Canonical type or alias.  When None, the config's
                ``default_type`` is used, else the type is inferred.
            discovered: Values found by project heuristics; they only fill
                slots the document leaves empty.

        Returns:
            :class:`CompilationResult`; never raises for bad input.
        """
        return self._pipeline.compile(document, project_type, discovered)

    def compile_with_trace(
        self,
        document: Any,
        project_type: str | None = None,
        discovered: Optional[Mapping[str, Any]] = None,
    ) -> CompilationResult:
        """Like :meth:`compile`, with :attr:`CompilationResult.trace` populated."""
        return self._pipeline.compile_with_trace(document, project_type, discovered)

    def compile_file(
        self,
        path: str | Path | None = None,
        project_type: str | None = None,
        *,
        trace: bool = False,
    ) -> CompilationResult:
        """
        Load and score a context file.

        Args:
            path: File to read.  Defaults to ``config.default_document``.
            project_type: As for :meth:`compile`.
            trace: Record pass timings.

        Raises:
            DocumentLoadError: If the file is missing or not valid YAML.
        """
        from fafcore.loader import load_document

        document = load_document(path or self._config.default_document)
        if trace:
            return self.compile_with_trace(document, project_type)
        return self.compile(document, project_type)

    # ── Verification ──────────────────────────────────────────────

    def verify(
        self,
        document: Any,
        project_type: str | None,
        checksum: str,
        discovered: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """True when *document* still compiles to *checksum*.  Never raises."""
        return self._verifier.verify(document, project_type, checksum, discovered)

    # ── Taxonomy ──────────────────────────────────────────────────

    def get_slots_for_type(self, project_type: str | None) -> Tuple[Slot, ...]:
        return self._taxonomy.slots_for(project_type)

    def get_slot_count_for_type(self, project_type: str | None) -> int:
        return self._taxonomy.slot_count(project_type)

    # ── Async variants ────────────────────────────────────────────
    # These use asyncio.to_thread() to run sync operations off the
    # event loop.

    async def acompile(
        self,
        document: Any,
        project_type: str | None = None,
        discovered: Optional[Mapping[str, Any]] = None,
    ) -> CompilationResult:
        """Async variant of :meth:`compile`."""
        return await asyncio.to_thread(self.compile, document, project_type, discovered)

    async def acompile_with_trace(
        self,
        document: Any,
        project_type: str | None = None,
        discovered: Optional[Mapping[str, Any]] = None,
    ) -> CompilationResult:
        """Async variant of :meth:`compile_with_trace`."""
        return await asyncio.to_thread(
            self.compile_with_trace, document, project_type, discovered,
        )

    async def acompile_file(
        self,
        path: str | Path | None = None,
        project_type: str | None = None,
        *,
        trace: bool = False,
    ) -> CompilationResult:
        """Async variant of :meth:`compile_file`. Raises same exceptions as sync."""
        return await asyncio.to_thread(self.compile_file, path, project_type, trace=trace)

    async def averify(
        self,
        document: Any,
        project_type: str | None,
        checksum: str,
        discovered: Optional[Mapping[str, Any]] = None,
    ) -> bool:
        """Async variant of :meth:`verify`."""
        return await asyncio.to_thread(
            self.verify, document, project_type, checksum, discovered,
        )

    # ── Health (for agents / status endpoints) ─────────────────────

    def health(self) -> Dict[str, object]:
        """
        Return a small status dict for agents or REST health checks.

        Touches no files.  Reports the package, rules and taxonomy versions
        and which embedded scoring systems are trusted.
        """
        from fafcore.core.config import RULES_VERSION

        return {
            "version": __import__("fafcore", fromlist=["__version__"]).__version__,
            "rules_version": RULES_VERSION,
            "taxonomy_version": self._taxonomy.version,
            "trusted_scoring_versions": sorted(self._config.trusted_scoring_versions),
        }
