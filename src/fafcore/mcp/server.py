"""
fafcore MCP Server

Exposes context scoring and verification as tools that AI agents can
invoke natively via the Model Context Protocol.

Also exposes a **resource** (the project-type taxonomy) and a **prompt
template** for improving a low-scoring context file.

Start with::

    faf mcp                              # stdio transport
    faf mcp --transport streamable-http  # HTTP (Streamable) for remote clients
    faf mcp --transport sse              # SSE transport (legacy)

Or programmatically::

    from fafcore.mcp.server import create_server
    server = create_server()
    server.run()
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any

# FastMCP uses pydantic for validation, so Field is available with the mcp extra
from pydantic import Field  # type: ignore[import-untyped]

from fafcore.client import Faf
from fafcore.core.config import FafConfig
from fafcore.exceptions import FafError
from fafcore.loader import load_document, parse_document

logger = logging.getLogger(__name__)


def create_server(config: FafConfig | None = None):
    """
    Build and return a configured FastMCP server instance.

    All tool invocations share one :class:`~fafcore.client.Faf` client and
    therefore one trust policy and checksum length.

    Args:
        config: Instance-based configuration.  Defaults to
            ``FafConfig.from_env()`` so that the server respects the same
            environment variables as the CLI.

    Raises ``ImportError`` if ``fastmcp`` is not installed (install
    via ``pip install 'fafcore[mcp]'``).
    """
    from fastmcp import FastMCP  # type: ignore[import-untyped]

    client = Faf(config=config or FafConfig.from_env())

    mcp = FastMCP("faf")

    # ==================================================================
    # Helpers
    # ==================================================================

    def _load(content: str, path: str) -> Any:
        """Parse inline *content* when given, else read *path*."""
        if content and content.strip():
            return parse_document(content, source="<content>")
        return load_document(path or client.config.default_document)

    def _type_or_none(project_type: str) -> str | None:
        if not isinstance(project_type, str):
            return None
        return project_type.strip() or None

    # ==================================================================
    # Tool: score_context
    # ==================================================================

    @mcp.tool()
    def score_context(
        content: Annotated[
            str,
            Field(default="", description="Inline .faf document (YAML or JSON). When empty, the file at 'path' is read instead.")
        ] = "",
        path: Annotated[
            str,
            Field(default="", description="Path to a .faf file. Defaults to project.faf in the server's working directory.")
        ] = "",
        project_type: Annotated[
            str,
            Field(default="", description="Project type or alias (e.g. 'cli', 'nextjs', 'k8s'). Empty means infer from the document.")
        ] = "",
        discovered: Annotated[
            dict[str, Any] | None,
            Field(default=None, description="Values discovered from the project (slot path or key -> value). They only fill slots the document leaves empty. Keys starting with 'quality.' are quality signals.")
        ] = None,
        trace: Annotated[
            bool,
            Field(default=False, description="Include per-pass timings and the input hash.")
        ] = False,
    ) -> str:
        """Score a project context document and explain the result.

        Returns:
            JSON with score, filled/total slots, per-category breakdown,
            diagnostics, checksum and (optionally) the execution trace.
        """
        try:
            document = _load(content, path)
        except FafError as e:
            logger.warning("score_context could not load document: %s", e)
            return json.dumps({"error": str(e)}, allow_nan=False)

        if trace:
            result = client.compile_with_trace(document, _type_or_none(project_type), discovered)
        else:
            result = client.compile(document, _type_or_none(project_type), discovered)
        return json.dumps(result.to_dict(), allow_nan=False)

    # ==================================================================
    # Tool: verify_context
    # ==================================================================

    @mcp.tool()
    def verify_context(
        checksum: Annotated[
            str,
            Field(description="Checksum previously returned by score_context.")
        ],
        content: Annotated[
            str,
            Field(default="", description="Inline .faf document (YAML or JSON). When empty, the file at 'path' is read instead.")
        ] = "",
        path: Annotated[
            str,
            Field(default="", description="Path to a .faf file.")
        ] = "",
        project_type: Annotated[
            str,
            Field(default="", description="Project type the checksum was computed for.")
        ] = "",
    ) -> str:
        """Check whether a document still produces a previously recorded checksum.

        Returns:
            JSON with ``verified`` (bool), the expected and the actual checksum.
        """
        try:
            document = _load(content, path)
        except FafError as e:
            return json.dumps({"error": str(e), "verified": False}, allow_nan=False)

        ptype = _type_or_none(project_type)
        return json.dumps({
            "verified": client.verify(document, ptype, checksum),
            "expected": checksum,
            "actual": client.compile(document, ptype).checksum,
        })

    # ==================================================================
    # Tool: get_slots_for_type
    # ==================================================================

    @mcp.tool()
    def get_slots_for_type(
        project_type: Annotated[
            str,
            Field(description="Project type or alias. Unknown names resolve to 'generic'.")
        ],
    ) -> str:
        """List the slots counted toward the score of a project type.

        Returns:
            JSON with the canonical type, slot count and each slot's path
            and category.
        """
        taxonomy = client.taxonomy
        canonical = taxonomy.resolve_type(project_type)
        slots = taxonomy.slots_for(canonical)
        return json.dumps({
            "project_type": canonical,
            "slot_count": len(slots),
            "slots": [{"path": s.path, "category": s.category} for s in slots],
        })

    # ==================================================================
    # Tool: health (readiness check)
    # ==================================================================

    @mcp.tool()
    def health() -> str:
        """Check that the faf MCP server is running and responsive.

        Returns:
            JSON with status and the package, rules and taxonomy versions.
        """
        return json.dumps({"status": "ok", **client.health()})

    # ==================================================================
    # Resource: taxonomy
    # ==================================================================

    @mcp.resource("faf://taxonomy/types")
    def taxonomy_types() -> str:
        """Return every canonical project type with its slot count, categories and aliases."""
        taxonomy = client.taxonomy
        return json.dumps({
            "version": taxonomy.version,
            "types": {
                name: {
                    "slot_count": taxonomy.slot_count(name),
                    "categories": list(taxonomy.categories_for(name)),
                    "aliases": list(taxonomy.aliases_for(name)),
                }
                for name in taxonomy.types()
            },
        }, indent=2)

    # ==================================================================
    # Prompt templates
    # ==================================================================

    @mcp.prompt()
    def improve_context(path: str = "project.faf") -> str:
        """Pre-built prompt: raise the score of a context file."""
        return (
            f"Call score_context for '{path}'. For every category below 100%, "
            "read the 'missing' slots and propose concrete values for them from "
            "the repository (README, package manifests, CI config). Fix any "
            "error diagnostics first, then re-score and report the new checksum."
        )

    return mcp
