"""
fafcore Result Formatting

Renders :class:`~fafcore.core.compiler.CompilationResult` for the CLI and
for agent pipelines.
"""

import json
import shutil
from typing import List

from fafcore.core.compiler import CompilationResult
from fafcore.core.diagnostics import ERROR, INFO, WARNING

_SEVERITY_LABELS = {ERROR: "ERROR", WARNING: "WARN ", INFO: "INFO "}


class ResultFormatter:
    """Format compilation results for different output modes."""

    # ── Helpers ───────────────────────────────────────────────────

    @staticmethod
    def _bar(percentage: int, width: int = 20) -> str:
        filled = round(max(0, min(100, percentage)) * width / 100)
        return "█" * filled + "░" * (width - filled)

    # ── Console (human-friendly) ──────────────────────────────────

    @staticmethod
    def format_console(result: CompilationResult, show_missing: bool = True) -> str:
        """
        Score header, a bar per slot category, diagnostics and, when the
        result carries one, the pass trace.
        """
        width = min(shutil.get_terminal_size().columns, 78)
        thin = "─" * width

        out: List[str] = []
        out.append(f"\n{thin}")
        header = f"  FAF SCORE — {result.score}%  ({result.filled}/{result.total} slots, {result.project_type})"
        if result.embedded:
            header += "  [embedded]"
        out.append(header)
        out.append(thin)

        for name, section in result.section_scores.items():
            out.append(
                f"  {name:<16} {ResultFormatter._bar(section.percentage)} "
                f"{section.percentage:>3}%  ({section.filled}/{section.total})"
            )
            if show_missing and section.missing:
                out.append(f"  {'':<16} missing: {', '.join(section.missing)}")

        if result.bonuses:
            parts = " ".join(f"{k}(+{v})" for k, v in sorted(result.bonuses.items()))
            out.append(f"\n  Bonuses : {parts}")

        if result.diagnostics:
            out.append("")
            for diag in result.diagnostics:
                label = _SEVERITY_LABELS.get(diag.severity, diag.severity.upper())
                where = f" [{diag.path}]" if diag.path else ""
                out.append(f"  {label} {diag.message}{where}")
                if diag.suggestion:
                    out.append(f"        → {diag.suggestion}")

        out.append(f"\n  Checksum: {result.checksum}")

        if result.trace is not None:
            trace = result.trace
            out.append(f"  Trace   : rules {trace.version}, taxonomy {trace.taxonomy_version}")
            out.append(f"  Input   : {trace.input_hash}")
            for timing in trace.passes:
                out.append(f"    {timing.name:<10} {timing.duration_ms:>9.3f} ms")

        out.append(thin)
        return "\n".join(out)

    # ── JSON ──────────────────────────────────────────────────────

    @staticmethod
    def format_json(result: CompilationResult) -> str:
        """Format the full result as JSON."""
        return json.dumps(result.to_dict(), indent=2, allow_nan=False)

    # ── Compact (one line) ────────────────────────────────────────

    @staticmethod
    def format_compact(result: CompilationResult) -> str:
        errors = sum(1 for d in result.diagnostics if d.severity == ERROR)
        warnings = sum(1 for d in result.diagnostics if d.severity == WARNING)
        return (
            f"{result.score}% {result.filled}/{result.total} {result.project_type} "
            f"{result.checksum} errors={errors} warnings={warnings}"
        )
