"""
fafcore Structural Diagnostics

An independent pass over the raw document that reports structural
problems as data.  It does not look at scores and it never raises: a
document that is not a mapping yields a single "invalid document" error.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, List, Mapping, Optional

from fafcore.core.resolver import get_path
from fafcore.core.scoring import TrustPolicy, parse_percent
from fafcore.core.taxonomy import DEFAULT_TAXONOMY, SlotTaxonomy

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"
INFO = "info"

REQUIRED_SECTIONS = ("project", "stack", "human_context")

SCORE_FIELDS = (
    "ai_score",
    "faf_score",
    "scores.faf_score",
    "scores.slot_based_percentage",
    "human_context.context_score",
)

TIMESTAMP_PATHS = ("generated", "project.generated")

_SEMVER = re.compile(r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.-]+)?$")


@dataclass(frozen=True)
class Diagnostic:
    """A single structural finding."""
    severity: str
    message: str
    path: Optional[str] = None
    suggestion: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "severity": self.severity,
            "message": self.message,
            "path": self.path,
            "suggestion": self.suggestion,
        }


def _describe(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _show(value: Any, limit: int = 80) -> str:
    try:
        text = repr(value)
    except ValueError:
        text = f"<{_describe(value)}>"
    return text if len(text) <= limit else text[: limit - 3] + "..."


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed); None if invalid."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


class DiagnosticsEngine:
    """
    Run every structural rule against a document.

    Each rule is a method returning a list of :class:`Diagnostic`.  A rule
    that fails unexpectedly is logged and reported as an error diagnostic
    so the remaining rules still run.
    """

    def __init__(self, taxonomy: SlotTaxonomy = DEFAULT_TAXONOMY,
                 trust_policy: TrustPolicy | None = None):
        self._taxonomy = taxonomy
        self._trust_policy = trust_policy or TrustPolicy.default()
        self._rules: List[Callable[[Mapping[str, Any]], List[Diagnostic]]] = [
            self._check_sections,
            self._check_score_fields,
            self._check_timestamp,
            self._check_version,
            self._check_embedded_score,
            self._check_project_type,
            self._check_slot_types,
        ]

    def diagnose(self, document: Any) -> List[Diagnostic]:
        if not isinstance(document, Mapping):
            return [Diagnostic(
                ERROR,
                f"Invalid document: expected a mapping, got {_describe(document)}",
                suggestion="Regenerate the context file with 'faf init'",
            )]

        findings: List[Diagnostic] = []
        for rule in self._rules:
            try:
                findings.extend(rule(document))
            except Exception as exc:
                logger.exception("Diagnostic rule %s failed", rule.__name__)
                findings.append(Diagnostic(
                    ERROR, f"Internal check {rule.__name__.lstrip('_')} failed: {exc}",
                ))
        return findings

    # ── Rules ────────────────────────────────────────────────────

    def _check_sections(self, document):
        findings = []
        for section in REQUIRED_SECTIONS:
            value = document.get(section)
            if value is None:
                findings.append(Diagnostic(
                    WARNING, f"Missing required section: {section}", path=section,
                    suggestion=f"Add a '{section}:' block",
                ))
            elif not isinstance(value, Mapping):
                findings.append(Diagnostic(
                    WARNING,
                    f"Section {section} should be a mapping, got {_describe(value)}",
                    path=section,
                    suggestion=f"Rewrite '{section}' as key: value pairs",
                ))
        return findings

    def _check_score_fields(self, document):
        findings = []
        for path in SCORE_FIELDS:
            raw = get_path(document, path)
            value = parse_percent(raw)
            if value is None:
                continue
            if not 0 <= value <= 100:
                findings.append(Diagnostic(
                    ERROR, f"{path} must be between 0 and 100, got {raw}", path=path,
                    suggestion="Recalculate with 'faf score'",
                ))
        return findings

    def _check_timestamp(self, document):
        present = [(p, get_path(document, p)) for p in TIMESTAMP_PATHS]
        present = [(p, v) for p, v in present if v is not None and v != ""]
        if not present:
            return [Diagnostic(
                WARNING, "Missing freshness timestamp (generated)", path="generated",
                suggestion="Add 'generated: <ISO-8601 timestamp>'",
            )]
        return [
            Diagnostic(
                ERROR, f"Unparseable timestamp in {path}: {_show(value)}", path=path,
                suggestion="Use ISO-8601, e.g. 2025-09-25T10:00:00Z",
            )
            for path, value in present
            if parse_timestamp(value) is None
        ]

    def _check_version(self, document):
        version = document.get("faf_version")
        if version is None:
            return []
        if not isinstance(version, str) or not _SEMVER.match(version.strip()):
            return [Diagnostic(
                WARNING, f"Invalid faf_version format: {_show(version)}", path="faf_version",
                suggestion="Use semantic versioning, e.g. 2.5.0",
            )]
        return []

    def _check_embedded_score(self, document):
        if document.get("ai_score") is None:
            return []
        tag = document.get("ai_scoring_system")
        if self._trust_policy.is_trusted(tag):
            return []
        return [Diagnostic(
            WARNING,
            f"Embedded ai_score is deprecated for scoring system {tag!r}; score was recalculated",
            path="ai_score",
            suggestion="Remove ai_score or regenerate it with the current scorer",
        )]

    def _check_project_type(self, document):
        project = document.get("project")
        declared = project.get("type") if isinstance(project, Mapping) else None
        if declared is None or self._taxonomy.is_known(declared):
            return []
        return [Diagnostic(
            INFO, f"Unknown project type {declared!r}; scored as generic", path="project.type",
            suggestion="Run 'faf types' to list supported types",
        )]

    def _check_slot_types(self, document):
        findings = []
        for slot in self._taxonomy.all_slots:
            value = get_path(document, slot.path)
            if isinstance(value, bool):
                findings.append(Diagnostic(
                    INFO, f"{slot.path} is a boolean and does not count as filled",
                    path=slot.path,
                ))
        return findings
