"""
fafcore Configuration Module

Instance-based configuration for the scoring engine and its CLI/MCP
surfaces.  The engine itself reads nothing from the environment; callers
build a :class:`FafConfig` (usually via :meth:`FafConfig.from_env`) and pass
it down.
"""

import copy
import logging
import os
from dataclasses import dataclass, field

# Scoring-system date stamped into documents whose embedded ``ai_score``
# was produced by the current rules.
CURRENT_SCORING_SYSTEM = "2025-08-30"

# Rules version recorded in traces and folded into every checksum.
RULES_VERSION = "3.1.0"

# Quality bonus points.  Flat values are awarded for a truthy signal; tiered
# values map a grade to points.  Each entry is capped at its largest value.
DEFAULT_BONUS_RULES = {
    "strict_types": 3,
    "tests": 2,
    "structure": {"exceptional": 5, "professional": 3, "good": 1},
}


@dataclass
class FafConfig:
    """
    Configuration for a fafcore client, CLI session or MCP server.

    Create from environment variables::

        config = FafConfig.from_env()

    Or with explicit values::

        config = FafConfig(trusted_scoring_versions=frozenset())
    """

    # ── Scoring ───────────────────────────────────────────────────
    trusted_scoring_versions: frozenset = frozenset((CURRENT_SCORING_SYSTEM,))
    """``ai_scoring_system`` tags whose embedded scores may be returned as-is."""
    default_type: str | None = None
    """Project type hint used when the caller gives none (None = infer)."""

    # ── Checksums ─────────────────────────────────────────────────
    checksum_length: int = 16

    # ── Documents ─────────────────────────────────────────────────
    default_document: str = "project.faf"

    # ── Quality bonuses (points, each individually capped) ────────
    quality_bonuses: dict = field(default_factory=lambda: copy.deepcopy(DEFAULT_BONUS_RULES))

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "FafConfig":
        """Build a config snapshot from current environment variables.

        Reads :envvar:`FAF_TRUSTED_SCORING_VERSIONS` (comma-separated; an
        empty value trusts nothing), :envvar:`FAF_CHECKSUM_LENGTH`,
        :envvar:`FAF_PROJECT_TYPE` and :envvar:`FAF_LOG_LEVEL`.
        """
        trusted_raw = os.getenv("FAF_TRUSTED_SCORING_VERSIONS")
        if trusted_raw is None:
            trusted = frozenset((CURRENT_SCORING_SYSTEM,))
        else:
            trusted = frozenset(v.strip() for v in trusted_raw.split(",") if v.strip())
        return cls(
            trusted_scoring_versions=trusted,
            default_type=os.getenv("FAF_PROJECT_TYPE") or None,
            checksum_length=int(os.getenv("FAF_CHECKSUM_LENGTH", "16")),
            log_level=os.getenv("FAF_LOG_LEVEL", "INFO").upper(),
        )

    # ── Validation & Accessors ────────────────────────────────────

    def validate(self) -> bool:
        """
        Validate value ranges.

        Raises :class:`~fafcore.exceptions.ConfigError` on failure.
        """
        from fafcore.exceptions import ConfigError

        if not 8 <= self.checksum_length <= 64:
            raise ConfigError(
                f"checksum_length must be between 8 and 64, got {self.checksum_length}.\n"
                "  Set via: export FAF_CHECKSUM_LENGTH=16"
            )
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ConfigError(
                f"Unknown log level '{self.log_level}'. "
                "Supported: DEBUG, INFO, WARNING, ERROR, CRITICAL."
            )
        return True

    def trust_policy(self):
        """Return the :class:`~fafcore.core.scoring.TrustPolicy` for this config."""
        from fafcore.core.scoring import TrustPolicy

        return TrustPolicy(trusted_versions=frozenset(self.trusted_scoring_versions))
