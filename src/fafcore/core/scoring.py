"""
fafcore Score Aggregation

Slot counting with no weights and no floors: a category scores
``filled / total`` and the project scores ``filled / total`` over every slot
its type counts.  Two things can change that number:

* **Quality bonuses** read from discovered ``quality.*`` signals.  Each is
  capped on its own and none applies to an empty document.
* **Embedded scores.**  A document may carry an ``ai_score`` computed by an
  earlier run.  It is returned as-is only when its ``ai_scoring_system`` tag
  is trusted by the :class:`TrustPolicy`; otherwise the score is recomputed.
"""

import logging
import math
import numbers
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

from fafcore.core.config import CURRENT_SCORING_SYSTEM, DEFAULT_BONUS_RULES
from fafcore.core.resolver import ResolvedField
from fafcore.core.taxonomy import CATEGORIES

logger = logging.getLogger(__name__)

EMBEDDED_SECTION = "embedded_scoring"

_PERCENT = re.compile(r"^\s*(-?\d+(?:\.\d+)?)\s*%?\s*$")


def round_half_up(value: float) -> int:
    """Round halves away from zero for positive values (12.5 -> 13)."""
    return int(math.floor(value + 0.5))


def _is_truthy(signal: Any) -> bool:
    if isinstance(signal, bool):
        return signal
    if isinstance(signal, str):
        return signal.strip().lower() in ("true", "yes", "on", "1", "strict")
    if isinstance(signal, numbers.Real):
        return signal > 0
    return False


def clamp_score(value: float) -> int:
    return max(0, min(100, int(value)))


def parse_percent(value: Any) -> Optional[float]:
    """Read ``95``, ``95.0`` or ``"95%"``; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        match = _PERCENT.match(value)
        if not match:
            return None
        value = match.group(1)
    elif not isinstance(value, numbers.Real):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


# =============================================================================
# Data Models
# =============================================================================

@dataclass(frozen=True)
class SectionScore:
    """Filled/total breakdown for one slot category."""
    filled: int
    total: int
    percentage: int
    missing: tuple = ()

    def to_dict(self) -> dict:
        return {
            "filled": self.filled,
            "total": self.total,
            "percentage": self.percentage,
            "missing": list(self.missing),
        }


@dataclass(frozen=True)
class TrustPolicy:
    """
    Which ``ai_scoring_system`` tags make an embedded score trustworthy.

    Tags are compared as exact strings after trimming; there is no date
    ordering, so a newer-looking but unknown tag is not trusted either.
    """
    trusted_versions: frozenset = frozenset((CURRENT_SCORING_SYSTEM,))

    @classmethod
    def default(cls) -> "TrustPolicy":
        return cls()

    @classmethod
    def strict(cls) -> "TrustPolicy":
        """Trust nothing: every score is recomputed."""
        return cls(trusted_versions=frozenset())

    def is_trusted(self, tag: Any) -> bool:
        return isinstance(tag, str) and tag.strip() in self.trusted_versions


@dataclass
class Aggregate:
    """Result of :meth:`ScoreAggregator.aggregate`."""
    score: int
    filled: int
    total: int
    section_scores: Dict[str, SectionScore] = field(default_factory=dict)
    bonuses: Dict[str, int] = field(default_factory=dict)
    embedded_score: Optional[int] = None
    """Set when a trusted embedded score was returned instead of recomputing."""

    @property
    def embedded(self) -> bool:
        return self.embedded_score is not None


# =============================================================================
# Aggregator
# =============================================================================

class ScoreAggregator:
    """
    Compute section and total scores from resolved fields.

    Args:
        trust_policy: Decides whether an embedded score may short-circuit
            recomputation.  Defaults to :meth:`TrustPolicy.default`.
        bonus_rules: Quality bonus caps; see :data:`DEFAULT_BONUS_RULES`.
    """

    def __init__(self, trust_policy: TrustPolicy | None = None,
                 bonus_rules: Mapping[str, Any] | None = None):
        self.trust_policy = trust_policy or TrustPolicy.default()
        self.bonus_rules = dict(bonus_rules if bonus_rules is not None else DEFAULT_BONUS_RULES)

    def aggregate(
        self,
        fields: Sequence[ResolvedField],
        document: Any = None,
        signals: Mapping[str, Any] | None = None,
    ) -> Aggregate:
        total = len(fields)
        filled = sum(1 for f in fields if f.filled)

        embedded = self.embedded_score(document, total)
        if embedded is not None:
            return embedded

        sections: Dict[str, SectionScore] = {}
        for category in CATEGORIES:
            members = [f for f in fields if f.slot.category == category]
            if not members:
                continue
            cat_filled = sum(1 for f in members if f.filled)
            sections[category] = SectionScore(
                filled=cat_filled,
                total=len(members),
                percentage=round_half_up(cat_filled / len(members) * 100),
                missing=tuple(f.slot.path for f in members if not f.filled),
            )

        base = round_half_up(filled / total * 100) if total else 0
        bonuses = self.quality_bonuses(signals) if filled else {}
        score = clamp_score(base + sum(bonuses.values()))
        logger.debug("Aggregated %d/%d slots -> %d%% (bonuses %s)", filled, total, score, bonuses)

        return Aggregate(
            score=score,
            filled=filled,
            total=total,
            section_scores=sections,
            bonuses=bonuses,
        )

    # ── Quality bonuses ──────────────────────────────────────────

    def quality_bonuses(self, signals: Mapping[str, Any] | None) -> Dict[str, int]:
        """Bonus points earned from discovered quality signals."""
        if not signals:
            return {}
        bonuses: Dict[str, int] = {}
        for name in sorted(self.bonus_rules):
            rule = self.bonus_rules[name]
            signal = signals.get(name)
            if isinstance(rule, Mapping):
                if not isinstance(signal, str):
                    continue
                tiers = {str(k).lower(): v for k, v in rule.items()}
                points = tiers.get(signal.strip().lower(), 0)
                cap = max(tiers.values(), default=0)
            else:
                points = rule if _is_truthy(signal) else 0
                cap = rule
            points = max(0, min(int(points), int(cap)))
            if points:
                bonuses[name] = points
        return bonuses

    # ── Embedded score fast path ─────────────────────────────────

    def embedded_score(self, document: Any, total: int) -> Optional[Aggregate]:
        """Return the trusted embedded score as an :class:`Aggregate`, if any.

        Requires a trusted ``ai_scoring_system`` tag and an ``ai_score`` in
        (0, 100] that is still non-zero once rounded.  Zero means "never
        scored" and is recomputed, as is any out-of-range value.
        """
        if not isinstance(document, Mapping) or "ai_score" not in document:
            return None
        if not self.trust_policy.is_trusted(document.get("ai_scoring_system")):
            return None
        value = parse_percent(document.get("ai_score"))
        if value is None or value > 100:
            return None
        score = round_half_up(value)
        if score <= 0:
            return None

        details = document.get("ai_scoring_details")
        reported = details.get("filled_slots") if isinstance(details, Mapping) else None
        if isinstance(reported, int) and not isinstance(reported, bool) and 0 <= reported <= total:
            filled = reported
        else:
            filled = round_half_up(score * total / 100)

        logger.debug("Using trusted embedded score %d%% (%s)", score, document.get("ai_scoring_system"))
        return Aggregate(
            score=score,
            filled=filled,
            total=total,
            section_scores={
                EMBEDDED_SECTION: SectionScore(filled=filled, total=total, percentage=score),
            },
            embedded_score=score,
        )
