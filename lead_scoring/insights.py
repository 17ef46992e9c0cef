"""
Insights Aggregator for predictive scoring.

Reduces a prediction snapshot into the dashboard summary:
- Outcome distribution by value tier
- Counts and average score per confidence level
- Recommendation counts by next-best action
- Most frequent contributing factors
- Top-ranked leads with display fields
"""

import logging
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from fractions import Fraction
from functools import reduce
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Tuple

from .classifier import ConfidenceLevel, NextBestAction, ValueTier
from .exceptions import InconsistentSnapshotError, LookupMiss
from .lead_repository import LeadRepository
from .prediction_store import Prediction, PredictionSnapshot

logger = logging.getLogger(__name__)

DEFAULT_TOP_FACTORS = 5
DEFAULT_TOP_LEADS = 10


def _rounded_mean(total: int, count: int) -> int:
    """Integer mean rounded half-up; zero for an empty population."""
    if count == 0:
        return 0
    return (2 * total + count) // (2 * count)


# =============================================================================
# FACTOR MAP-REDUCE
# =============================================================================

@dataclass(frozen=True)
class FactorAccumulator:
    """Partial aggregate for one factor name. Sums are exact rationals."""
    frequency: int = 0
    sum_impact: Fraction = Fraction(0)

    def merge(self, other: "FactorAccumulator") -> "FactorAccumulator":
        return FactorAccumulator(
            frequency=self.frequency + other.frequency,
            sum_impact=self.sum_impact + other.sum_impact,
        )


FactorMap = Dict[str, FactorAccumulator]


def map_factors(prediction: Prediction) -> FactorMap:
    """Map step: one prediction's factors as partial aggregates."""
    partial: FactorMap = {}
    for factor in prediction.factors:
        acc = FactorAccumulator(frequency=1, sum_impact=Fraction(factor.impact))
        existing = partial.get(factor.name)
        partial[factor.name] = existing.merge(acc) if existing else acc
    return partial


def merge_factor_maps(left: FactorMap, right: FactorMap) -> FactorMap:
    """Reduce step: commutative and associative merge of two partials."""
    merged = dict(left)
    for name, acc in right.items():
        existing = merged.get(name)
        merged[name] = existing.merge(acc) if existing else acc
    return merged


def reduce_factor_maps(partials: Iterable[FactorMap]) -> FactorMap:
    return reduce(merge_factor_maps, partials, {})


@dataclass(frozen=True)
class FactorStat:
    """Global statistics for one factor name."""
    name: str
    frequency: int
    avg_impact: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "frequency": self.frequency,
            "avgImpact": self.avg_impact,
        }


def rank_factor_stats(factor_map: FactorMap, top_k: int) -> List[FactorStat]:
    """
    Turn the reduced factor map into the ranked top-K list.

    Order: frequency desc, avgImpact desc, name asc.
    """
    if top_k < 0:
        raise ValueError(f"top_k must be >= 0, got {top_k}")

    stats = [
        FactorStat(
            name=name,
            frequency=acc.frequency,
            avg_impact=round(float(acc.sum_impact / acc.frequency), 2),
        )
        for name, acc in factor_map.items()
        if acc.frequency > 0
    ]
    stats.sort(key=lambda s: (-s.frequency, -s.avg_impact, s.name))
    return stats[:top_k]


# =============================================================================
# OUTPUT TYPES
# =============================================================================

@dataclass
class InsightsSummary:
    """Dashboard summary derived from one prediction snapshot."""
    total_leads: int = 0
    average_score: int = 0
    distribution: Dict[str, int] = field(
        default_factory=lambda: {t.value: 0 for t in ValueTier}
    )
    confidence_counts: Dict[str, int] = field(
        default_factory=lambda: {c.value: 0 for c in ConfidenceLevel}
    )
    confidence_averages: Dict[str, int] = field(
        default_factory=lambda: {c.value: 0 for c in ConfidenceLevel}
    )
    top_factors: List[FactorStat] = field(default_factory=list)
    recommendations: Dict[str, int] = field(
        default_factory=lambda: {a.value: 0 for a in NextBestAction}
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalLeads": self.total_leads,
            "averageScore": self.average_score,
            "distribution": dict(self.distribution),
            "byConfidence": {
                "counts": dict(self.confidence_counts),
                "averages": dict(self.confidence_averages),
            },
            "topFactors": [f.to_dict() for f in self.top_factors],
            "recommendations": dict(self.recommendations),
        }


@dataclass
class TopLead:
    """A ranked prediction with resolved lead display fields."""
    prediction: Prediction
    lead: Optional[Dict[str, Any]] = None
    display_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "leadId": self.prediction.lead_id,
            "predictedConversionProbability": self.prediction.probability,
            "confidenceLevel": self.prediction.confidence_level.value,
            "predictedValue": self.prediction.value_tier.value,
            "nextBestAction": self.prediction.next_best_action.value,
            "lead": self.lead,
            "displayName": self.display_name,
        }


# =============================================================================
# AGGREGATOR
# =============================================================================

def rank_predictions(predictions: Iterable[Prediction]) -> List[Prediction]:
    """Probability descending, lead id ascending on ties."""
    return sorted(predictions, key=lambda p: (-p.probability, p.lead_id))


class InsightsAggregator:
    """
    Aggregates prediction snapshots into dashboard views.

    Every method works on a snapshot it is handed and never reads the
    store again, so all counts in one result describe the same set.
    """

    def __init__(self, snapshot_max_attempts: int = 3):
        self.snapshot_max_attempts = max(1, snapshot_max_attempts)

    def summarize(
        self,
        snapshot: PredictionSnapshot,
        top_k: int = DEFAULT_TOP_FACTORS,
    ) -> InsightsSummary:
        """
        Build the insights summary for a snapshot.

        Args:
            snapshot: Predictions to aggregate
            top_k: Number of top factors to return

        Returns:
            InsightsSummary

        Raises:
            InconsistentSnapshotError: if derived counts do not add up
        """
        if top_k < 0:
            raise ValueError(f"top_k must be >= 0, got {top_k}")

        predictions = snapshot.predictions
        total = len(predictions)
        if total == 0:
            return InsightsSummary()

        tiers = Counter(p.value_tier for p in predictions)
        actions = Counter(p.next_best_action for p in predictions)
        confidence_counts: Counter = Counter()
        confidence_totals: Counter = Counter()
        for p in predictions:
            confidence_counts[p.confidence_level] += 1
            confidence_totals[p.confidence_level] += p.probability

        summary = InsightsSummary(
            total_leads=total,
            average_score=_rounded_mean(sum(p.probability for p in predictions), total),
            distribution={t.value: tiers.get(t, 0) for t in ValueTier},
            confidence_counts={c.value: confidence_counts.get(c, 0) for c in ConfidenceLevel},
            confidence_averages={
                c.value: _rounded_mean(confidence_totals.get(c, 0), confidence_counts.get(c, 0))
                for c in ConfidenceLevel
            },
            top_factors=rank_factor_stats(
                reduce_factor_maps(map_factors(p) for p in predictions), top_k
            ),
            recommendations={a.value: actions.get(a, 0) for a in NextBestAction},
        )
        self._verify(summary)
        return summary

    def build_insights(self, store, top_k: int = DEFAULT_TOP_FACTORS) -> InsightsSummary:
        """
        Snapshot the store and summarize it, retrying on an inconsistent snapshot.

        Args:
            store: Anything with get_all() -> PredictionSnapshot
            top_k: Number of top factors to return
        """
        last_error: Optional[InconsistentSnapshotError] = None
        for attempt in range(1, self.snapshot_max_attempts + 1):
            snapshot = store.get_all()
            try:
                return self.summarize(snapshot, top_k=top_k)
            except InconsistentSnapshotError as e:
                last_error = e
                logger.error(
                    f"Inconsistent snapshot (attempt {attempt}/{self.snapshot_max_attempts}): {e}"
                )
        raise last_error

    def top_leads(
        self,
        snapshot: PredictionSnapshot,
        limit: int = DEFAULT_TOP_LEADS,
        repository: Optional[LeadRepository] = None,
    ) -> List[TopLead]:
        """
        Rank leads by predicted probability and attach display fields.

        A lead the repository cannot resolve is returned with lead=None.
        """
        if limit < 0:
            raise ValueError(f"limit must be >= 0, got {limit}")

        ranked = rank_predictions(snapshot.predictions)[:limit]
        results = []
        for prediction in ranked:
            display = self._resolve_lead(repository, prediction.lead_id)
            results.append(TopLead(
                prediction=prediction,
                lead=display,
                display_name=display["institutionName"] if display else f"Lead #{prediction.lead_id}",
            ))
        return results

    def scores(self, snapshot: PredictionSnapshot, limit: Optional[int] = None) -> List[Prediction]:
        """All predictions ranked, optionally truncated."""
        ranked = rank_predictions(snapshot.predictions)
        return ranked if limit is None else ranked[:max(0, limit)]

    def group_by_action(
        self,
        snapshot: PredictionSnapshot,
        per_group: int = 20,
    ) -> Dict[str, Any]:
        """Ranked predictions grouped by next-best action."""
        groups: Dict[str, List[Prediction]] = {a.value: [] for a in NextBestAction}
        for prediction in rank_predictions(snapshot.predictions):
            groups[prediction.next_best_action.value].append(prediction)

        summary = {action: len(items) for action, items in groups.items()}
        summary["total"] = len(snapshot)

        return {
            "summary": summary,
            "groups": {
                action: [
                    {
                        "leadId": p.lead_id,
                        "probability": p.probability,
                        "confidence": p.confidence_level.value,
                        "predictedValue": p.value_tier.value,
                    }
                    for p in items[:max(0, per_group)]
                ]
                for action, items in groups.items()
            },
        }

    @staticmethod
    def _resolve_lead(
        repository: Optional[LeadRepository],
        lead_id: int,
    ) -> Optional[Dict[str, Any]]:
        if repository is None:
            return None
        try:
            lead = repository.get(lead_id)
            if lead is None:
                raise LookupMiss(lead_id)
        except LookupMiss as e:
            logger.warning(f"Lead lookup miss: {e}")
            return None
        except Exception as e:
            logger.warning(f"Lead lookup miss: {LookupMiss(lead_id, str(e))}")
            return None
        return lead.to_display()

    @staticmethod
    def _verify(summary: InsightsSummary) -> None:
        total = summary.total_leads
        checks: List[Tuple[str, int]] = [
            ("distribution", sum(summary.distribution.values())),
            ("recommendations", sum(summary.recommendations.values())),
            ("confidence counts", sum(summary.confidence_counts.values())),
        ]
        for label, value in checks:
            if value != total:
                raise InconsistentSnapshotError(total, f"{label} sum to {value}")


# =============================================================================
# CACHE
# =============================================================================

class InsightsCache:
    """
    Short-lived cache of insights summaries.

    Entries expire after ttl_seconds and are dropped whenever the store
    reports a write (register invalidate() with PredictionStore.subscribe).
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, InsightsSummary]] = {}
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.ttl_seconds > 0

    def get_or_compute(
        self,
        key: Hashable,
        compute: Callable[[], InsightsSummary],
    ) -> InsightsSummary:
        if not self.enabled:
            return compute()

        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            generation = self._generation
        if entry is not None and now - entry[0] < self.ttl_seconds:
            return entry[1]

        summary = compute()
        with self._lock:
            # Skip storing a result computed before an invalidation
            if generation == self._generation:
                self._entries[key] = (now, summary)
        return summary

    def invalidate(self, lead_id: Optional[int] = None) -> None:
        with self._lock:
            self._entries.clear()
            self._generation += 1
        logger.debug(f"Insights cache invalidated (lead {lead_id})")
