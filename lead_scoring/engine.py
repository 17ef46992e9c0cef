"""
Prediction pipeline for predictive lead scoring.

Wires extraction, scoring and classification together and writes the
result to the prediction store. The trigger that decides when to
recompute is owned by the caller.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional

from .classifier import LeadClassifier
from .clock import RecomputeClock
from .config import EngineConfig
from .feature_extractor import FeatureExtractor
from .lead_repository import Lead
from .prediction_store import Prediction, PredictionStore
from .scoring_model import PredictiveScorer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecomputeResult:
    """Outcome of a recompute; applied is False for a stale write."""
    prediction: Prediction
    applied: bool


class PredictionEngine:
    """Computes and stores predictions for leads."""

    def __init__(
        self,
        store: PredictionStore,
        extractor: Optional[FeatureExtractor] = None,
        scorer: Optional[PredictiveScorer] = None,
        classifier: Optional[LeadClassifier] = None,
        clock: Optional[RecomputeClock] = None,
    ):
        self.store = store
        self.clock = clock or RecomputeClock()
        self.extractor = extractor or FeatureExtractor()
        self.scorer = scorer or PredictiveScorer()
        self.classifier = classifier or LeadClassifier()

    @classmethod
    def from_config(cls, config: EngineConfig, store: PredictionStore) -> "PredictionEngine":
        return cls(
            store=store,
            scorer=PredictiveScorer(config.scoring),
            classifier=LeadClassifier(config.classifier),
        )

    def predict(
        self,
        lead: Lead,
        enrichment: Optional[Mapping[str, Any]] = None,
        as_of: Optional[datetime] = None,
    ) -> Prediction:
        """
        Compute a prediction without storing it.

        Args:
            lead: Lead to score
            enrichment: Optional enrichment/engagement data
            as_of: Reference time, also used as the recompute timestamp

        Returns:
            Prediction
        """
        as_of = self._timestamp(as_of)
        extraction = self.extractor.extract(lead.to_record(), enrichment, as_of=as_of)
        result = self.scorer.score(extraction.vector)
        classification = self.classifier.classify(
            result.probability, extraction.completeness_ratio, result.factors
        )

        return Prediction(
            lead_id=lead.id,
            probability=result.probability,
            confidence_level=classification.confidence_level,
            value_tier=classification.value_tier,
            next_best_action=classification.next_best_action,
            factors=tuple(result.factors),
            computed_at=as_of,
        )

    def recompute(
        self,
        lead: Lead,
        enrichment: Optional[Mapping[str, Any]] = None,
        as_of: Optional[datetime] = None,
    ) -> RecomputeResult:
        """Compute a prediction and upsert it into the store."""
        prediction = self.predict(lead, enrichment, as_of)
        applied = self.store.upsert(prediction)
        logger.info(
            f"Lead {lead.id} scored {prediction.probability} "
            f"({prediction.value_tier.value}/{prediction.confidence_level.value}) "
            f"-> {prediction.next_best_action.value}"
            + ("" if applied else " [stale, not stored]")
        )
        return RecomputeResult(prediction=prediction, applied=applied)

    def recompute_all(
        self,
        leads: Iterable[Lead],
        as_of: Optional[datetime] = None,
    ) -> List[RecomputeResult]:
        """Recompute every given lead with one shared recompute timestamp."""
        as_of = self._timestamp(as_of)
        results = [self.recompute(lead, as_of=as_of) for lead in leads]
        logger.info(f"Recomputed {len(results)} predictions")
        return results

    def forget(self, lead_id: int) -> bool:
        """Drop the prediction of a deleted lead."""
        return self.store.delete(lead_id)

    def _timestamp(self, as_of: Optional[datetime]) -> datetime:
        """Recompute timestamp: the caller's as_of, or the next clock tick."""
        if as_of is None:
            return self.clock.next()
        self.clock.observe(as_of)
        return as_of
