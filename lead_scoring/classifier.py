"""
Lead Classification for predictive scoring.

Maps (probability, completeness, factors) to a value tier, a confidence
level and the next-best action.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from .config import ClassifierConfig
from .exceptions import InsufficientDataError
from .scoring_model import Factor

logger = logging.getLogger(__name__)


class ValueTier(Enum):
    """Favorability of the predicted conversion probability."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConfidenceLevel(Enum):
    """How much data backed the estimate."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class NextBestAction(Enum):
    """Recommended operator action."""
    CALL_IMMEDIATELY = "callImmediately"
    ENRICH_FIRST = "enrichFirst"
    NEEDS_MORE_DATA = "needsMoreData"


# (value tier, confidence level) -> action. Covers all 9 combinations.
ACTION_TABLE: Dict[tuple, NextBestAction] = {
    (ValueTier.HIGH, ConfidenceLevel.HIGH): NextBestAction.CALL_IMMEDIATELY,
    (ValueTier.HIGH, ConfidenceLevel.MEDIUM): NextBestAction.ENRICH_FIRST,
    (ValueTier.HIGH, ConfidenceLevel.LOW): NextBestAction.ENRICH_FIRST,
    (ValueTier.MEDIUM, ConfidenceLevel.HIGH): NextBestAction.ENRICH_FIRST,
    (ValueTier.MEDIUM, ConfidenceLevel.MEDIUM): NextBestAction.ENRICH_FIRST,
    (ValueTier.MEDIUM, ConfidenceLevel.LOW): NextBestAction.NEEDS_MORE_DATA,
    (ValueTier.LOW, ConfidenceLevel.HIGH): NextBestAction.NEEDS_MORE_DATA,
    (ValueTier.LOW, ConfidenceLevel.MEDIUM): NextBestAction.NEEDS_MORE_DATA,
    (ValueTier.LOW, ConfidenceLevel.LOW): NextBestAction.NEEDS_MORE_DATA,
}


def next_best_action(tier: ValueTier, confidence: ConfidenceLevel) -> NextBestAction:
    """Look up the action for a (tier, confidence) pair."""
    return ACTION_TABLE[(tier, confidence)]


@dataclass(frozen=True)
class Classification:
    """Classifier output."""
    confidence_level: ConfidenceLevel
    value_tier: ValueTier
    next_best_action: NextBestAction
    insufficient_data: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidenceLevel": self.confidence_level.value,
            "valueTier": self.value_tier.value,
            "nextBestAction": self.next_best_action.value,
        }


class LeadClassifier:
    """
    Classifies scored leads.

    Value tier (default thresholds):
    - probability >= 70: high
    - probability >= 50: medium
    - otherwise: low

    Confidence measures data backing, not favorability:
    - low: completeness < 0.3 or no non-zero factors
    - high: completeness >= 0.7 and at least 3 non-zero factors
    - medium: otherwise
    """

    def __init__(self, config: Optional[ClassifierConfig] = None):
        self.config = config or ClassifierConfig()

    def classify(
        self,
        probability: int,
        completeness_ratio: float,
        factors: Sequence[Factor],
    ) -> Classification:
        """
        Classify a scored lead.

        Args:
            probability: Conversion probability 0-100
            completeness_ratio: Share of schema features present
            factors: Factors produced by the scoring model

        Returns:
            Classification with confidence, tier and action
        """
        tier = self.value_tier(probability)
        try:
            confidence = self.confidence_level(completeness_ratio, factors)
        except InsufficientDataError as e:
            logger.debug(f"Falling back to needsMoreData: {e}")
            return Classification(
                confidence_level=ConfidenceLevel.LOW,
                value_tier=tier,
                next_best_action=NextBestAction.NEEDS_MORE_DATA,
                insufficient_data=True,
            )

        return Classification(
            confidence_level=confidence,
            value_tier=tier,
            next_best_action=next_best_action(tier, confidence),
        )

    def value_tier(self, probability: int) -> ValueTier:
        if probability >= self.config.high_value_threshold:
            return ValueTier.HIGH
        if probability >= self.config.medium_value_threshold:
            return ValueTier.MEDIUM
        return ValueTier.LOW

    def confidence_level(
        self,
        completeness_ratio: float,
        factors: Sequence[Factor],
    ) -> ConfidenceLevel:
        """
        Derive confidence from data backing.

        Raises:
            InsufficientDataError: no non-zero factors backed the estimate
        """
        factor_count = len(self._non_zero(factors))
        if factor_count == 0:
            raise InsufficientDataError(completeness_ratio, factor_count)

        if completeness_ratio < self.config.low_confidence_completeness:
            return ConfidenceLevel.LOW
        if (
            completeness_ratio >= self.config.high_confidence_completeness
            and factor_count >= self.config.min_factors_for_high_confidence
        ):
            return ConfidenceLevel.HIGH
        return ConfidenceLevel.MEDIUM

    @staticmethod
    def _non_zero(factors: Sequence[Factor]) -> List[Factor]:
        return [f for f in factors if f.impact != 0]
