"""
Predictive Scoring Model for lead conversion.

Implements a transparent weight-table model: every present feature
contributes weight x magnitude probability points, the sum is squashed
into 0-100 and each contribution is reported as a named factor.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .config import ScoringConfig
from .feature_extractor import FeatureVector

logger = logging.getLogger(__name__)

# Midpoint of the probability scale; the squash is centred here.
SCALE_MIDPOINT = 50.0


@dataclass(frozen=True)
class Factor:
    """A named signal with its signed impact in probability points."""
    name: str
    impact: float

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "impact": self.impact}


def rank_factors(factors: List[Factor]) -> List[Factor]:
    """Order factors by absolute impact descending, then name ascending."""
    return sorted(factors, key=lambda f: (-abs(f.impact), f.name))


@dataclass
class ScoreResult:
    """Scoring model output."""
    probability: int  # 0-100
    factors: List[Factor] = field(default_factory=list)
    raw_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "probability": self.probability,
            "factors": [f.to_dict() for f in self.factors],
            "raw_score": self.raw_score,
        }


def _logistic(x: float) -> float:
    """Numerically stable logistic function."""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


class PredictiveScorer:
    """
    Scores feature vectors into conversion probabilities.

    probability = round(100 * logistic((raw - 50) / squash_scale))
    raw         = baseline + sum(weight(feature) * magnitude(feature))

    With squash_scale = 25 the curve has slope 1 at the midpoint, so factor
    impacts read as "moved the score by N points" for typical leads while
    extreme raw scores still land inside 0-100.
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        """
        Initialize the scorer.

        Args:
            config: Weight table and squashing parameters
        """
        self.config = config or ScoringConfig()

    def score(self, vector: FeatureVector) -> ScoreResult:
        """
        Score a feature vector.

        Args:
            vector: Extracted features

        Returns:
            ScoreResult with probability and ranked factors
        """
        present = vector.present()
        if not present:
            return ScoreResult(
                probability=self.config.baseline,
                factors=[],
                raw_score=float(self.config.baseline),
            )

        contributions: Dict[str, float] = {}
        for feature in present:
            contribution = self.config.weight_for(feature.name) * feature.magnitude
            if not math.isfinite(contribution):
                logger.warning(f"Ignoring non-finite contribution for {feature.name}")
                continue
            if contribution == 0:
                continue
            # Labels may be shared, so accumulate per label
            contributions[feature.label] = contributions.get(feature.label, 0.0) + contribution

        raw = float(self.config.baseline) + sum(contributions[k] for k in sorted(contributions))
        probability = self._squash(raw)

        factors = rank_factors([
            Factor(name=label, impact=round(impact, 2))
            for label, impact in contributions.items()
            if round(impact, 2) != 0
        ])

        return ScoreResult(probability=probability, factors=factors, raw_score=raw)

    def _squash(self, raw: float) -> int:
        x = (raw - SCALE_MIDPOINT) / self.config.squash_scale
        probability = int(round(100.0 * _logistic(x)))
        return max(0, min(100, probability))

