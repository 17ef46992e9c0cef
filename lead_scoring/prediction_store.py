"""
Prediction Store for predictive scoring.

Holds the single latest prediction per lead. Writes are last-write-wins
keyed by the recompute timestamp; reads return immutable snapshots.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple

from .classifier import ConfidenceLevel, NextBestAction, ValueTier
from .clock import as_naive_utc, utc_now
from .exceptions import PredictionValidationError
from .scoring_model import Factor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Prediction:
    """Latest prediction for a lead. Replaced wholesale, never mutated."""
    lead_id: int
    probability: int  # 0-100
    confidence_level: ConfidenceLevel
    value_tier: ValueTier
    next_best_action: NextBestAction
    factors: Tuple[Factor, ...] = ()
    computed_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if not isinstance(self.factors, tuple):
            object.__setattr__(self, "factors", tuple(self.factors))
        # Aware and naive timestamps must stay comparable
        if isinstance(self.computed_at, datetime):
            object.__setattr__(self, "computed_at", as_naive_utc(self.computed_at))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the field names consumers read."""
        return {
            "leadId": self.lead_id,
            "predictedConversionProbability": self.probability,
            "confidenceLevel": self.confidence_level.value,
            "predictedValue": self.value_tier.value,
            "nextBestAction": self.next_best_action.value,
            "factors": [f.to_dict() for f in self.factors],
            "computedAt": self.computed_at.isoformat(),
        }


def validate_prediction(prediction: Prediction) -> None:
    """
    Reject malformed predictions at the store boundary.

    Raises:
        PredictionValidationError: on any contract violation
    """
    lead_id = getattr(prediction, "lead_id", None)
    if not isinstance(prediction, Prediction):
        raise PredictionValidationError(lead_id, "not a Prediction")
    if isinstance(lead_id, bool) or not isinstance(lead_id, int):
        raise PredictionValidationError(lead_id, "lead_id must be an integer")

    probability = prediction.probability
    if isinstance(probability, bool) or not isinstance(probability, int):
        raise PredictionValidationError(lead_id, f"probability must be an integer, got {probability!r}")
    if not 0 <= probability <= 100:
        raise PredictionValidationError(lead_id, f"probability {probability} outside 0-100")

    if not isinstance(prediction.confidence_level, ConfidenceLevel):
        raise PredictionValidationError(
            lead_id, f"unknown confidence level {prediction.confidence_level!r}"
        )
    if not isinstance(prediction.value_tier, ValueTier):
        raise PredictionValidationError(lead_id, f"unknown value tier {prediction.value_tier!r}")
    if not isinstance(prediction.next_best_action, NextBestAction):
        raise PredictionValidationError(
            lead_id, f"unknown next best action {prediction.next_best_action!r}"
        )

    for factor in prediction.factors:
        if not isinstance(factor, Factor) or not isinstance(factor.name, str) or not factor.name:
            raise PredictionValidationError(lead_id, f"malformed factor {factor!r}")
        impact = factor.impact
        if isinstance(impact, bool) or not isinstance(impact, (int, float)) or not math.isfinite(impact):
            raise PredictionValidationError(lead_id, f"factor {factor.name} has invalid impact")

    if not isinstance(prediction.computed_at, datetime):
        raise PredictionValidationError(lead_id, "computed_at must be a datetime")


@dataclass(frozen=True)
class PredictionSnapshot:
    """Consistent point-in-time copy of all current predictions."""
    predictions: Tuple[Prediction, ...] = ()
    version: int = 0
    taken_at: datetime = field(default_factory=utc_now)

    @classmethod
    def of(cls, predictions: Sequence[Prediction], version: int = 0) -> "PredictionSnapshot":
        """Build a snapshot ordered by lead id."""
        ordered = tuple(sorted(predictions, key=lambda p: p.lead_id))
        return cls(predictions=ordered, version=version)

    def __iter__(self) -> Iterator[Prediction]:
        return iter(self.predictions)

    def __len__(self) -> int:
        return len(self.predictions)


class PredictionStore:
    """
    Thread-safe store of the latest prediction per lead.

    Critical sections are O(1) dict operations; snapshots copy under the
    lock so a reader never sees a half-applied write.
    """

    def __init__(self):
        self._predictions: Dict[int, Prediction] = {}
        self._version = 0
        self._lock = threading.Lock()
        self._listeners: List[Callable[[int], None]] = []

    def upsert(self, prediction: Prediction) -> bool:
        """
        Insert or replace the prediction for a lead.

        Args:
            prediction: New prediction

        Returns:
            True if applied, False if a newer prediction was already stored

        Raises:
            PredictionValidationError: if the prediction is malformed
        """
        validate_prediction(prediction)

        with self._lock:
            current = self._predictions.get(prediction.lead_id)
            if current is not None and prediction.computed_at < current.computed_at:
                stale = True
            else:
                stale = False
                self._predictions[prediction.lead_id] = prediction
                self._version += 1

        if stale:
            logger.warning(
                f"Ignoring stale prediction for lead {prediction.lead_id}: "
                f"{prediction.computed_at.isoformat()} < {current.computed_at.isoformat()}"
            )
            return False

        self._notify(prediction.lead_id)
        return True

    def get(self, lead_id: int) -> Optional[Prediction]:
        with self._lock:
            return self._predictions.get(lead_id)

    def delete(self, lead_id: int) -> bool:
        """Remove a lead's prediction. Returns False when none was stored."""
        with self._lock:
            removed = self._predictions.pop(lead_id, None) is not None
            if removed:
                self._version += 1

        if removed:
            logger.info(f"Prediction deleted for lead {lead_id}")
            self._notify(lead_id)
        return removed

    def get_all(self) -> PredictionSnapshot:
        """Take a consistent snapshot of every stored prediction."""
        with self._lock:
            predictions = list(self._predictions.values())
            version = self._version
        return PredictionSnapshot.of(predictions, version=version)

    def subscribe(self, listener: Callable[[int], None]) -> None:
        """Register a callback invoked with the lead id after each applied write."""
        self._listeners.append(listener)

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def __len__(self) -> int:
        with self._lock:
            return len(self._predictions)

    def _notify(self, lead_id: int) -> None:
        for listener in list(self._listeners):
            listener(lead_id)
