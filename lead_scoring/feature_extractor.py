"""
Feature Extraction for predictive lead scoring.

Turns a raw lead record (plus optional enrichment data) into a
normalized feature vector:
- Engagement signals (decision makers, contact channels, prior calls)
- Fit signals (population, tech maturity, pain points)
- Timing signals (buying signals, news, competitors)
- Data quality (enrichment score, key field completeness)

Missing or malformed inputs are recorded as absent, never as zero.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .clock import as_naive_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureSpec:
    """Schema entry for a single feature."""
    name: str
    label: str      # Factor name shown to users
    category: str   # engagement / fit / timing / data_quality
    source: str     # Lead record field the feature reads


FEATURE_SCHEMA: Tuple[FeatureSpec, ...] = (
    FeatureSpec("decision_maker", "Decision Maker Identified", "engagement", "decision_makers"),
    FeatureSpec("missing_decision_maker", "No Decision Maker", "engagement", "decision_makers"),
    FeatureSpec("multiple_contacts", "Multiple Contacts", "engagement", "decision_makers"),
    FeatureSpec("email", "Email Available", "engagement", "email"),
    FeatureSpec("phone", "Phone Available", "engagement", "phone_number"),
    FeatureSpec("website", "Website Available", "engagement", "website"),
    FeatureSpec("positive_prior_contact", "Positive Prior Contact", "engagement", "last_call_outcome"),
    FeatureSpec("negative_prior_contact", "Previously Not Interested", "engagement", "last_call_outcome"),
    FeatureSpec("recently_contacted", "Recently Contacted", "engagement", "last_contacted_at"),
    FeatureSpec("population_scale", "Population Size", "fit", "population"),
    FeatureSpec("tech_maturity_sweet_spot", "Tech Maturity Sweet Spot", "fit", "tech_maturity_score"),
    FeatureSpec("low_tech_maturity", "Low Tech Maturity", "fit", "tech_maturity_score"),
    FeatureSpec("high_tech_maturity", "High Tech Maturity", "fit", "tech_maturity_score"),
    FeatureSpec("has_pain_points", "Known Pain Points", "fit", "pain_points"),
    FeatureSpec("pain_points", "Known Pain Points", "fit", "pain_points"),
    FeatureSpec("has_buying_signals", "Buying Signals Detected", "timing", "buying_signals"),
    FeatureSpec("buying_signals", "Buying Signals Detected", "timing", "buying_signals"),
    FeatureSpec("recent_news", "Recent News Activity", "timing", "recent_news"),
    FeatureSpec("competitor_presence", "Competitor Presence", "timing", "competitor_analysis"),
    FeatureSpec("enrichment_quality", "Data Enrichment Quality", "data_quality", "enrichment_score"),
    FeatureSpec("high_data_completeness", "High Data Completeness", "data_quality", "key_fields"),
)


@dataclass(frozen=True)
class FeatureValue:
    """A named signal; magnitude is meaningless when not present."""
    name: str
    label: str
    magnitude: float
    present: bool


@dataclass(frozen=True)
class FeatureVector:
    """Ordered set of feature values, one per schema entry."""
    values: Tuple[FeatureValue, ...] = ()

    def __iter__(self) -> Iterator[FeatureValue]:
        return iter(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def get(self, name: str) -> Optional[FeatureValue]:
        for value in self.values:
            if value.name == name:
                return value
        return None

    def present(self) -> Tuple[FeatureValue, ...]:
        return tuple(v for v in self.values if v.present)

    def is_empty(self) -> bool:
        return not any(v.present for v in self.values)

    def to_dict(self) -> Dict[str, Optional[float]]:
        return {v.name: (v.magnitude if v.present else None) for v in self.values}


@dataclass(frozen=True)
class ExtractionResult:
    """Feature vector plus the share of schema features that were present."""
    vector: FeatureVector
    completeness_ratio: float


class FeatureExtractor:
    """
    Extracts scoring features from lead records.

    Extraction is a pure function of (record, enrichment, as_of).
    """

    POSITIVE_OUTCOMES = {"interested", "callback_scheduled"}
    NEGATIVE_OUTCOMES = {"not_interested"}

    RECENT_CONTACT_WINDOW = timedelta(days=7)
    MAX_CONTACTS = 3
    MAX_PAIN_POINTS = 5
    MAX_BUYING_SIGNALS = 3
    HIGH_COMPLETENESS_RATIO = 0.7

    # Population tiers: (lower bound exclusive, magnitude)
    POPULATION_TIERS = [
        (500000, 4.0),   # large
        (100000, 3.0),   # medium
        (50000, 2.0),    # small
    ]

    def __init__(self, schema: Tuple[FeatureSpec, ...] = FEATURE_SCHEMA):
        self.schema = schema

    def extract(
        self,
        record: Mapping[str, Any],
        enrichment: Optional[Mapping[str, Any]] = None,
        as_of: Optional[datetime] = None,
    ) -> ExtractionResult:
        """
        Extract the feature vector for a lead.

        Args:
            record: Raw lead record
            enrichment: Optional enrichment/engagement data, overrides record keys
            as_of: Reference time for recency signals; recency is absent without it

        Returns:
            ExtractionResult with vector and completeness ratio
        """
        data: Dict[str, Any] = dict(record)
        if enrichment:
            data.update(enrichment)

        magnitudes: Dict[str, Optional[float]] = {}
        magnitudes.update(self._decision_maker_features(data.get("decision_makers")))
        magnitudes["email"] = self._presence(data.get("email"))
        magnitudes["phone"] = self._presence(data.get("phone_number"))
        magnitudes["website"] = self._presence(data.get("website"))
        magnitudes.update(self._contact_history_features(
            data.get("last_call_outcome"), data.get("last_contacted_at"), as_of
        ))
        magnitudes["population_scale"] = self._population_scale(data.get("population"))
        magnitudes.update(self._tech_maturity_features(data.get("tech_maturity_score")))
        magnitudes["has_pain_points"] = self._capped_count(data.get("pain_points"), 1)
        magnitudes["pain_points"] = self._capped_count(
            data.get("pain_points"), self.MAX_PAIN_POINTS
        )
        magnitudes["has_buying_signals"] = self._capped_count(data.get("buying_signals"), 1)
        magnitudes["buying_signals"] = self._capped_count(
            data.get("buying_signals"), self.MAX_BUYING_SIGNALS
        )
        magnitudes["recent_news"] = self._capped_count(data.get("recent_news"), 1)
        magnitudes["competitor_presence"] = self._capped_count(data.get("competitor_analysis"), 1)
        magnitudes["enrichment_quality"] = self._enrichment_quality(data.get("enrichment_score"))
        magnitudes["high_data_completeness"] = self._high_data_completeness(magnitudes)

        values = []
        for spec in self.schema:
            magnitude = magnitudes.get(spec.name)
            values.append(FeatureValue(
                name=spec.name,
                label=spec.label,
                magnitude=magnitude if magnitude is not None else 0.0,
                present=magnitude is not None,
            ))

        vector = FeatureVector(values=tuple(values))
        completeness = len(vector.present()) / len(self.schema) if self.schema else 0.0

        logger.debug(
            f"Extracted {len(vector.present())}/{len(self.schema)} features "
            f"for lead {data.get('id')}"
        )
        return ExtractionResult(vector=vector, completeness_ratio=completeness)

    # -- field parsing -------------------------------------------------

    @staticmethod
    def _as_text(value: Any) -> Optional[str]:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @staticmethod
    def _as_number(value: Any) -> Optional[float]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value):
            return None
        return float(value)

    @staticmethod
    def _as_list(value: Any) -> Optional[List[Any]]:
        if isinstance(value, (list, tuple)):
            return [item for item in value if item]
        return None

    @staticmethod
    def _as_datetime(value: Any) -> Optional[datetime]:
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                return None
        if not isinstance(value, datetime):
            return None
        return as_naive_utc(value)

    # -- feature groups ------------------------------------------------

    def _presence(self, value: Any) -> Optional[float]:
        return 1.0 if self._as_text(value) else None

    def _capped_count(self, value: Any, cap: int) -> Optional[float]:
        items = self._as_list(value)
        if items is None:
            return None
        return float(min(len(items), cap))

    def _decision_maker_features(self, value: Any) -> Dict[str, Optional[float]]:
        contacts = self._as_list(value)
        if contacts is None:
            return {
                "decision_maker": None,
                "missing_decision_maker": None,
                "multiple_contacts": None,
            }
        count = len(contacts)
        return {
            "decision_maker": 1.0 if count > 0 else 0.0,
            "missing_decision_maker": 1.0 if count == 0 else 0.0,
            "multiple_contacts": float(min(count, self.MAX_CONTACTS)) if count > 1 else 0.0,
        }

    def _contact_history_features(
        self,
        outcome_value: Any,
        contacted_value: Any,
        as_of: Optional[datetime],
    ) -> Dict[str, Optional[float]]:
        outcome = self._as_text(outcome_value)
        outcome = outcome.lower() if outcome else None
        features: Dict[str, Optional[float]] = {
            "positive_prior_contact": None,
            "negative_prior_contact": None,
            "recently_contacted": None,
        }
        if outcome is not None:
            features["positive_prior_contact"] = 1.0 if outcome in self.POSITIVE_OUTCOMES else 0.0
            features["negative_prior_contact"] = 1.0 if outcome in self.NEGATIVE_OUTCOMES else 0.0

        contacted_at = self._as_datetime(contacted_value)
        reference = self._as_datetime(as_of)
        if contacted_at is None or reference is None:
            return features

        elapsed = reference - contacted_at
        if elapsed < timedelta(0):
            # Contact in the future relative to as_of
            return features

        decided = outcome in self.POSITIVE_OUTCOMES or outcome in self.NEGATIVE_OUTCOMES
        recent = elapsed < self.RECENT_CONTACT_WINDOW and not decided
        features["recently_contacted"] = 1.0 if recent else 0.0
        return features

    def _population_scale(self, value: Any) -> Optional[float]:
        population = self._as_number(value)
        if population is None or population <= 0:
            return None
        for bound, magnitude in self.POPULATION_TIERS:
            if population > bound:
                return magnitude
        return 1.0

    def _tech_maturity_features(self, value: Any) -> Dict[str, Optional[float]]:
        score = self._as_number(value)
        if score is None or not 1 <= score <= 10:
            return {
                "tech_maturity_sweet_spot": None,
                "low_tech_maturity": None,
                "high_tech_maturity": None,
            }
        return {
            "tech_maturity_sweet_spot": 1.0 if 4 <= score <= 6 else 0.0,
            "low_tech_maturity": 1.0 if score < 4 else 0.0,
            "high_tech_maturity": 1.0 if score > 6 else 0.0,
        }

    def _high_data_completeness(self, magnitudes: Dict[str, Optional[float]]) -> Optional[float]:
        """1 when enough key contact and fit fields are filled in."""
        scalar_fields = [
            magnitudes.get(name)
            for name in ("email", "phone", "website", "population_scale", "tech_maturity_sweet_spot")
        ]
        list_fields = [magnitudes.get(name) for name in ("has_pain_points", "decision_maker")]
        if all(value is None for value in scalar_fields + list_fields):
            return None

        # Empty lists parse as present but do not count as filled in
        filled = sum(1 for value in scalar_fields if value is not None)
        filled += sum(1 for value in list_fields if value)
        ratio = filled / (len(scalar_fields) + len(list_fields))
        return 1.0 if ratio >= self.HIGH_COMPLETENESS_RATIO else 0.0

    def _enrichment_quality(self, value: Any) -> Optional[float]:
        score = self._as_number(value)
        if score is None or not 0 <= score <= 100:
            return None
        return score / 100.0
