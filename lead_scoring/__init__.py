"""
Predictive Lead Scoring Module.

This module ranks and explains sales-readiness for government leads:
- Feature extraction from lead records and enrichment data
- Transparent weight-table scoring (0-100 probability) with named factors
- Confidence, value tier and next-best-action classification
- Latest-prediction store with consistent snapshots
- Dashboard insights aggregation
"""

from .config import EngineConfig, ScoringConfig, ClassifierConfig, load_engine_config
from .exceptions import (
    LeadScoringError,
    InsufficientDataError,
    InconsistentSnapshotError,
    LookupMiss,
    PredictionValidationError,
)
from .lead_repository import Lead, LeadStatus, LeadRepository, InMemoryLeadRepository
from .feature_extractor import FeatureExtractor, FeatureVector, FeatureValue, ExtractionResult
from .scoring_model import PredictiveScorer, ScoreResult, Factor
from .classifier import (
    LeadClassifier,
    Classification,
    ConfidenceLevel,
    ValueTier,
    NextBestAction,
)
from .prediction_store import Prediction, PredictionSnapshot, PredictionStore
from .insights import InsightsAggregator, InsightsSummary, InsightsCache, FactorStat, TopLead
from .engine import PredictionEngine, RecomputeResult
from .clock import RecomputeClock

__all__ = [
    "EngineConfig",
    "ScoringConfig",
    "ClassifierConfig",
    "load_engine_config",
    "LeadScoringError",
    "InsufficientDataError",
    "InconsistentSnapshotError",
    "LookupMiss",
    "PredictionValidationError",
    "Lead",
    "LeadStatus",
    "LeadRepository",
    "InMemoryLeadRepository",
    "FeatureExtractor",
    "FeatureVector",
    "FeatureValue",
    "ExtractionResult",
    "PredictiveScorer",
    "ScoreResult",
    "Factor",
    "LeadClassifier",
    "Classification",
    "ConfidenceLevel",
    "ValueTier",
    "NextBestAction",
    "Prediction",
    "PredictionSnapshot",
    "PredictionStore",
    "InsightsAggregator",
    "InsightsSummary",
    "InsightsCache",
    "FactorStat",
    "TopLead",
    "PredictionEngine",
    "RecomputeResult",
    "RecomputeClock",
]
