"""
Service initialization and dependency injection for the Lead Insights API.

Creates and manages all service instances used by the API.
"""

import logging
from typing import Optional

from config.settings import get_settings, Settings
from lead_scoring.config import EngineConfig, load_engine_config
from lead_scoring.engine import PredictionEngine
from lead_scoring.insights import InsightsAggregator, InsightsCache, InsightsSummary
from lead_scoring.lead_repository import InMemoryLeadRepository
from lead_scoring.prediction_store import PredictionStore

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.engine_config: Optional[EngineConfig] = None
        self.lead_repository: Optional[InMemoryLeadRepository] = None
        self.prediction_store: Optional[PredictionStore] = None
        self.engine: Optional[PredictionEngine] = None
        self.aggregator: Optional[InsightsAggregator] = None
        self.insights_cache: Optional[InsightsCache] = None
        self._initialized = False

    def initialize(self):
        """Initialize all services."""
        if self._initialized:
            return

        self.settings = get_settings()
        self.engine_config = load_engine_config(self.settings.scoring_config_path)
        self.lead_repository = InMemoryLeadRepository()
        self._init_scoring()
        self._init_insights()
        self._initialized = True
        logger.info(f"All services initialized (scoring config {self.engine_config.version})")

    def _init_scoring(self):
        """Initialize store and prediction pipeline."""
        self.prediction_store = PredictionStore()
        self.engine = PredictionEngine.from_config(self.engine_config, self.prediction_store)
        logger.info("Prediction engine ready")

    def _init_insights(self):
        """Initialize the aggregator and its cache."""
        s = self.settings
        self.aggregator = InsightsAggregator(snapshot_max_attempts=s.snapshot_max_attempts)
        self.insights_cache = InsightsCache(ttl_seconds=s.insights_cache_ttl_seconds)
        self.prediction_store.subscribe(self.insights_cache.invalidate)
        logger.info(f"Insights ready (cache ttl {s.insights_cache_ttl_seconds}s)")

    def insights(self, top_k: int) -> InsightsSummary:
        """Current insights summary, served from the cache when fresh."""
        return self.insights_cache.get_or_compute(
            top_k,
            lambda: self.aggregator.build_insights(self.prediction_store, top_k=top_k),
        )

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.engine is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "scoring_config": self.engine_config.version if self.engine_config else None,
            "leads": len(self.lead_repository) if self.lead_repository is not None else 0,
            "predictions": len(self.prediction_store) if self.prediction_store is not None else 0,
        }


# Singleton
_services = Services()


def get_services() -> Services:
    """Get the global services instance."""
    return _services


def initialize_services():
    """Initialize all services (called at startup)."""
    _services.initialize()


def reset_services() -> Services:
    """Replace the global services with a fresh, uninitialized instance."""
    global _services
    _services = Services()
    return _services
