"""
Engine configuration for predictive lead scoring.

Weight tables and classifier thresholds live in a versioned JSON file
(config/scoring_config.json by default) and are injected into the
scorer and classifier as validated pydantic models.
"""

import json
import logging
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "scoring_config.json"


class ScoringConfig(BaseModel):
    """Weight table and squashing parameters for the scoring model."""

    model_config = ConfigDict(frozen=True)

    baseline: int = Field(default=50, ge=0, le=100)
    squash_scale: float = Field(default=25.0, gt=0)
    weights: Dict[str, float] = Field(default_factory=dict)

    def weight_for(self, feature: str) -> float:
        """Weight of a feature, zero when the table has no entry."""
        return self.weights.get(feature, 0.0)


class ClassifierConfig(BaseModel):
    """Thresholds for value tier and confidence classification."""

    model_config = ConfigDict(frozen=True)

    high_value_threshold: int = Field(default=70, ge=0, le=100)
    medium_value_threshold: int = Field(default=50, ge=0, le=100)
    high_confidence_completeness: float = Field(default=0.7, ge=0.0, le=1.0)
    low_confidence_completeness: float = Field(default=0.3, ge=0.0, le=1.0)
    min_factors_for_high_confidence: int = Field(default=3, ge=0)

    @model_validator(mode="after")
    def _check_ordering(self) -> "ClassifierConfig":
        if self.medium_value_threshold > self.high_value_threshold:
            raise ValueError("medium_value_threshold must not exceed high_value_threshold")
        if self.low_confidence_completeness > self.high_confidence_completeness:
            raise ValueError(
                "low_confidence_completeness must not exceed high_confidence_completeness"
            )
        return self


class EngineConfig(BaseModel):
    """Complete engine configuration."""

    model_config = ConfigDict(frozen=True)

    version: str = "default"
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)


def load_engine_config(path: Optional[Union[str, Path]] = None) -> EngineConfig:
    """
    Load and validate the engine configuration.

    Args:
        path: JSON file to read. Defaults to the bundled scoring_config.json.

    Returns:
        Validated EngineConfig
    """
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    with config_path.open("r", encoding="utf-8") as fh:
        data = json.load(fh)

    config = EngineConfig.model_validate(data)
    logger.info(
        f"Loaded scoring config version {config.version} "
        f"({len(config.scoring.weights)} weights) from {config_path}"
    )
    return config
