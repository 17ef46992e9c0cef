"""
Error taxonomy for the lead scoring engine.
"""

from typing import Optional


class LeadScoringError(Exception):
    """Base class for engine errors."""


class InsufficientDataError(LeadScoringError):
    """Raised when a lead has too little data to back an estimate.

    Always handled inside the classifier, never surfaced to callers.
    """

    def __init__(self, completeness_ratio: float, factor_count: int):
        self.completeness_ratio = completeness_ratio
        self.factor_count = factor_count
        super().__init__(
            f"insufficient data: completeness={completeness_ratio:.2f}, "
            f"factors={factor_count}"
        )


class InconsistentSnapshotError(LeadScoringError):
    """Aggregated counts do not add up to the snapshot size."""

    def __init__(self, total: int, details: str):
        self.total = total
        super().__init__(f"inconsistent snapshot of {total} predictions: {details}")


class LookupMiss(LeadScoringError):
    """A prediction references a lead the repository cannot resolve."""

    def __init__(self, lead_id: int, reason: Optional[str] = None):
        self.lead_id = lead_id
        message = f"lead {lead_id} not found"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class PredictionValidationError(LeadScoringError, ValueError):
    """A malformed prediction was offered to the store."""

    def __init__(self, lead_id: object, reason: str):
        self.lead_id = lead_id
        self.reason = reason
        super().__init__(f"invalid prediction for lead {lead_id}: {reason}")
