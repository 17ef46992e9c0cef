"""
Lead Repository for predictive scoring.

Leads are owned by the repository; the scoring engine only reads them.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from .clock import utc_now

logger = logging.getLogger(__name__)


class LeadStatus(Enum):
    """Lead status in the sales pipeline."""
    NOT_CONTACTED = "not_contacted"
    CONTACTED = "contacted"
    FOLLOW_UP = "follow_up"
    QUALIFIED = "qualified"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


@dataclass
class Lead:
    """Government lead with the raw inputs used for scoring."""

    # Core identifiers
    id: int
    institution_name: str
    state: str
    status: LeadStatus = LeadStatus.NOT_CONTACTED

    # Institution details
    institution_type: Optional[str] = None  # county, city, district, department
    department: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None
    population: Optional[int] = None

    # Contact channels
    email: Optional[str] = None
    phone_number: Optional[str] = None
    website: Optional[str] = None

    # Engagement
    last_contacted_at: Optional[datetime] = None
    last_call_outcome: Optional[str] = None

    # Enrichment
    tech_maturity_score: Optional[int] = None  # 1-10 scale
    enrichment_score: Optional[int] = None     # 0-100 quality score
    pain_points: Optional[List[str]] = None
    buying_signals: Optional[List[str]] = None
    decision_makers: Optional[List[Dict[str, Any]]] = None
    recent_news: Optional[List[Dict[str, Any]]] = None
    competitor_analysis: Optional[List[Dict[str, Any]]] = None

    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_record(self) -> Dict[str, Any]:
        """Raw record handed to the feature extractor."""
        data = asdict(self)
        data["status"] = self.status.value
        return data

    def to_display(self) -> Dict[str, Any]:
        """Display fields attached to ranked lead listings."""
        return {
            "id": self.id,
            "institutionName": self.institution_name,
            "state": self.state,
            "status": self.status.value,
        }


class LeadRepository(ABC):
    """Read-only lead lookup used by the engine."""

    @abstractmethod
    def get(self, lead_id: int) -> Optional[Lead]:
        """Return the lead, or None when it does not exist."""

    @abstractmethod
    def list_all(self) -> List[Lead]:
        """Return every lead ordered by id."""


class InMemoryLeadRepository(LeadRepository):
    """Thread-safe in-memory lead repository."""

    def __init__(self, leads: Optional[List[Lead]] = None):
        self._leads: Dict[int, Lead] = {}
        self._lock = threading.Lock()
        for lead in leads or []:
            self.add(lead)

    def get(self, lead_id: int) -> Optional[Lead]:
        with self._lock:
            return self._leads.get(lead_id)

    def list_all(self) -> List[Lead]:
        with self._lock:
            return [self._leads[k] for k in sorted(self._leads)]

    def add(self, lead: Lead) -> Lead:
        """Insert or replace a lead."""
        with self._lock:
            self._leads[lead.id] = lead
        logger.debug(f"Lead stored: {lead.id}")
        return lead

    def remove(self, lead_id: int) -> bool:
        """Delete a lead. Returns False when it did not exist."""
        with self._lock:
            return self._leads.pop(lead_id, None) is not None

    def next_id(self) -> int:
        with self._lock:
            return max(self._leads, default=0) + 1

    def __len__(self) -> int:
        with self._lock:
            return len(self._leads)
