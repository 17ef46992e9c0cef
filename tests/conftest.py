"""Shared fixtures for Lead Insights tests."""

import os
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

# Keep insights uncached so every request reflects the store
os.environ.setdefault("INSIGHTS_CACHE_TTL_SECONDS", "0")

from lead_scoring.classifier import ConfidenceLevel, NextBestAction, ValueTier
from lead_scoring.lead_repository import Lead, LeadStatus
from lead_scoring.prediction_store import Prediction
from lead_scoring.scoring_model import Factor

AS_OF = datetime(2024, 6, 1, 12, 0, 0)


@pytest.fixture
def client():
    """Create a FastAPI test client with fresh services."""
    from api.main import app
    from api.services import reset_services, initialize_services

    reset_services()
    initialize_services()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def as_of():
    return AS_OF


@pytest.fixture
def rich_lead():
    """Fully enriched lead with strong buying signals."""
    return Lead(
        id=1,
        institution_name="Maricopa County",
        state="AZ",
        institution_type="county",
        department="IT",
        population=4500000,
        email="it@maricopa.gov",
        phone_number="602-555-0100",
        website="https://maricopa.gov",
        last_contacted_at=datetime(2024, 5, 20, 9, 0, 0),
        last_call_outcome="interested",
        tech_maturity_score=5,
        enrichment_score=85,
        pain_points=["legacy permitting", "manual records", "call volume"],
        buying_signals=["RFP posted", "budget approved"],
        decision_makers=[
            {"name": "Dana Ortiz", "title": "CIO"},
            {"name": "Lee Park", "title": "IT Director"},
        ],
        recent_news=[{"title": "County modernizes", "url": "https://news", "summary": "..."}],
        competitor_analysis=[{"competitor": "Acme", "product": "GovSuite", "relationship": "vendor"}],
    )


@pytest.fixture
def sparse_lead():
    """Lead with display fields only."""
    return Lead(id=2, institution_name="Smallville", state="KS")


@pytest.fixture
def cold_lead():
    """Lead with complete data that argues against conversion."""
    return Lead(
        id=3,
        institution_name="Gotham City",
        state="NJ",
        status=LeadStatus.CONTACTED,
        population=30000,
        email="clerk@gotham.gov",
        phone_number="201-555-0199",
        website="https://gotham.gov",
        last_contacted_at=datetime(2024, 5, 1),
        last_call_outcome="not_interested",
        tech_maturity_score=2,
        enrichment_score=0,
        pain_points=[],
        buying_signals=[],
        decision_makers=[],
        recent_news=[],
        competitor_analysis=[],
    )


@pytest.fixture
def make_prediction():
    """Factory for stored predictions."""

    def _make(
        lead_id,
        probability,
        confidence=ConfidenceLevel.MEDIUM,
        tier=None,
        action=None,
        factors=(),
        computed_at=AS_OF,
    ):
        if tier is None:
            tier = (
                ValueTier.HIGH if probability >= 70
                else ValueTier.MEDIUM if probability >= 50
                else ValueTier.LOW
            )
        if action is None:
            if tier == ValueTier.HIGH:
                action = (
                    NextBestAction.CALL_IMMEDIATELY if confidence == ConfidenceLevel.HIGH
                    else NextBestAction.ENRICH_FIRST
                )
            elif tier == ValueTier.MEDIUM and confidence != ConfidenceLevel.LOW:
                action = NextBestAction.ENRICH_FIRST
            else:
                action = NextBestAction.NEEDS_MORE_DATA
        return Prediction(
            lead_id=lead_id,
            probability=probability,
            confidence_level=confidence,
            value_tier=tier,
            next_best_action=action,
            factors=tuple(Factor(name, impact) for name, impact in factors),
            computed_at=computed_at,
        )

    return _make
