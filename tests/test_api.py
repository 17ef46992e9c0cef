"""Tests for the Lead Insights API endpoints."""

import pytest

from api.services import get_services

RICH_LEAD = {
    "institution_name": "Maricopa County",
    "state": "AZ",
    "population": 4500000,
    "email": "it@maricopa.gov",
    "phone_number": "602-555-0100",
    "website": "https://maricopa.gov",
    "last_call_outcome": "interested",
    "tech_maturity_score": 5,
    "enrichment_score": 85,
    "pain_points": ["legacy permitting", "manual records"],
    "buying_signals": ["RFP posted"],
    "decision_makers": [{"name": "Dana Ortiz", "title": "CIO"}],
    "recent_news": [{"title": "County modernizes", "url": "https://news", "summary": "..."}],
    "competitor_analysis": [{"competitor": "Acme", "product": "GovSuite", "relationship": "vendor"}],
}

SPARSE_LEAD = {"institution_name": "Smallville", "state": "KS"}


@pytest.fixture
def seeded(client):
    """Client with one rich and one sparse lead."""
    assert client.post("/api/v1/leads", json=RICH_LEAD).status_code == 200
    assert client.post("/api/v1/leads", json=SPARSE_LEAD).status_code == 200
    return client


def test_root_endpoint(client):
    resp = client.get("/")
    assert resp.status_code == 200
    assert resp.json()["service"] == "Lead Insights API"


def test_health_endpoint(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_metrics_endpoint(client):
    resp = client.get("/metrics")
    assert resp.status_code == 200


def test_empty_insights(client):
    resp = client.get("/api/v1/predictive/insights")
    assert resp.status_code == 200
    data = resp.json()
    assert data["totalLeads"] == 0
    assert data["averageScore"] == 0
    assert data["distribution"] == {"high": 0, "medium": 0, "low": 0}
    assert data["topFactors"] == []
    assert data["recommendations"] == {"callImmediately": 0, "enrichFirst": 0, "needsMoreData": 0}


def test_create_lead_scores_it(client):
    resp = client.post("/api/v1/leads", json=RICH_LEAD)
    assert resp.status_code == 200
    data = resp.json()
    assert data["id"] == 1
    assert data["predictedConversionProbability"] == 100
    assert data["nextBestAction"] == "callImmediately"


def test_create_lead_validation(client):
    resp = client.post("/api/v1/leads", json={"state": "TX"})
    assert resp.status_code == 422


def test_insights_after_seeding(seeded):
    data = seeded.get("/api/v1/predictive/insights").json()
    assert data["totalLeads"] == 2
    assert data["averageScore"] == 75
    assert data["distribution"] == {"high": 1, "medium": 1, "low": 0}
    assert data["byConfidence"]["counts"] == {"high": 1, "medium": 0, "low": 1}
    assert data["recommendations"] == {"callImmediately": 1, "enrichFirst": 0, "needsMoreData": 1}
    assert len(data["topFactors"]) == 5
    assert all(f["frequency"] == 1 for f in data["topFactors"])


def test_insights_top_factors_param(seeded):
    data = seeded.get("/api/v1/predictive/insights", params={"top_factors": 0}).json()
    assert data["topFactors"] == []

    resp = seeded.get("/api/v1/predictive/insights", params={"top_factors": -1})
    assert resp.status_code == 422


def test_top_leads(seeded):
    data = seeded.get("/api/v1/predictive/top").json()
    assert [d["leadId"] for d in data] == [1, 2]
    assert data[0]["lead"]["institutionName"] == "Maricopa County"
    assert data[0]["predictedValue"] == "high"

    limited = seeded.get("/api/v1/predictive/top", params={"limit": 1}).json()
    assert len(limited) == 1


def test_top_leads_unresolved_lead(seeded):
    store = get_services().prediction_store
    prediction = store.get(2)
    orphan = type(prediction)(
        lead_id=99,
        probability=95,
        confidence_level=prediction.confidence_level,
        value_tier=prediction.value_tier,
        next_best_action=prediction.next_best_action,
    )
    store.upsert(orphan)

    data = seeded.get("/api/v1/predictive/top").json()
    assert [d["leadId"] for d in data] == [1, 99, 2]
    orphan_entry = data[1]
    assert orphan_entry["lead"] is None
    assert orphan_entry["displayName"] == "Lead #99"


def test_scores_and_by_action(seeded):
    scores = seeded.get("/api/v1/predictive/scores").json()
    assert scores["total"] == 2
    assert scores["scores"][0]["leadId"] == 1

    grouped = seeded.get("/api/v1/predictive/by-action").json()
    assert grouped["summary"]["total"] == 2
    assert grouped["groups"]["needsMoreData"][0]["leadId"] == 2


def test_single_lead_prediction(seeded):
    data = seeded.get("/api/v1/predictive/lead/1").json()
    assert data["predictedConversionProbability"] == 100
    assert data["factors"][0]["name"] == "Buying Signals Detected"
    assert data["lead"]["id"] == 1

    assert seeded.get("/api/v1/predictive/lead/42").status_code == 404


def test_recompute(seeded):
    resp = seeded.post("/api/v1/predictive/recompute")
    assert resp.status_code == 200
    assert resp.json() == {"recomputed": 2, "stale": 0}

    resp = seeded.post("/api/v1/predictive/lead/2/recompute")
    assert resp.status_code == 200
    assert resp.json()["applied"] is True

    assert seeded.post("/api/v1/predictive/lead/42/recompute").status_code == 404


def test_delete_lead_removes_prediction(seeded):
    assert seeded.delete("/api/v1/leads/1").status_code == 200
    assert seeded.get("/api/v1/predictive/lead/1").status_code == 404
    assert seeded.get("/api/v1/predictive/insights").json()["totalLeads"] == 1
    assert seeded.delete("/api/v1/leads/1").status_code == 404


def test_list_leads(seeded):
    data = seeded.get("/api/v1/leads").json()
    assert data["total"] == 2
    assert data["has_next"] is False
    assert seeded.get("/api/v1/leads/2").json()["institutionName"] == "Smallville"
