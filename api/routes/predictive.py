"""
Predictive Scoring API Routes for the Lead Insights API.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from lead_scoring.exceptions import InconsistentSnapshotError
from ..middleware.metrics import record_prediction, record_stale_prediction
from ..services import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/predictive")


# ── Response Models ───────────────────────────────────────────────

class LevelCounts(BaseModel):
    high: int
    medium: int
    low: int


class ByConfidence(BaseModel):
    counts: LevelCounts
    averages: LevelCounts


class TopFactor(BaseModel):
    name: str
    frequency: int
    avgImpact: float


class Recommendations(BaseModel):
    callImmediately: int
    enrichFirst: int
    needsMoreData: int


class InsightsResponse(BaseModel):
    totalLeads: int
    averageScore: int
    distribution: LevelCounts
    byConfidence: ByConfidence
    topFactors: List[TopFactor]
    recommendations: Recommendations


class LeadDisplay(BaseModel):
    id: int
    institutionName: str
    state: str
    status: str


class TopLeadResponse(BaseModel):
    leadId: int
    predictedConversionProbability: int
    confidenceLevel: str
    predictedValue: str
    nextBestAction: str
    lead: Optional[LeadDisplay] = None
    displayName: str


# ── Endpoints ─────────────────────────────────────────────────────

@router.get("/insights", response_model=InsightsResponse)
async def get_insights(top_factors: Optional[int] = Query(None, ge=0, le=100)):
    """Aggregate predictive insights across all scored leads."""
    services = get_services()
    top_k = services.settings.insights_top_factors if top_factors is None else top_factors

    try:
        summary = services.insights(top_k)
    except InconsistentSnapshotError as e:
        logger.error(f"Error generating predictive insights: {e}")
        raise HTTPException(status_code=500, detail="Failed to generate predictive insights")

    return summary.to_dict()


@router.get("/top", response_model=List[TopLeadResponse])
async def get_top_leads(limit: Optional[int] = Query(None, ge=0, le=1000)):
    """
    Top predicted leads, probability descending then lead id ascending.

    Defaults to TOP_LEADS_DEFAULT_LIMIT (10) entries.
    """
    services = get_services()
    if limit is None:
        limit = services.settings.top_leads_default_limit

    snapshot = services.prediction_store.get_all()
    top = services.aggregator.top_leads(snapshot, limit, services.lead_repository)
    return [entry.to_dict() for entry in top]


@router.get("/scores")
async def get_scores(limit: int = Query(100, ge=0, le=10000)):
    """All predictive scores, ranked."""
    services = get_services()
    snapshot = services.prediction_store.get_all()
    ranked = services.aggregator.scores(snapshot, limit)
    return {
        "total": len(snapshot),
        "scores": [p.to_dict() for p in ranked],
    }


@router.get("/by-action")
async def get_by_action(per_group: int = Query(20, ge=0, le=1000)):
    """Leads grouped by next-best action."""
    services = get_services()
    snapshot = services.prediction_store.get_all()
    return services.aggregator.group_by_action(snapshot, per_group=per_group)


@router.get("/lead/{lead_id}")
async def get_lead_prediction(lead_id: int):
    """Current prediction for a single lead."""
    services = get_services()
    prediction = services.prediction_store.get(lead_id)
    if prediction is None:
        raise HTTPException(status_code=404, detail="Prediction not found")

    lead = services.lead_repository.get(lead_id)
    data: Dict[str, Any] = prediction.to_dict()
    data["lead"] = lead.to_display() if lead else None
    return data


@router.post("/recompute")
async def recompute_all():
    """Recompute predictions for every lead in the repository."""
    services = get_services()
    results = services.engine.recompute_all(services.lead_repository.list_all())

    stale = 0
    for result in results:
        if result.applied:
            record_prediction(result.prediction.probability, result.prediction.next_best_action.value)
        else:
            stale += 1
            record_stale_prediction()

    return {"recomputed": len(results) - stale, "stale": stale}


@router.post("/lead/{lead_id}/recompute")
async def recompute_lead(lead_id: int):
    """Recompute the prediction for one lead."""
    services = get_services()
    lead = services.lead_repository.get(lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")

    result = services.engine.recompute(lead)
    if result.applied:
        record_prediction(result.prediction.probability, result.prediction.next_best_action.value)
    else:
        record_stale_prediction()

    data = result.prediction.to_dict()
    data["applied"] = result.applied
    return data
