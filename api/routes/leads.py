"""
Lead Management API Routes for the Lead Insights API.

Creating a lead scores it immediately; deleting a lead removes its
prediction.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from lead_scoring.lead_repository import Lead, LeadStatus
from ..middleware.metrics import record_prediction
from ..services import get_services

logger = logging.getLogger(__name__)

router = APIRouter()


# Models
class LeadCreate(BaseModel):
    """Lead creation request."""
    institution_name: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    status: LeadStatus = LeadStatus.NOT_CONTACTED
    institution_type: Optional[str] = None
    department: Optional[str] = None
    county: Optional[str] = None
    city: Optional[str] = None
    population: Optional[int] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    website: Optional[str] = None
    last_contacted_at: Optional[datetime] = None
    last_call_outcome: Optional[str] = None
    tech_maturity_score: Optional[int] = None
    enrichment_score: Optional[int] = None
    pain_points: Optional[List[str]] = None
    buying_signals: Optional[List[str]] = None
    decision_makers: Optional[List[Dict[str, Any]]] = None
    recent_news: Optional[List[Dict[str, Any]]] = None
    competitor_analysis: Optional[List[Dict[str, Any]]] = None


class LeadResponse(BaseModel):
    """Lead with its current prediction summary."""
    id: int
    institutionName: str
    state: str
    status: str
    predictedConversionProbability: Optional[int] = None
    nextBestAction: Optional[str] = None


class LeadList(BaseModel):
    """Paginated lead list."""
    leads: List[LeadResponse]
    total: int
    page: int
    page_size: int
    has_next: bool


def _to_response(lead: Lead) -> Dict[str, Any]:
    data = lead.to_display()
    prediction = get_services().prediction_store.get(lead.id)
    if prediction is not None:
        data["predictedConversionProbability"] = prediction.probability
        data["nextBestAction"] = prediction.next_best_action.value
    return data


@router.post("/leads", response_model=LeadResponse)
async def create_lead(request: LeadCreate):
    """Create a lead and score it."""
    services = get_services()
    lead = Lead(id=services.lead_repository.next_id(), **request.model_dump())
    services.lead_repository.add(lead)

    result = services.engine.recompute(lead)
    if result.applied:
        record_prediction(result.prediction.probability, result.prediction.next_best_action.value)

    logger.info(f"Lead created: {lead.id}, probability: {result.prediction.probability}")
    return _to_response(lead)


@router.get("/leads", response_model=LeadList)
async def list_leads(
    status: Optional[LeadStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
):
    """List leads with filtering and pagination."""
    leads = get_services().lead_repository.list_all()
    if status:
        leads = [l for l in leads if l.status == status]

    total = len(leads)
    start = (page - 1) * page_size
    end = start + page_size

    return LeadList(
        leads=[LeadResponse(**_to_response(l)) for l in leads[start:end]],
        total=total,
        page=page,
        page_size=page_size,
        has_next=end < total,
    )


@router.get("/leads/{lead_id}", response_model=LeadResponse)
async def get_lead(lead_id: int):
    """Get a specific lead."""
    lead = get_services().lead_repository.get(lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail="Lead not found")
    return _to_response(lead)


@router.delete("/leads/{lead_id}")
async def delete_lead(lead_id: int):
    """Delete a lead and its prediction."""
    services = get_services()
    if not services.lead_repository.remove(lead_id):
        raise HTTPException(status_code=404, detail="Lead not found")

    services.engine.forget(lead_id)
    return {"message": "Lead deleted", "lead_id": lead_id}
