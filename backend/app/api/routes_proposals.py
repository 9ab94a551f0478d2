from uuid import UUID

from fastapi import APIRouter, Depends

from ..schemas.proposal import (
    ManufacturerStats,
    ProposalCreate,
    ProposalOut,
    ProposalStatusUpdate,
    ProposalWithBrief,
)
from ..services.proposals import ProposalService
from .deps import get_proposal_service, require_brand, require_manufacturer, verify_api_key

router = APIRouter(tags=["proposals"], dependencies=[Depends(verify_api_key)])


@router.post("/proposals", response_model=ProposalOut, status_code=201)
def submit_proposal(
    payload: ProposalCreate,
    manufacturer_id: UUID = Depends(require_manufacturer),
    proposals: ProposalService = Depends(get_proposal_service),
):
    return proposals.create(manufacturer_id, payload)


@router.get("/proposals/mine", response_model=list[ProposalWithBrief])
def list_my_proposals(
    manufacturer_id: UUID = Depends(require_manufacturer),
    proposals: ProposalService = Depends(get_proposal_service),
):
    return proposals.list_mine(manufacturer_id)


@router.get("/proposals/stats", response_model=ManufacturerStats)
def proposal_stats(
    manufacturer_id: UUID = Depends(require_manufacturer),
    proposals: ProposalService = Depends(get_proposal_service),
):
    return proposals.stats(manufacturer_id)


@router.patch("/proposals/{proposal_id}/status", response_model=ProposalOut)
def update_proposal_status(
    proposal_id: UUID,
    payload: ProposalStatusUpdate,
    brand_id: UUID = Depends(require_brand),
    proposals: ProposalService = Depends(get_proposal_service),
):
    """
    Brand decision on a proposal. ACCEPTED starts the engagement; the
    response reflects the proposal write only, follow-up effects are
    best-effort.
    """
    return proposals.update_status(
        proposal_id, brand_id, payload.status, reason=payload.rejection_reason
    )


@router.post("/proposals/{proposal_id}/withdraw", response_model=ProposalOut)
def withdraw_proposal(
    proposal_id: UUID,
    manufacturer_id: UUID = Depends(require_manufacturer),
    proposals: ProposalService = Depends(get_proposal_service),
):
    return proposals.withdraw(proposal_id, manufacturer_id)
