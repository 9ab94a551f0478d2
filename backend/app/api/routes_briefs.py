from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from ..core.errors import ForbiddenError
from ..models.brief import BriefStatus
from ..schemas.activity import ExecutionLogEntryOut, ExecutionUpdateCreate
from ..schemas.brief import (
    BrandStats,
    BriefCreate,
    BriefGenerateRequest,
    BriefOut,
    BriefQuery,
    BriefUpdate,
)
from ..schemas.common import Page
from ..schemas.matching import ManufacturerRecommendations
from ..schemas.proposal import ProposalWithManufacturer
from ..services.brief_drafting import BriefDraftingService
from ..services.briefs import BriefService
from ..services.execution_log import ExecutionLog
from ..services.matching import MatchingEngine
from ..services.proposals import ProposalService
from .deps import (
    Caller,
    get_brief_service,
    get_caller,
    get_drafting_service,
    get_execution_log,
    get_matching_engine,
    get_proposal_service,
    require_brand,
    verify_api_key,
)

router = APIRouter(tags=["briefs"], dependencies=[Depends(verify_api_key)])


def _page_out(page: Page) -> Page[BriefOut]:
    return Page[BriefOut](
        items=[BriefOut.model_validate(b) for b in page.items],
        pagination=page.pagination,
    )


@router.post("/briefs", response_model=BriefOut, status_code=201)
def create_brief(
    payload: BriefCreate,
    brand_id: UUID = Depends(require_brand),
    briefs: BriefService = Depends(get_brief_service),
):
    return briefs.create(brand_id, payload)


@router.post("/briefs/generate", response_model=BriefOut, status_code=201)
def generate_brief(
    payload: BriefGenerateRequest,
    brand_id: UUID = Depends(require_brand),
    drafting: BriefDraftingService = Depends(get_drafting_service),
):
    return drafting.generate(brand_id, payload)


@router.get("/briefs", response_model=Page[BriefOut])
def list_briefs(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: BriefStatus | None = None,
    category: str | None = None,
    search: str | None = None,
    sort_by: str = Query("created_at", pattern="^(created_at|updated_at|title)$"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    caller: Caller = Depends(get_caller),
    briefs: BriefService = Depends(get_brief_service),
):
    """Brands see their own briefs; manufacturers see the open marketplace."""
    query = BriefQuery(
        page=page,
        limit=limit,
        status=status,
        category=category,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    brand_id = caller.brand_id
    if brand_id is not None:
        return _page_out(briefs.list_by_owner(brand_id, query))
    if caller.manufacturer_id is not None:
        return _page_out(briefs.list_open(query))
    raise ForbiddenError("A brand or manufacturer profile is required")


@router.get("/briefs/stats", response_model=BrandStats)
def brief_stats(
    brand_id: UUID = Depends(require_brand),
    briefs: BriefService = Depends(get_brief_service),
):
    return briefs.stats(brand_id)


@router.get("/briefs/{brief_id}", response_model=BriefOut)
def get_brief(
    brief_id: UUID,
    caller: Caller = Depends(get_caller),
    briefs: BriefService = Depends(get_brief_service),
):
    brand_id = caller.brand_id
    if brand_id is not None:
        return briefs.get(brief_id, owner_id=brand_id)
    if caller.manufacturer_id is not None:
        return briefs.get_open(brief_id)
    raise ForbiddenError("A brand or manufacturer profile is required")


@router.patch("/briefs/{brief_id}", response_model=BriefOut)
def update_brief(
    brief_id: UUID,
    payload: BriefUpdate,
    brand_id: UUID = Depends(require_brand),
    briefs: BriefService = Depends(get_brief_service),
):
    return briefs.update(brief_id, brand_id, payload)


@router.post("/briefs/{brief_id}/publish", response_model=BriefOut)
def publish_brief(
    brief_id: UUID,
    brand_id: UUID = Depends(require_brand),
    briefs: BriefService = Depends(get_brief_service),
):
    return briefs.publish(brief_id, brand_id)


@router.post("/briefs/{brief_id}/cancel", response_model=BriefOut)
def cancel_brief(
    brief_id: UUID,
    brand_id: UUID = Depends(require_brand),
    briefs: BriefService = Depends(get_brief_service),
):
    return briefs.cancel(brief_id, brand_id)


@router.post("/briefs/{brief_id}/complete", response_model=BriefOut)
def complete_brief(
    brief_id: UUID,
    brand_id: UUID = Depends(require_brand),
    briefs: BriefService = Depends(get_brief_service),
):
    return briefs.complete(brief_id, brand_id)


@router.delete("/briefs/{brief_id}", status_code=204)
def delete_brief(
    brief_id: UUID,
    brand_id: UUID = Depends(require_brand),
    briefs: BriefService = Depends(get_brief_service),
):
    briefs.delete(brief_id, brand_id)
    return Response(status_code=204)


@router.get("/briefs/{brief_id}/proposals", response_model=list[ProposalWithManufacturer])
def list_brief_proposals(
    brief_id: UUID,
    brand_id: UUID = Depends(require_brand),
    proposals: ProposalService = Depends(get_proposal_service),
):
    return proposals.list_for_brief(brief_id, brand_id)


@router.get("/briefs/{brief_id}/recommendations", response_model=ManufacturerRecommendations)
def recommend_manufacturers(
    brief_id: UUID,
    brand_id: UUID = Depends(require_brand),
    briefs: BriefService = Depends(get_brief_service),
    matching: MatchingEngine = Depends(get_matching_engine),
):
    # Ownership check before exposing the shortlist
    briefs.get(brief_id, owner_id=brand_id)
    return matching.recommend_manufacturers_for(brief_id)


@router.get("/briefs/{brief_id}/updates", response_model=list[ExecutionLogEntryOut])
def list_project_updates(
    brief_id: UUID,
    caller: Caller = Depends(get_caller),
    execution_log: ExecutionLog = Depends(get_execution_log),
):
    return execution_log.list_for_brief(brief_id, caller.actor_id)


@router.post("/briefs/{brief_id}/updates", response_model=ExecutionLogEntryOut, status_code=201)
def post_project_update(
    brief_id: UUID,
    payload: ExecutionUpdateCreate,
    caller: Caller = Depends(get_caller),
    execution_log: ExecutionLog = Depends(get_execution_log),
):
    return execution_log.post_update(brief_id, caller.actor_id, payload.content, payload.entry_type)
