from uuid import UUID

from fastapi import APIRouter, Depends

from ..schemas.matching import BriefRecommendations
from ..services.matching import MatchingEngine
from .deps import get_matching_engine, require_manufacturer, verify_api_key

router = APIRouter(tags=["matching"], dependencies=[Depends(verify_api_key)])


@router.get("/matches/briefs", response_model=BriefRecommendations)
def recommend_briefs(
    manufacturer_id: UUID = Depends(require_manufacturer),
    matching: MatchingEngine = Depends(get_matching_engine),
):
    return matching.recommend_briefs_for(manufacturer_id)
