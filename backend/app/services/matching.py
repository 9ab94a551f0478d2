# backend/app/services/matching.py
"""
Category-overlap matching between briefs and manufacturers.

Scores are nominal rather than continuous because capabilities are plain
category tags:

- brief -> manufacturers: verified manufacturers only. 100 when the brief has a
  category and the manufacturer lists it, 50 for every verified manufacturer
  when the brief has no category.
- manufacturer -> briefs: the most recent MATCHING_OPEN_BRIEF_WINDOW open
  briefs whose category is one of the manufacturer's; always 100. A
  manufacturer without categories gets nothing.
"""
from __future__ import annotations

from uuid import UUID
import logging

from ..core.config import get_settings
from ..core.errors import NotFoundError
from ..models.brief import Brief, BriefStatus
from ..schemas.brief import BriefOut
from ..schemas.matching import (
    BriefMatchResult,
    BriefRecommendations,
    ManufacturerMatch,
    ManufacturerRecommendations,
)
from .directory import ProfileDirectory
from .store import RecordStore

logger = logging.getLogger(__name__)

CATEGORY_MATCH_SCORE = 100
VERIFIED_BASELINE_SCORE = 50


class MatchingEngine:
    def __init__(self, store: RecordStore, directory: ProfileDirectory) -> None:
        self.store = store
        self.directory = directory
        self.settings = get_settings()

    def recommend_manufacturers_for(self, brief_id: UUID) -> ManufacturerRecommendations:
        brief = self.store.first(Brief, Brief.id == brief_id, Brief.deleted_at.is_(None))
        if brief is None:
            raise NotFoundError.for_resource("Brief")

        category = (brief.category or "").strip() or None
        manufacturers = self.directory.find_manufacturers(verified_only=True, category=category)

        if category:
            score = CATEGORY_MATCH_SCORE
            reasons = [f"Matches category: {category}"]
        else:
            score = VERIFIED_BASELINE_SCORE
            reasons = ["Verified manufacturer"]

        matches = [
            ManufacturerMatch(
                manufacturer_id=m.id,
                company_name=m.company_name,
                match_score=score,
                match_reasons=list(reasons),
                verification_status=m.verification_status,
                location=m.factory_location,
                min_order_quantity=m.min_order_quantity,
            )
            for m in manufacturers
        ]
        logger.info(
            "Recommended %d manufacturers", len(matches),
            extra={"brief_id": str(brief.id), "step": "match_manufacturers"},
        )
        return ManufacturerRecommendations(matches=matches, count=len(matches))

    def recommend_briefs_for(self, manufacturer_id: UUID) -> BriefRecommendations:
        profile = self.directory.get_manufacturer(manufacturer_id)
        if profile is None:
            raise NotFoundError.for_resource("Manufacturer profile")
        categories = set(profile.categories)
        if not categories:
            return BriefRecommendations()

        # Bounded window of recent open briefs, filtered in process
        recent_open = self.store.query(
            Brief,
            Brief.status == BriefStatus.OPEN,
            Brief.deleted_at.is_(None),
            order_by=(Brief.created_at.desc(),),
            limit=self.settings.MATCHING_OPEN_BRIEF_WINDOW,
        )

        matches = [
            BriefMatchResult(
                brief_id=brief.id,
                title=brief.title,
                match_score=CATEGORY_MATCH_SCORE,
                match_reasons=[f"Matches capability: {brief.category}"],
                brief=BriefOut.model_validate(brief),
            )
            for brief in recent_open
            if brief.category in categories
        ]
        return BriefRecommendations(matches=matches, count=len(matches))
