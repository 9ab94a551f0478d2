# backend/app/services/briefs.py
r"""
Brief lifecycle.

    DRAFT --publish--> OPEN --(proposal accepted)--> IN_PROGRESS --complete--> COMPLETED
      \                 \                               \
       +-----------------+------------cancel-------------+--> CANCELLED

IN_PROGRESS is only ever entered by the acceptance cascade
(``app.services.acceptance``); no client-facing call sets it.
"""
from __future__ import annotations

from datetime import datetime
from math import ceil
from typing import Any
from uuid import UUID
import logging

from sqlalchemy import or_

from ..core.config import get_settings
from ..core.errors import BadRequestError, ForbiddenError, NotFoundError
from ..models.brief import Brief, BriefStatus, TERMINAL_BRIEF_STATUSES
from ..models.proposal import Proposal, ProposalStatus
from ..schemas.brief import (
    BrandStats,
    BriefCreate,
    BriefQuery,
    BriefUpdate,
    Requirements,
)
from ..schemas.common import Page, Pagination, parse_input
from .store import RecordStore

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "created_at": Brief.created_at,
    "updated_at": Brief.updated_at,
    "title": Brief.title,
}

CLEARABLE_FIELDS = {"category", "target_delivery_date"}


class BriefService:
    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self.settings = get_settings()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _load(self, brief_id: UUID) -> Brief:
        brief = self.store.first(Brief, Brief.id == brief_id, Brief.deleted_at.is_(None))
        if brief is None:
            raise NotFoundError.for_resource("Brief")
        return brief

    def _load_owned(self, brief_id: UUID, owner_id: UUID) -> Brief:
        brief = self._load(brief_id)
        if brief.brand_id != owner_id:
            raise ForbiddenError("You do not have access to this brief")
        return brief

    def get(self, brief_id: UUID, owner_id: UUID | None = None) -> Brief:
        if owner_id is None:
            return self._load(brief_id)
        return self._load_owned(brief_id, owner_id)

    def get_open(self, brief_id: UUID) -> Brief:
        """Manufacturer view: only OPEN briefs are visible."""
        brief = self._load(brief_id)
        if brief.status != BriefStatus.OPEN:
            raise NotFoundError("Brief not available")
        return brief

    def _page(self, criteria: list[Any], query: BriefQuery) -> Page:
        limit = min(
            query.limit or self.settings.BRIEF_PAGE_SIZE_DEFAULT,
            self.settings.BRIEF_PAGE_SIZE_MAX,
        )
        offset = (query.page - 1) * limit
        column = SORT_COLUMNS[query.sort_by]
        ordering = column.asc() if query.sort_order == "asc" else column.desc()

        total = self.store.count(Brief, *criteria)
        items = self.store.query(
            Brief,
            *criteria,
            order_by=(ordering, Brief.id.asc()),
            limit=limit,
            offset=offset,
        )
        return Page(
            items=items,
            pagination=Pagination(
                page=query.page,
                limit=limit,
                total=total,
                total_pages=ceil(total / limit) if total else 0,
            ),
        )

    def list_by_owner(self, owner_id: UUID, query: BriefQuery | dict | None = None) -> Page:
        query = parse_input(BriefQuery, query or {})
        criteria = [Brief.brand_id == owner_id, Brief.deleted_at.is_(None)]
        if query.status:
            criteria.append(Brief.status == query.status)
        if query.category:
            criteria.append(Brief.category == query.category)
        return self._page(criteria, query)

    def list_open(self, query: BriefQuery | dict | None = None) -> Page:
        """Marketplace listing for manufacturers."""
        query = parse_input(BriefQuery, query or {})
        criteria = [Brief.status == BriefStatus.OPEN, Brief.deleted_at.is_(None)]
        if query.category:
            criteria.append(Brief.category == query.category)
        if query.search:
            pattern = f"%{query.search.strip()}%"
            criteria.append(or_(Brief.title.ilike(pattern), Brief.description.ilike(pattern)))
        return self._page(criteria, query)

    def stats(self, owner_id: UUID) -> BrandStats:
        briefs = self.store.query(Brief, Brief.brand_id == owner_id, Brief.deleted_at.is_(None))
        brief_ids = [b.id for b in briefs]
        if not brief_ids:
            return BrandStats(total_briefs=0, open_briefs=0, pending_proposals=0, accepted_proposals=0)

        in_briefs = [Proposal.brief_id.in_(brief_ids), Proposal.deleted_at.is_(None)]
        return BrandStats(
            total_briefs=len(briefs),
            open_briefs=sum(1 for b in briefs if b.status == BriefStatus.OPEN),
            pending_proposals=self.store.count(
                Proposal,
                *in_briefs,
                Proposal.status.in_([ProposalStatus.SUBMITTED, ProposalStatus.UNDER_REVIEW]),
            ),
            accepted_proposals=self.store.count(
                Proposal, *in_briefs, Proposal.status == ProposalStatus.ACCEPTED
            ),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(
        self,
        owner_id: UUID,
        fields: BriefCreate | dict,
        *,
        ai_generated: bool = False,
    ) -> Brief:
        data = parse_input(BriefCreate, fields)
        currency = data.budget.currency
        if "currency" not in data.budget.model_fields_set:
            currency = self.settings.DEFAULT_CURRENCY

        brief = self.store.insert(
            Brief,
            {
                "brand_id": owner_id,
                "title": data.title,
                "description": data.description,
                "requirements": data.requirements.model_dump(mode="json"),
                "budget_min": data.budget.min,
                "budget_max": data.budget.max,
                "currency": currency,
                "category": data.category,
                "timeline": data.timeline,
                "target_delivery_date": data.target_delivery_date,
                "attachments": list(data.attachments),
                "status": BriefStatus.DRAFT,
                "ai_generated": ai_generated,
            },
        )
        logger.info(
            "Brief created",
            extra={"brief_id": str(brief.id), "step": "brief_create"},
        )
        return brief

    def update(self, brief_id: UUID, owner_id: UUID, partial: BriefUpdate | dict) -> Brief:
        patch = parse_input(BriefUpdate, partial)
        brief = self._load_owned(brief_id, owner_id)
        if brief.status in TERMINAL_BRIEF_STATUSES:
            raise BadRequestError("Cannot modify brief in current status")

        provided = patch.model_dump(exclude_unset=True)
        values: dict[str, Any] = {}
        for key in ("title", "description", "category", "timeline", "target_delivery_date", "attachments"):
            if key not in provided:
                continue
            # Only the optional columns can be cleared with an explicit null
            if provided[key] is None and key not in CLEARABLE_FIELDS:
                continue
            values[key] = provided[key]

        if "requirements" in provided and provided["requirements"] is not None:
            merged = {**(brief.requirements or {}), **provided["requirements"]}
            values["requirements"] = parse_input(Requirements, merged).model_dump(mode="json")

        if patch.budget is not None:
            values["budget_min"] = patch.budget.min
            values["budget_max"] = patch.budget.max
            if "currency" in patch.budget.model_fields_set:
                values["currency"] = patch.budget.currency

        if not values:
            return brief

        updated = self.store.update(Brief, brief.id, values, Brief.deleted_at.is_(None))
        if updated is None:
            raise NotFoundError.for_resource("Brief")
        return updated

    def _transition(
        self,
        brief: Brief,
        target: BriefStatus,
        allowed_from: set[BriefStatus],
        message: str,
        extra_values: dict[str, Any] | None = None,
    ) -> Brief:
        if brief.status not in allowed_from:
            raise BadRequestError(message)
        values = {"status": target, **(extra_values or {})}
        # Conditional on the status we validated, so concurrent transitions cannot both win
        updated = self.store.update(
            Brief,
            brief.id,
            values,
            Brief.status == brief.status,
            Brief.deleted_at.is_(None),
        )
        if updated is None:
            raise BadRequestError(message)
        logger.info(
            "Brief %s -> %s", brief.status.value, target.value,
            extra={"brief_id": str(brief.id), "step": "brief_transition"},
        )
        return updated

    def publish(self, brief_id: UUID, owner_id: UUID) -> Brief:
        brief = self._load_owned(brief_id, owner_id)
        return self._transition(
            brief, BriefStatus.OPEN, {BriefStatus.DRAFT}, "Only draft briefs can be published"
        )

    def cancel(self, brief_id: UUID, owner_id: UUID) -> Brief:
        brief = self._load_owned(brief_id, owner_id)
        non_terminal = set(BriefStatus) - set(TERMINAL_BRIEF_STATUSES)
        return self._transition(
            brief, BriefStatus.CANCELLED, non_terminal, "Brief is already closed"
        )

    def complete(self, brief_id: UUID, owner_id: UUID) -> Brief:
        brief = self._load_owned(brief_id, owner_id)
        return self._transition(
            brief, BriefStatus.COMPLETED, {BriefStatus.IN_PROGRESS}, "Only in-progress briefs can be completed"
        )

    def delete(self, brief_id: UUID, owner_id: UUID) -> None:
        brief = self._load_owned(brief_id, owner_id)
        if brief.status == BriefStatus.IN_PROGRESS:
            raise BadRequestError("Cannot delete a brief with an engagement in progress")
        updated = self.store.update(
            Brief,
            brief.id,
            {"deleted_at": datetime.utcnow()},
            Brief.deleted_at.is_(None),
            Brief.status != BriefStatus.IN_PROGRESS,
        )
        if updated is None:
            raise BadRequestError("Brief could not be deleted in its current state")
        logger.info("Brief soft-deleted", extra={"brief_id": str(brief.id), "step": "brief_delete"})
