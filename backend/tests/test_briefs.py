"""
Tests for briefs.py - Brief lifecycle

Covers creation and validation, the DRAFT -> OPEN -> ... state machine,
ownership checks, soft deletion, listings and the brand dashboard stats.
"""
from decimal import Decimal
from pathlib import Path
from uuid import uuid4
import warnings

import pytest

from app.core.errors import (
    BadRequestError,
    ForbiddenError,
    NotFoundError,
    ValidationFailedError,
)
from app.models.brief import Brief, BriefStatus
from app.models.proposal import Proposal, ProposalStatus
from app.services import briefs as briefs_module

from tests.fixtures.engagement_fixtures import brief_payload, proposal_terms


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

class TestCreateBrief:
    """Tests for BriefService.create."""

    def test_new_brief_is_draft(self, briefs, profiles):
        """A freshly created brief starts in DRAFT with defaults applied."""
        brief = briefs.create(profiles.brand.id, brief_payload())

        assert brief.status == BriefStatus.DRAFT
        assert brief.brand_id == profiles.brand.id
        assert brief.currency == "USD"
        assert brief.ai_generated is False
        assert brief.budget_min == Decimal("1000")
        assert brief.budget_max == Decimal("5000")
        assert brief.requirements["product_type"] == "T-shirt"
        assert brief.category == "Apparel"

    def test_blank_category_is_stored_as_none(self, briefs, profiles):
        """Whitespace-only category means 'no category'."""
        brief = briefs.create(profiles.brand.id, brief_payload(category="   "))
        assert brief.category is None

    def test_short_title_is_rejected_with_field_detail(self, briefs, profiles):
        """Validation failures carry per-field details."""
        with pytest.raises(ValidationFailedError) as exc_info:
            briefs.create(profiles.brand.id, brief_payload(title="Hat"))

        fields = [d["field"] for d in exc_info.value.details]
        assert "title" in fields

    def test_budget_max_below_min_is_rejected(self, briefs, profiles):
        """Budget max must not be below min."""
        with pytest.raises(ValidationFailedError):
            briefs.create(profiles.brand.id, brief_payload(budget={"min": 5000, "max": 1000}))

    def test_too_many_attachments_rejected(self, briefs, profiles):
        """Attachment references are capped at 10."""
        with pytest.raises(ValidationFailedError):
            briefs.create(
                profiles.brand.id,
                brief_payload(attachments=[f"file-{i}" for i in range(11)]),
            )

    def test_explicit_currency_is_normalised(self, briefs, profiles):
        """Currency codes are upper-cased."""
        brief = briefs.create(
            profiles.brand.id,
            brief_payload(budget={"min": 1000, "max": 5000, "currency": "eur"}),
        )
        assert brief.currency == "EUR"


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class TestPublish:
    """publish succeeds iff the brief is DRAFT."""

    def test_publish_draft_opens_brief(self, briefs, profiles):
        """Scenario: create B1, publish -> OPEN."""
        brief = briefs.create(profiles.brand.id, brief_payload())
        published = briefs.publish(brief.id, profiles.brand.id)
        assert published.status == BriefStatus.OPEN

    @pytest.mark.parametrize("status", [
        BriefStatus.OPEN,
        BriefStatus.MATCHED,
        BriefStatus.IN_PROGRESS,
        BriefStatus.COMPLETED,
        BriefStatus.CANCELLED,
    ])
    def test_publish_non_draft_fails_and_leaves_status(self, briefs, store, profiles, status):
        """Any non-DRAFT status is refused and left untouched."""
        brief = briefs.create(profiles.brand.id, brief_payload())
        store.update(Brief, brief.id, {"status": status})

        with pytest.raises(BadRequestError):
            briefs.publish(brief.id, profiles.brand.id)

        assert store.get(Brief, brief.id).status == status

    def test_publish_by_other_brand_is_forbidden(self, briefs, profiles):
        """Only the owner may publish."""
        brief = briefs.create(profiles.brand.id, brief_payload())
        with pytest.raises(ForbiddenError):
            briefs.publish(brief.id, profiles.other_brand.id)

    def test_publish_unknown_brief_not_found(self, briefs, profiles):
        with pytest.raises(NotFoundError):
            briefs.publish(uuid4(), profiles.brand.id)


class TestCancelAndComplete:
    """Cancellation and completion transitions."""

    def test_cancel_open_brief(self, briefs, open_brief, profiles):
        cancelled = briefs.cancel(open_brief.id, profiles.brand.id)
        assert cancelled.status == BriefStatus.CANCELLED

    def test_cancel_twice_fails(self, briefs, open_brief, profiles):
        """A closed brief cannot be cancelled again."""
        briefs.cancel(open_brief.id, profiles.brand.id)
        with pytest.raises(BadRequestError):
            briefs.cancel(open_brief.id, profiles.brand.id)

    def test_complete_requires_in_progress(self, briefs, store, open_brief, profiles):
        """Only IN_PROGRESS briefs can be completed."""
        with pytest.raises(BadRequestError):
            briefs.complete(open_brief.id, profiles.brand.id)

        store.update(Brief, open_brief.id, {"status": BriefStatus.IN_PROGRESS})
        completed = briefs.complete(open_brief.id, profiles.brand.id)
        assert completed.status == BriefStatus.COMPLETED


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

class TestUpdateBrief:
    """Partial updates."""

    def test_partial_requirements_are_merged(self, briefs, profiles):
        """Patching one requirement keeps the others."""
        brief = briefs.create(profiles.brand.id, brief_payload())
        updated = briefs.update(brief.id, profiles.brand.id, {"requirements": {"quantity": 6000}})

        assert updated.requirements["quantity"] == 6000
        assert updated.requirements["product_type"] == "T-shirt"

    def test_merged_requirements_are_revalidated(self, briefs, profiles):
        """A patch that breaks requirements is rejected."""
        brief = briefs.create(profiles.brand.id, brief_payload())
        with pytest.raises(ValidationFailedError):
            briefs.update(brief.id, profiles.brand.id, {"requirements": {"quantity": 0}})

    def test_unknown_fields_rejected(self, briefs, profiles):
        brief = briefs.create(profiles.brand.id, brief_payload())
        with pytest.raises(ValidationFailedError):
            briefs.update(brief.id, profiles.brand.id, {"status": "OPEN"})

    def test_update_terminal_brief_fails(self, briefs, open_brief, profiles):
        """Cancelled briefs are read-only."""
        briefs.cancel(open_brief.id, profiles.brand.id)
        with pytest.raises(BadRequestError):
            briefs.update(open_brief.id, profiles.brand.id, {"title": "A brand new title"})

    def test_category_can_be_cleared(self, briefs, profiles):
        brief = briefs.create(profiles.brand.id, brief_payload())
        updated = briefs.update(brief.id, profiles.brand.id, {"category": None})
        assert updated.category is None

    def test_update_bumps_updated_at(self, briefs, profiles):
        brief = briefs.create(profiles.brand.id, brief_payload())
        updated = briefs.update(brief.id, profiles.brand.id, {"timeline": "10 weeks"})
        assert updated.timeline == "10 weeks"
        assert updated.updated_at >= brief.updated_at


class TestDeleteBrief:
    """Soft deletion."""

    def test_deleted_brief_disappears(self, briefs, profiles):
        brief = briefs.create(profiles.brand.id, brief_payload())
        briefs.delete(brief.id, profiles.brand.id)

        with pytest.raises(NotFoundError):
            briefs.get(brief.id, owner_id=profiles.brand.id)
        page = briefs.list_by_owner(profiles.brand.id)
        assert page.pagination.total == 0

    def test_delete_in_progress_refused(self, briefs, store, open_brief, profiles):
        """An engagement in progress cannot be deleted."""
        store.update(Brief, open_brief.id, {"status": BriefStatus.IN_PROGRESS})
        with pytest.raises(BadRequestError):
            briefs.delete(open_brief.id, profiles.brand.id)
        assert store.get(Brief, open_brief.id).deleted_at is None


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestListings:
    """Owner listing, marketplace listing and stats."""

    def test_owner_listing_paginates(self, briefs, profiles):
        for i in range(3):
            briefs.create(profiles.brand.id, brief_payload(title=f"Brief number {i}"))
        briefs.create(profiles.other_brand.id, brief_payload())

        page = briefs.list_by_owner(profiles.brand.id, {"limit": 2})

        assert len(page.items) == 2
        assert page.pagination.total == 3
        assert page.pagination.total_pages == 2

    def test_owner_listing_sorts_by_title(self, briefs, profiles):
        for title in ("Charlie shirts", "Alpha shirts", "Bravo shirts"):
            briefs.create(profiles.brand.id, brief_payload(title=title))

        page = briefs.list_by_owner(profiles.brand.id, {"sort_by": "title", "sort_order": "asc"})
        assert [b.title for b in page.items] == ["Alpha shirts", "Bravo shirts", "Charlie shirts"]

    def test_marketplace_lists_only_open(self, briefs, profiles, open_brief):
        """Drafts are never visible to manufacturers."""
        briefs.create(profiles.brand.id, brief_payload(title="Still a draft"))
        page = briefs.list_open()
        assert [b.id for b in page.items] == [open_brief.id]

    def test_marketplace_search_matches_title(self, briefs, profiles, open_brief):
        other = briefs.create(profiles.brand.id, brief_payload(title="Ceramic mugs"))
        briefs.publish(other.id, profiles.brand.id)

        page = briefs.list_open({"search": "mugs"})
        assert [b.id for b in page.items] == [other.id]

    def test_get_open_hides_drafts(self, briefs, profiles):
        brief = briefs.create(profiles.brand.id, brief_payload())
        with pytest.raises(NotFoundError):
            briefs.get_open(brief.id)

    def test_get_by_other_brand_forbidden(self, briefs, profiles, open_brief):
        with pytest.raises(ForbiddenError):
            briefs.get(open_brief.id, owner_id=profiles.other_brand.id)

    def test_stats_counts_briefs_and_proposals(self, briefs, proposals, store, profiles, open_brief):
        briefs.create(profiles.brand.id, brief_payload(title="Draft brief here"))
        proposals.create(profiles.m1.id, proposal_terms(open_brief.id))
        p2 = proposals.create(profiles.m2.id, proposal_terms(open_brief.id))
        store.update(Proposal, p2.id, {"status": ProposalStatus.REJECTED})

        stats = briefs.stats(profiles.brand.id)

        assert stats.total_briefs == 2
        assert stats.open_briefs == 1
        assert stats.pending_proposals == 1
        assert stats.accepted_proposals == 0

    def test_stats_without_briefs(self, briefs, profiles):
        stats = briefs.stats(profiles.other_brand.id)
        assert stats.total_briefs == 0


# ---------------------------------------------------------------------------
# Module
# ---------------------------------------------------------------------------

class TestModuleSource:
    def test_state_diagram_compiles_without_escape_warnings(self):
        source = Path(briefs_module.__file__).read_text()

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            compile(source, briefs_module.__file__, "exec")

        assert "\\                 \\" in briefs_module.__doc__
