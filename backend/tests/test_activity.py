"""
Tests for notifications.py and execution_log.py

Covers the best-effort emitter, recipient inbox operations, and project
updates restricted to the two engagement participants.
"""
from uuid import uuid4

import pytest

from app.core.errors import BadRequestError, ForbiddenError, NotFoundError
from app.models.execution_log import EntryType
from app.models.notification import NotificationType
from app.models.pending_effect import PendingEffect
from app.models.proposal import ProposalStatus

from tests.fixtures.engagement_fixtures import (
    BRAND_ACTOR,
    M1_ACTOR,
    M2_ACTOR,
    proposal_terms,
)


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class TestNotificationEmitter:
    """Best-effort emission."""

    def test_emit_writes_notification(self, notifier):
        note = notifier.emit(BRAND_ACTOR, NotificationType.BRIEF_MATCHED, "Matched", "You have a match", {"x": "1"})
        assert note is not None
        assert note.is_read is False
        assert note.data == {"x": "1"}

    def test_emit_without_recipient_is_skipped(self, notifier, store):
        assert notifier.emit(None, NotificationType.BRIEF_MATCHED, "t", "m") is None
        assert store.count(PendingEffect) == 0

    def test_emit_failure_is_queued_not_raised(self, notifier, store, monkeypatch):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(notifier, "create", broken)

        assert notifier.emit(BRAND_ACTOR, NotificationType.BRIEF_MATCHED, "t", "m") is None
        effect = store.first(PendingEffect)
        assert effect.effect_type == "notification"
        assert effect.payload["type"] == "BRIEF_MATCHED"


class TestInbox:
    """Recipient-side listing and read markers."""

    def test_list_and_unread_count(self, notifier):
        for i in range(3):
            notifier.create(BRAND_ACTOR, NotificationType.PROPOSAL_RECEIVED, f"n{i}", "m")
        notifier.create(M1_ACTOR, NotificationType.PROPOSAL_ACCEPTED, "other", "m")

        assert len(notifier.list_for_recipient(BRAND_ACTOR)) == 3
        assert len(notifier.list_for_recipient(BRAND_ACTOR, limit=2)) == 2
        assert notifier.unread_count(BRAND_ACTOR) == 3

    def test_mark_read(self, notifier):
        note = notifier.create(BRAND_ACTOR, NotificationType.PROPOSAL_RECEIVED, "t", "m")

        updated = notifier.mark_read(note.id, BRAND_ACTOR)

        assert updated.is_read is True
        assert notifier.unread_count(BRAND_ACTOR) == 0
        assert notifier.list_for_recipient(BRAND_ACTOR, unread_only=True) == []

    def test_cannot_mark_someone_elses_notification(self, notifier):
        note = notifier.create(BRAND_ACTOR, NotificationType.PROPOSAL_RECEIVED, "t", "m")
        with pytest.raises(NotFoundError):
            notifier.mark_read(note.id, M1_ACTOR)

    def test_mark_read_unknown(self, notifier):
        with pytest.raises(NotFoundError):
            notifier.mark_read(uuid4(), BRAND_ACTOR)

    def test_mark_all_read(self, notifier):
        for _ in range(2):
            notifier.create(BRAND_ACTOR, NotificationType.PROPOSAL_RECEIVED, "t", "m")
        notifier.create(M1_ACTOR, NotificationType.PROPOSAL_ACCEPTED, "t", "m")

        assert notifier.mark_all_read(BRAND_ACTOR) == 2
        assert notifier.unread_count(BRAND_ACTOR) == 0
        assert notifier.unread_count(M1_ACTOR) == 1


# ---------------------------------------------------------------------------
# Execution log
# ---------------------------------------------------------------------------

@pytest.fixture
def engagement(proposals, profiles, open_brief):
    """open_brief with M1's proposal accepted (brief IN_PROGRESS)."""
    p1 = proposals.create(profiles.m1.id, proposal_terms(open_brief.id))
    proposals.update_status(p1.id, profiles.brand.id, ProposalStatus.ACCEPTED)
    return open_brief


class TestExecutionLog:
    """Project updates between brand and accepted manufacturer."""

    def test_brand_update_notifies_manufacturer(self, execution_log, notifier, engagement):
        entry = execution_log.post_update(engagement.id, BRAND_ACTOR, "Samples approved", EntryType.MILESTONE)

        assert entry.entry_type == EntryType.MILESTONE
        assert entry.author_id == BRAND_ACTOR
        types = [n.type for n in notifier.list_for_recipient(M1_ACTOR)]
        assert NotificationType.PROJECT_UPDATE in types

    def test_manufacturer_update_notifies_brand(self, execution_log, notifier, engagement):
        execution_log.post_update(engagement.id, M1_ACTOR, "Cutting started")

        updates = [
            n for n in notifier.list_for_recipient(BRAND_ACTOR)
            if n.type == NotificationType.PROJECT_UPDATE
        ]
        assert len(updates) == 1
        assert updates[0].data["brief_id"] == str(engagement.id)

    def test_outsider_cannot_post_or_read(self, execution_log, engagement):
        with pytest.raises(ForbiddenError):
            execution_log.post_update(engagement.id, M2_ACTOR, "Let me in")
        with pytest.raises(ForbiddenError):
            execution_log.list_for_brief(engagement.id, M2_ACTOR)

    def test_updates_require_in_progress(self, execution_log, briefs, profiles, engagement):
        briefs.complete(engagement.id, profiles.brand.id)
        with pytest.raises(BadRequestError):
            execution_log.post_update(engagement.id, BRAND_ACTOR, "Late note")

    def test_list_newest_first_includes_kickoff_milestone(self, execution_log, engagement):
        update = execution_log.post_update(engagement.id, M1_ACTOR, "Week 1 done", EntryType.UPDATE)

        entries = execution_log.list_for_brief(engagement.id, BRAND_ACTOR)

        assert len(entries) == 2
        assert {e.entry_type for e in entries} == {EntryType.MILESTONE, EntryType.UPDATE}
        assert entries[0].created_at >= entries[1].created_at
        assert update.id in {e.id for e in entries}

    def test_missing_brief(self, execution_log, profiles):
        with pytest.raises(NotFoundError):
            execution_log.list_for_brief(uuid4(), BRAND_ACTOR)
