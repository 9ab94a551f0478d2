"""
Tests for outbox.py - Pending effect replay

Covers retry scheduling with exponential backoff, dead-lettering, and the
retention cleanup of delivered effects.
"""
from datetime import datetime, timedelta

from app.models.pending_effect import EffectStatus, PendingEffect


def _always_fails(store, payload):
    raise RuntimeError("still broken")


class TestSweep:
    """Outbox.sweep"""

    def test_successful_replay_marks_delivered(self, outbox, store):
        seen = []
        effect = outbox.record("custom", {"value": 1})

        outcome = outbox.sweep({"custom": lambda s, payload: seen.append(payload)})

        assert outcome == {"delivered": 1, "retrying": 0, "dead": 0}
        assert seen == [{"value": 1}]
        stored = store.get(PendingEffect, effect.id)
        assert stored.status == EffectStatus.DELIVERED
        assert stored.attempts == 1
        assert stored.delivered_at is not None

    def test_failure_backs_off_exponentially(self, outbox, store):
        effect = outbox.record("custom", {})
        base = outbox.settings.OUTBOX_BACKOFF_SECONDS
        now = datetime.utcnow()

        outbox.sweep({"custom": _always_fails}, now=now)
        first = store.get(PendingEffect, effect.id)
        assert first.status == EffectStatus.PENDING
        assert first.attempts == 1
        assert first.last_error == "still broken"
        assert first.next_attempt_at == now + timedelta(seconds=base)

        # Not due yet: nothing happens
        assert outbox.sweep({"custom": _always_fails}, now=now) == {"delivered": 0, "retrying": 0, "dead": 0}

        later = first.next_attempt_at
        outbox.sweep({"custom": _always_fails}, now=later)
        second = store.get(PendingEffect, effect.id)
        assert second.attempts == 2
        assert second.next_attempt_at == later + timedelta(seconds=base * 2)

    def test_dead_after_max_attempts(self, outbox, store, monkeypatch):
        monkeypatch.setattr(outbox.settings, "OUTBOX_MAX_ATTEMPTS", 2)
        effect = outbox.record("custom", {})
        now = datetime.utcnow()

        outbox.sweep({"custom": _always_fails}, now=now)
        outcome = outbox.sweep({"custom": _always_fails}, now=now + timedelta(days=1))

        assert outcome["dead"] == 1
        assert store.get(PendingEffect, effect.id).status == EffectStatus.DEAD
        # Dead effects are never picked up again
        assert outbox.sweep({"custom": _always_fails}, now=now + timedelta(days=30))["dead"] == 0

    def test_unknown_effect_type_goes_straight_to_dead(self, outbox, store):
        effect = outbox.record("nobody-handles-this", {})

        outcome = outbox.sweep({})

        assert outcome == {"delivered": 0, "retrying": 0, "dead": 1}
        assert store.get(PendingEffect, effect.id).status == EffectStatus.DEAD

    def test_payload_is_made_json_safe(self, outbox, profiles):
        effect = outbox.record("custom", {"manufacturer_id": profiles.m1.id})
        assert effect.payload == {"manufacturer_id": str(profiles.m1.id)}


class TestCleanup:
    """Outbox.cleanup_delivered"""

    def test_old_delivered_effects_removed(self, outbox, store):
        old = outbox.record("custom", {"n": 1})
        recent = outbox.record("custom", {"n": 2})
        dead = outbox.record("custom", {"n": 3})
        now = datetime.utcnow()
        retention = timedelta(days=outbox.settings.OUTBOX_RETENTION_DAYS)

        store.update(PendingEffect, old.id, {"status": EffectStatus.DELIVERED, "delivered_at": now - retention - timedelta(days=1)})
        store.update(PendingEffect, recent.id, {"status": EffectStatus.DELIVERED, "delivered_at": now})
        store.update(PendingEffect, dead.id, {"status": EffectStatus.DEAD})

        assert outbox.cleanup_delivered(now=now) == 1
        remaining = {e.id for e in store.query(PendingEffect)}
        assert remaining == {recent.id, dead.id}
