from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Mapping
import json
import logging

from ..core.celery_app import celery_app
from ..core.config import get_settings
from ..models.pending_effect import EffectStatus, PendingEffect
from .store import RecordStore

logger = logging.getLogger(__name__)

EffectHandler = Callable[[RecordStore, dict[str, Any]], None]


def _json_safe(payload: dict[str, Any]) -> dict[str, Any]:
    # UUIDs, Decimals and enums become strings so the payload survives JSON storage
    return json.loads(json.dumps(payload, default=str))


class Outbox:
    def __init__(self, store: RecordStore) -> None:
        self.store = store
        self.settings = get_settings()

    def record(self, effect_type: str, payload: dict[str, Any]) -> PendingEffect | None:
        """
        Queue an effect for replay. If even this write fails there is nothing
        left to fall back on; the failure is logged and dropped.
        """
        try:
            effect = self.store.insert(
                PendingEffect,
                {
                    "effect_type": effect_type,
                    "payload": _json_safe(payload),
                    "status": EffectStatus.PENDING,
                    "attempts": 0,
                    "next_attempt_at": datetime.utcnow(),
                },
            )
        except Exception:
            logger.exception(
                "Failed to queue pending effect",
                extra={"effect_type": effect_type, "step": "outbox"},
            )
            return None

        logger.warning(
            "Queued pending effect for retry",
            extra={"effect_id": str(effect.id), "effect_type": effect_type, "step": "outbox"},
        )
        return effect

    def sweep(
        self,
        handlers: Mapping[str, EffectHandler],
        now: datetime | None = None,
    ) -> dict[str, int]:
        """
        Replay due effects once each. Returns counts per outcome.
        """
        now = now or datetime.utcnow()
        due = self.store.query(
            PendingEffect,
            PendingEffect.status == EffectStatus.PENDING,
            PendingEffect.next_attempt_at <= now,
            order_by=(PendingEffect.created_at.asc(),),
            limit=self.settings.OUTBOX_BATCH_SIZE,
        )

        outcome = {"delivered": 0, "retrying": 0, "dead": 0}
        for effect in due:
            extra = {"effect_id": str(effect.id), "effect_type": effect.effect_type, "step": "outbox_sweep"}
            handler = handlers.get(effect.effect_type)
            try:
                if handler is None:
                    raise LookupError(f"No handler for effect type {effect.effect_type!r}")
                handler(self.store, effect.payload)
            except Exception as e:
                attempts = effect.attempts + 1
                if attempts >= self.settings.OUTBOX_MAX_ATTEMPTS or handler is None:
                    status = EffectStatus.DEAD
                    outcome["dead"] += 1
                    logger.error("Pending effect gave up after %d attempts", attempts, extra=extra)
                else:
                    status = EffectStatus.PENDING
                    outcome["retrying"] += 1
                    logger.warning("Pending effect replay failed: %s", e, extra=extra)
                backoff = self.settings.OUTBOX_BACKOFF_SECONDS * (2 ** (attempts - 1))
                self.store.update(
                    PendingEffect,
                    effect.id,
                    {
                        "status": status,
                        "attempts": attempts,
                        "last_error": str(e)[:2000],
                        "next_attempt_at": now + timedelta(seconds=backoff),
                    },
                )
                continue

            self.store.update(
                PendingEffect,
                effect.id,
                {
                    "status": EffectStatus.DELIVERED,
                    "attempts": effect.attempts + 1,
                    "delivered_at": now,
                    "last_error": None,
                },
            )
            outcome["delivered"] += 1

        if due:
            logger.info(
                "Swept pending effects: %s", outcome,
                extra={"step": "outbox_sweep"},
            )
        return outcome

    def cleanup_delivered(self, now: datetime | None = None) -> int:
        now = now or datetime.utcnow()
        cutoff = now - timedelta(days=self.settings.OUTBOX_RETENTION_DAYS)
        with self.store.session() as db:
            return (
                db.query(PendingEffect)
                .filter(
                    PendingEffect.status == EffectStatus.DELIVERED,
                    PendingEffect.delivered_at < cutoff,
                )
                .delete(synchronize_session=False)
            )


@celery_app.task(name="app.services.outbox.sweep_pending_effects")
def sweep_pending_effects() -> dict[str, int]:
    """Periodic replay of cascade effects that failed inline."""
    from .acceptance import EFFECT_HANDLERS

    return Outbox(RecordStore()).sweep(EFFECT_HANDLERS)


@celery_app.task(name="app.services.outbox.cleanup_delivered")
def cleanup_delivered() -> int:
    """
    Periodic task to enforce outbox retention.

    Delivered effects older than OUTBOX_RETENTION_DAYS are deleted; DEAD
    effects are kept for manual inspection.
    """
    deleted = Outbox(RecordStore()).cleanup_delivered()
    logger.info(
        "Deleted %d delivered pending effects", deleted,
        extra={"step": "outbox_retention"},
    )
    return deleted
