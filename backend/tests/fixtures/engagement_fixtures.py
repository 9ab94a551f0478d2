"""
Shared test data for the engagement workflow tests.

Actor ids, canned brief/proposal payloads, and a fake OpenAI-style client
for the brief drafting tests.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Actors
# ---------------------------------------------------------------------------

BRAND_ACTOR = "brand-actor"
OTHER_BRAND_ACTOR = "other-brand-actor"
M1_ACTOR = "m1-actor"          # verified, Apparel
M2_ACTOR = "m2-actor"          # verified, Electronics
M3_ACTOR = "m3-actor"          # unverified, Apparel
STRANGER_ACTOR = "nobody"      # no profile at all


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

def brief_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "title": "Organic cotton t-shirts",
        "description": "Looking for a partner to produce 5000 organic cotton t-shirts in four colours.",
        "requirements": {
            "product_type": "T-shirt",
            "quantity": 5000,
            "specifications": ["100% organic cotton", "180 gsm"],
            "quality_standards": ["GOTS"],
        },
        "budget": {"min": 1000, "max": 5000},
        "category": "Apparel",
        "timeline": "8 weeks",
    }
    payload.update(overrides)
    return payload


def proposal_terms(brief_id: Any, **overrides: Any) -> Dict[str, Any]:
    terms: Dict[str, Any] = {
        "brief_id": str(brief_id),
        "price": 2000,
        "delivery_timeline": "2 weeks",
        "details": {
            "kind": "quote",
            "notes": "Can start next week.",
            "min_order_quantity": 1000,
            "lead_time_days": 14,
        },
    }
    terms.update(overrides)
    return terms


DRAFTED_BRIEF = {
    "title": "Recycled polyester backpacks",
    "description": "Durable everyday backpack made from recycled PET with a padded laptop sleeve.",
    "requirements": {
        "product_type": "Backpack",
        "quantity": 2000,
        "specifications": ["Recycled PET shell", "Padded 15 inch sleeve"],
        "quality_standards": ["GRS"],
        "packaging_notes": "Individually bagged",
    },
    "budget": {"min": 20000, "max": 35000, "currency": "USD"},
    "timeline": "12 weeks",
    "category": "Bags",
}

DRAFT_REQUEST = {
    "product_type": "Backpack",
    "quantity": 2000,
    "target_market": "EU commuters",
    "budget_range": "$20k-$35k",
    "timeline": "12 weeks",
}


# ---------------------------------------------------------------------------
# Fake LLM client
# ---------------------------------------------------------------------------

@dataclass
class FakeCompletions:
    """Stands in for ``client.chat.completions``; records every call."""
    reply: Optional[str] = None
    error: Optional[Exception] = None
    calls: List[Dict[str, Any]] = field(default_factory=list)

    def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeLLMClient:
    def __init__(self, reply: Optional[str] = None, error: Optional[Exception] = None):
        self.completions = FakeCompletions(reply=reply, error=error)
        self.chat = SimpleNamespace(completions=self.completions)


def fenced_json(data: Dict[str, Any]) -> str:
    """Model-style reply: prose around a fenced JSON block."""
    return "Here is your brief:\n```json\n" + json.dumps(data) + "\n```\nLet me know if you need changes."
