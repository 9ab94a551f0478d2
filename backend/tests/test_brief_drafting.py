"""
Tests for brief_drafting.py - AI-assisted brief drafts

The LLM client is replaced by ``FakeLLMClient``; nothing leaves the process.
"""
from decimal import Decimal

import pytest

from app.core.errors import InternalError, ValidationFailedError
from app.models.brief import Brief, BriefStatus
from app.services.brief_drafting import (
    SYSTEM_PROMPT,
    BriefDraftingService,
    build_drafting_prompt,
)
from app.schemas.brief import BriefGenerateRequest

from tests.fixtures.engagement_fixtures import (
    DRAFT_REQUEST,
    DRAFTED_BRIEF,
    FakeLLMClient,
    fenced_json,
)


def _service(briefs, **client_kwargs):
    client = FakeLLMClient(**client_kwargs)
    return BriefDraftingService(briefs, client=client), client


# ---------------------------------------------------------------------------
# Prompt
# ---------------------------------------------------------------------------

class TestPrompt:
    def test_includes_request_fields(self):
        prompt = build_drafting_prompt(BriefGenerateRequest(**DRAFT_REQUEST))

        assert "Product Type: Backpack" in prompt
        assert "Quantity: 2000 units" in prompt
        assert "Target Market: EU commuters" in prompt
        assert "Budget Range: $20k-$35k" in prompt

    def test_optional_fields_omitted(self):
        prompt = build_drafting_prompt(BriefGenerateRequest(product_type="Mugs", quantity=300))

        assert "Target Market" not in prompt
        assert "Additional Details" not in prompt


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------

class TestGenerate:
    def test_creates_ai_generated_draft(self, briefs, profiles, store):
        service, client = _service(briefs, reply=fenced_json(DRAFTED_BRIEF))

        brief = service.generate(profiles.brand.id, DRAFT_REQUEST)

        assert brief.status == BriefStatus.DRAFT
        assert brief.ai_generated is True
        assert brief.brand_id == profiles.brand.id
        assert brief.title == DRAFTED_BRIEF["title"]
        assert brief.category == "Bags"
        assert Decimal(brief.budget_min) == Decimal("20000")
        assert store.count(Brief) == 1

        call = client.completions.calls[0]
        assert call["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
        assert "Backpack" in call["messages"][1]["content"]

    def test_missing_requirements_fall_back_to_request(self, briefs, profiles):
        drafted = dict(DRAFTED_BRIEF, requirements={"specifications": ["Water resistant"]})
        service, _ = _service(briefs, reply=fenced_json(drafted))

        brief = service.generate(profiles.brand.id, DRAFT_REQUEST)

        assert brief.requirements["product_type"] == "Backpack"
        assert brief.requirements["quantity"] == 2000

    def test_provider_failure(self, briefs, profiles, store):
        service, _ = _service(briefs, error=RuntimeError("rate limited"))

        with pytest.raises(InternalError, match="Failed to generate brief"):
            service.generate(profiles.brand.id, DRAFT_REQUEST)
        assert store.count(Brief) == 0

    def test_reply_without_json(self, briefs, profiles):
        service, _ = _service(briefs, reply="Sorry, I can't help with that.")

        with pytest.raises(InternalError, match="Failed to parse AI response"):
            service.generate(profiles.brand.id, DRAFT_REQUEST)

    def test_malformed_json(self, briefs, profiles):
        service, _ = _service(briefs, reply='{"title": "Broken", }')

        with pytest.raises(InternalError):
            service.generate(profiles.brand.id, DRAFT_REQUEST)

    @pytest.mark.parametrize("field, value", [
        ("requirements", "cotton tees"),
        ("requirements", ["Water resistant"]),
        ("budget", "20k-35k"),
    ])
    def test_non_object_fields_are_parse_failures(self, briefs, profiles, store, field, value):
        service, _ = _service(briefs, reply=fenced_json(dict(DRAFTED_BRIEF, **{field: value})))

        with pytest.raises(InternalError, match="Failed to parse AI response"):
            service.generate(profiles.brand.id, DRAFT_REQUEST)
        assert store.count(Brief) == 0

    def test_invalid_draft_is_rejected(self, briefs, profiles, store):
        """A model reply that fails brief validation is not stored."""
        drafted = dict(DRAFTED_BRIEF, title="Bag", budget={"min": 5000, "max": 100})
        service, _ = _service(briefs, reply=fenced_json(drafted))

        with pytest.raises(ValidationFailedError):
            service.generate(profiles.brand.id, DRAFT_REQUEST)
        assert store.count(Brief) == 0

    def test_invalid_request(self, briefs, profiles):
        service, client = _service(briefs, reply=fenced_json(DRAFTED_BRIEF))

        with pytest.raises(ValidationFailedError):
            service.generate(profiles.brand.id, {"product_type": "Backpack", "quantity": 0})
        assert client.completions.calls == []
