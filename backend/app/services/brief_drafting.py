# backend/app/services/brief_drafting.py
"""
AI-assisted brief drafting.

A short product description goes in, a DRAFT brief flagged ``ai_generated``
comes out. The model output is treated as untrusted input: it goes through the
same ``BriefCreate`` validation as a hand-written brief.
"""
from __future__ import annotations

from typing import Any
from uuid import UUID
import logging

from ..core.errors import InternalError
from ..models.brief import Brief
from ..schemas.brief import BriefCreate, BriefGenerateRequest
from ..schemas.common import parse_input
from .briefs import BriefService
from .llm import LLMResponseError, complete_chat, extract_json_object, get_llm_client

logger = logging.getLogger(__name__)

DRAFTING_TEMPERATURE = 0.7
DRAFTING_MAX_TOKENS = 2000

SYSTEM_PROMPT = """You are an expert manufacturing brief writer. Generate detailed, professional project briefs for brands looking to manufacture products.
Return ONLY a valid JSON object with this structure:
{
  "title": "Brief title",
  "description": "Detailed description (at least two sentences)",
  "requirements": {
    "product_type": "Type of product",
    "quantity": 1000,
    "specifications": ["spec1", "spec2"],
    "quality_standards": ["standard1"],
    "packaging_notes": "Packaging details",
    "additional_notes": "Any extra notes"
  },
  "budget": {"min": 1000, "max": 5000, "currency": "USD"},
  "timeline": "Expected timeline",
  "category": "Product category"
}"""


def build_drafting_prompt(request: BriefGenerateRequest) -> str:
    lines = [
        "Generate a detailed manufacturing brief for the following:",
        "",
        f"Product Type: {request.product_type}",
        f"Quantity: {request.quantity} units",
    ]
    if request.target_market:
        lines.append(f"Target Market: {request.target_market}")
    if request.budget_range:
        lines.append(f"Budget Range: {request.budget_range}")
    if request.timeline:
        lines.append(f"Desired Timeline: {request.timeline}")
    if request.additional_details:
        lines.append(f"Additional Details: {request.additional_details}")
    lines.append("")
    lines.append(
        "Please generate a comprehensive brief with appropriate specifications, "
        "quality standards, and realistic budget estimates based on the product type and quantity."
    )
    return "\n".join(lines)


class BriefDraftingService:
    def __init__(self, briefs: BriefService, client: Any | None = None) -> None:
        self.briefs = briefs
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = get_llm_client()
        return self._client

    def generate(self, owner_id: UUID, request: BriefGenerateRequest | dict) -> Brief:
        request = parse_input(BriefGenerateRequest, request)
        prompt = build_drafting_prompt(request)

        try:
            reply = complete_chat(
                self.client,
                SYSTEM_PROMPT,
                prompt,
                temperature=DRAFTING_TEMPERATURE,
                max_tokens=DRAFTING_MAX_TOKENS,
            )
        except Exception as e:
            logger.error("Brief drafting call failed: %s", e, extra={"step": "brief_drafting"})
            raise InternalError("Failed to generate brief") from e

        try:
            drafted = self._to_payload(reply, request)
        except LLMResponseError as e:
            logger.warning("Unusable drafting response: %s", e, extra={"step": "brief_drafting"})
            raise InternalError("Failed to parse AI response") from e

        # Raises ValidationFailedError when the model produced an invalid brief
        fields = parse_input(BriefCreate, drafted)
        return self.briefs.create(owner_id, fields, ai_generated=True)

    @staticmethod
    def _to_payload(reply: str, request: BriefGenerateRequest) -> dict[str, Any]:
        data = extract_json_object(reply)
        requirements = dict(_object_field(data, "requirements"))
        # Fall back to the request when the model leaves these out
        requirements.setdefault("product_type", request.product_type)
        requirements.setdefault("quantity", request.quantity)

        payload: dict[str, Any] = {
            "title": data.get("title"),
            "description": data.get("description"),
            "requirements": requirements,
            "budget": _object_field(data, "budget"),
            "timeline": data.get("timeline") or request.timeline,
        }
        if data.get("category"):
            payload["category"] = data["category"]
        return payload


def _object_field(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise LLMResponseError(f"Expected an object for {key!r}, got {type(value).__name__}")
    return value
