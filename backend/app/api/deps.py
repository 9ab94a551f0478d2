"""
Request-scoped wiring shared by the routers: auth, caller identity and the
service graph. Tests swap ``get_store`` (and, where needed, the LLM client)
through ``app.dependency_overrides``.
"""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Security
from fastapi.security.api_key import APIKeyHeader

from ..core.config import get_settings
from ..core.errors import ForbiddenError, NotFoundError
from ..schemas.profile import ProfileRole
from ..services.acceptance import AcceptanceOrchestrator
from ..services.brief_drafting import BriefDraftingService
from ..services.briefs import BriefService
from ..services.directory import ProfileDirectory, get_profile_directory
from ..services.execution_log import ExecutionLog
from ..services.matching import MatchingEngine
from ..services.notifications import NotificationEmitter
from ..services.outbox import Outbox
from ..services.proposals import ProposalService
from ..services.store import RecordStore

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def verify_api_key(api_key: str | None = Security(api_key_header)) -> None:
    """
    Header-based API key authentication.

    - In dev, if API_AUTH_KEY is not set, auth is skipped.
    - Otherwise, require X-API-Key == API_AUTH_KEY.
    """
    settings = get_settings()
    expected = settings.API_AUTH_KEY

    if settings.ENV == "dev" and not expected:
        return

    if not expected:
        raise HTTPException(status_code=401, detail="API key not configured")

    if api_key != expected:
        raise HTTPException(status_code=401, detail="Invalid API key")


# ---------------------------------------------------------------------------
# Service graph
# ---------------------------------------------------------------------------

def get_store() -> RecordStore:
    return RecordStore()


def get_directory(store: RecordStore = Depends(get_store)) -> ProfileDirectory:
    return get_profile_directory(store)


def get_llm():
    """LLM client for drafting; ``None`` means the shared client is created lazily."""
    return None


def get_notifier(store: RecordStore = Depends(get_store)) -> NotificationEmitter:
    return NotificationEmitter(store, Outbox(store))


def get_brief_service(store: RecordStore = Depends(get_store)) -> BriefService:
    return BriefService(store)


def get_drafting_service(
    briefs: BriefService = Depends(get_brief_service),
    client=Depends(get_llm),
) -> BriefDraftingService:
    return BriefDraftingService(briefs, client=client)


def get_matching_engine(
    store: RecordStore = Depends(get_store),
    directory: ProfileDirectory = Depends(get_directory),
) -> MatchingEngine:
    return MatchingEngine(store, directory)


def get_execution_log(
    store: RecordStore = Depends(get_store),
    directory: ProfileDirectory = Depends(get_directory),
    notifier: NotificationEmitter = Depends(get_notifier),
) -> ExecutionLog:
    return ExecutionLog(store, directory, notifier)


def get_proposal_service(
    store: RecordStore = Depends(get_store),
    directory: ProfileDirectory = Depends(get_directory),
    notifier: NotificationEmitter = Depends(get_notifier),
) -> ProposalService:
    orchestrator = AcceptanceOrchestrator(store, directory, notifier, Outbox(store))
    return ProposalService(store, directory, notifier, orchestrator)


# ---------------------------------------------------------------------------
# Caller identity
# ---------------------------------------------------------------------------

@dataclass
class Caller:
    actor_id: str
    directory: ProfileDirectory

    def profile_id(self, role: ProfileRole) -> UUID | None:
        try:
            return self.directory.resolve_profile(self.actor_id, role)
        except NotFoundError:
            return None

    @property
    def brand_id(self) -> UUID | None:
        return self.profile_id(ProfileRole.BRAND)

    @property
    def manufacturer_id(self) -> UUID | None:
        return self.profile_id(ProfileRole.MANUFACTURER)


def get_actor_id(x_actor_id: str | None = Header(default=None, alias="X-Actor-Id")) -> str:
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-Actor-Id header")
    return x_actor_id.strip()


def get_caller(
    actor_id: str = Depends(get_actor_id),
    directory: ProfileDirectory = Depends(get_directory),
) -> Caller:
    return Caller(actor_id=actor_id, directory=directory)


def require_brand(caller: Caller = Depends(get_caller)) -> UUID:
    brand_id = caller.brand_id
    if brand_id is None:
        raise ForbiddenError("Brand profile required. Please complete onboarding first.")
    return brand_id


def require_manufacturer(caller: Caller = Depends(get_caller)) -> UUID:
    manufacturer_id = caller.manufacturer_id
    if manufacturer_id is None:
        raise ForbiddenError("Manufacturer profile required. Please complete onboarding first.")
    return manufacturer_id
