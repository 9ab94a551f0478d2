"""
Shared pytest setup.

Environment defaults are applied before any ``app`` import so Settings and the
module-level engine can be built without a real Postgres or Redis.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ["ENV"] = "dev"
os.environ.pop("API_AUTH_KEY", None)
os.environ.pop("PROFILE_DIRECTORY_URL", None)

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.db import Base
from app.models.brief import Brief  # noqa: F401  (register tables)
from app.models.execution_log import ExecutionLogEntry  # noqa: F401
from app.models.match import BriefMatch  # noqa: F401
from app.models.notification import Notification  # noqa: F401
from app.models.pending_effect import PendingEffect  # noqa: F401
from app.models.profile import BrandProfile, ManufacturerProfile, VerificationStatus
from app.models.proposal import Proposal  # noqa: F401
from app.services.acceptance import AcceptanceOrchestrator
from app.services.briefs import BriefService
from app.services.directory import SqlProfileDirectory
from app.services.execution_log import ExecutionLog
from app.services.matching import MatchingEngine
from app.services.notifications import NotificationEmitter
from app.services.outbox import Outbox
from app.services.proposals import ProposalService
from app.services.store import RecordStore

from tests.fixtures.engagement_fixtures import (
    BRAND_ACTOR,
    OTHER_BRAND_ACTOR,
    M1_ACTOR,
    M2_ACTOR,
    M3_ACTOR,
    brief_payload,
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return RecordStore(sessionmaker(bind=engine, expire_on_commit=False))


@pytest.fixture
def profiles(store):
    """Two brands and three manufacturers with known capabilities."""
    brand = store.insert(BrandProfile, {"user_id": BRAND_ACTOR, "company_name": "Acme Apparel"})
    other_brand = store.insert(BrandProfile, {"user_id": OTHER_BRAND_ACTOR, "company_name": "Other Co"})
    m1 = store.insert(
        ManufacturerProfile,
        {
            "user_id": M1_ACTOR,
            "company_name": "Stitch Works",
            "verification_status": VerificationStatus.VERIFIED,
            "capabilities": [{"category": "Apparel", "subcategories": ["T-shirts"]}],
            "factory_location": "Porto, PT",
            "min_order_quantity": 500,
        },
    )
    m2 = store.insert(
        ManufacturerProfile,
        {
            "user_id": M2_ACTOR,
            "company_name": "Circuit House",
            "verification_status": VerificationStatus.VERIFIED,
            "capabilities": [{"category": "Electronics", "subcategories": []}],
        },
    )
    m3 = store.insert(
        ManufacturerProfile,
        {
            "user_id": M3_ACTOR,
            "company_name": "Unverified Garments",
            "verification_status": VerificationStatus.PENDING,
            "capabilities": [{"category": "Apparel", "subcategories": []}],
        },
    )
    return SimpleNamespace(brand=brand, other_brand=other_brand, m1=m1, m2=m2, m3=m3)


@pytest.fixture
def directory(store):
    return SqlProfileDirectory(store)


@pytest.fixture
def outbox(store):
    return Outbox(store)


@pytest.fixture
def notifier(store, outbox):
    return NotificationEmitter(store, outbox)


@pytest.fixture
def briefs(store):
    return BriefService(store)


@pytest.fixture
def orchestrator(store, directory, notifier, outbox):
    return AcceptanceOrchestrator(store, directory, notifier, outbox)


@pytest.fixture
def proposals(store, directory, notifier, orchestrator):
    return ProposalService(store, directory, notifier, orchestrator)


@pytest.fixture
def execution_log(store, directory, notifier):
    return ExecutionLog(store, directory, notifier)


@pytest.fixture
def matching(store, directory):
    return MatchingEngine(store, directory)


@pytest.fixture
def open_brief(briefs, profiles):
    """An Apparel brief owned by the seeded brand, already published."""
    brief = briefs.create(profiles.brand.id, brief_payload())
    return briefs.publish(brief.id, profiles.brand.id)
