# backend/app/services/directory.py
"""
Profile directory: who owns which brand / manufacturer profile, and what a
manufacturer claims it can make.

The workflow services only ever talk to ``ProfileDirectory``. Two backends:

- ``SqlProfileDirectory`` reads the local ``brand_profiles`` /
  ``manufacturer_profiles`` tables.
- ``HttpProfileDirectory`` calls a remote directory service (used when
  ``PROFILE_DIRECTORY_URL`` is configured).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable
from uuid import UUID
import logging

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from ..core.config import get_settings
from ..core.errors import InternalError, NotFoundError
from ..models.profile import BrandProfile, ManufacturerProfile, VerificationStatus
from ..schemas.profile import (
    BrandProfileView,
    Capability,
    ManufacturerProfileView,
    ProfileRole,
)
from .store import RecordStore

logger = logging.getLogger(__name__)


class ProfileDirectory(ABC):
    @abstractmethod
    def resolve_profile(self, actor_id: str, role: ProfileRole) -> UUID:
        """Profile id owned by ``actor_id`` for ``role``; raises NotFoundError."""

    @abstractmethod
    def get_manufacturer(self, manufacturer_id: UUID) -> ManufacturerProfileView | None:
        ...

    @abstractmethod
    def get_brand(self, brand_id: UUID) -> BrandProfileView | None:
        ...

    @abstractmethod
    def find_manufacturers(
        self,
        *,
        verified_only: bool = True,
        category: str | None = None,
    ) -> list[ManufacturerProfileView]:
        ...

    def get_manufacturers(self, manufacturer_ids: Iterable[UUID]) -> dict[UUID, ManufacturerProfileView]:
        found: dict[UUID, ManufacturerProfileView] = {}
        for manufacturer_id in set(manufacturer_ids):
            profile = self.get_manufacturer(manufacturer_id)
            if profile is not None:
                found[manufacturer_id] = profile
        return found

    def get_capabilities(self, manufacturer_id: UUID) -> list[Capability]:
        profile = self._require_manufacturer(manufacturer_id)
        return list(profile.capabilities)

    def get_verification_status(self, manufacturer_id: UUID) -> VerificationStatus:
        return self._require_manufacturer(manufacturer_id).verification_status

    def _require_manufacturer(self, manufacturer_id: UUID) -> ManufacturerProfileView:
        profile = self.get_manufacturer(manufacturer_id)
        if profile is None:
            raise NotFoundError.for_resource("Manufacturer profile")
        return profile


def _has_category(profile: ManufacturerProfileView, category: str) -> bool:
    return any(c.category == category for c in profile.capabilities)


class SqlProfileDirectory(ProfileDirectory):
    def __init__(self, store: RecordStore) -> None:
        self.store = store

    def resolve_profile(self, actor_id: str, role: ProfileRole) -> UUID:
        model = BrandProfile if role == ProfileRole.BRAND else ManufacturerProfile
        profile = self.store.first(model, model.user_id == actor_id)
        if profile is None:
            raise NotFoundError(f"No {role.value} profile for actor")
        return profile.id

    def get_manufacturer(self, manufacturer_id: UUID) -> ManufacturerProfileView | None:
        row = self.store.get(ManufacturerProfile, manufacturer_id)
        return ManufacturerProfileView.model_validate(row) if row else None

    def get_manufacturers(self, manufacturer_ids: Iterable[UUID]) -> dict[UUID, ManufacturerProfileView]:
        ids = list(set(manufacturer_ids))
        if not ids:
            return {}
        rows = self.store.query(ManufacturerProfile, ManufacturerProfile.id.in_(ids))
        return {row.id: ManufacturerProfileView.model_validate(row) for row in rows}

    def get_brand(self, brand_id: UUID) -> BrandProfileView | None:
        row = self.store.get(BrandProfile, brand_id)
        return BrandProfileView.model_validate(row) if row else None

    def find_manufacturers(
        self,
        *,
        verified_only: bool = True,
        category: str | None = None,
    ) -> list[ManufacturerProfileView]:
        criteria = []
        if verified_only:
            criteria.append(ManufacturerProfile.verification_status == VerificationStatus.VERIFIED)
        rows = self.store.query(
            ManufacturerProfile,
            *criteria,
            order_by=(ManufacturerProfile.created_at.asc(),),
        )
        profiles = [ManufacturerProfileView.model_validate(row) for row in rows]
        # Capabilities are a JSON list; containment is checked here so the
        # query stays portable across backends.
        if category:
            profiles = [p for p in profiles if _has_category(p, category)]
        return profiles


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


class HttpProfileDirectory(ProfileDirectory):
    """
    Remote directory client.

    Endpoints (JSON):
      GET /profiles/resolve?actor_id=&role=      -> {"profile_id": "..."}
      GET /manufacturers/{id}                     -> manufacturer profile
      GET /manufacturers?verification_status=&category=  -> {"items": [...]}
      GET /brands/{id}                            -> brand profile
    """

    def __init__(
        self,
        base_url: str,
        *,
        api_key: str | None = None,
        timeout: float = 10,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key.strip()}"
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    @retry(
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        stop=stop_after_attempt(3),
        retry=retry_if_exception(_is_retryable),
        reraise=True,
    )
    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        resp = self._client.get(path, params=params)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    def _call(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        try:
            return self._get(path, params)
        except httpx.HTTPError as exc:
            logger.exception("Profile directory request failed: %s", path, extra={"step": "directory"})
            raise InternalError("Profile directory unavailable") from exc

    def resolve_profile(self, actor_id: str, role: ProfileRole) -> UUID:
        data = self._call("/profiles/resolve", {"actor_id": actor_id, "role": role.value})
        if not data or not data.get("profile_id"):
            raise NotFoundError(f"No {role.value} profile for actor")
        return UUID(str(data["profile_id"]))

    def get_manufacturer(self, manufacturer_id: UUID) -> ManufacturerProfileView | None:
        data = self._call(f"/manufacturers/{manufacturer_id}")
        return ManufacturerProfileView.model_validate(data) if data else None

    def get_brand(self, brand_id: UUID) -> BrandProfileView | None:
        data = self._call(f"/brands/{brand_id}")
        return BrandProfileView.model_validate(data) if data else None

    def find_manufacturers(
        self,
        *,
        verified_only: bool = True,
        category: str | None = None,
    ) -> list[ManufacturerProfileView]:
        params: dict[str, Any] = {}
        if verified_only:
            params["verification_status"] = VerificationStatus.VERIFIED.value
        if category:
            params["category"] = category
        data = self._call("/manufacturers", params) or {}
        profiles = [ManufacturerProfileView.model_validate(item) for item in data.get("items", [])]
        # Do not trust the remote filter for the rules matching depends on
        if verified_only:
            profiles = [p for p in profiles if p.verification_status == VerificationStatus.VERIFIED]
        if category:
            profiles = [p for p in profiles if _has_category(p, category)]
        return profiles


def get_profile_directory(store: RecordStore) -> ProfileDirectory:
    settings = get_settings()
    if settings.PROFILE_DIRECTORY_URL:
        return HttpProfileDirectory(
            settings.PROFILE_DIRECTORY_URL,
            api_key=settings.PROFILE_DIRECTORY_API_KEY,
            timeout=settings.PROFILE_DIRECTORY_TIMEOUT_SECONDS,
        )
    return SqlProfileDirectory(store)
