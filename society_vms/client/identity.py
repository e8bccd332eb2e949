"""
Resident identity resolver.

register() upserts the resident by phone through the gateway and caches the
session locally. restore_session() re-validates that cached identity: a resident
the store no longer knows (or has deactivated) ends the session, while an
unreachable store keeps the cached identity so the resident can still see the app.
"""

from typing import Optional

from society_vms.client.local_store import SESSION_KEY
from society_vms.schemas.resident import ResidentOut
from society_vms.utils.exceptions import ServerError, TransportError
from society_vms.utils.validators import normalize_flat_code, validate_email, validate_phone
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)

RESIDENT_ROLE = "resident"


class ResidentIdentityResolver:
    def __init__(self, gateway, store):
        self._gateway = gateway
        self._store = store

    async def register(self, phone: str, email: str, flat_code: str) -> ResidentOut:
        phone = validate_phone(phone)
        email = validate_email(email)
        flat_code = normalize_flat_code(flat_code)

        resident = await self._gateway.authenticate_resident(phone, email, flat_code)
        self._save(resident)
        logger.info(f"Resident session started: id={resident.id} flat={resident.flat_code}")
        return resident

    async def restore_session(self) -> Optional[ResidentOut]:
        cached = self.cached_resident()
        if cached is None:
            return None

        try:
            fresh = await self._gateway.get_resident(cached.id)
        except (TransportError, ServerError):
            logger.warning(f"Could not re-validate resident {cached.id} — using cached session")
            return cached

        if fresh is None:
            logger.info(f"Cached resident {cached.id} no longer valid — clearing session")
            self.logout()
            return None

        self._save(fresh)
        return fresh

    def cached_resident(self) -> Optional[ResidentOut]:
        session = self._store.get(SESSION_KEY)
        if not session or session.get("role") != RESIDENT_ROLE:
            return None
        try:
            return ResidentOut.model_validate(session.get("resident") or {})
        except ValueError:
            logger.warning("Cached resident session is corrupt — clearing it")
            self.logout()
            return None

    def logout(self):
        self._store.remove(SESSION_KEY)

    def _save(self, resident: ResidentOut):
        self._store.set(SESSION_KEY, {"resident": resident.model_dump(mode="json"), "role": RESIDENT_ROLE})
