"""
Application context for one client session (guard station, resident phone or admin desk).

Holds everything the client core shares: settings, gateway, local store, offline
queue, flat directory, identity, current actor and view, connectivity flag,
notifications and the last view model that rendered successfully.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional

from society_vms.client.flat_directory import FlatDirectory
from society_vms.client.gateway import DataGateway, HttpGateway
from society_vms.client.identity import RESIDENT_ROLE, ResidentIdentityResolver
from society_vms.client.lifecycle import VisitorRequestLifecycle
from society_vms.client.local_store import LANGUAGE_KEY, LocalStore
from society_vms.client.offline_queue import OfflineSubmissionQueue
from society_vms.client.realtime import RealtimeDispatcher
from society_vms.client import views
from society_vms.config import settings
from society_vms.schemas.resident import ResidentOut
from society_vms.utils.exceptions import VisitorManagementError
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)

GUARD_ROLE = "guard"
ADMIN_ROLE = "admin"

GUARD_VIEW = "guard"
RESIDENT_VIEW = "resident-dashboard"
ADMIN_VIEW = "admin"

_ROLE_FOR_VIEW = {GUARD_VIEW: GUARD_ROLE, RESIDENT_VIEW: RESIDENT_ROLE, ADMIN_VIEW: ADMIN_ROLE}

LANGUAGES = ("en", "mr")


@dataclass
class Notification:
    message: str
    level: str = "info"     # info | success | warning | error
    created_at: datetime = field(default_factory=datetime.utcnow)


class AppContext:
    def __init__(self, gateway: Optional[DataGateway] = None, store: Optional[LocalStore] = None,
                 online: bool = True, on_notify: Optional[Callable[[Notification], None]] = None):
        self.settings = settings
        self.gateway = gateway or HttpGateway()
        self.store = store or LocalStore(settings.LOCAL_STATE_PATH)
        self.queue = OfflineSubmissionQueue(self.store)
        self.directory = FlatDirectory(self.gateway)
        self.identity = ResidentIdentityResolver(self.gateway, self.store)
        self.lifecycle = VisitorRequestLifecycle(self)
        self.dispatcher = RealtimeDispatcher(self)

        self.online = online
        self.guard_id = settings.DEFAULT_GUARD_ID
        self.actor: Optional[ResidentOut] = None
        self.role = GUARD_ROLE
        self.active_view = GUARD_VIEW
        self.current_photo = None
        self.language = self.store.get(LANGUAGE_KEY) or LANGUAGES[0]
        self.admin_filter: dict = {"wing": None, "day": None}

        self.notifications: list[Notification] = []
        self.on_notify = on_notify
        self.view_model = None

    # ── session ──────────────────────────────────────────────────────────────
    async def start(self, realtime: bool = True):
        """Load the flat directory, restore a resident session, replay queued work, render."""
        await self.directory.load()

        resident = await self.identity.restore_session()
        if resident is not None:
            self._become_resident(resident)

        if self.online and len(self.queue):
            await self.sync_offline_queue()

        await self.refresh()
        if realtime:
            self.dispatcher.start()
        logger.info(f"✅ Client session started: view={self.active_view} online={self.online}")

    async def login_resident(self, phone: str, email: str, flat_code: str) -> Optional[ResidentOut]:
        try:
            resident = await self.identity.register(phone, email, flat_code)
        except VisitorManagementError as e:
            self.notify(e.message, "error")
            return None

        self._become_resident(resident)
        self.notify("Login successful", "success")
        await self.refresh()
        return resident

    def _become_resident(self, resident: ResidentOut):
        self.actor = resident
        self.role = RESIDENT_ROLE
        self.active_view = RESIDENT_VIEW

    async def logout(self):
        self.identity.logout()
        self.actor = None
        self.role = GUARD_ROLE
        self.active_view = GUARD_VIEW
        await self.refresh()

    async def switch_view(self, view: str) -> bool:
        if view not in _ROLE_FOR_VIEW:
            raise ValueError(f"Unknown view '{view}'")
        if view == RESIDENT_VIEW and self.actor is None:
            self.notify("Please log in as a resident first", "warning")
            return False

        self.active_view = view
        self.role = _ROLE_FOR_VIEW[view]
        await self.refresh()
        return True

    async def set_admin_filter(self, wing: Optional[str] = None, day: Optional[date] = None):
        self.admin_filter = {"wing": wing or None, "day": day}
        await self.refresh()

    def set_language(self, language: str):
        if language not in LANGUAGES:
            raise ValueError(f"Unsupported language '{language}'")
        self.language = language
        self.store.set(LANGUAGE_KEY, language)

    def clear_form(self):
        self.current_photo = None

    # ── connectivity ─────────────────────────────────────────────────────────
    async def set_online(self, online: bool):
        was_online, self.online = self.online, online
        if online and not was_online:
            logger.info("🌐 Connection restored")
            await self.sync_offline_queue()
        elif not online and was_online:
            logger.warning("Connection lost — working offline")
            self.notify("You are offline. Requests will be queued.", "warning")

    async def sync_offline_queue(self) -> list:
        persisted = await self.queue.drain(self.gateway)
        if persisted:
            self.notify("Offline data synced", "success")
            await self.refresh()
        return persisted

    # ── notifications / rendering ────────────────────────────────────────────
    def notify(self, message: str, level: str = "info") -> Notification:
        notification = Notification(message, level)
        self.notifications.append(notification)
        if self.on_notify is not None:
            self.on_notify(notification)
        return notification

    async def refresh(self):
        """Re-fetch the active view. On failure the last rendered view model stays in place."""
        try:
            self.view_model = await self._render()
        except VisitorManagementError as e:
            logger.warning(f"Refresh of {self.active_view} view failed ({e.kind}: {e.message})")
        return self.view_model

    async def _render(self):
        lifecycle = self.lifecycle
        if self.active_view == RESIDENT_VIEW and self.actor is not None:
            approvals = await lifecycle.list_pending_for_flat(self.actor.flat_id)
            history = await lifecycle.list_history_for_flat(self.actor.flat_id)
            return views.render_resident(self.actor, approvals, history)

        if self.active_view == ADMIN_VIEW:
            stats = await lifecycle.stats_for(self.admin_filter.get("day"))
            records = await lifecycle.list_for_admin(**self.admin_filter)
            return views.render_admin(stats, records)

        pending = await lifecycle.list_pending()
        awaiting_entry = await lifecycle.list_awaiting_entry()
        return views.render_guard(pending, awaiting_entry)

    async def close(self):
        await self.dispatcher.stop()
        await self.gateway.aclose()
