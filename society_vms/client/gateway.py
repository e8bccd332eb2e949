"""
Data-access gateway consumed by the client core.

DataGateway is the contract; HttpGateway implements it against the FastAPI backend
with httpx. Every failure leaves this module as one of the visitor error types:
  - connection problems, timeouts          → TransportError
  - 5xx                                     → ServerError
  - 400 / 422                               → ValidationError
  - 404                                     → NotFoundError
  - 409                                     → InvalidTransitionError
  - any other 4xx                           → VisitorManagementError
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import AsyncIterator, Optional

import httpx

from society_vms.config import settings
from society_vms.schemas.change_event import ChangeEvent
from society_vms.schemas.flat import FlatOut
from society_vms.schemas.resident import ResidentOut
from society_vms.schemas.stats import AdminStatsOut
from society_vms.schemas.visitor_request import VisitorRequestOut
from society_vms.utils.exceptions import (
    ERRORS_BY_STATUS,
    NotFoundError,
    ServerError,
    TransportError,
    VisitorManagementError,
)
from society_vms.utils.logger import get_logger

logger = get_logger(__name__)


class DataGateway(ABC):
    @abstractmethod
    async def list_flats(self) -> list[FlatOut]: ...

    @abstractmethod
    async def get_flat(self, flat_code: str) -> Optional[FlatOut]: ...

    @abstractmethod
    async def authenticate_resident(self, phone: str, email: str, flat_code: str) -> ResidentOut: ...

    @abstractmethod
    async def get_resident(self, resident_id: str) -> Optional[ResidentOut]: ...

    @abstractmethod
    async def create_visitor_request(self, payload: dict) -> VisitorRequestOut: ...

    @abstractmethod
    async def list_pending_requests(self) -> list[VisitorRequestOut]: ...

    @abstractmethod
    async def list_awaiting_entry(self) -> list[VisitorRequestOut]: ...

    @abstractmethod
    async def list_pending_for_flat(self, flat_id: int) -> list[VisitorRequestOut]: ...

    @abstractmethod
    async def list_history_for_flat(self, flat_id: int, limit: int = 20) -> list[VisitorRequestOut]: ...

    @abstractmethod
    async def list_all_requests(self, wing: Optional[str] = None, day: Optional[date] = None,
                                limit: Optional[int] = None) -> list[VisitorRequestOut]: ...

    @abstractmethod
    async def update_request_status(self, request_id: str, status: str, actor_id: str) -> VisitorRequestOut: ...

    @abstractmethod
    async def mark_entry(self, request_id: str) -> VisitorRequestOut: ...

    @abstractmethod
    async def get_admin_stats(self, day: Optional[date] = None) -> AdminStatsOut: ...

    @abstractmethod
    async def upload_photo(self, data: bytes, content_type: str = "image/jpeg") -> Optional[str]: ...

    @abstractmethod
    def stream_changes(self) -> AsyncIterator[ChangeEvent]: ...

    async def aclose(self):
        return None


class HttpGateway(DataGateway):
    def __init__(self, base_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None,
                 api_key: Optional[str] = None, photo_upload_url: Optional[str] = None,
                 timeout: Optional[float] = None):
        api_key = api_key if api_key is not None else settings.API_KEY
        headers = {"X-API-Key": api_key} if api_key else {}
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            headers=headers,
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS,
        )
        self._photo_upload_url = photo_upload_url if photo_upload_url is not None else settings.PHOTO_UPLOAD_URL

    # ── transport ────────────────────────────────────────────────────────────
    async def _request(self, method: str, path: str, **kwargs):
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e.__class__.__name__}: {e}")
            raise TransportError(f"Server unreachable ({e.__class__.__name__})")

        if response.status_code >= 400:
            raise self._error_for(response)
        return response.json()

    @staticmethod
    def _error_for(response: httpx.Response):
        try:
            detail = response.json().get("detail")
        except ValueError:
            detail = None
        if not isinstance(detail, str):
            detail = f"HTTP {response.status_code}"
        error_cls = ERRORS_BY_STATUS.get(response.status_code)
        if error_cls is None:
            error_cls = ServerError if response.status_code >= 500 else VisitorManagementError
        return error_cls(detail)

    # ── flats ────────────────────────────────────────────────────────────────
    async def list_flats(self) -> list[FlatOut]:
        return [FlatOut.model_validate(f) for f in await self._request("GET", "/flats")]

    async def get_flat(self, flat_code: str) -> Optional[FlatOut]:
        try:
            return FlatOut.model_validate(await self._request("GET", f"/flats/{flat_code}"))
        except NotFoundError:
            return None

    # ── residents ────────────────────────────────────────────────────────────
    async def authenticate_resident(self, phone: str, email: str, flat_code: str) -> ResidentOut:
        body = {"phone": phone, "email": email, "flat_code": flat_code}
        return ResidentOut.model_validate(await self._request("POST", "/residents/auth", json=body))

    async def get_resident(self, resident_id: str) -> Optional[ResidentOut]:
        try:
            return ResidentOut.model_validate(await self._request("GET", f"/residents/{resident_id}"))
        except NotFoundError:
            return None

    # ── visitor requests ─────────────────────────────────────────────────────
    async def create_visitor_request(self, payload: dict) -> VisitorRequestOut:
        return VisitorRequestOut.model_validate(await self._request("POST", "/visitor-requests", json=payload))

    async def _list(self, path: str, params: Optional[dict] = None) -> list[VisitorRequestOut]:
        rows = await self._request("GET", path, params=params)
        return [VisitorRequestOut.model_validate(r) for r in rows]

    async def list_pending_requests(self) -> list[VisitorRequestOut]:
        return await self._list("/visitor-requests/pending")

    async def list_awaiting_entry(self) -> list[VisitorRequestOut]:
        return await self._list("/visitor-requests/awaiting-entry")

    async def list_pending_for_flat(self, flat_id: int) -> list[VisitorRequestOut]:
        return await self._list(f"/visitor-requests/pending/{flat_id}")

    async def list_history_for_flat(self, flat_id: int, limit: int = 20) -> list[VisitorRequestOut]:
        return await self._list(f"/visitor-requests/history/{flat_id}", {"limit": limit})

    async def list_all_requests(self, wing: Optional[str] = None, day: Optional[date] = None,
                                limit: Optional[int] = None) -> list[VisitorRequestOut]:
        params = {}
        if wing:
            params["wing"] = wing
        if day:
            params["date"] = day.isoformat()
        if limit:
            params["limit"] = limit
        return await self._list("/admin/visitor-records", params)

    async def update_request_status(self, request_id: str, status: str, actor_id: str) -> VisitorRequestOut:
        action = {"approved": "approve", "denied": "deny"}.get(status)
        if action is None:
            raise ValueError(f"Unsupported status '{status}'")
        data = await self._request("PUT", f"/visitor-requests/{request_id}/{action}", json={"actor_id": actor_id})
        return VisitorRequestOut.model_validate(data)

    async def mark_entry(self, request_id: str) -> VisitorRequestOut:
        return VisitorRequestOut.model_validate(await self._request("PUT", f"/visitor-requests/{request_id}/entry"))

    async def get_admin_stats(self, day: Optional[date] = None) -> AdminStatsOut:
        params = {"target_date": day.isoformat()} if day else None
        return AdminStatsOut.model_validate(await self._request("GET", "/admin/stats", params=params))

    # ── photos ───────────────────────────────────────────────────────────────
    async def upload_photo(self, data: bytes, content_type: str = "image/jpeg") -> Optional[str]:
        """Returns the public URL, or None when no upload target is set or the upload fails."""
        if not self._photo_upload_url:
            return None
        try:
            response = await self._client.post(
                self._photo_upload_url, files={"file": ("visitor.jpg", data, content_type)}
            )
            response.raise_for_status()
            return response.json().get("url")
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Photo upload failed, keeping inline photo: {e}")
            return None

    # ── change feed ──────────────────────────────────────────────────────────
    async def stream_changes(self) -> AsyncIterator[ChangeEvent]:
        """Yields change events until the server closes the stream. Blank lines are keep-alives."""
        try:
            async with self._client.stream("GET", "/changes/stream", timeout=None) as response:
                if response.status_code != 200:
                    raise TransportError(f"Change stream returned HTTP {response.status_code}")
                async for line in response.aiter_lines():
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        yield ChangeEvent.model_validate_json(line)
                    except ValueError as e:
                        logger.warning(f"Skipping malformed change event: {e}")
        except httpx.HTTPError as e:
            raise TransportError(f"Change stream dropped ({e.__class__.__name__})")

    async def aclose(self):
        await self._client.aclose()
