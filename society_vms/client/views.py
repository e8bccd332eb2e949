"""
View projections — pure functions from query results to view models.
Nothing here performs I/O; the presentation layer renders the returned dataclasses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from society_vms.schemas.resident import ResidentOut
from society_vms.schemas.stats import AdminStatsOut
from society_vms.schemas.visitor_request import VisitorRequestOut
from society_vms.services import state_machine as sm

NO_VEHICLE = "N/A"

STATUS_LABELS = {
    sm.PENDING: "Pending Approval",
    sm.APPROVED: "Approved",
    sm.DENIED: "Denied",
    sm.COMPLETED: "Completed",
}


@dataclass
class RequestCard:
    id: str
    visitor_name: str
    vehicle: str
    purpose: str
    flat_code: Optional[str]
    status: str
    status_label: str
    photo_url: str
    created_at: datetime
    can_decide: bool = False        # resident may approve / deny
    can_allow_entry: bool = False   # guard may let the visitor in


@dataclass
class GuardViewModel:
    pending: list[RequestCard] = field(default_factory=list)
    awaiting_entry: list[RequestCard] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.pending and not self.awaiting_entry


@dataclass
class ResidentViewModel:
    resident_info: str
    approvals: list[RequestCard] = field(default_factory=list)
    history: list[RequestCard] = field(default_factory=list)


@dataclass
class AdminViewModel:
    stats: AdminStatsOut
    records: list[RequestCard] = field(default_factory=list)


def vehicle_display(vehicle_type: Optional[str], vehicle_number: Optional[str]) -> str:
    if vehicle_type and vehicle_number:
        return f"{vehicle_type} - {vehicle_number}"
    return vehicle_type or vehicle_number or NO_VEHICLE


def to_card(request: VisitorRequestOut) -> RequestCard:
    return RequestCard(
        id=request.id,
        visitor_name=request.visitor_name,
        vehicle=vehicle_display(request.vehicle_type, request.vehicle_number),
        purpose=request.purpose,
        flat_code=request.flat_code,
        status=request.status,
        status_label=STATUS_LABELS.get(request.status, request.status.capitalize()),
        photo_url=request.photo_url,
        created_at=request.created_at,
        can_decide=request.status == sm.PENDING,
        can_allow_entry=request.status == sm.APPROVED,
    )


def render_guard(pending: list[VisitorRequestOut], awaiting_entry: list[VisitorRequestOut]) -> GuardViewModel:
    return GuardViewModel(
        pending=[to_card(r) for r in pending],
        awaiting_entry=[to_card(r) for r in awaiting_entry],
    )


def render_resident(resident: ResidentOut, approvals: list[VisitorRequestOut],
                    history: list[VisitorRequestOut]) -> ResidentViewModel:
    return ResidentViewModel(
        resident_info=f"{resident.flat_code} | {resident.phone}",
        approvals=[to_card(r) for r in approvals],
        history=[to_card(r) for r in history],
    )


def render_admin(stats: AdminStatsOut, records: list[VisitorRequestOut]) -> AdminViewModel:
    return AdminViewModel(stats=stats, records=[to_card(r) for r in records])
