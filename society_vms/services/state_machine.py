"""
Visitor request state machine.

  (none) --submit-->      pending
  pending --approve-->    approved   stamps approved_at + approver_id
  pending --deny-->       denied     stamps denied_at + approver_id
  approved --allow_entry--> completed  stamps entry_time

Used by the backend to build conditional updates; the client shares the status names.
"""

from typing import Optional

from society_vms.utils.exceptions import InvalidTransitionError

PENDING = "pending"
APPROVED = "approved"
DENIED = "denied"
COMPLETED = "completed"

SUBMIT = "submit"
APPROVE = "approve"
DENY = "deny"
ALLOW_ENTRY = "allow_entry"

# event -> (required current status, resulting status, timestamp column stamped)
TRANSITIONS = {
    APPROVE:     (PENDING,  APPROVED,  "approved_at"),
    DENY:        (PENDING,  DENIED,    "denied_at"),
    ALLOW_ENTRY: (APPROVED, COMPLETED, "entry_time"),
}

# status value accepted by update_request_status -> event
STATUS_EVENTS = {APPROVED: APPROVE, DENIED: DENY}


def transition_for(event: str) -> tuple[str, str, str]:
    try:
        return TRANSITIONS[event]
    except KeyError:
        raise InvalidTransitionError(f"Unknown event '{event}'")


def next_status(current: Optional[str], event: str) -> str:
    """Return the status `event` leads to from `current`, or raise InvalidTransitionError."""
    if event == SUBMIT:
        if current is not None:
            raise InvalidTransitionError("Request already submitted")
        return PENDING

    required, target, _ = transition_for(event)
    if current != required:
        raise InvalidTransitionError(
            f"Cannot {event.replace('_', ' ')} a request that is {current}"
        )
    return target
