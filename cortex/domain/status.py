# cortex/domain/status.py
from __future__ import annotations

from ..models import LeadStatus

# Funnel order (monotonic progression)
_STAGE_ORDER: dict[LeadStatus, int] = {
    LeadStatus.new: 0,
    LeadStatus.contacted: 1,
    LeadStatus.qualified: 2,
    LeadStatus.converted: 3,
}

_TERMINAL: set[LeadStatus] = {LeadStatus.converted, LeadStatus.unqualified}

# status -> timestamp column stamped when the lead reaches it
STAMP_FIELD: dict[LeadStatus, str] = {
    LeadStatus.contacted: "contacted_at",
    LeadStatus.qualified: "qualified_at",
    LeadStatus.converted: "converted_at",
}


def parse_status(raw: object) -> LeadStatus:
    try:
        return LeadStatus(str(raw))
    except ValueError:
        allowed = ", ".join(s.value for s in LeadStatus)
        raise ValueError(f"Invalid status '{raw}'. Expected one of: {allowed}")


def transition_error(current: LeadStatus, target: LeadStatus) -> str | None:
    """
    Returns None if current -> target is allowed, else a reason.

    Rules:
    - same status again is a no-op (allowed)
    - forward along new -> contacted -> qualified -> converted (skips allowed)
    - unqualified from any non-converted state
    - converted / unqualified are terminal
    """
    if current == target:
        return None
    if current in _TERMINAL:
        return f"lead is already '{current.value}' (terminal)"
    if target == LeadStatus.unqualified:
        return None
    if _STAGE_ORDER[target] < _STAGE_ORDER[current]:
        return f"cannot move backwards from '{current.value}' to '{target.value}'"
    return None


def is_allowed_transition(current: LeadStatus, target: LeadStatus) -> bool:
    return transition_error(current, target) is None
