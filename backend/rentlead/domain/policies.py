# rentlead/domain/policies.py
from __future__ import annotations

from .errors import InvalidLeadData, InvalidTransition
from .types import TERMINAL_STATUSES, DealInfo, LeadStatus, Qualification

# Funnel rank; interested/not_interested share a rank so owners can flip between them.
_RANK: dict[LeadStatus, int] = {
    LeadStatus.new: 0,
    LeadStatus.contacted: 1,
    LeadStatus.interested: 2,
    LeadStatus.not_interested: 2,
    LeadStatus.closed: 3,
}


def is_terminal(status: LeadStatus) -> bool:
    return status in TERMINAL_STATUSES


def check_status_change(current: LeadStatus, target: LeadStatus) -> None:
    """
    Owner-driven transitions. `new` is only re-entered through a tenant
    resubmission; an owner may keep a lead at `new` while editing notes.
    """
    if is_terminal(current):
        raise InvalidTransition(f"lead is {current.value}; no further changes allowed")
    if target == LeadStatus.expired:
        return
    if target == LeadStatus.new and current != LeadStatus.new:
        raise InvalidTransition("status 'new' is only set by a tenant resubmission")
    if _RANK[target] < _RANK[current]:
        raise InvalidTransition(f"cannot move lead from {current.value} back to {target.value}")


def check_resubmission(current: LeadStatus) -> None:
    if is_terminal(current):
        raise InvalidTransition(f"lead is {current.value}; start a new lead instead")


def validate_qualification(q: Qualification) -> None:
    if q.budget is None or q.budget <= 0:
        raise InvalidLeadData("budget must be a positive number")
    if q.move_in_date is None:
        raise InvalidLeadData("move_in_date is required")


def validate_deal_info(target: LeadStatus, deal: DealInfo | None) -> None:
    if target != LeadStatus.closed:
        return
    if deal is None or deal.final_rent is None:
        raise InvalidLeadData("final_rent is required to close a lead")
    if deal.final_rent <= 0:
        raise InvalidLeadData("final_rent must be a positive number")
    if deal.deposit is not None and deal.deposit < 0:
        raise InvalidLeadData("deposit cannot be negative")
