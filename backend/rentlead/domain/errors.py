# rentlead/domain/errors.py
from __future__ import annotations


class LeadPipelineError(Exception):
    """Base exception for the lead lifecycle subsystem."""


class InvalidLeadData(LeadPipelineError):
    """Qualification or deal data failed validation. Nothing was written."""


class NotFound(LeadPipelineError):
    def __init__(self, kind: str, ident: int) -> None:
        super().__init__(f"{kind} {ident} not found")
        self.kind = kind
        self.ident = ident


class Unauthorized(LeadPipelineError):
    """Actor is not the lead's owner/tenant."""


class DuplicateActiveLead(LeadPipelineError):
    def __init__(self, property_id: int, tenant_id: int, existing_lead_id: int | None = None) -> None:
        super().__init__(f"tenant {tenant_id} already has an active lead on property {property_id}")
        self.property_id = property_id
        self.tenant_id = tenant_id
        self.existing_lead_id = existing_lead_id


class InvalidTransition(LeadPipelineError):
    pass


class OwnerStatsConflict(LeadPipelineError):
    """Optimistic update of owner stats kept losing the race. Safe to retry."""


class NotifierError(LeadPipelineError):
    pass
