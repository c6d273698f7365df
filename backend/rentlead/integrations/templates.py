# rentlead/integrations/templates.py
from __future__ import annotations

from dataclasses import dataclass

from ..domain.types import Priority

# Notification type tags understood by the push/SMS gateway
NEW_LEAD = "new_lead"
UNLOCK_REQUEST = "unlock_request"
CONTACT_UNLOCKED = "contact_unlocked"
UNLOCK_REJECTED = "unlock_rejected"
LEAD_UPDATE = "lead_update"
LEAD_EXPIRED = "lead_expired"


@dataclass(frozen=True)
class Template:
    title: str
    body: str


def new_lead(tenant_name: str, property_title: str, priority: Priority) -> Template:
    title = "Hot Lead!" if priority == Priority.hot else "New Lead"
    return Template(title, f'{tenant_name} is interested in "{property_title}"')


def contact_unlock_request(tenant_name: str, property_title: str, priority: Priority) -> Template:
    title = "Hot Contact Request" if priority == Priority.hot else "Contact Request"
    return Template(title, f'{tenant_name} wants to connect for "{property_title}". Review their details!')


def contact_unlocked(owner_name: str, property_title: str) -> Template:
    return Template(
        "Contact Shared!",
        f'{owner_name} accepted your request for "{property_title}". You can now call them!',
    )


def unlock_rejected(owner_name: str, property_title: str) -> Template:
    return Template("Request Declined", f'{owner_name} declined your contact request for "{property_title}"')


def lead_accepted(owner_name: str, property_title: str) -> Template:
    return Template("Interest Accepted", f'{owner_name} is interested in your inquiry for "{property_title}"')


def deal_closed(property_title: str) -> Template:
    return Template("Deal Closed!", f'Congratulations! Deal closed for "{property_title}"')


def lead_expired(property_title: str) -> Template:
    return Template("Lead Expired", f'Your interest in "{property_title}" has expired')
