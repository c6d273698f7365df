# rentlead/integrations/notify.py
from __future__ import annotations

import logging
from typing import Any

from ..domain.ports import Notifier
from .templates import Template

log = logging.getLogger(__name__)


async def notify_safely(
    notifier: Notifier | None,
    *,
    recipient_id: int,
    type: str,
    template: Template,
    data: dict[str, Any] | None = None,
) -> bool:
    """
    Fire-and-forget. A broken notification channel must never undo the lead
    mutation that triggered it, so every failure stops here.
    """
    if notifier is None:
        return False
    try:
        await notifier.notify(recipient_id, type, template.title, template.body, data or {})
        return True
    except Exception:
        log.exception("notification failed type=%s recipient=%s", type, recipient_id)
        return False
