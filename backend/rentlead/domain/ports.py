# rentlead/domain/ports.py
from __future__ import annotations

from typing import Any, Protocol

from .types import OwnerStats


# ----------------------------
# Owner stats aggregate
# ----------------------------

class OwnerStatsStore(Protocol):
    async def load_stats(self, owner_id: int) -> OwnerStats | None:
        ...

    async def compare_and_swap(self, owner_id: int, expected_version: int, stats: OwnerStats) -> bool:
        """Write `stats` iff the stored version still equals `expected_version`."""
        ...


# ----------------------------
# Notifications (push/SMS delivery is external)
# ----------------------------

class Notifier(Protocol):
    async def notify(
        self,
        recipient_id: int,
        type: str,
        title: str,
        body: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        ...
