import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Deque, Dict, List

from odontolegal.shared.models import utcnow

logger = logging.getLogger(__name__)


@dataclass
class PendingAppend:
    """A trail or registry row whose parent write committed but which could not be stored."""
    kind: str  # "history" | "match"
    payload: Dict[str, Any]
    error: str = ""
    queued_at: datetime = field(default_factory=utcnow)
    attempts: int = 0


class PendingAppendQueue:
    """Process-wide holding area for failed provenance appends.

    Entries stay here until an admin replays them; nothing is dropped.
    """

    def __init__(self):
        self._items: Deque[PendingAppend] = deque()

    def put(self, item: PendingAppend) -> None:
        logger.warning(
            f"Queued {item.kind} append for reconciliation: {item.payload} ({item.error})"
        )
        self._items.append(item)

    def drain(self) -> List[PendingAppend]:
        items = list(self._items)
        self._items.clear()
        return items

    def __len__(self) -> int:
        return len(self._items)


pending_appends = PendingAppendQueue()
