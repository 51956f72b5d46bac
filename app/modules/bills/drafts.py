"""
Open drafts of the running process, keyed by draft id.

Drafts are transient: they live in memory until saved or cancelled and are
lost on restart, like an unsaved form. A draft left idle for longer than
DRAFT_TTL_MINUTES is dropped the next time the registry is used.
"""

from fastapi import HTTPException, status
from typing import Callable, Dict, Optional
from uuid import UUID
import logging
import threading
import time

from app.core.config import settings
from app.modules.bills.composer import BillComposer

logger = logging.getLogger(__name__)


class DraftRegistry:
    def __init__(self, ttl_minutes: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_minutes = ttl_minutes
        self._clock = clock
        self._composers: Dict[UUID, BillComposer] = {}
        self._touched: Dict[UUID, float] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        minutes = self.ttl_minutes if self.ttl_minutes is not None else settings.DRAFT_TTL_MINUTES
        return minutes * 60

    def start(self) -> BillComposer:
        self.purge_expired()
        composer = BillComposer()
        draft = composer.start_draft()
        with self._lock:
            self._composers[draft.id] = composer
            self._touched[draft.id] = self._clock()
        return composer

    def get(self, draft_id: UUID) -> BillComposer:
        self.purge_expired()
        with self._lock:
            composer = self._composers.get(draft_id)
            if composer is not None:
                self._touched[draft_id] = self._clock()
        if composer is None or composer.draft is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Draft bill not found"
            )
        return composer

    def purge_expired(self) -> int:
        """Drop drafts idle for longer than the TTL; a draft being saved is kept."""
        cutoff = self._clock() - self.ttl_seconds
        with self._lock:
            expired = [
                draft_id for draft_id, touched in self._touched.items()
                if touched < cutoff and not self._composers[draft_id].is_saving
            ]
            for draft_id in expired:
                self._composers.pop(draft_id, None)
                self._touched.pop(draft_id, None)
        if expired:
            logger.info(f"Dropped {len(expired)} idle draft bill(s)")
        return len(expired)

    def discard(self, draft_id: UUID) -> None:
        with self._lock:
            self._composers.pop(draft_id, None)
            self._touched.pop(draft_id, None)

    def clear(self) -> None:
        with self._lock:
            self._composers.clear()
            self._touched.clear()

    def __len__(self):
        return len(self._composers)


draft_registry = DraftRegistry()


def get_draft_registry() -> DraftRegistry:
    return draft_registry
