"""Time-boxed snapshot cache over the workbook source.

``SnapshotCache`` is owned by whichever process serves requests (see
``api/main.py``). Refreshes are single-flight: the check-and-fetch path runs
under a lock, and the snapshot reference is replaced in one assignment, so a
reader sees either the previous snapshot or the new one. A failed fetch
propagates to the caller and leaves the previous snapshot in place.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

import pandas as pd

from practice_metrics.sources import SourceFrames

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=5)


class FrameSource(Protocol):
    def load_frames(self) -> SourceFrames:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Snapshot:
    engagements: pd.DataFrame
    proposals: pd.DataFrame
    monthly_summary: pd.DataFrame
    clients: pd.DataFrame
    fetched_at: datetime

    @classmethod
    def from_frames(cls, frames: SourceFrames, fetched_at: datetime) -> "Snapshot":
        return cls(
            engagements=frames.engagements,
            proposals=frames.proposals,
            monthly_summary=frames.monthly_summary,
            clients=frames.clients,
            fetched_at=fetched_at,
        )

    def row_counts(self) -> dict:
        return {
            "engagements": len(self.engagements),
            "proposals": len(self.proposals),
            "monthly_summary": len(self.monthly_summary),
            "clients": len(self.clients),
        }


class SnapshotCache:
    def __init__(
        self,
        source: FrameSource,
        *,
        ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.source = source
        self.ttl = ttl
        self.clock = clock
        self._snapshot: Optional[Snapshot] = None
        self._lock = threading.Lock()

    @property
    def snapshot(self) -> Optional[Snapshot]:
        return self._snapshot

    def _is_fresh(self, snapshot: Optional[Snapshot]) -> bool:
        return snapshot is not None and self.clock() - snapshot.fetched_at < self.ttl

    def load(self, force_refresh: bool = False) -> Snapshot:
        snapshot = self._snapshot
        if not force_refresh and self._is_fresh(snapshot):
            return snapshot  # type: ignore[return-value]

        with self._lock:
            snapshot = self._snapshot
            # Another caller may have refreshed while we waited for the lock.
            if not force_refresh and self._is_fresh(snapshot):
                return snapshot  # type: ignore[return-value]
            try:
                frames = self.source.load_frames()
            except Exception:
                logger.exception("snapshot refresh failed")
                raise
            fresh = Snapshot.from_frames(frames, fetched_at=self.clock())
            self._snapshot = fresh
            logger.info("snapshot refreshed: %s", fresh.row_counts())
            return fresh

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None
