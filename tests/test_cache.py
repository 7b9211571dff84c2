"""Tests for the snapshot cache."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pandas as pd
import pytest

from practice_metrics.cache import SnapshotCache
from practice_metrics.sources import SourceFrames


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2025, 11, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class CountingSource:
    """Frame source that records calls and can be told to fail."""

    def __init__(self) -> None:
        self.calls = 0
        self.fail = False

    def load_frames(self) -> SourceFrames:
        self.calls += 1
        if self.fail:
            raise ConnectionError("workbook unavailable")
        rows = pd.DataFrame([{"Status": "O", "Call": self.calls}])
        return SourceFrames(rows, rows, pd.DataFrame(), pd.DataFrame())


class GatedSource(CountingSource):
    """Blocks inside the fetch until released, so callers pile up behind the lock."""

    def __init__(self) -> None:
        super().__init__()
        self.started = threading.Event()
        self.release = threading.Event()

    def load_frames(self) -> SourceFrames:
        self.started.set()
        self.release.wait(timeout=5)
        return super().load_frames()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def source() -> CountingSource:
    return CountingSource()


@pytest.fixture
def cache(source: CountingSource, clock: FakeClock) -> SnapshotCache:
    return SnapshotCache(source, ttl=timedelta(minutes=5), clock=clock)


class TestSnapshotCache:
    def test_reuses_snapshot_within_ttl(self, cache, source, clock) -> None:
        first = cache.load()
        clock.advance(minutes=4, seconds=59)
        assert cache.load() is first
        assert source.calls == 1

    def test_refetches_after_ttl(self, cache, source, clock) -> None:
        first = cache.load()
        clock.advance(minutes=5)
        second = cache.load()
        assert second is not first
        assert source.calls == 2
        assert second.fetched_at == clock.now

    def test_force_refresh_bypasses_ttl(self, cache, source) -> None:
        cache.load()
        cache.load(force_refresh=True)
        assert source.calls == 2

    def test_failure_propagates_and_keeps_previous(self, cache, source, clock) -> None:
        first = cache.load()
        clock.advance(minutes=10)
        source.fail = True
        with pytest.raises(ConnectionError):
            cache.load()
        assert cache.snapshot is first

    def test_failure_on_first_load(self, cache, source) -> None:
        source.fail = True
        with pytest.raises(ConnectionError):
            cache.load()
        assert cache.snapshot is None

    def test_invalidate_forces_fetch(self, cache, source) -> None:
        cache.load()
        cache.invalidate()
        assert cache.snapshot is None
        cache.load()
        assert source.calls == 2

    def test_row_counts(self, cache) -> None:
        counts = cache.load().row_counts()
        assert counts == {"engagements": 1, "proposals": 1, "monthly_summary": 0, "clients": 0}


class TestConcurrentLoads:
    WORKERS = 6

    def test_cold_loads_fetch_once(self, clock) -> None:
        source = GatedSource()
        cache = SnapshotCache(source, clock=clock)
        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            futures = [pool.submit(cache.load) for _ in range(self.WORKERS)]
            assert source.started.wait(timeout=5)
            source.release.set()
            snapshots = [f.result(timeout=5) for f in futures]
        assert source.calls == 1
        assert all(s is snapshots[0] for s in snapshots)
        assert cache.snapshot is snapshots[0]

    def test_failed_refresh_under_contention_keeps_snapshot(self, clock) -> None:
        source = GatedSource()
        source.release.set()
        cache = SnapshotCache(source, clock=clock)
        first = cache.load()
        clock.advance(minutes=10)
        source.fail = True
        source.started.clear()
        source.release.clear()
        with ThreadPoolExecutor(max_workers=self.WORKERS) as pool:
            futures = [pool.submit(cache.load) for _ in range(self.WORKERS)]
            assert source.started.wait(timeout=5)
            source.release.set()
            errors = [f.exception(timeout=5) for f in futures]
        assert all(isinstance(e, ConnectionError) for e in errors)
        assert cache.snapshot is first
