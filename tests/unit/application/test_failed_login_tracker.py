"""
Name: Failed Login Tracker Tests

Responsibilities:
  - Sliding window counting and pruning
  - Breach points (threshold + 1, then every threshold failures)
  - Atomic increments under concurrent failures
  - Periodic cleanup of expired keys
  - Per-IP counts alongside per-identity counts
"""

import threading
from datetime import timedelta

import pytest

from compliance_core.application.failed_login_tracker import (
    FailedLoginTracker,
    FailedLoginTrackerConfig,
    FailureCounts,
    is_threshold_breach,
)

pytestmark = pytest.mark.unit

FP = "f" * 64


@pytest.fixture
def tracker(clock) -> FailedLoginTracker:
    config = FailedLoginTrackerConfig(
        threshold=5, window_seconds=300, cleanup_interval_seconds=300
    )
    return FailedLoginTracker(config, clock=clock)


def test_counts_within_window(tracker, clock):
    for i in range(3):
        count = tracker.record_failure(FP, timestamp=clock() + timedelta(seconds=i))
        assert count == i + 1
    assert tracker.count_for(FP, clock() + timedelta(seconds=10)) == 3


def test_old_failures_fall_out_of_window(tracker, clock):
    start = clock()
    for i in range(5):
        tracker.record_failure(FP, timestamp=start + timedelta(seconds=i))

    # Pasados 300s del primero: solo el primero sale de la ventana.
    count = tracker.record_failure(
        FP, timestamp=start + timedelta(seconds=300, milliseconds=500)
    )
    assert count == 5
    assert tracker.count_for(FP, start + timedelta(minutes=20)) == 0


def test_over_threshold_means_strictly_greater(tracker, clock):
    for i in range(5):
        tracker.record_failure(FP, timestamp=clock() + timedelta(seconds=i))
    assert not tracker.is_over_threshold(FP, clock() + timedelta(seconds=10))
    tracker.record_failure(FP, timestamp=clock() + timedelta(seconds=6))
    assert tracker.is_over_threshold(FP, clock() + timedelta(seconds=10))
    assert tracker.keys_over_threshold(clock() + timedelta(seconds=10)) == [FP]


@pytest.mark.parametrize(
    "count, expected",
    [(5, False), (6, True), (7, False), (10, False), (11, True), (16, True)],
)
def test_breach_points(count, expected):
    assert is_threshold_breach(count, 5) is expected


def test_clear_resets_identity_but_not_ip(tracker, clock):
    tracker.record_failure(FP, "203.0.113.7", clock())
    tracker.record_failure(FP, "203.0.113.7", clock())
    tracker.clear(FP)

    assert tracker.count_for(FP) == 0
    assert tracker.count_for_ip("203.0.113.7") == 2
    assert tracker.record_failure(FP, timestamp=clock()) == 1


def test_out_of_order_timestamps_are_counted(tracker, clock):
    start = clock()
    tracker.record_failure(FP, timestamp=start + timedelta(seconds=30))
    tracker.record_failure(FP, timestamp=start + timedelta(seconds=10))
    assert tracker.count_for(FP, start + timedelta(seconds=315)) == 1


def test_concurrent_failures_are_not_lost(tracker, clock):
    threads_count = 16
    per_thread = 50
    barrier = threading.Barrier(threads_count)
    ts = clock()

    def hammer():
        barrier.wait()
        for _ in range(per_thread):
            tracker.record_failure(FP, timestamp=ts)

    threads = [threading.Thread(target=hammer) for _ in range(threads_count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert tracker.count_for(FP, ts) == threads_count * per_thread


def test_concurrent_breach_fires_exactly_once_per_step(tracker, clock):
    ts = clock()
    counts = []
    lock = threading.Lock()
    barrier = threading.Barrier(8)

    def attempt():
        barrier.wait()
        count = tracker.record_failure(FP, timestamp=ts)
        with lock:
            counts.append(count)

    threads = [threading.Thread(target=attempt) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(counts) == list(range(1, 9))
    assert sum(is_threshold_breach(c, 5) for c in counts) == 1


def test_cleanup_removes_expired_keys(tracker, clock):
    tracker.record_failure("a" * 64, "198.51.100.1", clock())
    tracker.record_failure("b" * 64, timestamp=clock())
    assert tracker.stats().tracked_identities == 2

    removed = tracker.cleanup_expired(clock() + timedelta(minutes=10))

    assert removed == 3
    stats = tracker.stats()
    assert stats.tracked_identities == 0
    assert stats.tracked_ips == 0


def test_periodic_cleanup_runs_on_record(tracker, clock):
    tracker.record_failure("a" * 64, timestamp=clock())
    later = clock() + timedelta(minutes=10)
    tracker.record_failure("b" * 64, timestamp=later)
    assert tracker.stats().tracked_identities == 1


def test_config_rejects_non_positive_values():
    with pytest.raises(ValueError):
        FailedLoginTrackerConfig(threshold=0)
    with pytest.raises(ValueError):
        FailedLoginTrackerConfig(ip_threshold=0)


def test_record_counts_identity_and_ip(tracker, clock):
    ip = "203.0.113.9"
    for i in range(3):
        tracker.record(f"{i:064x}", ip, clock())
    counts = tracker.record(FP, ip, clock())

    assert counts == FailureCounts(identity_count=1, ip_count=4)
    assert tracker.count_for_ip(ip) == 4


def test_record_without_ip_reports_zero(tracker, clock):
    assert tracker.record(FP, None, clock()) == FailureCounts(identity_count=1, ip_count=0)
