"""
Name: Timing Utilities Tests

Responsibilities:
  - run_with_timeout reuses one executor across calls
  - The caller's request context reaches the worker thread
  - Timeouts become OperationTimeoutError; queued work is cancelled
"""

import threading

import pytest

from compliance_core.context import clear_context, get_context_dict, set_request_context
from compliance_core.crosscutting import timing
from compliance_core.crosscutting.exceptions import OperationTimeoutError
from compliance_core.crosscutting.timing import Timer, run_with_timeout

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def fresh_executor():
    timing.shutdown_executor()
    yield
    timing.shutdown_executor()
    clear_context()


def test_without_timeout_runs_in_caller_thread():
    caller = threading.current_thread().name
    assert run_with_timeout(lambda: threading.current_thread().name, None, operation="x") == caller


def test_executor_is_shared_between_calls():
    run_with_timeout(lambda: None, 1.0, operation="audit_write")
    first = timing._get_executor()
    run_with_timeout(lambda: None, 1.0, operation="audit_write")
    assert timing._get_executor() is first


def test_worker_sees_request_context():
    set_request_context(request_id="req-42", actor_scope="TENANT", tenant_id="acme")
    ctx = run_with_timeout(get_context_dict, 1.0, operation="audit_write")
    assert ctx == {"request_id": "req-42", "actor_scope": "TENANT", "tenant_id": "acme"}


def test_worker_thread_name_is_stable():
    name = run_with_timeout(
        lambda: threading.current_thread().name, 1.0, operation="audit_write"
    )
    assert name.startswith("compliance-timeout")


def test_exceptions_propagate():
    def _boom():
        raise ConnectionError("db down")

    with pytest.raises(ConnectionError):
        run_with_timeout(_boom, 1.0, operation="audit_write")


def test_timeout_raises_and_cancels_queued_work(monkeypatch):
    monkeypatch.setattr(timing, "_EXECUTOR_MAX_WORKERS", 1)
    release = threading.Event()
    ran = []
    try:
        with pytest.raises(OperationTimeoutError):
            run_with_timeout(lambda: release.wait(5), 0.05, operation="audit_write")
        # El único worker sigue ocupado: esta llamada queda en cola y se cancela.
        with pytest.raises(OperationTimeoutError):
            run_with_timeout(lambda: ran.append(1), 0.05, operation="audit_write")
    finally:
        release.set()
    timing.shutdown_executor(wait=True)
    assert ran == []


def test_non_positive_timeout_is_rejected():
    with pytest.raises(ValueError):
        run_with_timeout(lambda: None, 0, operation="x")


def test_timer_measures_elapsed():
    with Timer() as timer:
        pass
    assert timer.elapsed_ms >= 0
