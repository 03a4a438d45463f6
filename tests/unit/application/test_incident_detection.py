"""
Name: Incident Detection Engine Tests

Responsibilities:
  - Find-or-create: one incident per identity inside the correlation window
  - Escalation ladder and breach counting
  - Cross-tenant incidents (CRITICAL / HIGH, attributed to the target tenant)
  - Critical audit failures surface to the caller
  - Cross-tenant reports run off the caller thread with its request context
  - Correlation locks are dropped once no thread holds them
  - Per-IP brute force, mass export, PII in logs and backup failure signals
"""

import logging
import threading
from datetime import timedelta

import pytest

from compliance_core.application.audit_trail import AuditTrail
from compliance_core.application.incident_detection import (
    IncidentDetectionConfig,
    IncidentDetectionEngine,
    _KeyedLocks,
)
from compliance_core.context import clear_context, get_context_dict, set_request_context
from compliance_core.crosscutting.exceptions import AuditWriteError
from compliance_core.domain.audit import AuditEventName, SafeFlag, SafeLabel, SafeNumber
from compliance_core.domain.incident import (
    DataCategory,
    DetectionContext,
    DetectionSource,
    IncidentSeverity,
    IncidentStatus,
    IncidentType,
    RiskLevel,
    with_closed,
)

pytestmark = pytest.mark.unit

FP = "c" * 64


@pytest.fixture
def engine(incident_repo, audit_trail, clock):
    engine = IncidentDetectionEngine(
        incident_repo, audit_trail, IncidentDetectionConfig(), clock=clock
    )
    yield engine
    engine.shutdown()


def test_first_breach_creates_low_incident(engine, incident_repo, audit_repo, clock, acme):
    ts = clock()
    incident = engine.on_threshold_exceeded(
        FP, acme.id, DetectionContext(occurred_at=ts, source_ip="203.0.113.9")
    )

    assert incident.type == IncidentType.BRUTE_FORCE
    assert incident.severity == IncidentSeverity.LOW
    assert incident.risk_level == RiskLevel.LOW
    assert incident.status == IncidentStatus.OPEN
    assert incident.tenant_id == acme.id
    assert incident.cnil_deadline == ts + timedelta(hours=72)
    assert incident.data_categories == (DataCategory.P2,)
    assert incident_repo.get(incident.id) == incident

    [event] = audit_repo.list_events()
    assert event.event_name == AuditEventName.INCIDENT_CREATED
    assert event.tenant_id == acme.id
    assert event.metadata["severity"] == SafeLabel("LOW")


def test_repeated_breach_escalates_same_incident(engine, incident_repo, audit_repo, clock):
    first = engine.on_threshold_exceeded(FP, None, DetectionContext(clock()))
    second = engine.on_threshold_exceeded(
        FP, None, DetectionContext(clock() + timedelta(minutes=5))
    )
    third = engine.on_threshold_exceeded(
        FP, None, DetectionContext(clock() + timedelta(minutes=10))
    )
    fourth = engine.on_threshold_exceeded(
        FP, None, DetectionContext(clock() + timedelta(minutes=15))
    )

    assert first.id == second.id == third.id == fourth.id
    assert second.severity == IncidentSeverity.MEDIUM
    assert third.severity == IncidentSeverity.HIGH
    assert fourth.severity == IncidentSeverity.HIGH
    assert fourth.risk_level == RiskLevel.HIGH
    assert fourth.breach_count == 4
    assert fourth.cnil_deadline == first.cnil_deadline
    assert len(incident_repo.list_incidents()) == 1

    names = [e.event_name for e in audit_repo.list_events(limit=10)]
    assert names.count(AuditEventName.INCIDENT_CREATED) == 1
    assert names.count(AuditEventName.INCIDENT_ESCALATED) == 3


def test_breach_outside_window_opens_new_incident(engine, incident_repo, clock):
    first = engine.on_threshold_exceeded(FP, None, DetectionContext(clock()))
    later = engine.on_threshold_exceeded(
        FP, None, DetectionContext(clock() + timedelta(minutes=61))
    )
    assert later.id != first.id
    assert later.severity == IncidentSeverity.LOW


def test_closed_incident_is_not_reused(engine, incident_repo, clock):
    first = engine.on_threshold_exceeded(FP, None, DetectionContext(clock()))
    incident_repo.update(with_closed(first, clock()), expected=first)

    again = engine.on_threshold_exceeded(
        FP, None, DetectionContext(clock() + timedelta(minutes=1))
    )
    assert again.id != first.id


def test_incidents_are_correlated_per_tenant(engine, clock, acme, globex):
    a = engine.on_threshold_exceeded(FP, acme.id, DetectionContext(clock()))
    b = engine.on_threshold_exceeded(FP, globex.id, DetectionContext(clock()))
    assert a.id != b.id


def test_concurrent_breaches_never_duplicate(engine, incident_repo, clock):
    barrier = threading.Barrier(8)

    def breach():
        barrier.wait()
        engine.on_threshold_exceeded(FP, None, DetectionContext(clock()))

    threads = [threading.Thread(target=breach) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    [incident] = incident_repo.list_incidents()
    assert incident.breach_count == 8


def test_cross_tenant_attempt_creates_critical_incident(
    engine, audit_repo, clock, acme_admin, globex
):
    incident = engine.on_cross_tenant_attempt(
        acme_admin, globex.id, DetectionContext(clock())
    )

    assert incident.type == IncidentType.CROSS_TENANT_ACCESS
    assert incident.severity == IncidentSeverity.CRITICAL
    assert incident.risk_level == RiskLevel.HIGH
    assert incident.tenant_id == globex.id
    assert incident.created_by == acme_admin.actor_id
    assert incident.requires_users_notification
    assert incident.cnil_deadline == clock() + timedelta(hours=72)

    [event] = audit_repo.list_events(tenant_id=globex.id)
    assert event.metadata["offending_scope"] == SafeLabel("TENANT")


def test_listener_adapter_feeds_the_engine(engine, incident_repo, acme_admin, globex):
    listener = engine.cross_tenant_listener()
    listener(acme_admin, globex.id)
    assert engine.wait_for_reports(timeout=5)
    [incident] = incident_repo.list_incidents(tenant_id=globex.id)
    assert incident.type == IncidentType.CROSS_TENANT_ACCESS


def test_critical_audit_failure_propagates(incident_repo, failing_audit_trail, clock):
    engine = IncidentDetectionEngine(
        incident_repo, failing_audit_trail, IncidentDetectionConfig(), clock=clock
    )
    with pytest.raises(AuditWriteError):
        engine.on_threshold_exceeded(FP, None, DetectionContext(clock()))
    # El incidente ya quedó persistido: el registro de compliance no se pierde.
    assert len(incident_repo.list_incidents()) == 1


def test_min_severity_config_suppresses_deadline(incident_repo, audit_trail, clock):
    engine = IncidentDetectionEngine(
        incident_repo,
        audit_trail,
        IncidentDetectionConfig(min_notifiable_severity=IncidentSeverity.MEDIUM),
        clock=clock,
    )
    first = engine.on_threshold_exceeded(FP, None, DetectionContext(clock()))
    assert first.cnil_deadline is None
    second = engine.on_threshold_exceeded(
        FP, None, DetectionContext(clock() + timedelta(minutes=3))
    )
    assert second.cnil_deadline == first.created_at + timedelta(hours=72)


def test_listener_returns_before_the_report_is_stored(
    incident_repo, audit_repo, clock, acme_admin, globex
):
    release = threading.Event()

    class GatedWriter:
        def write(self, event):
            release.wait(5)
            audit_repo.write(event)

    engine = IncidentDetectionEngine(
        incident_repo,
        AuditTrail(GatedWriter(), clock=clock, timeout_seconds=5),
        IncidentDetectionConfig(),
        clock=clock,
    )
    try:
        engine.cross_tenant_listener()(acme_admin, globex.id)
        assert audit_repo.list_events() == []
        release.set()
        assert engine.wait_for_reports(timeout=5)
    finally:
        release.set()
        engine.shutdown()

    [event] = audit_repo.list_events(tenant_id=globex.id)
    assert event.event_name == AuditEventName.INCIDENT_CREATED


def test_background_report_keeps_request_context(engine):
    seen = []
    set_request_context(request_id="req-7", actor_scope="TENANT", tenant_id="acme")
    try:
        engine.submit_report(lambda: seen.append(get_context_dict()))
        assert engine.wait_for_reports(timeout=5)
    finally:
        clear_context()
    assert seen == [{"request_id": "req-7", "actor_scope": "TENANT", "tenant_id": "acme"}]


def test_background_report_failure_is_logged(engine, caplog):
    def _boom():
        raise ConnectionError("db down")

    with caplog.at_level(logging.ERROR):
        future = engine.submit_report(_boom)
        assert engine.wait_for_reports(timeout=5)

    assert future.exception() is None
    assert any("background incident report failed" in r.getMessage() for r in caplog.records)


# ============================================================================
# Locks por clave
# ============================================================================


def test_correlation_locks_are_released_after_use(engine, clock):
    for i in range(200):
        engine.on_threshold_exceeded(f"{i:064x}", None, DetectionContext(clock()))
    assert len(engine._locks) == 0


def test_keyed_lock_lives_while_held():
    locks = _KeyedLocks()
    with locks.hold("k"):
        assert len(locks) == 1
        with locks.hold("other"):
            assert len(locks) == 2
    assert len(locks) == 0


# ============================================================================
# Brute force por IP
# ============================================================================


def test_ip_breaches_correlate_on_source_ip(engine, incident_repo, clock):
    ctx = DetectionContext(clock(), source_ip="203.0.113.9")
    first = engine.on_ip_threshold_exceeded("203.0.113.9", ctx)
    second = engine.on_ip_threshold_exceeded(
        "203.0.113.9", DetectionContext(clock() + timedelta(minutes=2))
    )
    other = engine.on_ip_threshold_exceeded(
        "198.51.100.4", DetectionContext(clock() + timedelta(minutes=2))
    )

    assert first.id == second.id != other.id
    assert second.severity == IncidentSeverity.MEDIUM
    assert second.tenant_id is None
    assert second.identity_fingerprint is None
    assert second.source_ip == "203.0.113.9"
    assert len(incident_repo.list_incidents()) == 2


def test_ip_incident_does_not_absorb_identity_incident(engine, clock):
    ctx = DetectionContext(clock(), source_ip="203.0.113.9")
    per_identity = engine.on_threshold_exceeded(FP, None, ctx)
    per_ip = engine.on_ip_threshold_exceeded("203.0.113.9", ctx)
    assert per_identity.id != per_ip.id
    assert per_ip.breach_count == 1


# ============================================================================
# Export masivo, PII en logs, backups
# ============================================================================


def test_export_below_threshold_is_ignored(engine, incident_repo, clock, acme, acme_admin):
    assert (
        engine.on_mass_export(acme_admin.actor_id, acme.id, 9_999, DetectionContext(clock()))
        is None
    )
    assert incident_repo.list_incidents() == []


def test_mass_export_creates_data_leak(engine, audit_repo, clock, acme, acme_admin):
    incident = engine.on_mass_export(
        acme_admin.actor_id, acme.id, 10_000, DetectionContext(clock())
    )

    assert incident.type == IncidentType.DATA_LEAK
    assert incident.severity == IncidentSeverity.HIGH
    assert incident.risk_level == RiskLevel.MEDIUM
    assert incident.tenant_id == acme.id
    assert incident.records_affected == 10_000
    assert incident.users_affected == 1
    assert incident.created_by == acme_admin.actor_id
    assert incident.cnil_deadline == clock() + timedelta(hours=72)
    [event] = audit_repo.list_events(tenant_id=acme.id)
    assert event.metadata["record_count"] == SafeNumber(10_000)


def test_sensitive_pii_in_logs_is_high(engine, audit_repo, clock):
    incident = engine.on_pii_in_logs(
        ["personal_email", "credit_card"], 42, DetectionContext(clock())
    )

    assert incident.type == IncidentType.PII_IN_LOGS
    assert incident.severity == IncidentSeverity.HIGH
    assert incident.risk_level == RiskLevel.HIGH
    assert incident.tenant_id is None
    assert incident.records_affected == 42
    assert incident.detected_by == DetectionSource.MONITORING
    [event] = audit_repo.list_events()
    assert event.metadata["sensitive_pii"] == SafeFlag(True)
    assert event.metadata["pii_type_count"] == SafeNumber(2)


def test_plain_pii_in_logs_is_medium(engine, clock):
    incident = engine.on_pii_in_logs(["personal_email"], 3, DetectionContext(clock()))
    assert incident.severity == IncidentSeverity.MEDIUM
    assert incident.risk_level == RiskLevel.MEDIUM


def test_single_backup_failure_is_ignored(engine, incident_repo, clock):
    assert engine.on_backup_failure(1, DetectionContext(clock())) is None
    assert incident_repo.list_incidents() == []


def test_backup_failure_streak_opens_one_incident(engine, incident_repo, clock):
    first = engine.on_backup_failure(2, DetectionContext(clock()))
    again = engine.on_backup_failure(
        3, DetectionContext(clock() + timedelta(minutes=30))
    )

    assert first.type == IncidentType.DATA_LOSS
    assert first.severity == IncidentSeverity.HIGH
    assert first.risk_level == RiskLevel.MEDIUM
    assert first.tenant_id is None
    assert first.detected_by == DetectionSource.MONITORING
    assert again.id == first.id
    assert len(incident_repo.list_incidents()) == 1


def test_thresholds_come_from_config(incident_repo, audit_trail, clock, acme):
    engine = IncidentDetectionEngine(
        incident_repo,
        audit_trail,
        IncidentDetectionConfig(mass_export_record_threshold=5, backup_failure_threshold=4),
        clock=clock,
    )
    assert engine.on_mass_export(None, acme.id, 5, DetectionContext(clock())) is not None
    assert engine.on_backup_failure(3, DetectionContext(clock())) is None
