"""
Name: Incident Domain Rules Tests

Responsibilities:
  - CNIL deadline computation (72h from creation, severity floor)
  - Escalation ladder and deadline anchoring
  - One-way lifecycle transitions
  - Sensitive PII labels (payment, national id)
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from compliance_core.domain.incident import (
    DeadlineState,
    IncidentSeverity,
    IncidentStatus,
    IncidentType,
    RiskLevel,
    SecurityIncident,
    compute_cnil_deadline,
    deadline_state,
    escalate_severity,
    escalated,
    has_sensitive_pii,
    with_closed,
    with_cnil_notified,
    with_users_notified,
)

pytestmark = pytest.mark.unit

CREATED = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def _incident(**overrides) -> SecurityIncident:
    values = dict(
        id=uuid4(),
        type=IncidentType.BRUTE_FORCE,
        severity=IncidentSeverity.LOW,
        risk_level=RiskLevel.LOW,
        created_at=CREATED,
        updated_at=CREATED,
        title="Brute force attack detected",
        cnil_deadline=CREATED + timedelta(hours=72),
    )
    values.update(overrides)
    return SecurityIncident(**values)


def test_deadline_is_72_hours_after_creation():
    deadline = compute_cnil_deadline(
        CREATED, IncidentSeverity.LOW, min_severity=IncidentSeverity.LOW
    )
    assert deadline == CREATED + timedelta(hours=72)


def test_below_min_severity_has_no_deadline():
    assert (
        compute_cnil_deadline(
            CREATED, IncidentSeverity.LOW, min_severity=IncidentSeverity.HIGH
        )
        is None
    )


def test_severity_ladder_caps_at_high_and_never_touches_critical():
    assert escalate_severity(IncidentSeverity.LOW) == IncidentSeverity.MEDIUM
    assert escalate_severity(IncidentSeverity.MEDIUM) == IncidentSeverity.HIGH
    assert escalate_severity(IncidentSeverity.HIGH) == IncidentSeverity.HIGH
    assert escalate_severity(IncidentSeverity.CRITICAL) == IncidentSeverity.CRITICAL


def test_escalation_keeps_deadline_anchored_to_creation():
    incident = _incident()
    later = CREATED + timedelta(minutes=20)

    bumped = escalated(incident, later, min_severity=IncidentSeverity.LOW)

    assert bumped.severity == IncidentSeverity.MEDIUM
    assert bumped.risk_level == RiskLevel.MEDIUM
    assert bumped.breach_count == 2
    assert bumped.cnil_deadline == incident.cnil_deadline
    assert bumped.updated_at == later


def test_escalation_into_notifiable_severity_computes_deadline_from_creation():
    incident = _incident(cnil_deadline=None)
    bumped = escalated(
        incident,
        CREATED + timedelta(hours=1),
        min_severity=IncidentSeverity.MEDIUM,
    )
    assert bumped.cnil_deadline == CREATED + timedelta(hours=72)


@pytest.mark.parametrize(
    "now_offset, expected",
    [
        (timedelta(hours=1), DeadlineState.OK),
        (timedelta(hours=60), DeadlineState.APPROACHING),
        (timedelta(hours=73), DeadlineState.OVERDUE),
    ],
)
def test_deadline_state(now_offset, expected):
    assert deadline_state(_incident(), CREATED + now_offset) == expected


def test_deadline_state_not_applicable_once_notified():
    notified = with_cnil_notified(_incident(), CREATED + timedelta(hours=2))
    assert deadline_state(notified, CREATED + timedelta(hours=100)) == (
        DeadlineState.NOT_APPLICABLE
    )


def test_transitions_are_one_way():
    incident = _incident()
    first = CREATED + timedelta(hours=1)

    notified = with_cnil_notified(incident, first, "CNIL-2025-001")
    assert notified.cnil_notified_at == first
    assert notified.cnil_reference == "CNIL-2025-001"
    with pytest.raises(ValueError):
        with_cnil_notified(notified, first + timedelta(hours=1))

    users = with_users_notified(incident, first)
    with pytest.raises(ValueError):
        with_users_notified(users, first)

    closed = with_closed(incident, first, "Password reset enforced")
    assert closed.status == IncidentStatus.CLOSED
    assert not closed.is_open
    with pytest.raises(ValueError):
        with_closed(closed, first)


def test_users_notification_required_for_high_risk_only():
    assert _incident(risk_level=RiskLevel.HIGH).requires_users_notification
    assert not _incident(risk_level=RiskLevel.MEDIUM).requires_users_notification


@pytest.mark.parametrize(
    "labels, expected",
    [
        (["personal_email"], False),
        (["personal_email", "credit_card"], True),
        (["National_ID"], True),
        (["payment_info"], True),
        (["us_ssn"], True),
        ([], False),
    ],
)
def test_sensitive_pii_labels(labels, expected):
    assert has_sensitive_pii(labels) is expected
