"""
Name: Safe Audit Metadata Tests

Responsibilities:
  - Only identifier-shaped labels, numbers, flags and hashed ids are accepted
  - Plain strings (emails, names, free text) are rejected at construction
  - AuditEvent freezes its metadata
  - The persisted form keeps each value's variant
"""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from compliance_core.domain.audit import (
    AuditEvent,
    AuditEventName,
    HashedId,
    SafeFlag,
    SafeLabel,
    SafeNumber,
    metadata_from_json,
    metadata_to_json,
    safe_metadata,
)
from compliance_core.domain.incident import IncidentSeverity
from compliance_core.domain.scope import ActorScope

pytestmark = pytest.mark.unit

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def test_safe_metadata_coerces_supported_types():
    incident_id = uuid4()
    meta = safe_metadata(
        severity=IncidentSeverity.HIGH,
        attempt_count=6,
        threshold_exceeded=True,
        incident_id=incident_id,
    )
    assert meta["severity"] == SafeLabel("HIGH")
    assert meta["attempt_count"] == SafeNumber(6)
    assert meta["threshold_exceeded"] == SafeFlag(True)
    assert meta["incident_id"] == HashedId(str(incident_id))


def test_plain_strings_are_rejected():
    with pytest.raises(TypeError):
        safe_metadata(email="alice@example.com")
    with pytest.raises(TypeError):
        safe_metadata(note="free text")


def test_email_cannot_hide_in_a_label():
    with pytest.raises(TypeError):
        SafeLabel("alice@example.com")
    with pytest.raises(TypeError):
        SafeLabel("Alice Smith")


def test_hashed_id_accepts_digest_or_uuid_only():
    HashedId("a" * 64)
    HashedId(str(uuid4()))
    with pytest.raises(TypeError):
        HashedId("not-a-hash")


def test_bool_is_not_a_number():
    with pytest.raises(TypeError):
        SafeNumber(True)


def test_invalid_keys_are_rejected():
    with pytest.raises(TypeError):
        safe_metadata(**{"Bad-Key": 1})


def test_audit_event_rejects_raw_values_and_freezes_metadata():
    with pytest.raises(TypeError):
        AuditEvent(
            id=uuid4(),
            event_name=AuditEventName.TENANT_CREATED,
            actor_scope=ActorScope.SYSTEM,
            occurred_at=NOW,
            metadata={"name": "Acme Corp"},
        )

    event = AuditEvent(
        id=uuid4(),
        event_name=AuditEventName.TENANT_CREATED,
        actor_scope=ActorScope.SYSTEM,
        occurred_at=NOW,
        metadata=safe_metadata(count=1),
    )
    with pytest.raises(TypeError):
        event.metadata["count"] = SafeNumber(2)


def test_metadata_json_conversion_preserves_values():
    digest = "ab" * 32
    meta = safe_metadata(role=SafeLabel("TENANT_ADMIN"), target=HashedId(digest), n=3)
    restored = metadata_from_json(metadata_to_json(meta))
    assert restored["role"] == SafeLabel("TENANT_ADMIN")
    assert restored["target"] == HashedId(digest)
    assert restored["n"] == SafeNumber(3)


def test_hex_shaped_label_keeps_its_variant():
    label = SafeLabel("deadbeef" * 4)
    restored = metadata_from_json(metadata_to_json({"code": label}))
    assert restored["code"] == label
    assert isinstance(restored["code"], SafeLabel)


def test_untagged_or_unknown_entries_are_rejected():
    with pytest.raises(TypeError):
        metadata_from_json({"severity": "HIGH"})
    with pytest.raises(TypeError):
        metadata_from_json({"severity": {"kind": "text", "value": "HIGH"}})
    with pytest.raises(TypeError):
        metadata_from_json({"contact": {"kind": "label", "value": "a@b.com"}})


@given(
    st.dictionaries(
        st.from_regex(r"[a-z][a-z0-9_]{0,10}", fullmatch=True),
        st.one_of(
            st.from_regex(r"[A-Za-z0-9_.:\-]{1,64}", fullmatch=True).map(SafeLabel),
            st.from_regex(r"[0-9a-f]{32,64}", fullmatch=True).map(HashedId),
            st.integers(min_value=-(10**9), max_value=10**9).map(SafeNumber),
            st.booleans().map(SafeFlag),
        ),
        max_size=6,
    )
)
def test_json_round_trip_is_lossless(meta):
    assert metadata_from_json(metadata_to_json(meta)) == meta


@given(st.text(min_size=1, max_size=40).map(lambda local: f"{local}@example.com"))
def test_no_email_shaped_string_is_ever_accepted(email):
    with pytest.raises(TypeError):
        safe_metadata(value=email)
    with pytest.raises(TypeError):
        SafeLabel(email)
