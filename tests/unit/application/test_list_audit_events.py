"""
Name: List Audit Events Use Case Tests

Responsibilities:
  - Tenant actors only ever see their own tenant's events
  - Platform actors can filter by tenant or see everything
  - The listing itself is audited
"""

from datetime import timedelta

import pytest

from compliance_core.application.audit_trail import AuditPolicy
from compliance_core.application.usecases.audit import (
    ListAuditEventsInput,
    ListAuditEventsUseCase,
)
from compliance_core.domain.audit import AuditEventName
from compliance_core.domain.scope import Actor

pytestmark = pytest.mark.unit


@pytest.fixture
def seeded(audit_trail, clock, acme, globex):
    for i, tenant in enumerate((acme, globex, acme)):
        event = audit_trail.build_event(
            AuditEventName.TENANT_USER_CREATED,
            actor=Actor.system(),
            tenant_id=tenant.id,
            occurred_at=clock() + timedelta(minutes=i),
        )
        audit_trail.record(event, policy=AuditPolicy.BEST_EFFORT)


@pytest.fixture
def use_case(audit_repo, guard, audit_trail):
    return ListAuditEventsUseCase(audit_repo, guard, audit_trail)


def test_acme_never_sees_globex_events(use_case, seeded, acme_admin, acme):
    result = use_case.execute(
        ListAuditEventsInput(actor=acme_admin, event_name=AuditEventName.TENANT_USER_CREATED)
    )

    assert result.error is None
    assert len(result.events) == 2
    assert {e.tenant_id for e in result.events} == {acme.id}
    assert result.events[0].occurred_at > result.events[1].occurred_at


def test_requesting_foreign_tenant_returns_empty(
    use_case, seeded, acme_admin, globex, cross_tenant_recorder
):
    result = use_case.execute(ListAuditEventsInput(actor=acme_admin, tenant_id=globex.id))

    assert result.error is None
    assert result.events == []
    assert cross_tenant_recorder.calls == [(acme_admin, globex.id)]


def test_platform_filters_by_tenant(use_case, seeded, platform_dpo, globex):
    result = use_case.execute(
        ListAuditEventsInput(
            actor=platform_dpo,
            tenant_id=globex.id,
            event_name=AuditEventName.TENANT_USER_CREATED,
        )
    )
    assert [e.tenant_id for e in result.events] == [globex.id]


def test_platform_sees_all_tenants(use_case, seeded, super_admin):
    result = use_case.execute(
        ListAuditEventsInput(
            actor=super_admin, event_name=AuditEventName.TENANT_USER_CREATED
        )
    )
    assert len(result.events) == 3


def test_tenant_user_is_forbidden(use_case, seeded, acme_user):
    result = use_case.execute(ListAuditEventsInput(actor=acme_user))
    assert result.error is not None
    assert result.events == []


def test_listing_is_audited(use_case, seeded, acme_admin, audit_repo, acme):
    use_case.execute(ListAuditEventsInput(actor=acme_admin))

    [listed] = audit_repo.list_events(event_name=AuditEventName.AUDIT_EVENTS_LISTED)
    assert listed.tenant_id == acme.id
    assert listed.actor_id == acme_admin.actor_id


def test_limit_is_clamped(use_case, seeded, super_admin):
    result = use_case.execute(ListAuditEventsInput(actor=super_admin, limit=0))
    assert len(result.events) == 1
