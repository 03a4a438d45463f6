"""
Name: Tenant Authorization Guard Tests

Responsibilities:
  - Role check before tenant check, before any lookup
  - Cross-tenant denial indistinguishable from not-found
  - Cross-tenant listener invoked best-effort
"""

from uuid import uuid4

import pytest
from hypothesis import given
from hypothesis import strategies as st

from compliance_core.application.authorization import (
    ALLOW,
    AuthorizationErrorCode,
    Deny,
    TenantAuthorizationGuard,
    outward_error,
)
from compliance_core.crosscutting.error_responses import problem_from_error
from compliance_core.crosscutting.exceptions import OperationTimeoutError
from compliance_core.domain.scope import Actor, ActorScope, Role

pytestmark = pytest.mark.unit

ADMIN_ROLES = {Role.SUPER_ADMIN, Role.SYSTEM, Role.TENANT_ADMIN}


class _Record:
    def __init__(self, tenant_id):
        self.id = uuid4()
        self.tenant_id = tenant_id


def test_allow_has_no_side_effects(guard, acme_admin, acme, cross_tenant_recorder):
    assert guard.authorize(acme_admin, ADMIN_ROLES, acme.id) is ALLOW
    assert cross_tenant_recorder.calls == []


def test_role_is_checked_first(guard, acme_user, globex, cross_tenant_recorder):
    decision = guard.authorize(acme_user, ADMIN_ROLES, globex.id)
    assert decision == Deny(AuthorizationErrorCode.FORBIDDEN_ROLE)
    # Sin rol no hay detección cross-tenant.
    assert cross_tenant_recorder.calls == []


def test_cross_tenant_is_denied_and_reported(
    guard, acme_admin, globex, cross_tenant_recorder
):
    decision = guard.authorize(acme_admin, ADMIN_ROLES, globex.id)
    assert decision == Deny(AuthorizationErrorCode.FORBIDDEN_TENANT)
    assert cross_tenant_recorder.calls == [(acme_admin, globex.id)]


def test_platform_and_system_reach_any_tenant(guard, super_admin, system_actor, globex):
    assert guard.authorize(super_admin, ADMIN_ROLES, globex.id) is ALLOW
    assert guard.authorize(system_actor, ADMIN_ROLES, globex.id) is ALLOW


def test_forbidden_tenant_maps_to_not_found():
    cross = outward_error(Deny(AuthorizationErrorCode.FORBIDDEN_TENANT), resource="X")
    missing = outward_error(Deny(AuthorizationErrorCode.NOT_FOUND), resource="X")
    assert cross == missing
    assert cross.code == AuthorizationErrorCode.NOT_FOUND


def test_resource_lookup_is_skipped_without_role(guard, acme_user):
    calls = []

    def load():
        calls.append(1)
        return _Record("whatever")

    access = guard.authorize_resource(
        acme_user, ADMIN_ROLES, load, tenant_of=lambda r: r.tenant_id
    )
    assert access.error.code == AuthorizationErrorCode.FORBIDDEN_ROLE
    assert calls == []


def test_foreign_and_missing_resources_are_indistinguishable(
    guard, acme_admin, globex
):
    foreign = guard.authorize_resource(
        acme_admin,
        ADMIN_ROLES,
        load=lambda: _Record(globex.id),
        tenant_of=lambda r: r.tenant_id,
        resource_name="TenantUser",
    )
    missing = guard.authorize_resource(
        acme_admin,
        ADMIN_ROLES,
        load=lambda: None,
        tenant_of=lambda r: r.tenant_id,
        resource_name="TenantUser",
    )

    assert foreign.resource is None and missing.resource is None
    assert foreign.error == missing.error
    assert problem_from_error(foreign.error).to_json() == (
        problem_from_error(missing.error).to_json()
    )
    # Internamente se distingue (para detección), nunca hacia afuera.
    assert foreign.decision == Deny(AuthorizationErrorCode.FORBIDDEN_TENANT)


def test_platform_resource_is_hidden_from_tenant_actors(guard, acme_admin, super_admin):
    record = _Record(None)
    hidden = guard.authorize_resource(
        acme_admin, ADMIN_ROLES, load=lambda: record, tenant_of=lambda r: r.tenant_id
    )
    visible = guard.authorize_resource(
        super_admin, ADMIN_ROLES, load=lambda: record, tenant_of=lambda r: r.tenant_id
    )
    assert hidden.error.code == AuthorizationErrorCode.NOT_FOUND
    assert visible.resource is record


def test_listener_failure_does_not_change_decision(acme_admin, globex):
    def broken_listener(actor, tenant_id):
        raise RuntimeError("incident store down")

    guard = TenantAuthorizationGuard(cross_tenant_listener=broken_listener)
    decision = guard.authorize(acme_admin, ADMIN_ROLES, globex.id)
    assert decision == Deny(AuthorizationErrorCode.FORBIDDEN_TENANT)


def test_lookup_timeout_raises(guard, super_admin):
    import threading

    release = threading.Event()

    def slow_load():
        release.wait(2)
        return None

    try:
        with pytest.raises(OperationTimeoutError):
            guard.authorize_resource(
                super_admin,
                ADMIN_ROLES,
                load=slow_load,
                tenant_of=lambda r: r.tenant_id,
                timeout_seconds=0.05,
            )
    finally:
        release.set()


@given(
    own=st.uuids().map(str),
    other=st.uuids().map(str),
    role=st.sampled_from([Role.TENANT_ADMIN, Role.TENANT_USER, Role.TENANT_DPO]),
)
def test_tenant_actor_never_reaches_another_tenant(own, other, role):
    if own == other:
        return
    actor = Actor(scope=ActorScope.TENANT, role=role, tenant_id=own)
    guard = TenantAuthorizationGuard()
    access = guard.authorize_resource(
        actor,
        set(Role),
        load=lambda: _Record(other),
        tenant_of=lambda r: r.tenant_id,
    )
    assert access.resource is None
    assert access.error.code == AuthorizationErrorCode.NOT_FOUND
