"""
Name: Pytest Configuration and Shared Fixtures

Responsibilities:
  - Configure a deterministic test environment (no .env, in-memory adapters)
  - Provide reusable fakes (clock, hashers, failing audit writer)
  - Provide actors for the two-tenant scenarios (acme / globex)

Notes:
  - Fixtures are auto-discovered by pytest
  - Every fixture is function-scoped: repositories never leak between tests
"""

import os

os.environ["APP_ENV"] = "test"

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import List  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402

from compliance_core.crosscutting import config as app_config  # noqa: E402

app_config.Settings.model_config["env_file"] = None
app_config.get_settings.cache_clear()

from compliance_core.application.audit_trail import AuditTrail  # noqa: E402
from compliance_core.application.authorization import (  # noqa: E402
    TenantAuthorizationGuard,
)
from compliance_core.domain.audit import AuditEvent  # noqa: E402
from compliance_core.domain.entities import Tenant  # noqa: E402
from compliance_core.domain.scope import Actor, ActorScope, Role  # noqa: E402
from compliance_core.identity.hashing import HmacEmailHasher  # noqa: E402
from compliance_core.infrastructure.repositories import (  # noqa: E402
    InMemoryAuditEventRepository,
    InMemoryBootstrapStateRepository,
    InMemoryPlatformUserRepository,
    InMemorySecurityIncidentRepository,
    InMemoryTenantRepository,
    InMemoryTenantUserRepository,
)

T0 = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


def pytest_configure(config) -> None:
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Tests that need a PostgreSQL instance"
    )


# ============================================================================
# Fakes
# ============================================================================


class FakeClock:
    """Reloj manual: now() fijo hasta advance()."""

    def __init__(self, start: datetime = T0):
        self._now = start

    def __call__(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value


class FakePasswordHasher:
    """Hash reversible solo para tests (argon2 real en test_hashing)."""

    def hash(self, password: str) -> str:
        return f"hashed::{password[::-1]}"

    def verify(self, password: str, password_hash: str) -> bool:
        return self.hash(password) == password_hash


class FailingAuditWriter:
    """Writer que siempre falla (simula DB caída)."""

    def __init__(self) -> None:
        self.attempts: List[AuditEvent] = []

    def write(self, event: AuditEvent) -> None:
        self.attempts.append(event)
        raise ConnectionError("audit store unavailable")


class CrossTenantRecorder:
    """Listener del guard que solo registra llamadas."""

    def __init__(self) -> None:
        self.calls: List[tuple[Actor, str]] = []

    def __call__(self, actor: Actor, target_tenant_id: str) -> None:
        self.calls.append((actor, target_tenant_id))


# ============================================================================
# Infra fixtures
# ============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def audit_repo() -> InMemoryAuditEventRepository:
    return InMemoryAuditEventRepository()


@pytest.fixture
def audit_trail(audit_repo, clock) -> AuditTrail:
    return AuditTrail(audit_repo, clock=clock)


@pytest.fixture
def failing_writer() -> FailingAuditWriter:
    return FailingAuditWriter()


@pytest.fixture
def failing_audit_trail(failing_writer, clock) -> AuditTrail:
    return AuditTrail(failing_writer, clock=clock)


@pytest.fixture
def cross_tenant_recorder() -> CrossTenantRecorder:
    return CrossTenantRecorder()


@pytest.fixture
def guard(cross_tenant_recorder) -> TenantAuthorizationGuard:
    return TenantAuthorizationGuard(cross_tenant_listener=cross_tenant_recorder)


@pytest.fixture
def platform_user_repo() -> InMemoryPlatformUserRepository:
    return InMemoryPlatformUserRepository()


@pytest.fixture
def bootstrap_state_repo(platform_user_repo) -> InMemoryBootstrapStateRepository:
    return InMemoryBootstrapStateRepository(platform_user_repo)


@pytest.fixture
def tenant_repo() -> InMemoryTenantRepository:
    return InMemoryTenantRepository()


@pytest.fixture
def tenant_user_repo() -> InMemoryTenantUserRepository:
    return InMemoryTenantUserRepository()


@pytest.fixture
def incident_repo() -> InMemorySecurityIncidentRepository:
    return InMemorySecurityIncidentRepository()


@pytest.fixture
def password_hasher() -> FakePasswordHasher:
    return FakePasswordHasher()


@pytest.fixture
def email_hasher() -> HmacEmailHasher:
    return HmacEmailHasher(key="unit-test-email-key")


# ============================================================================
# Tenants & actors
# ============================================================================


@pytest.fixture
def acme(tenant_repo) -> Tenant:
    tenant = Tenant(id=str(uuid4()), slug="acme", name="Acme Corp", created_at=T0)
    tenant_repo.create(tenant)
    return tenant


@pytest.fixture
def globex(tenant_repo) -> Tenant:
    tenant = Tenant(id=str(uuid4()), slug="globex", name="Globex", created_at=T0)
    tenant_repo.create(tenant)
    return tenant


@pytest.fixture
def system_actor() -> Actor:
    return Actor.system()


@pytest.fixture
def super_admin() -> Actor:
    return Actor(scope=ActorScope.PLATFORM, role=Role.SUPER_ADMIN, actor_id=uuid4())


@pytest.fixture
def platform_dpo() -> Actor:
    return Actor(scope=ActorScope.PLATFORM, role=Role.DPO, actor_id=uuid4())


@pytest.fixture
def acme_admin(acme) -> Actor:
    return Actor(
        scope=ActorScope.TENANT,
        role=Role.TENANT_ADMIN,
        tenant_id=acme.id,
        actor_id=uuid4(),
    )


@pytest.fixture
def globex_admin(globex) -> Actor:
    return Actor(
        scope=ActorScope.TENANT,
        role=Role.TENANT_ADMIN,
        tenant_id=globex.id,
        actor_id=uuid4(),
    )


@pytest.fixture
def acme_user(acme) -> Actor:
    return Actor(
        scope=ActorScope.TENANT,
        role=Role.TENANT_USER,
        tenant_id=acme.id,
        actor_id=uuid4(),
    )
