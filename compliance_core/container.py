"""
===============================================================================
TARJETA CRC — compliance_core/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer dependencias (repositorios, hashers, guard, tracker, engine).
  - Exponer factories de casos de uso para las interfaces (CLI, host app).
  - Mantener singletons con caching (lru_cache) para estado compartido:
      * tracker de logins fallidos (ventana en memoria del proceso)
      * engine de detección (locks por clave de correlación)
      * repositorios in-memory (un único store por proceso)
  - Centralizar decisiones runtime basadas en Settings.

Colaboradores:
  - crosscutting.config.get_settings
  - domain.repositories.* (puertos)
  - infrastructure.repositories.* (implementaciones)
  - application.* (casos de uso)

Notas:
  - Este archivo NO contiene lógica de negocio.
  - Postgres solo si DATABASE_URL está configurada y no estamos en test;
    el pool se inicializa desde la interfaz (init_pool).
  - El guard se cablea con engine.cross_tenant_listener(): todo intento
    cross-tenant genera un incidente CRITICAL en el executor del engine.
  - reset_container() apaga el executor del engine antes de olvidarlo.
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application.audit_trail import AuditTrail
from .application.authorization import TenantAuthorizationGuard
from .application.failed_login_tracker import FailedLoginTracker
from .application.incident_detection import IncidentDetectionEngine
from .application.usecases.audit import ListAuditEventsUseCase
from .application.usecases.bootstrap import (
    BootstrapPlatformUseCase,
    CreateTenantAdminUseCase,
    CreateTenantUseCase,
    CreateTenantUserUseCase,
    GetBootstrapStatusUseCase,
)
from .application.usecases.incident import (
    CheckCnilDeadlinesUseCase,
    CloseIncidentUseCase,
    CreateIncidentUseCase,
    ListIncidentsUseCase,
    ListPendingCnilUseCase,
    NotifyCnilUseCase,
    NotifyUsersUseCase,
)
from .application.usecases.security import (
    RecordFailedLoginUseCase,
    RecordSuccessfulLoginUseCase,
)
from .application.usecases.users import GetTenantUserUseCase, SuspendTenantUserUseCase
from .crosscutting.config import get_settings
from .domain.repositories import (
    AuditEventRepository,
    BootstrapStateRepository,
    PlatformUserRepository,
    SecurityIncidentRepository,
    TenantRepository,
    TenantUserRepository,
)
from .domain.services import EmailHasher, PasswordHasher
from .identity.hashing import Argon2PasswordHasher, HmacEmailHasher
from .infrastructure.repositories import (
    InMemoryAuditEventRepository,
    InMemoryBootstrapStateRepository,
    InMemoryPlatformUserRepository,
    InMemorySecurityIncidentRepository,
    InMemoryTenantRepository,
    InMemoryTenantUserRepository,
    PostgresAuditEventRepository,
    PostgresBootstrapStateRepository,
    PostgresPlatformUserRepository,
    PostgresSecurityIncidentRepository,
    PostgresTenantRepository,
    PostgresTenantUserRepository,
)

# =============================================================================
# Helpers internos
# =============================================================================


def _is_test_env() -> bool:
    env = get_settings().app_env.strip().lower()
    return env in {"test", "testing", "ci"}


def use_postgres() -> bool:
    """Postgres si hay DATABASE_URL y no es entorno de test."""
    return bool(get_settings().database_url) and not _is_test_env()


# =============================================================================
# Repositorios (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_audit_repository() -> AuditEventRepository:
    if use_postgres():
        return PostgresAuditEventRepository()
    return InMemoryAuditEventRepository()


@lru_cache(maxsize=1)
def get_platform_user_repository() -> PlatformUserRepository:
    if use_postgres():
        return PostgresPlatformUserRepository()
    return InMemoryPlatformUserRepository()


@lru_cache(maxsize=1)
def get_bootstrap_state_repository() -> BootstrapStateRepository:
    if use_postgres():
        return PostgresBootstrapStateRepository()
    # El CAS in-memory necesita el mismo store de usuarios de plataforma.
    return InMemoryBootstrapStateRepository(get_platform_user_repository())


@lru_cache(maxsize=1)
def get_tenant_repository() -> TenantRepository:
    if use_postgres():
        return PostgresTenantRepository()
    return InMemoryTenantRepository()


@lru_cache(maxsize=1)
def get_tenant_user_repository() -> TenantUserRepository:
    if use_postgres():
        return PostgresTenantUserRepository()
    return InMemoryTenantUserRepository()


@lru_cache(maxsize=1)
def get_security_incident_repository() -> SecurityIncidentRepository:
    if use_postgres():
        return PostgresSecurityIncidentRepository()
    return InMemorySecurityIncidentRepository()


# =============================================================================
# Servicios (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_password_hasher() -> PasswordHasher:
    return Argon2PasswordHasher()


@lru_cache(maxsize=1)
def get_email_hasher() -> EmailHasher:
    return HmacEmailHasher()


@lru_cache(maxsize=1)
def get_audit_trail() -> AuditTrail:
    return AuditTrail(get_audit_repository())


@lru_cache(maxsize=1)
def get_failed_login_tracker() -> FailedLoginTracker:
    return FailedLoginTracker()


@lru_cache(maxsize=1)
def get_incident_engine() -> IncidentDetectionEngine:
    return IncidentDetectionEngine(get_security_incident_repository(), get_audit_trail())


@lru_cache(maxsize=1)
def get_authorization_guard() -> TenantAuthorizationGuard:
    return TenantAuthorizationGuard(
        cross_tenant_listener=get_incident_engine().cross_tenant_listener()
    )


def reset_container() -> None:
    """Olvida todos los singletons (tests / cambio de Settings)."""
    if get_incident_engine.cache_info().currsize:
        get_incident_engine().shutdown(wait=True)
    for factory in (
        get_audit_repository,
        get_platform_user_repository,
        get_bootstrap_state_repository,
        get_tenant_repository,
        get_tenant_user_repository,
        get_security_incident_repository,
        get_password_hasher,
        get_email_hasher,
        get_audit_trail,
        get_failed_login_tracker,
        get_incident_engine,
        get_authorization_guard,
    ):
        factory.cache_clear()


# =============================================================================
# Casos de uso (factory por llamada)
# =============================================================================


def get_bootstrap_platform_use_case() -> BootstrapPlatformUseCase:
    return BootstrapPlatformUseCase(
        state_repository=get_bootstrap_state_repository(),
        password_hasher=get_password_hasher(),
        email_hasher=get_email_hasher(),
        audit_trail=get_audit_trail(),
    )


def get_bootstrap_status_use_case() -> GetBootstrapStatusUseCase:
    return GetBootstrapStatusUseCase(
        state_repository=get_bootstrap_state_repository(),
        platform_user_repository=get_platform_user_repository(),
    )


def get_create_tenant_use_case() -> CreateTenantUseCase:
    return CreateTenantUseCase(
        tenant_repository=get_tenant_repository(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_create_tenant_admin_use_case() -> CreateTenantAdminUseCase:
    return CreateTenantAdminUseCase(
        tenant_repository=get_tenant_repository(),
        tenant_user_repository=get_tenant_user_repository(),
        password_hasher=get_password_hasher(),
        email_hasher=get_email_hasher(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_create_tenant_user_use_case() -> CreateTenantUserUseCase:
    return CreateTenantUserUseCase(
        tenant_repository=get_tenant_repository(),
        tenant_user_repository=get_tenant_user_repository(),
        password_hasher=get_password_hasher(),
        email_hasher=get_email_hasher(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_get_tenant_user_use_case() -> GetTenantUserUseCase:
    return GetTenantUserUseCase(
        tenant_user_repository=get_tenant_user_repository(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_suspend_tenant_user_use_case() -> SuspendTenantUserUseCase:
    return SuspendTenantUserUseCase(
        tenant_user_repository=get_tenant_user_repository(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_list_audit_events_use_case() -> ListAuditEventsUseCase:
    return ListAuditEventsUseCase(
        repository=get_audit_repository(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_record_failed_login_use_case() -> RecordFailedLoginUseCase:
    return RecordFailedLoginUseCase(
        tracker=get_failed_login_tracker(),
        engine=get_incident_engine(),
        audit_trail=get_audit_trail(),
    )


def get_record_successful_login_use_case() -> RecordSuccessfulLoginUseCase:
    return RecordSuccessfulLoginUseCase(
        tracker=get_failed_login_tracker(),
        audit_trail=get_audit_trail(),
    )


def get_create_incident_use_case() -> CreateIncidentUseCase:
    return CreateIncidentUseCase(
        repository=get_security_incident_repository(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_notify_cnil_use_case() -> NotifyCnilUseCase:
    return NotifyCnilUseCase(
        repository=get_security_incident_repository(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_notify_users_use_case() -> NotifyUsersUseCase:
    return NotifyUsersUseCase(
        repository=get_security_incident_repository(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_close_incident_use_case() -> CloseIncidentUseCase:
    return CloseIncidentUseCase(
        repository=get_security_incident_repository(),
        guard=get_authorization_guard(),
        audit_trail=get_audit_trail(),
    )


def get_list_incidents_use_case() -> ListIncidentsUseCase:
    return ListIncidentsUseCase(
        repository=get_security_incident_repository(),
        guard=get_authorization_guard(),
    )


def get_list_pending_cnil_use_case() -> ListPendingCnilUseCase:
    return ListPendingCnilUseCase(
        repository=get_security_incident_repository(),
        guard=get_authorization_guard(),
    )


def get_check_cnil_deadlines_use_case() -> CheckCnilDeadlinesUseCase:
    return CheckCnilDeadlinesUseCase(repository=get_security_incident_repository())
