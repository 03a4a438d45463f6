"""
CRC — domain/repositories.py

Name
- Domain Repository Interfaces (Protocols)

Responsibilities
- Define persistence contracts for the core (ports).
- Keep application/domain independent from infrastructure (PostgreSQL, in-memory).
- Enable dependency inversion and straightforward unit testing (fake repositories).

Collaborators
- domain.audit: AuditEvent
- domain.entities: Tenant, PlatformUser, TenantUser
- domain.incident: SecurityIncident
- infrastructure.repositories: postgres/*, in_memory/* implementations

Constraints
- Pure interfaces only: no side effects, no infrastructure imports, no SQL.
- Implementations MUST match method signatures exactly.
- Infrastructure failures are raised (DatabaseError); policy outcomes are
  returned (bool / None), never raised.

Notes
- BootstrapStateRepository.complete_bootstrap is the single-writer operation:
  super-admin creation and the state flip happen atomically or not at all.
- SecurityIncidentRepository.update is a compare-and-set on the previous
  snapshot so concurrent lifecycle calls cannot both win.
"""

from datetime import datetime
from typing import List, Optional, Protocol
from uuid import UUID

from .audit import AuditEvent, AuditEventName
from .entities import PlatformUser, Tenant, TenantUser
from .incident import IncidentStatus, IncidentType, SecurityIncident


class AuditEventWriter(Protocol):
    """R: Append-only sink for audit events."""

    def write(self, event: AuditEvent) -> None:
        """R: Persist the event once. Raises on failure."""
        ...


class AuditEventRepository(AuditEventWriter, Protocol):
    """R: Audit sink plus query side."""

    def list_events(
        self,
        *,
        tenant_id: Optional[str] = None,
        event_name: Optional[AuditEventName] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditEvent]:
        """R: Most recent first. tenant_id=None means every tenant."""
        ...


class BootstrapStateRepository(Protocol):
    """R: Singleton bootstrap flag (absent = not bootstrapped)."""

    def is_bootstrapped(self) -> bool:
        ...

    def mark_bootstrapped(self) -> bool:
        """R: Flip to true. Returns False if it was already true."""
        ...

    def complete_bootstrap(self, super_admin: PlatformUser) -> bool:
        """
        R: Atomic compare-and-set.

        Creates the super-admin AND flips the flag in one durable operation.
        Returns False (and creates nothing) if already bootstrapped.
        """
        ...


class PlatformUserRepository(Protocol):
    def exists_super_admin(self) -> bool:
        ...

    def create_super_admin(
        self,
        *,
        user_id: UUID,
        email_hash: str,
        display_name: str,
        password_hash: str,
    ) -> PlatformUser:
        ...


class TenantRepository(Protocol):
    def find_by_slug(self, slug: str) -> Optional[Tenant]:
        ...

    def find_by_id(self, tenant_id: str) -> Optional[Tenant]:
        ...

    def create(self, tenant: Tenant) -> bool:
        """R: Returns False if the slug is already taken (atomic)."""
        ...


class TenantUserRepository(Protocol):
    def create_tenant_admin(self, user: TenantUser) -> TenantUser:
        ...

    def create_tenant_user(self, user: TenantUser) -> TenantUser:
        ...

    def find_by_id(self, user_id: UUID) -> Optional[TenantUser]:
        ...

    def exists_email_hash(self, tenant_id: str, email_hash: str) -> bool:
        ...

    def suspend(self, user_id: UUID, suspended_at: datetime) -> Optional[TenantUser]:
        """R: Returns the updated user, or None if it does not exist."""
        ...


class SecurityIncidentRepository(Protocol):
    """R: Incident CRUD (no delete) + queries by status/type/tenant."""

    def create(self, incident: SecurityIncident) -> SecurityIncident:
        ...

    def get(self, incident_id: UUID) -> Optional[SecurityIncident]:
        ...

    def update(
        self, incident: SecurityIncident, *, expected: SecurityIncident
    ) -> bool:
        """R: Replace the row only if it still equals `expected`."""
        ...

    def find_open_by_correlation(
        self,
        *,
        incident_type: IncidentType,
        identity_fingerprint: Optional[str],
        tenant_id: Optional[str],
        created_since: datetime,
        source_ip: Optional[str] = None,
    ) -> Optional[SecurityIncident]:
        """
        R: Newest OPEN incident for the key created at/after created_since.

        identity_fingerprint and tenant_id match exactly (None matches None);
        source_ip only filters when given.
        """
        ...

    def list_incidents(
        self,
        *,
        status: Optional[IncidentStatus] = None,
        incident_type: Optional[IncidentType] = None,
        tenant_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[SecurityIncident]:
        ...

    def list_pending_cnil(self, now: datetime) -> List[SecurityIncident]:
        """R: Notifiable, not yet notified, deadline not passed."""
        ...
