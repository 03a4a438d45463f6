from .list_audit_events import (
    AuditEventListResult,
    ListAuditEventsInput,
    ListAuditEventsUseCase,
)

__all__ = [
    "AuditEventListResult",
    "ListAuditEventsInput",
    "ListAuditEventsUseCase",
]
