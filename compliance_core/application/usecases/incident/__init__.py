from .check_cnil_deadlines import CheckCnilDeadlinesUseCase, DeadlineReport
from .close_incident import CloseIncidentInput, CloseIncidentUseCase
from .create_incident import CreateIncidentInput, CreateIncidentUseCase
from .incident_results import (
    IncidentError,
    IncidentErrorCode,
    IncidentListResult,
    IncidentResult,
    PendingCnilItem,
    PendingCnilResult,
)
from .list_incidents import (
    ListIncidentsInput,
    ListIncidentsUseCase,
    ListPendingCnilUseCase,
)
from .notify_cnil import NotifyCnilInput, NotifyCnilUseCase
from .notify_users import NotifyUsersInput, NotifyUsersUseCase

__all__ = [
    "CreateIncidentInput",
    "CreateIncidentUseCase",
    "NotifyCnilInput",
    "NotifyCnilUseCase",
    "NotifyUsersInput",
    "NotifyUsersUseCase",
    "CloseIncidentInput",
    "CloseIncidentUseCase",
    "ListIncidentsInput",
    "ListIncidentsUseCase",
    "ListPendingCnilUseCase",
    "CheckCnilDeadlinesUseCase",
    "DeadlineReport",
    "IncidentError",
    "IncidentErrorCode",
    "IncidentResult",
    "IncidentListResult",
    "PendingCnilItem",
    "PendingCnilResult",
]
