"""
Application layer: guard, audit trail, failed-login tracker, detection engine
and use cases (policy only, no infrastructure).
"""

from .audit_trail import AuditPolicy, AuditTrail
from .authorization import (
    AuthorizationError,
    AuthorizationErrorCode,
    TenantAuthorizationGuard,
)
from .failed_login_tracker import FailedLoginTracker, FailedLoginTrackerConfig
from .incident_detection import IncidentDetectionConfig, IncidentDetectionEngine

__all__ = [
    "AuditPolicy",
    "AuditTrail",
    "AuthorizationError",
    "AuthorizationErrorCode",
    "TenantAuthorizationGuard",
    "FailedLoginTracker",
    "FailedLoginTrackerConfig",
    "IncidentDetectionConfig",
    "IncidentDetectionEngine",
]
