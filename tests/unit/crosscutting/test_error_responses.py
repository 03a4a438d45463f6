"""
Name: Problem Details Mapping Tests

Responsibilities:
  - Typed errors map to stable RFC 7807 payloads
  - Cross-tenant and missing resources are byte-identical
  - Infrastructure failures never leak internal details
"""

import json

import pytest

from compliance_core.application.authorization import (
    AuthorizationError,
    AuthorizationErrorCode,
)
from compliance_core.application.usecases.bootstrap import (
    BootstrapError,
    BootstrapErrorCode,
)
from compliance_core.application.usecases.incident import (
    IncidentError,
    IncidentErrorCode,
)
from compliance_core.crosscutting.error_responses import (
    ErrorCode,
    problem_from_error,
    problem_from_exception,
)
from compliance_core.crosscutting.exceptions import (
    AuditWriteError,
    ComplianceError,
    DatabaseError,
)

pytestmark = pytest.mark.unit


@pytest.mark.parametrize(
    "error, status, code",
    [
        (
            BootstrapError(BootstrapErrorCode.INVALID_BOOTSTRAP_SECRET, "Invalid bootstrap secret."),
            401,
            ErrorCode.INVALID_BOOTSTRAP_SECRET,
        ),
        (
            BootstrapError(BootstrapErrorCode.ALREADY_BOOTSTRAPPED, "Platform is already bootstrapped."),
            409,
            ErrorCode.ALREADY_BOOTSTRAPPED,
        ),
        (
            AuthorizationError(AuthorizationErrorCode.FORBIDDEN_ROLE, "Access denied."),
            403,
            ErrorCode.FORBIDDEN,
        ),
        (
            IncidentError(IncidentErrorCode.ALREADY_CLOSED, "Incident is already closed."),
            409,
            ErrorCode.ALREADY_CLOSED,
        ),
        (
            IncidentError(IncidentErrorCode.VALIDATION_ERROR, "Title is required."),
            422,
            ErrorCode.VALIDATION_ERROR,
        ),
    ],
)
def test_status_mapping(error, status, code):
    problem = problem_from_error(error)

    assert problem.status == status
    assert problem.code == code
    assert problem.detail == error.message
    assert problem.error_id is None


def test_not_found_variants_share_one_payload():
    payloads = {
        problem_from_error(e).to_json()
        for e in (
            AuthorizationError(AuthorizationErrorCode.FORBIDDEN_TENANT, "whatever"),
            AuthorizationError(AuthorizationErrorCode.NOT_FOUND, "Resource not found."),
            BootstrapError(BootstrapErrorCode.NOT_FOUND, "Tenant not found.", "Tenant"),
            IncidentError(IncidentErrorCode.INCIDENT_NOT_FOUND, "Incident not found."),
        )
    }

    assert len(payloads) == 1
    body = json.loads(payloads.pop())
    assert body == {
        "type": "about:blank",
        "title": "Not Found",
        "status": 404,
        "detail": "Resource not found.",
        "code": "NOT_FOUND",
    }


def test_instance_is_included_when_given():
    problem = problem_from_error(
        IncidentError(IncidentErrorCode.ALREADY_NOTIFIED, "Already."),
        instance="/incidents/1",
    )
    assert json.loads(problem.to_json())["instance"] == "/incidents/1"


def test_unknown_code_falls_back_to_internal_error():
    problem = problem_from_error(BootstrapError("SOMETHING_NEW", "x"))
    assert problem.code == ErrorCode.INTERNAL_ERROR
    assert problem.status == 500


def test_infrastructure_errors_hide_details():
    exc = DatabaseError("connection refused to 10.0.0.3:5432")
    problem = problem_from_exception(exc)

    assert problem.status == 503
    assert problem.code == ErrorCode.DATABASE_ERROR
    assert "10.0.0.3" not in problem.to_json()
    assert problem.error_id == exc.error_id


def test_audit_write_failure_is_service_unavailable():
    problem = problem_from_exception(AuditWriteError("audit store down"))
    assert problem.status == 503
    assert problem.code == ErrorCode.AUDIT_WRITE_FAILED


def test_generic_compliance_error_is_internal():
    problem = problem_from_exception(ComplianceError("boom"))
    assert problem.status == 500
    assert problem.code == ErrorCode.INTERNAL_ERROR
