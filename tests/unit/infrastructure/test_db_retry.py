"""
Name: Database Retry Helper Unit Tests

Responsibilities:
  - Transient vs permanent classification of psycopg errors
  - Retry decorator stops after the configured attempts
  - Audit writes through the Postgres adapter survive one dropped connection

Notes:
  - Delays are overridden to keep the suite fast
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock
from uuid import uuid4

import psycopg
import pytest
from psycopg_pool import PoolTimeout

from compliance_core.crosscutting.config import get_settings
from compliance_core.domain.audit import AuditEvent, AuditEventName, safe_metadata
from compliance_core.domain.scope import ActorScope
from compliance_core.infrastructure.db.retry import (
    create_db_retry_decorator,
    is_transient_db_error,
)
from compliance_core.infrastructure.repositories import PostgresAuditEventRepository

pytestmark = pytest.mark.unit


class TestIsTransientDbError:
    @pytest.mark.parametrize(
        "exc",
        [
            psycopg.OperationalError("server closed the connection"),
            psycopg.InterfaceError("connection already closed"),
            PoolTimeout("couldn't get a connection after 30 sec"),
        ],
    )
    def test_connection_errors_are_transient(self, exc):
        assert is_transient_db_error(exc) is True

    @pytest.mark.parametrize(
        "exc",
        [
            psycopg.IntegrityError("duplicate key"),
            psycopg.ProgrammingError("syntax error"),
            ValueError("bad input"),
        ],
    )
    def test_other_errors_are_permanent(self, exc):
        assert is_transient_db_error(exc) is False


def _flaky(*outcomes):
    """Función que levanta/retorna outcomes en orden y cuenta llamadas."""
    remaining = list(outcomes)

    def operation():
        operation.calls += 1
        outcome = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    operation.calls = 0
    return operation


class TestCreateDbRetryDecorator:
    def test_retries_until_success(self):
        calls = _flaky(psycopg.OperationalError("down"), "ok")
        decorated = create_db_retry_decorator(
            max_attempts=3, base_delay=0.001, max_delay=0.001
        )(calls)

        assert decorated() == "ok"
        assert calls.calls == 2

    def test_reraises_after_max_attempts(self):
        calls = _flaky(psycopg.OperationalError("down"))
        decorated = create_db_retry_decorator(
            max_attempts=2, base_delay=0.001, max_delay=0.001
        )(calls)

        with pytest.raises(psycopg.OperationalError):
            decorated()
        assert calls.calls == 2

    def test_permanent_error_is_not_retried(self):
        calls = _flaky(psycopg.IntegrityError("duplicate key"))
        decorated = create_db_retry_decorator(
            max_attempts=5, base_delay=0.001, max_delay=0.001
        )(calls)

        with pytest.raises(psycopg.IntegrityError):
            decorated()
        assert calls.calls == 1


def test_audit_write_retries_dropped_connection(monkeypatch):
    monkeypatch.setattr(get_settings(), "db_retry_base_delay_seconds", 0.001)
    monkeypatch.setattr(get_settings(), "db_retry_max_delay_seconds", 0.001)

    conn = MagicMock()
    conn.execute.side_effect = [psycopg.OperationalError("connection reset"), None]
    pool = MagicMock()
    pool.connection.return_value.__enter__.return_value = conn

    event = AuditEvent(
        id=uuid4(),
        event_name=AuditEventName.TENANT_CREATED,
        actor_scope=ActorScope.SYSTEM,
        occurred_at=datetime.now(timezone.utc),
        metadata=safe_metadata(attempt=1),
    )
    PostgresAuditEventRepository(pool=pool).write(event)

    assert conn.execute.call_count == 2
    sql = conn.execute.call_args.args[0]
    assert "ON CONFLICT (id) DO NOTHING" in sql
