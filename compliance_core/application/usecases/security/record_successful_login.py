"""
===============================================================================
USE CASE: Record Successful Login
===============================================================================

Name:
    Record Successful Login Use Case

Business Goal:
    Resetear el contador de fallos de la identidad al autenticarse y dejar
    rastro auth.login.succeeded (BEST_EFFORT).

Notas:
    - El contador por IP no se resetea: una IP que prueba muchas cuentas
      sigue siendo sospechosa aunque una de ellas acierte.
    - Igual que el registro de fallos, nunca rompe el login.
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ....domain.audit import AuditEventName
from ....domain.scope import Actor
from ...audit_trail import AuditPolicy, AuditTrail
from ...failed_login_tracker import FailedLoginTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordSuccessfulLoginInput:
    actor: Actor
    identity_fingerprint: str


class RecordSuccessfulLoginUseCase:
    def __init__(self, tracker: FailedLoginTracker, audit_trail: AuditTrail) -> None:
        self._tracker = tracker
        self._audit = audit_trail

    def execute(self, input_data: RecordSuccessfulLoginInput) -> bool:
        try:
            self._tracker.clear(input_data.identity_fingerprint)
            event = self._audit.build_event(
                AuditEventName.AUTH_LOGIN_SUCCEEDED,
                actor=input_data.actor,
                target_id=input_data.actor.actor_id,
            )
            self._audit.record(event, policy=AuditPolicy.BEST_EFFORT)
            return True
        except Exception:
            logger.exception("successful login tracking error")
            return False
