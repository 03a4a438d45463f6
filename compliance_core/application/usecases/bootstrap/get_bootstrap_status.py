"""
===============================================================================
USE CASE: Get Bootstrap Status
===============================================================================

Name:
    Get Bootstrap Status Use Case

Business Goal:
    Responder si la plataforma ya fue inicializada y si existe un
    super-admin (diagnóstico del operador, comando `status` del CLI).

Collaborators:
    - BootstrapStateRepository.is_bootstrapped
    - PlatformUserRepository.exists_super_admin
===============================================================================
"""

from __future__ import annotations

from ....domain.entities import BootstrapStatus
from ....domain.repositories import BootstrapStateRepository, PlatformUserRepository
from .bootstrap_results import BootstrapStatusResult


class GetBootstrapStatusUseCase:
    def __init__(
        self,
        state_repository: BootstrapStateRepository,
        platform_user_repository: PlatformUserRepository,
    ) -> None:
        self._state = state_repository
        self._platform_users = platform_user_repository

    def execute(self) -> BootstrapStatusResult:
        return BootstrapStatusResult(
            status=BootstrapStatus(
                bootstrapped=self._state.is_bootstrapped(),
                super_admin_exists=self._platform_users.exists_super_admin(),
            )
        )
