from .record_failed_login import (
    FailedLoginOutcome,
    RecordFailedLoginInput,
    RecordFailedLoginUseCase,
)
from .record_successful_login import (
    RecordSuccessfulLoginInput,
    RecordSuccessfulLoginUseCase,
)

__all__ = [
    "FailedLoginOutcome",
    "RecordFailedLoginInput",
    "RecordFailedLoginUseCase",
    "RecordSuccessfulLoginInput",
    "RecordSuccessfulLoginUseCase",
]
