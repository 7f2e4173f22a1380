"""Error hierarchy for kscan.

Error layers:
- KscanError: Base class for all kscan errors
- DomainError: Data errors and scan outcomes (bad owner kind, failed task, ...)
- InfrastructureError: Cluster API failures, misconfiguration, partial lifecycle failures

Errors raised by the cluster client are translated into this hierarchy at the
adapter boundary, so domain code never sees ``ApiException``.
"""


class KscanError(Exception):
    """Base class for all kscan errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors
# =============================================================================


class DomainError(KscanError):
    """Base class for domain errors."""


class NotFoundError(DomainError):
    """Resource not found."""


class ValidationError(DomainError):
    """Input validation failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class ConflictError(DomainError):
    """Resource already exists or version conflict."""


class KindResolutionError(DomainError):
    """The kind of an object is missing or not in the type registry."""


class IncompleteReportError(DomainError):
    """A report was built without one of its required fields."""

    def __init__(self, field: str) -> None:
        super().__init__(f"report {field} is not set", code="INCOMPLETE_REPORT")
        self.field = field


class ReportParseError(DomainError):
    """Scanner output could not be converted into a report payload."""


class TaskFailedError(DomainError):
    """The submitted task reached a terminal failure condition."""

    def __init__(self, reason: str, message: str) -> None:
        super().__init__(f"job failed: {reason}: {message}", code="TASK_FAILED")
        self.reason = reason
        self.detail = message


class ScanError(DomainError):
    """A scan failed; ``stage`` names the step and ``__cause__`` holds the original error."""

    def __init__(self, stage: str, cause: KscanError) -> None:
        super().__init__(f"{stage}: {cause.message}", code=cause.code)
        self.stage = stage
        self.cause = cause


# =============================================================================
# Infrastructure Errors
# =============================================================================


class InfrastructureError(KscanError):
    """Base class for infrastructure/system errors."""


class ExternalServiceError(InfrastructureError):
    """The cluster API (or another upstream service) is unavailable or failed."""


class ConfigurationError(InfrastructureError):
    """System misconfiguration detected."""


class TaskCreationError(InfrastructureError):
    """A secret or the task itself could not be created; no task exists."""


class TaskAlreadyExistsError(TaskCreationError, ConflictError):
    """A task with the same deterministic name is already present."""


class SecretOwnershipError(InfrastructureError):
    """Some secrets were created but could not be handed over to the task."""

    def __init__(self, message: str, unowned: list[str]) -> None:
        super().__init__(message, code="SECRET_OWNERSHIP")
        self.unowned = unowned
