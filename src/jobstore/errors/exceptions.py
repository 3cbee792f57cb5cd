"""Exception classes raised by the persistence layer."""


class JobStoreError(Exception):
    """Base exception for the job store."""

    def __init__(self, code: str, message: str, details=None):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class PersistenceFailure(JobStoreError):
    """A write affected zero rows, or violated a key, where one row was expected."""

    def __init__(self, message: str, details=None):
        super().__init__("PERSISTENCE_FAILURE", message, details)


class NotFoundError(JobStoreError):
    """A required row does not exist."""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            "NOT_FOUND",
            f"{resource} '{resource_id}' not found",
        )


class WaitTimeoutError(JobStoreError):
    """A bounded wait on a database unit of work expired."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(
            "WAIT_TIMEOUT",
            f"{operation} did not complete within {timeout:g}s",
            details={"operation": operation, "timeout": timeout},
        )


class BestEffortCleanupFailure(JobStoreError):
    """A secondary delete failed. Reported to the caller, never raised."""

    def __init__(self, message: str, cause: BaseException | None = None):
        self.cause = cause
        super().__init__("CLEANUP_FAILURE", message)


class ContextTerminatedError(JobStoreError):
    """A context died while jobs were still running in it."""

    def __init__(self, context_name: str):
        self.context_name = context_name
        super().__init__(
            "CONTEXT_TERMINATED",
            f"Unexpected termination of context {context_name}",
        )
