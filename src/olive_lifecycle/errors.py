"""Error taxonomy shared by stores, services, the CLI and the REST server."""


class OliveLifecycleError(Exception):
    """Base exception for the platform."""


class NotFoundError(OliveLifecycleError):
    """Requested field, task, user or lifecycle id has no matching record."""


class UnauthorizedError(OliveLifecycleError):
    """Actor lacks permission to view or mutate a record."""


class ValidationError(OliveLifecycleError):
    """Input is missing a required value or carries an invalid one."""


class ServiceError(OliveLifecycleError):
    """Transient or unknown failure, e.g. a network error talking to the API."""
