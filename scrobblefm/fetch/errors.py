"""
Exception types for scrobblefm.

Everything raised on purpose derives from ScrobbleError so the command line
can report it in one place. Last.fm's numeric error codes map onto the
ServiceError subclasses below via service_error_for().
"""


class ScrobbleError(Exception):
    pass


class ConfigError(ScrobbleError):
    pass


class ServiceError(ScrobbleError):
    """Last.fm answered with a structured ``{"error": code, "message": ...}`` body."""

    code = 8
    default_message = "Operation failed"

    def __init__(self, message=None, code=None):
        self.message = message or self.default_message
        if code is not None:
            self.code = code
        super().__init__(self.message)

    def __str__(self):
        return f"Last.fm error {self.code}: {self.message}"


class InvalidService(ServiceError):
    code = 2
    default_message = "This service does not exist"


class InvalidMethod(ServiceError):
    code = 3
    default_message = "No method with that name in this package"


class AuthenticationFailed(ServiceError):
    code = 4
    default_message = "You do not have permissions to access the service"


class InvalidFormat(ServiceError):
    code = 5
    default_message = "This service doesn't exist in that format"


class InvalidParameters(ServiceError):
    code = 6
    default_message = "Your request is missing a required parameter"


class InvalidResourceSpecified(ServiceError):
    code = 7
    default_message = "Invalid resource specified"


class OperationFailed(ServiceError):
    code = 8


class InvalidSessionKey(ServiceError):
    code = 9
    default_message = "Please re-authenticate"


class InvalidApiKey(ServiceError):
    code = 10
    default_message = "You must be granted a valid key by last.fm"


class ServiceOffline(ServiceError):
    code = 11
    default_message = "This service is temporarily offline. Try again later."


class InvalidMethodSignature(ServiceError):
    code = 13
    default_message = "Invalid method signature supplied"


class TemporaryError(ServiceError):
    code = 16
    default_message = "There was a temporary error processing your request"


class SuspendedApiKey(ServiceError):
    code = 26
    default_message = "Access for your account has been suspended"


class RateLimitExceeded(ServiceError):
    code = 29
    default_message = "Your IP has made too many requests in a short period"


SERVICE_ERRORS = {
    cls.code: cls
    for cls in (
        InvalidService,
        InvalidMethod,
        AuthenticationFailed,
        InvalidFormat,
        InvalidParameters,
        InvalidResourceSpecified,
        OperationFailed,
        InvalidSessionKey,
        InvalidApiKey,
        ServiceOffline,
        InvalidMethodSignature,
        TemporaryError,
        SuspendedApiKey,
        RateLimitExceeded,
    )
}


def service_error_for(code, message=None) -> ServiceError:
    """Build the typed error for a Last.fm error code; unknown codes are OperationFailed."""
    try:
        code = int(code)
    except (TypeError, ValueError):
        return OperationFailed(message)
    cls = SERVICE_ERRORS.get(code, OperationFailed)
    return cls(message, code=code)


class TransportError(ScrobbleError):
    """Network-layer failure: timeout, DNS, refused or reset connection."""


class FetchTimeoutError(TransportError):
    pass


class DecodeError(ScrobbleError):
    """The response body did not have the expected shape."""


class PersistenceError(ScrobbleError):
    pass


class RecordsNotFoundError(PersistenceError):
    pass


class StoreLockedError(PersistenceError):
    pass
