"""
Error types for the package.

Path and argument problems are ValueErrors found before anything goes out on
the wire.  Once a call is made there are two ways it can fail: the service
answered with an error status (DomainError, with a subclass per canonical
status) or the request never got a proper answer at all (TransportError).
translate_error() is what decides between the two.
"""
import json

from googleapiclient.errors import HttpError


class GcpDataError(Exception):
    """Base for everything raised by this package"""
    pass


class MalformedPathError(GcpDataError, ValueError):
    """A path string does not fit the expected template"""
    pass


class ArgumentError(GcpDataError, ValueError):
    """Arguments are well formed but wrong for what was asked, e.g. a collection path given for a document"""
    pass


class RootHasNoParentError(ArgumentError):
    pass


class TransportError(GcpDataError):
    """
    The transport failed to deliver a request or a response.
    The original exception is kept in cause (and __cause__ when raised from it).
    """
    def __init__(self, message: str, cause: BaseException|None = None) -> None:
        super().__init__(message)
        self.cause = cause


class DomainError(GcpDataError):
    """
    The service reported a failure.
    code:           canonical status name, e.g. NOT_FOUND
    http_status:    HTTP status of the response, 0 if unknown
    message:        the service's message
    details:        any structured error details the service sent
    """
    code = "UNKNOWN"

    def __init__(self, message: str = "", code: str|None = None,
                 http_status: int = 0, details: list|None = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.http_status = http_status
        self.details = details or []

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" if self.message else self.code


class CancelledError(DomainError):
    code = "CANCELLED"

class UnknownError(DomainError):
    code = "UNKNOWN"

class InvalidArgumentError(DomainError):
    code = "INVALID_ARGUMENT"

class DeadlineExceededError(DomainError):
    code = "DEADLINE_EXCEEDED"

class NotFoundError(DomainError):
    code = "NOT_FOUND"

class AlreadyExistsError(DomainError):
    code = "ALREADY_EXISTS"

class PermissionDeniedError(DomainError):
    code = "PERMISSION_DENIED"

class ResourceExhaustedError(DomainError):
    code = "RESOURCE_EXHAUSTED"

class FailedPreconditionError(DomainError):
    code = "FAILED_PRECONDITION"

class AbortedError(DomainError):
    code = "ABORTED"

class OutOfRangeError(DomainError):
    code = "OUT_OF_RANGE"

class UnimplementedError(DomainError):
    code = "UNIMPLEMENTED"

class InternalError(DomainError):
    code = "INTERNAL"

class UnavailableError(DomainError):
    code = "UNAVAILABLE"

class DataLossError(DomainError):
    code = "DATA_LOSS"

class UnauthenticatedError(DomainError):
    code = "UNAUTHENTICATED"


_BY_CODE: dict[str, type[DomainError]] = {
    c.code: c for c in (CancelledError, UnknownError, InvalidArgumentError, DeadlineExceededError,
                        NotFoundError, AlreadyExistsError, PermissionDeniedError,
                        ResourceExhaustedError, FailedPreconditionError, AbortedError,
                        OutOfRangeError, UnimplementedError, InternalError, UnavailableError,
                        DataLossError, UnauthenticatedError)
}

# used when the body does not carry a status name
# https://cloud.google.com/apis/design/errors#handling_errors
_BY_HTTP_STATUS = {
    400: "INVALID_ARGUMENT",
    401: "UNAUTHENTICATED",
    403: "PERMISSION_DENIED",
    404: "NOT_FOUND",
    409: "ALREADY_EXISTS",
    412: "FAILED_PRECONDITION",
    416: "OUT_OF_RANGE",
    429: "RESOURCE_EXHAUSTED",
    499: "CANCELLED",
    500: "INTERNAL",
    501: "UNIMPLEMENTED",
    503: "UNAVAILABLE",
    504: "DEADLINE_EXCEEDED",
}


def error_class(code: str) -> type[DomainError]|None:
    """DomainError subclass for a canonical status name or None if we don't know it"""
    return _BY_CODE.get(str(code).upper())


def _error_body(content: bytes|str|None) -> dict:
    """Pull the 'error' object out of a Google JSON error response, empty if there isn't one"""
    if not content:
        return {}
    try:
        text = content.decode("utf-8") if isinstance(content, bytes) else str(content)
        body = json.loads(text)
    except (UnicodeDecodeError, ValueError):
        return {}
    # batch style responses come back as a list of errors
    if isinstance(body, list):
        body = body[0] if body else {}
    err = body.get("error", {}) if isinstance(body, dict) else {}
    return err if isinstance(err, dict) else {}


def translate_error(raw: BaseException) -> DomainError|None:
    """
    Turn a raw transport failure into the service's view of it.

    raw:    Either the exception the transport raised or a TransportError
            wrapping it.

    return: The DomainError for a recognized service status or None when the
            failure isn't one (connection reset, timeout, auth transport, ...)
            and should stay a TransportError.
    """
    e = raw.cause if isinstance(raw, TransportError) else raw
    if not isinstance(e, HttpError):
        return None
    status = int(e.status_code or 0)
    err = _error_body(e.content)
    code = str(err.get("status", "") or "").upper()
    cls = error_class(code) if code else None
    if cls is None:
        code = _BY_HTTP_STATUS.get(status, "")
        cls = error_class(code) if code else None
    if cls is None:
        return None
    message = str(err.get("message", "") or e.reason or "")
    return cls(message, code=code, http_status=status, details=list(err.get("details", []) or []))
