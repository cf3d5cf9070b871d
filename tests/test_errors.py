import pytest

from scrobblefm.fetch.errors import (
    AuthenticationFailed,
    FetchTimeoutError,
    InvalidApiKey,
    InvalidFormat,
    InvalidMethod,
    InvalidMethodSignature,
    InvalidParameters,
    InvalidResourceSpecified,
    InvalidService,
    InvalidSessionKey,
    OperationFailed,
    RateLimitExceeded,
    RecordsNotFoundError,
    ScrobbleError,
    ServiceError,
    ServiceOffline,
    StoreLockedError,
    SuspendedApiKey,
    TemporaryError,
    TransportError,
    PersistenceError,
    service_error_for,
)


@pytest.mark.parametrize("code, expected", [
    (2, InvalidService),
    (3, InvalidMethod),
    (4, AuthenticationFailed),
    (5, InvalidFormat),
    (6, InvalidParameters),
    (7, InvalidResourceSpecified),
    (8, OperationFailed),
    (9, InvalidSessionKey),
    (10, InvalidApiKey),
    (11, ServiceOffline),
    (13, InvalidMethodSignature),
    (16, TemporaryError),
    (26, SuspendedApiKey),
    (29, RateLimitExceeded),
])
def test_code_mapping(code, expected):
    error = service_error_for(code, "msg")

    assert type(error) is expected
    assert error.code == code
    assert error.message == "msg"


@pytest.mark.parametrize("code", [99, 0, "nonsense", None])
def test_unknown_codes_are_operation_failed(code):
    assert type(service_error_for(code)) is OperationFailed


def test_string_codes_are_accepted():
    assert isinstance(service_error_for("10"), InvalidApiKey)


def test_message_defaults_and_str():
    error = service_error_for(29)

    assert str(error) == "Last.fm error 29: Your IP has made too many requests in a short period"


def test_unknown_code_keeps_its_number():
    assert service_error_for(99, "odd").code == 99


def test_hierarchy():
    assert issubclass(ServiceError, ScrobbleError)
    assert issubclass(FetchTimeoutError, TransportError)
    assert issubclass(RecordsNotFoundError, PersistenceError)
    assert issubclass(StoreLockedError, PersistenceError)
