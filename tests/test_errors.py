from botocore.exceptions import ClientError
from botocore.exceptions import NoCredentialsError
from botocore.exceptions import ReadTimeoutError
from s3_docstore import errors

import pytest


def _client_error(code, status=None, message="boom"):
    response = {"Error": {"Code": code, "Message": message}}
    if status is not None:
        response["ResponseMetadata"] = {"HTTPStatusCode": status}
    return ClientError(response, "GetObject")


@pytest.mark.parametrize(
    "code,status,expected",
    [
        ("NoSuchKey", 404, errors.NotFound),
        ("404", 404, errors.NotFound),
        ("AccessDenied", 403, errors.PermissionDenied),
        ("InvalidAccessKeyId", 403, errors.Unauthenticated),
        ("SignatureDoesNotMatch", 403, errors.Unauthenticated),
        ("OperationAborted", 409, errors.Conflict),
        ("SlowDown", 503, errors.RateLimited),
        ("InternalError", 500, errors.ServiceUnavailable),
        ("Whatever", 502, errors.ServiceUnavailable),
        ("InvalidArgument", 400, errors.ValidationError),
        ("NoSuchBucket", 404, errors.BackendError),
        ("Mystery", None, errors.BackendError),
    ],
)
def test_client_error_classification(code, status, expected):
    translated = errors.translate_error(
        _client_error(code, status), "download", "a/b.json"
    )
    assert type(translated) is expected
    assert "a/b.json" in str(translated)


def test_unknown_error_keeps_message():
    original = _client_error("Mystery", message="disk on fire")
    translated = errors.translate_error(original, "upload", "x.json")
    assert "disk on fire" in str(translated)
    assert not translated.retryable
    assert translated.__cause__ is original


def test_bucket_not_found_message():
    translated = errors.translate_error(
        _client_error("NoSuchBucket", 404), "list", "posts/"
    )
    assert "bucket not found" in str(translated)
    assert not translated.retryable


@pytest.mark.parametrize(
    "cls",
    [errors.Conflict, errors.RateLimited, errors.ServiceUnavailable],
)
def test_retryable_errors(cls):
    assert cls("x").retryable
    assert errors.is_retryable(cls("x"))


@pytest.mark.parametrize(
    "cls",
    [
        errors.NotFound,
        errors.PermissionDenied,
        errors.Unauthenticated,
        errors.ValidationError,
        errors.SerializationError,
        errors.BackendError,
    ],
)
def test_not_retryable_errors(cls):
    assert not errors.is_retryable(cls("x"))


def test_is_retryable_on_raw_client_error():
    assert errors.is_retryable(_client_error("SlowDown", 503))
    assert not errors.is_retryable(_client_error("AccessDenied", 403))


def test_timeout_is_service_unavailable():
    original = ReadTimeoutError(endpoint_url="http://localhost:9000")
    translated = errors.translate_error(original, "download", "x.json")
    assert isinstance(translated, errors.ServiceUnavailable)
    assert errors.is_retryable(original)


def test_missing_credentials():
    translated = errors.translate_error(NoCredentialsError(), "upload", "x.json")
    assert isinstance(translated, errors.Unauthenticated)


def test_docstore_errors_pass_through():
    original = errors.NotFound("gone")
    assert errors.translate_error(original, "get", "x.json") is original


def test_scan_limit_carries_numbers():
    error = errors.ScanLimitExceeded(1500, 1000)
    assert (error.count, error.limit) == (1500, 1000)
    assert "1500" in str(error)


def test_query_disabled_is_mode_error():
    assert issubclass(errors.QueryDisabledError, errors.ModeError)
    assert issubclass(errors.FinderNotFound, errors.NotFound)
