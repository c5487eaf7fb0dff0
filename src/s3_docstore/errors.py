from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError
from botocore.exceptions import ConnectionError as BotoConnectionError
from botocore.exceptions import HTTPClientError
from botocore.exceptions import NoCredentialsError

import logging


logger = logging.getLogger(__name__)


class DocStoreError(Exception):
    """Base class for all errors raised by s3_docstore."""

    retryable = False


class NotFound(DocStoreError):
    """The requested item, attachment or configured name does not exist."""


class FinderNotFound(NotFound):
    """No finder is registered under the requested name."""


class ValidationError(DocStoreError, ValueError):
    """Bad input shape, characters or configuration."""


class ModeError(DocStoreError):
    """The operation is disabled by the store's mode."""


class QueryDisabledError(ModeError):
    """Query operations are administratively disabled."""


class ScanLimitExceeded(DocStoreError):
    """A list-then-scan query would exceed the configured safety limit."""

    def __init__(self, count, limit):
        self.count = count
        self.limit = limit
        super().__init__(
            f"Object count ({count}) exceeds maxScanFiles limit ({limit}). "
            "Increase the limit, use get() with exact keys, "
            "or maintain an external index."
        )


class SerializationError(DocStoreError):
    """A document could not be encoded for storage."""


class Conflict(DocStoreError):
    retryable = True


class RateLimited(DocStoreError):
    retryable = True


class ServiceUnavailable(DocStoreError):
    retryable = True


class PermissionDenied(DocStoreError):
    pass


class Unauthenticated(DocStoreError):
    pass


class BackendError(DocStoreError):
    """Unclassified backend failure, carrying the backend's message."""


class MirrorError(DocStoreError):
    """Attachment metadata could not be mirrored into the owning document.

    The blob operation itself succeeded; the document and the attachment
    namespace may now disagree.
    """

    def __init__(self, message, path=None):
        self.path = path
        super().__init__(message)


_CODE_MAP = {
    "404": NotFound,
    "NoSuchKey": NotFound,
    "NotFound": NotFound,
    "403": PermissionDenied,
    "AccessDenied": PermissionDenied,
    "AllAccessDisabled": PermissionDenied,
    "401": Unauthenticated,
    "InvalidAccessKeyId": Unauthenticated,
    "SignatureDoesNotMatch": Unauthenticated,
    "ExpiredToken": Unauthenticated,
    "InvalidToken": Unauthenticated,
    "409": Conflict,
    "OperationAborted": Conflict,
    "ConditionalRequestConflict": Conflict,
    "429": RateLimited,
    "SlowDown": RateLimited,
    "Throttling": RateLimited,
    "ThrottlingException": RateLimited,
    "TooManyRequests": RateLimited,
    "RequestLimitExceeded": RateLimited,
    "InternalError": ServiceUnavailable,
    "ServiceUnavailable": ServiceUnavailable,
    "RequestTimeout": ServiceUnavailable,
    "400": ValidationError,
    "InvalidArgument": ValidationError,
    "InvalidRequest": ValidationError,
    "InvalidDigest": ValidationError,
    "BadDigest": ValidationError,
}

_STATUS_MAP = {
    400: ValidationError,
    401: Unauthenticated,
    403: PermissionDenied,
    404: NotFound,
    409: Conflict,
    429: RateLimited,
    500: ServiceUnavailable,
    502: ServiceUnavailable,
    503: ServiceUnavailable,
    504: ServiceUnavailable,
}


def classify_client_error(e):
    """Return the DocStoreError subclass matching a botocore ClientError."""
    error = e.response.get("Error", {})
    code = str(error.get("Code", ""))
    if code == "NoSuchBucket":
        return BackendError
    if code in _CODE_MAP:
        return _CODE_MAP[code]
    status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    if status in _STATUS_MAP:
        return _STATUS_MAP[status]
    message = str(error.get("Message", "")).lower()
    if "network" in message:
        return ServiceUnavailable
    return BackendError


def translate_error(e, operation, path):
    """Translate a backend-native exception into the s3_docstore taxonomy.

    The original exception is logged at DEBUG and chained as __cause__.
    """
    logger.debug("S3 %s failed for key=%s: %s", operation, path, e)
    if isinstance(e, DocStoreError):
        return e
    if isinstance(e, ClientError):
        error = e.response.get("Error", {})
        code = error.get("Code", "Unknown")
        cls = classify_client_error(e)
        if code == "NoSuchBucket":
            message = f"S3 {operation} failed for key={path}: bucket not found"
        else:
            message = (
                f"S3 {operation} failed for key={path}: "
                f"{code} {error.get('Message', '')}".rstrip()
            )
    elif isinstance(e, NoCredentialsError):
        cls = Unauthenticated
        message = f"S3 {operation} failed for key={path}: no credentials"
    elif isinstance(e, (BotoConnectionError, HTTPClientError)):
        cls = ServiceUnavailable
        message = f"S3 {operation} failed for key={path}: network error: {e}"
    elif isinstance(e, BotoCoreError):
        cls = BackendError
        message = f"S3 {operation} failed for key={path}: {e}"
    else:
        cls = BackendError
        message = f"{operation} failed for key={path}: {e}"
    error = cls(message)
    error.__cause__ = e
    return error


def is_retryable(e):
    """Whether an error is worth retrying by the caller."""
    if isinstance(e, DocStoreError):
        return e.retryable
    if isinstance(e, ClientError):
        return classify_client_error(e).retryable
    return isinstance(e, (BotoConnectionError, HTTPClientError))
