"""Full error hierarchy for the scaler SDK.

Every public error class inherits from ScalerError. Each carries a
machine-readable ``code`` (from :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict, and an optional
``cause`` (chained exception).

HTTP-level errors store the response ``status_code`` and raw ``body`` in
their context; both are also exposed as read-only properties.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error code enum
# ---------------------------------------------------------------------------

class ErrorCode(str, Enum):
    """Machine-readable error codes for every error the SDK can raise."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    SIGN_ERROR = "SIGN_ERROR"
    UPLOAD_ERROR = "UPLOAD_ERROR"
    DOWNLOAD_ERROR = "DOWNLOAD_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    PARTIAL_DOWNLOAD = "PARTIAL_DOWNLOAD"


# ---------------------------------------------------------------------------
# Base error
# ---------------------------------------------------------------------------

class ScalerError(Exception):
    """Base exception for all scaler errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) identifying the
        error category.
    message:
        A developer-friendly description of what went wrong.
    context:
        Arbitrary structured data providing extra diagnostic detail.
        Keys and expected types are documented per subclass.
    cause:
        The underlying exception, if this error wraps another.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        self.code: str = code
        self.message: str = message
        self.context: dict[str, Any] = context or {}
        self.cause: Exception | None = cause
        super().__init__(message)
        if cause is not None:
            self.__cause__ = cause

    @property
    def status_code(self) -> int | None:
        """HTTP status code of the failed response, when there was one."""
        return self.context.get("status_code")

    @property
    def body(self) -> str | None:
        """Raw body of the failed response, when there was one."""
        return self.context.get("body")

    def __repr__(self) -> str:
        ctx = f", context={self.context!r}" if self.context else ""
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r}{ctx})"


# ---------------------------------------------------------------------------
# Request errors
# ---------------------------------------------------------------------------

class ScalerValidationError(ScalerError):
    """The transform request is missing a field or is malformed.

    Context keys: ``field``, ``value``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


# ---------------------------------------------------------------------------
# Endpoint errors
# ---------------------------------------------------------------------------

class ScalerAuthError(ScalerError):
    """The token refresh endpoint rejected the API key.

    Context keys: ``status_code``, ``body``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.AUTH_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class ScalerSignError(ScalerError):
    """The sign endpoint did not return a transform URL.

    Context keys: ``status_code``, ``body``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.SIGN_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class ScalerUploadError(ScalerError):
    """Sending the image to the signed URL failed, or the transform
    response could not be understood.

    Context keys: ``status_code``, ``body``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.UPLOAD_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class ScalerDownloadError(ScalerError):
    """Fetching an output image from its download URL failed.

    Context keys: ``status_code``, ``body``, ``url``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.DOWNLOAD_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class ScalerNetworkError(ScalerError):
    """A transport-level failure occurred (timeout, DNS, connection reset).

    Context keys: ``url``, ``method``.
    """

    def __init__(
        self,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.NETWORK_ERROR,
            message=message,
            context=context,
            cause=cause,
        )


class ScalerPartialDownloadError(ScalerError):
    """One or more concurrent downloads failed while others succeeded.

    The assembled :class:`~scaler.models.TransformResult` is available as
    :attr:`result`; entries whose download failed carry ``image=None``.
    :attr:`failures` lists ``(index, error)`` pairs in request order.

    Context keys: ``failed_indexes``.
    """

    def __init__(
        self,
        message: str,
        result: Any = None,
        failures: list[tuple[int, Exception]] | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(
            code=ErrorCode.PARTIAL_DOWNLOAD,
            message=message,
            context=context,
            cause=cause,
        )
        self.result = result
        self.failures: list[tuple[int, Exception]] = failures or []
