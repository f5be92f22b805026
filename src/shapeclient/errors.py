# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy and exception helpers."""

from __future__ import annotations

import socket
import ssl as ssl_module
from enum import Enum
from typing import TYPE_CHECKING

import httpx

if TYPE_CHECKING:
    from .http.models import HttpResponse


class ErrorCategory(str, Enum):
    TIMEOUT = "TIMEOUT"
    SSL_ERROR = "SSL_ERROR"
    CONNECTION_ERROR = "CONNECTION_ERROR"
    DNS_ERROR = "DNS_ERROR"
    INVALID_JSON = "INVALID_JSON"
    RESPONSE_TOO_LARGE = "RESPONSE_TOO_LARGE"
    MAPPING_ERROR = "MAPPING_ERROR"
    UNRECOGNIZED_RESPONSE = "UNRECOGNIZED_RESPONSE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NONE = "NONE"


class PayloadDecodeError(ValueError):
    """Response body could not be parsed as JSON."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def categorize_exception(exc: Exception) -> ErrorCategory:
    """
    Map Python/httpx exceptions to ErrorCategory.
    """
    if isinstance(exc, httpx.TimeoutException):
        return ErrorCategory.TIMEOUT

    # ConnectError wraps resolver and TLS failures; look at the cause first.
    cause = exc.__cause__ or exc.__context__
    if isinstance(exc, httpx.ConnectError) and cause is not None and cause is not exc:
        nested = categorize_exception(cause) if isinstance(cause, Exception) else ErrorCategory.UNKNOWN_ERROR
        if nested in {ErrorCategory.SSL_ERROR, ErrorCategory.DNS_ERROR}:
            return nested

    if isinstance(exc, (httpx.ConnectError, httpx.RemoteProtocolError, httpx.NetworkError, httpx.ProxyError)):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, (ssl_module.SSLError, ssl_module.CertificateError)):
        return ErrorCategory.SSL_ERROR

    if isinstance(exc, (socket.gaierror, socket.herror)):
        return ErrorCategory.DNS_ERROR

    if isinstance(exc, ConnectionError):
        return ErrorCategory.CONNECTION_ERROR

    if isinstance(exc, PayloadDecodeError):
        return ErrorCategory.INVALID_JSON

    return ErrorCategory.UNKNOWN_ERROR


def error_category_to_reason(category: ErrorCategory | str | None) -> str:
    """User-facing reason string."""
    mapping = {
        ErrorCategory.TIMEOUT: "The request timed out",
        ErrorCategory.SSL_ERROR: "TLS/certificate issue",
        ErrorCategory.CONNECTION_ERROR: "Network connectivity issue",
        ErrorCategory.DNS_ERROR: "DNS resolution failure",
        ErrorCategory.INVALID_JSON: "Response could not be serialized as JSON",
        ErrorCategory.RESPONSE_TOO_LARGE: "Response body exceeded the size limit",
        ErrorCategory.MAPPING_ERROR: "Response could not be mapped onto a shape",
        ErrorCategory.UNRECOGNIZED_RESPONSE: "Response matched neither the success nor the error shape",
        ErrorCategory.UNKNOWN_ERROR: "Network error during request",
        ErrorCategory.NONE: "",
        None: "",
    }
    if isinstance(category, str) and not isinstance(category, ErrorCategory):
        try:
            category = ErrorCategory(category)
        except ValueError:
            return "Request failed due to network error"
    return mapping.get(category, "Request failed due to network error")


def failure_message(response: HttpResponse) -> str:
    """Human-readable description of a failed transport response."""
    if response.error_message:
        return response.error_message
    reason = error_category_to_reason(response.error_category or ErrorCategory.UNKNOWN_ERROR)
    return reason or error_category_to_reason(ErrorCategory.UNKNOWN_ERROR)


__all__ = [
    "ErrorCategory",
    "PayloadDecodeError",
    "categorize_exception",
    "error_category_to_reason",
    "failure_message",
]
