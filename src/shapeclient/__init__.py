# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
shapeclient package entrypoint.

Issues HTTP requests through an injectable client interface, maps JSON responses
onto typed pydantic shapes (a success shape and an error shape), and reports
each request through exactly one success, error or failure callback.
"""

from .classify import Classification, classify, is_meaningful, presence
from .config import HttpSettings, load_http_settings
from .dispatch import Dispatcher
from .errors import ErrorCategory, PayloadDecodeError
from .http import (
    HttpClient,
    HttpRequest,
    HttpResponse,
    HttpxClient,
    StubHttpClient,
    create_default_http_client,
    to_http_request,
)
from .log import setup_logging
from .resolve import (
    ErrorReply,
    ListSuccess,
    Resolution,
    Success,
    TransportFailure,
    Unrecognized,
    resolve_list,
    resolve_object,
)
from .shapes import Shape, decode_shape, decode_shape_list, shape_field
from .version import __version__

__all__ = [
    "Classification",
    "Dispatcher",
    "ErrorCategory",
    "ErrorReply",
    "HttpClient",
    "HttpRequest",
    "HttpResponse",
    "HttpSettings",
    "HttpxClient",
    "ListSuccess",
    "PayloadDecodeError",
    "Resolution",
    "Shape",
    "StubHttpClient",
    "Success",
    "TransportFailure",
    "Unrecognized",
    "classify",
    "create_default_http_client",
    "decode_shape",
    "decode_shape_list",
    "is_meaningful",
    "load_http_settings",
    "presence",
    "resolve_list",
    "resolve_object",
    "setup_logging",
    "shape_field",
    "to_http_request",
    "__version__",
]
