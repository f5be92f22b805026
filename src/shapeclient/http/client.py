# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP client abstraction, request conversion and factory."""

from __future__ import annotations

from typing import Any, Protocol

from ..config import HttpSettings, load_http_settings
from .models import HttpRequest, HttpResponse


class HttpClient(Protocol):
    """Minimal protocol for issuing HTTP requests."""

    def request(self, request: HttpRequest) -> HttpResponse: ...

    def close(self) -> None:  # pragma: no cover - optional for adapters
        ...


class RequestConvertible(Protocol):
    """Anything that can describe itself as an HttpRequest (e.g. an API router enum)."""

    def as_http_request(self) -> HttpRequest: ...


def to_http_request(value: HttpRequest | RequestConvertible | str | Any) -> HttpRequest:
    """Normalize a request, URL string or convertible into an HttpRequest."""
    if isinstance(value, HttpRequest):
        return value
    if isinstance(value, str):
        if not value.strip():
            raise ValueError("Request URL must not be empty")
        return HttpRequest(url=value)
    converter = getattr(value, "as_http_request", None)
    if callable(converter):
        request = converter()
        if not isinstance(request, HttpRequest):
            raise TypeError(f"{type(value).__name__}.as_http_request() must return HttpRequest, got {type(request).__name__}")
        return request
    raise TypeError(f"Cannot convert {type(value).__name__} to HttpRequest")


def create_default_http_client(settings: HttpSettings | None = None) -> HttpClient:
    """Factory for the default httpx-backed client."""
    from .httpx_client import HttpxClient

    return HttpxClient(settings or load_http_settings())
