# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process HttpClient implementations."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..errors import ErrorCategory
from .client import HttpClient
from .models import HttpRequest, HttpResponse


class StubHttpClient(HttpClient):
    """Deterministic, programmable HttpClient for tests and offline fixtures."""

    def __init__(self, responses: dict[str, HttpResponse] | None = None):
        self._responses = responses or {}
        self.requests: list[HttpRequest] = []
        self.closed = False

    @classmethod
    def from_fixtures(cls, fixtures: Mapping[str, Mapping[str, Any]]) -> StubHttpClient:
        """Build a stub from recorded responses keyed by URL."""
        stub = cls()
        for url, fixture in fixtures.items():
            stub.add_fixture(url, fixture)
        return stub

    def add_fixture(self, url: str, fixture: Mapping[str, Any]) -> None:
        """Register a recorded response mapping (``status_code``, ``headers``, ``body``, ...) for ``url``."""
        self.add(url, HttpResponse.from_mapping({"url": url, **fixture}))

    def add(self, url: str, response: HttpResponse) -> None:
        self._responses[url] = response

    def add_json(self, url: str, body: str, *, status_code: int = 200) -> None:
        """Register a JSON text body for ``url``."""
        self.add(
            url,
            HttpResponse(
                ok=True,
                status_code=status_code,
                headers={"content-type": "application/json"},
                text=body,
                content=body.encode("utf-8"),
                url=url,
            ),
        )

    def add_failure(self, url: str, message: str, *, category: ErrorCategory = ErrorCategory.UNKNOWN_ERROR) -> None:
        """Register a transport failure for ``url``."""
        self.add(url, HttpResponse(ok=False, url=url, error_category=category.value, error_message=message))

    def request(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        if request.url in self._responses:
            return self._responses[request.url]
        return HttpResponse(
            ok=False,
            url=request.url,
            error_category=ErrorCategory.CONNECTION_ERROR.value,
            error_message="No stubbed response configured",
        )

    def close(self) -> None:
        self.closed = True
