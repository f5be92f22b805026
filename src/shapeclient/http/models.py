# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""HTTP request/response data models used across shapeclient."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..errors import PayloadDecodeError

Headers = dict[str, str]

# Status codes whose empty body is a valid, null payload.
EMPTY_BODY_STATUS_CODES = frozenset({204, 205})


@dataclass
class HttpRequest:
    """Normalized request representation consumed by HttpClient implementations."""

    url: str
    method: str = "GET"
    headers: Headers | None = None
    body: bytes | str | None = None
    timeout: float | None = None
    allow_redirects: bool = True

    @classmethod
    def json_body(
        cls,
        url: str,
        payload: Any,
        *,
        method: str = "POST",
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> HttpRequest:
        """Build a request whose body is ``payload`` serialized as JSON."""
        merged: Headers = {"Content-Type": "application/json"}
        merged.update(headers or {})
        return cls(
            url=url,
            method=method,
            headers=merged,
            body=json.dumps(payload, separators=(",", ":")).encode("utf-8"),
            timeout=timeout,
        )

    def as_http_request(self) -> HttpRequest:
        return self


@dataclass
class HttpResponse:
    """Normalized HTTP response; ``ok`` is False only for transport-level failures."""

    ok: bool
    status_code: int | None = None
    headers: Headers = field(default_factory=dict)
    text: str = ""
    content: bytes = b""
    url: str | None = None
    error_category: str | None = None
    error_message: str | None = None
    error_type: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    def json(self) -> Any:
        """
        Parse the body as JSON.

        Empty bodies yield ``None``. Anything else that is not valid JSON raises
        PayloadDecodeError.
        """
        raw = self.content if self.content else self.text.encode("utf-8")
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except (ValueError, UnicodeDecodeError) as exc:
            if self.status_code in EMPTY_BODY_STATUS_CODES:
                return None
            raise PayloadDecodeError(
                f"Response could not be serialized as JSON: {exc}",
                status_code=self.status_code,
            ) from exc

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> HttpResponse:
        """Helper to normalize dictionary-like responses (e.g., recorded fixtures)."""
        raw_headers: Any = data.get("headers") or {}
        headers: Headers = {}
        if isinstance(raw_headers, Mapping):
            for key, value in raw_headers.items():
                if key is None:
                    continue
                headers[str(key).lower()] = "" if value is None else str(value)

        raw_body = data.get("body")
        content: bytes = b""
        text: str = ""
        if isinstance(raw_body, (bytes, bytearray, memoryview)):
            content = bytes(raw_body)
            text = content.decode("utf-8", errors="replace")
        elif isinstance(raw_body, str):
            text = raw_body
            content = raw_body.encode("utf-8")
        elif raw_body is not None:
            text = json.dumps(raw_body)
            content = text.encode("utf-8")

        return cls(
            ok=bool(data.get("ok", True)),
            status_code=data.get("status_code"),
            headers=headers,
            text=text,
            content=content,
            url=data.get("url"),
            error_category=data.get("error_category"),
            error_message=data.get("error_message"),
            error_type=data.get("error_type"),
            meta={
                k: v
                for k, v in data.items()
                if k
                not in {"ok", "status_code", "headers", "body", "url", "error_category", "error_message", "error_type"}
            },
        )
