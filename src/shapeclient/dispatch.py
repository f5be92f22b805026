# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Request dispatcher: send a request, map the JSON response, report one outcome.

Every dispatch ends in exactly one of three callbacks:

- ``on_success`` with the decoded success shape (or a list of them),
- ``on_error`` with the decoded error shape,
- ``on_failure`` with a human-readable message, for transport failures, bodies
  that are not JSON or exceed the size limit, payloads that match neither
  shape, and exceptions raised while mapping the payload.

Nothing raised by the transport or by a callback escapes a dispatch.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from contextlib import suppress
from functools import partial
from typing import Any, TypeVar

from .config import HttpSettings, load_http_settings
from .errors import (
    ErrorCategory,
    PayloadDecodeError,
    categorize_exception,
    error_category_to_reason,
    failure_message,
)
from .http.client import HttpClient, RequestConvertible, create_default_http_client, to_http_request
from .http.models import HttpRequest
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

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E")

Deliver = Callable[[Callable[[], None]], Any]
Request = HttpRequest | RequestConvertible | str


def _call_now(fn: Callable[[], None]) -> None:
    fn()


class Dispatcher:
    """
    Sends requests through an HttpClient and routes the mapped response to callbacks.

    ``deliver`` decides where callbacks run. It receives a zero-argument callable and
    must arrange for it to be called once, e.g. ``loop.call_soon_threadsafe`` for an
    asyncio loop. By default callbacks run on whichever thread performed the request.
    """

    def __init__(
        self,
        http_client: HttpClient | None = None,
        *,
        settings: HttpSettings | None = None,
        deliver: Deliver | None = None,
    ):
        self.settings = settings or load_http_settings()
        self.http_client = http_client or create_default_http_client(self.settings)
        self._deliver = deliver or _call_now
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()
        self._local = threading.local()

    def request(
        self,
        request: Request,
        success_shape: type[T],
        error_shape: type[E],
        on_success: Callable[[T], None],
        on_error: Callable[[E], None],
        on_failure: Callable[[str], None],
    ) -> Resolution:
        """Dispatch a request whose success response is a single object."""
        resolution = self._fetch(request, partial(resolve_object, success_shape=success_shape, error_shape=error_shape))
        self._notify(resolution, on_success, on_error, on_failure)
        return resolution

    def request_list(
        self,
        request: Request,
        success_shape: type[T],
        error_shape: type[E],
        on_success: Callable[[list[T]], None],
        on_error: Callable[[E], None],
        on_failure: Callable[[str], None],
    ) -> Resolution:
        """Dispatch a request whose success response is an array of objects."""
        resolution = self._fetch(request, partial(resolve_list, success_shape=success_shape, error_shape=error_shape))
        self._notify(resolution, on_success, on_error, on_failure)
        return resolution

    def submit(
        self,
        request: Request,
        success_shape: type[T],
        error_shape: type[E],
        on_success: Callable[[T], None],
        on_error: Callable[[E], None],
        on_failure: Callable[[str], None],
    ) -> Future[Resolution]:
        """Run :meth:`request` on a worker thread."""
        return self._pool().submit(
            self._in_worker, self.request, request, success_shape, error_shape, on_success, on_error, on_failure
        )

    def submit_list(
        self,
        request: Request,
        success_shape: type[T],
        error_shape: type[E],
        on_success: Callable[[list[T]], None],
        on_error: Callable[[E], None],
        on_failure: Callable[[str], None],
    ) -> Future[Resolution]:
        """Run :meth:`request_list` on a worker thread."""
        return self._pool().submit(
            self._in_worker, self.request_list, request, success_shape, error_shape, on_success, on_error, on_failure
        )

    def _in_worker(self, fn: Callable[..., Resolution], *args: Any) -> Resolution:
        self._local.worker = True
        return fn(*args)

    def _fetch(self, request: Request, resolver: Callable[[Any], Resolution]) -> Resolution:
        http_request = to_http_request(request)
        try:
            response = self.http_client.request(http_request)
        except Exception as exc:  # noqa: BLE001
            category = categorize_exception(exc)
            logger.warning("%s %s raised %s: %s", http_request.method, http_request.url, type(exc).__name__, exc)
            return TransportFailure(message=str(exc) or type(exc).__name__, category=category.value)

        if not response.ok:
            message = failure_message(response)
            logger.warning("%s %s failed: %s", http_request.method, http_request.url, message)
            return TransportFailure(
                message=message,
                category=response.error_category or ErrorCategory.UNKNOWN_ERROR.value,
            )

        if response.meta.get("body_truncated"):
            limit = response.meta.get("body_bytes_limit", self.settings.max_body_bytes)
            logger.warning("%s %s body exceeded %s bytes", http_request.method, http_request.url, limit)
            return TransportFailure(
                message=f"{error_category_to_reason(ErrorCategory.RESPONSE_TOO_LARGE)} (limit {limit} bytes)",
                category=ErrorCategory.RESPONSE_TOO_LARGE.value,
            )

        try:
            payload = response.json()
        except PayloadDecodeError as exc:
            logger.warning("%s %s returned a non-JSON body (status %s)", http_request.method, http_request.url, response.status_code)
            return TransportFailure(message=str(exc), category=ErrorCategory.INVALID_JSON.value)

        try:
            return resolver(payload)
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s %s: mapping the response failed", http_request.method, http_request.url)
            return TransportFailure(
                message=f"{error_category_to_reason(ErrorCategory.MAPPING_ERROR)} ({type(exc).__name__}: {exc})",
                category=ErrorCategory.MAPPING_ERROR.value,
            )

    def _notify(
        self,
        resolution: Resolution,
        on_success: Callable[[Any], None],
        on_error: Callable[[Any], None],
        on_failure: Callable[[str], None],
    ) -> None:
        if isinstance(resolution, Success):
            callback, argument = on_success, resolution.value
        elif isinstance(resolution, ListSuccess):
            callback, argument = on_success, resolution.values
        elif isinstance(resolution, ErrorReply):
            callback, argument = on_error, resolution.value
        elif isinstance(resolution, (Unrecognized, TransportFailure)):
            callback, argument = on_failure, resolution.message
        else:  # pragma: no cover - exhaustive over Resolution
            raise TypeError(f"Unexpected resolution {resolution!r}")

        try:
            self._deliver(partial(self._invoke, callback, argument))
        except Exception:  # noqa: BLE001
            logger.exception("Callback delivery failed for %s", type(resolution).__name__)

    @staticmethod
    def _invoke(callback: Callable[[Any], None], argument: Any) -> None:
        try:
            callback(argument)
        except Exception:  # noqa: BLE001
            logger.exception("Callback %s raised", getattr(callback, "__qualname__", repr(callback)))

    def _pool(self) -> ThreadPoolExecutor:
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=max(1, self.settings.max_workers),
                    thread_name_prefix="shapeclient",
                )
            return self._executor

    def close(self) -> None:
        """
        Shut down the worker pool and close the HTTP client.

        Called from a worker thread (e.g. inside a callback of :meth:`submit`), the pool
        is shut down without waiting, since a worker cannot join itself.
        """
        with self._executor_lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=not getattr(self._local, "worker", False))
        with suppress(Exception):
            if hasattr(self.http_client, "close"):
                self.http_client.close()

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()


__all__ = ["Deliver", "Dispatcher"]
