# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Resolution of a JSON payload against a success shape and an error shape."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from .classify import is_meaningful
from .errors import ErrorCategory, error_category_to_reason
from .shapes import decode_shape, decode_shape_list

logger = logging.getLogger(__name__)

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class ListSuccess(Generic[T]):
    values: list[T]


@dataclass(frozen=True)
class ErrorReply(Generic[E]):
    """The server answered with a populated error shape."""

    value: E


@dataclass(frozen=True)
class Unrecognized:
    """The payload matched neither shape with any populated field."""

    payload: Any
    reason: str

    @property
    def message(self) -> str:
        return f"{error_category_to_reason(ErrorCategory.UNRECOGNIZED_RESPONSE)} ({self.reason})"


@dataclass(frozen=True)
class TransportFailure:
    """The request failed, the body was unusable, or mapping the payload raised."""

    message: str
    category: str = ErrorCategory.UNKNOWN_ERROR.value


Resolution = Union[Success[Any], ListSuccess[Any], ErrorReply[Any], Unrecognized, TransportFailure]


def _describe(payload: Any) -> str:
    if payload is None:
        return "empty response body"
    if isinstance(payload, dict):
        return "JSON object" if payload else "empty JSON object"
    if isinstance(payload, list):
        return "JSON array"
    return f"JSON {type(payload).__name__}"


def resolve_object(payload: Any, success_shape: type[T], error_shape: type[E]) -> Resolution:
    """Success shape first, then error shape; each must be meaningful to count."""
    success = decode_shape(payload, success_shape)
    if is_meaningful(success, success_shape):
        return Success(success)

    error = decode_shape(payload, error_shape)
    if is_meaningful(error, error_shape):
        return ErrorReply(error)

    reason = (
        f"{_describe(payload)} has no populated fields for {success_shape.__name__} or {error_shape.__name__}"
        if isinstance(payload, dict)
        else f"expected a JSON object, got {_describe(payload)}"
    )
    logger.warning("Unrecognized response: %s", reason)
    return Unrecognized(payload=payload, reason=reason)


def resolve_list(payload: Any, success_shape: type[T], error_shape: type[E]) -> Resolution:
    """
    Error shape first, then an array of the success shape.

    Arrays are not checked for emptiness: ``[]`` is a successful empty list, whereas an
    object with no populated fields never counts as a success.
    """
    error = decode_shape(payload, error_shape)
    if is_meaningful(error, error_shape):
        return ErrorReply(error)

    values = decode_shape_list(payload, success_shape)
    if values is not None:
        return ListSuccess(values)

    if isinstance(payload, dict):
        reason = f"{_describe(payload)} has no populated fields for {error_shape.__name__} and is not a JSON array"
    elif isinstance(payload, list):
        reason = f"JSON array of {success_shape.__name__} contains elements that are not JSON objects"
    else:
        reason = f"expected a JSON array of {success_shape.__name__}, got {_describe(payload)}"
    logger.warning("Unrecognized response: %s", reason)
    return Unrecognized(payload=payload, reason=reason)


__all__ = [
    "ErrorReply",
    "ListSuccess",
    "Resolution",
    "Success",
    "TransportFailure",
    "Unrecognized",
    "resolve_list",
    "resolve_object",
]
