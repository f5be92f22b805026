# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Shape declarations and the JSON-to-shape decoder.

A shape is a pydantic model whose fields are all optional; ``None`` means the
field was absent from (or unusable in) the payload:

    class User(Shape):
        id: int | None = None
        name: str | None = None
        city: str | None = shape_field("address.city")

Decoding is lenient per field and strict per payload: a value that fails
validation leaves that field absent, while a payload that is not a JSON object
(or that the shape's ``accepts`` hook rejects) fails the whole decode.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, TypeVar

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

KEY_PATH_SEPARATOR = "."

S = TypeVar("S", bound="Shape")


@dataclass(frozen=True)
class DeclaredField:
    name: str
    key: str
    annotation: Any


def shape_field(key: str | None = None) -> Any:
    """Declare an optional shape field mapped from ``key`` (a dotted key path is allowed)."""
    if not key:
        return Field(default=None)
    choices: list[str | AliasPath] = [key]
    if KEY_PATH_SEPARATOR in key:
        choices.append(AliasPath(*key.split(KEY_PATH_SEPARATOR)))
    return Field(default=None, validation_alias=AliasChoices(*choices), serialization_alias=key)


class Shape(BaseModel):
    """Base class for JSON-mapped response shapes."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @classmethod
    def accepts(cls, payload: Mapping[str, Any]) -> bool:  # noqa: ARG003
        """Return False to reject a payload outright. Accepts everything by default."""
        return True

    @model_validator(mode="before")
    @classmethod
    def _check_accepts(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and not cls.accepts(data):
            raise ValueError(f"{cls.__name__} rejected payload")
        return data

    @field_validator("*", mode="wrap")
    @classmethod
    def _absent_on_mismatch(cls, value: Any, handler: ValidatorFunctionWrapHandler, info: ValidationInfo) -> Any:
        try:
            return handler(value)
        except ValidationError as exc:
            logger.debug(
                "%s.%s: %s; leaving field absent",
                cls.__name__,
                info.field_name,
                "; ".join(error["msg"] for error in exc.errors()),
            )
            return None

    @classmethod
    def from_json(cls: type[S], payload: Any) -> S | None:
        return decode_shape(payload, cls)

    def to_dict(self) -> dict[str, Any]:
        """JSON-keyed mapping of the populated fields."""
        out: dict[str, Any] = {}
        for declared in declared_fields(type(self)):
            value = getattr(self, declared.name, None)
            if value is None:
                continue
            _assign_key_path(out, declared.key, _to_json_value(value))
        return out


@lru_cache(maxsize=None)
def declared_fields(shape: type) -> tuple[DeclaredField, ...]:
    """Declared fields of a model shape, in declaration order. Anything else declares none."""
    if not (isinstance(shape, type) and issubclass(shape, BaseModel)):
        return ()
    return tuple(
        DeclaredField(name=name, key=info.serialization_alias or name, annotation=info.annotation)
        for name, info in shape.model_fields.items()
    )


def decode_shape(payload: Any, shape: type[S]) -> S | None:
    """Decode a JSON object into ``shape``; None when the payload cannot be that shape."""
    if not isinstance(payload, Mapping):
        return None
    try:
        return shape.model_validate(payload)
    except ValidationError as exc:
        logger.debug("%s rejected payload: %s", shape.__name__, exc)
        return None


def decode_shape_list(payload: Any, shape: type[S]) -> list[S] | None:
    """
    Decode a JSON array of objects into a list of ``shape``.

    Returns None unless the payload is an array whose elements are all objects.
    Objects the shape rejects are dropped; objects with no populated fields are kept.
    """
    if not isinstance(payload, list) or not all(isinstance(item, Mapping) for item in payload):
        return None
    decoded: list[S] = []
    for index, item in enumerate(payload):
        value = decode_shape(item, shape)
        if value is None:
            logger.debug("Dropping element %d: rejected by %s", index, shape.__name__)
            continue
        decoded.append(value)
    return decoded


def _assign_key_path(target: dict[str, Any], key: str, value: Any) -> None:
    parts = key.split(KEY_PATH_SEPARATOR)
    for part in parts[:-1]:
        nested = target.get(part)
        if not isinstance(nested, dict):
            nested = {}
            target[part] = nested
        target = nested
    existing = target.get(parts[-1])
    if isinstance(existing, dict) and isinstance(value, dict):
        existing.update(value)
    else:
        target[parts[-1]] = value


def _to_json_value(value: Any) -> Any:
    if isinstance(value, Shape):
        return value.to_dict()
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, list):
        return [_to_json_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _to_json_value(item) for key, item in value.items()}
    return value


__all__ = [
    "DeclaredField",
    "Shape",
    "declared_fields",
    "decode_shape",
    "decode_shape_list",
    "shape_field",
]
