# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Emptiness classification of decoded shapes.

Two candidate shapes can both "decode" the same payload because every shape field
is optional. A decode only counts when at least one declared field came back
populated; an instance with every field absent is vacuous. A shape that declares
no fields can never carry information and is always vacuous.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from .shapes import declared_fields

Presence = tuple[tuple[str, bool], ...]


class Classification(str, Enum):
    MEANINGFUL = "MEANINGFUL"
    VACUOUS = "VACUOUS"


def presence(instance: Any, shape: type | None = None) -> Presence:
    """``(field name, is present)`` for every declared field of ``shape``, in declaration order."""
    if instance is None:
        return ()
    descriptor = shape if shape is not None else type(instance)
    return tuple((f.name, getattr(instance, f.name, None) is not None) for f in declared_fields(descriptor))


def classify(instance: Any, shape: type | None = None) -> Classification:
    """MEANINGFUL iff at least one declared field of ``shape`` holds a value."""
    fields = presence(instance, shape)
    total = len(fields)
    absent = sum(1 for _, is_present in fields if not is_present)
    return Classification.VACUOUS if absent == total else Classification.MEANINGFUL


def is_meaningful(instance: Any, shape: type | None = None) -> bool:
    return classify(instance, shape) is Classification.MEANINGFUL


__all__ = ["Classification", "Presence", "classify", "is_meaningful", "presence"]
