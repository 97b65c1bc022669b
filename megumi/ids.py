"""
Record identifiers.

Durable records use the database's native UUID key; transient records use a
random hex token. Callers only ever see the string form.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, Union

from megumi.errors import InvalidId


class IdKind(str, Enum):
    DURABLE = "durable"
    TRANSIENT = "transient"


@dataclass(frozen=True)
class OpaqueId:
    kind: IdKind
    value: Union[uuid.UUID, str]

    def __str__(self) -> str:
        return str(self.value)


class IdScheme(Protocol):
    kind: IdKind

    def new_id(self) -> OpaqueId:
        ...

    def parse_id(self, raw: str) -> OpaqueId:
        ...


class DurableIdScheme:
    """Native UUID keys, serialized in canonical hyphenated form."""

    kind = IdKind.DURABLE

    def new_id(self) -> OpaqueId:
        return OpaqueId(self.kind, uuid.uuid4())

    def parse_id(self, raw: str) -> OpaqueId:
        if not isinstance(raw, str):
            raise InvalidId()
        try:
            value = uuid.UUID(raw)
        except ValueError as exc:
            raise InvalidId() from exc
        # Only the canonical form round-trips; braces and urn: prefixes do not.
        if str(value) != raw.lower():
            raise InvalidId()
        return OpaqueId(self.kind, value)


class TransientIdScheme:
    """Random tokens; any string parses and existence is checked on lookup."""

    kind = IdKind.TRANSIENT

    def new_id(self) -> OpaqueId:
        return OpaqueId(self.kind, uuid.uuid4().hex)

    def parse_id(self, raw: str) -> OpaqueId:
        if not isinstance(raw, str):
            raise InvalidId()
        return OpaqueId(self.kind, raw)
