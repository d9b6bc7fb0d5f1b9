"""Type definitions for protocol specifications and code generation."""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from dataclasses_json import DataClassJsonMixin, LetterCase, config

# Specs arrive as camelCase JSON (maxLength, messageTypes, ...)
_CAMEL = config(letter_case=LetterCase.CAMEL)["dataclasses_json"]


class Direction(StrEnum):
    REQUEST = "request"
    RESPONSE = "response"
    BIDIRECTIONAL = "bidirectional"


class Transport(StrEnum):
    TCP = "TCP"
    UDP = "UDP"


class FieldKind(StrEnum):
    STRING = "string"
    NUMBER = "number"
    ENUM = "enum"
    BYTES = "bytes"
    BOOLEAN = "boolean"


class Encoding(StrEnum):
    """How a message's fields are laid out on the wire."""

    FORMAT_TEMPLATE = "format-template"
    DELIMITED = "delimited"
    STATE_MACHINE = "state-machine"


@dataclass(frozen=True)
class FieldType(DataClassJsonMixin):
    """Tagged field type.

    Only the attributes of the matching kind are meaningful:
    - string: max_length
    - number: min, max
    - enum: values
    - bytes: length
    """

    dataclass_json_config = _CAMEL

    kind: FieldKind
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    values: list[str] | None = None
    length: int | None = None


@dataclass(frozen=True)
class ValidationRule(DataClassJsonMixin):
    """Additional value checks attached to a field."""

    dataclass_json_config = _CAMEL

    pattern: str | None = None
    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    custom: str | None = None


@dataclass(frozen=True)
class FieldDefinition(DataClassJsonMixin):
    """A single field of a message.

    `delimiter` is the field's own transition trigger when the message is
    parsed as a state machine.
    """

    dataclass_json_config = _CAMEL

    name: str
    type: FieldType
    required: bool = True
    validation: ValidationRule | None = None
    default_value: Any | None = None
    delimiter: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class MessageType(DataClassJsonMixin):
    """A message and its encoding description."""

    dataclass_json_config = _CAMEL

    name: str
    direction: Direction
    fields: list[FieldDefinition] = field(default_factory=list)
    format: str | None = None
    delimiter: str | None = None
    terminator: str | None = None
    description: str | None = None

    @property
    def invocable(self) -> bool:
        return self.direction in (Direction.REQUEST, Direction.BIDIRECTIONAL)


@dataclass(frozen=True)
class ProtocolMetadata(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    name: str
    port: int
    description: str
    rfc: str | None = None
    version: str | None = None


@dataclass(frozen=True)
class Handshake(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    client_sends: str | None = None
    server_responds: str | None = None
    required: bool = False


@dataclass(frozen=True)
class Termination(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    client_sends: str | None = None
    server_responds: str | None = None
    close_connection: bool = True


@dataclass(frozen=True)
class ConnectionSpec(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    type: Transport
    timeout: int | None = None
    keep_alive: bool = False
    handshake: Handshake | None = None
    termination: Termination | None = None


@dataclass(frozen=True)
class EnumValue(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    name: str
    value: str | int
    description: str | None = None


@dataclass(frozen=True)
class TypeDefinition(DataClassJsonMixin):
    """A named enum or struct shared between messages."""

    dataclass_json_config = _CAMEL

    name: str
    kind: str
    values: list[EnumValue] | None = None
    fields: list[FieldDefinition] | None = None
    description: str | None = None


@dataclass(frozen=True)
class ErrorHandlingSpec(DataClassJsonMixin):
    dataclass_json_config = _CAMEL

    on_parse_error: str = "throw"
    on_network_error: str = "throw"
    retry_attempts: int | None = None
    retry_delay: int | None = None


@dataclass(frozen=True)
class ProtocolSpec(DataClassJsonMixin):
    """Complete protocol description consumed by every generator."""

    dataclass_json_config = _CAMEL

    protocol: ProtocolMetadata
    connection: ConnectionSpec
    message_types: list[MessageType]
    types: list[TypeDefinition] = field(default_factory=list)
    error_handling: ErrorHandlingSpec | None = None

    def message(self, name: str) -> MessageType:
        for message in self.message_types:
            if message.name == name:
                return message
        raise KeyError(name)
