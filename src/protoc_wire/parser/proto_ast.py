"""AST node definitions for protobuf (.proto) files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union


@dataclass
class ProtoField:
    """A field declaration: [label] Type name = number [options];"""

    type_name: str
    field_name: str
    field_number: int
    label: Optional[str] = None
    key_type: Optional[str] = None
    oneof: Optional[str] = None


@dataclass
class ProtoEnumValue:
    name: str
    number: int


@dataclass
class ProtoEnum:
    name: str
    values: List[ProtoEnumValue] = field(default_factory=list)


@dataclass
class ProtoMessage:
    """A message definition, possibly containing nested messages and enums."""

    name: str
    fields: List[ProtoField] = field(default_factory=list)
    nested_messages: List[ProtoMessage] = field(default_factory=list)
    nested_enums: List[ProtoEnum] = field(default_factory=list)


@dataclass
class ProtoRpc:
    name: str
    input_type: str
    output_type: str
    client_streaming: bool = False
    server_streaming: bool = False


@dataclass
class ProtoService:
    name: str
    rpcs: List[ProtoRpc] = field(default_factory=list)


@dataclass
class ProtoFile:
    """Top-level parsed representation of a .proto file.

    ``declarations`` keeps messages, enums and services in source order.
    """

    package: Optional[str] = None
    imports: List[str] = field(default_factory=list)
    options: Dict[str, str] = field(default_factory=dict)
    declarations: List[Union[ProtoMessage, ProtoEnum, ProtoService]] = field(default_factory=list)
