"""Serializable schema tree produced by the resolver.

Optional members use explicit presence: ``None`` (or ``False`` for the
stream and cycle flags) means "absent" and the key is left out of
``to_dict()``. Zero values such as field number 0 are always emitted.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional

from google.protobuf import descriptor_pb2
from google.protobuf.json_format import MessageToDict

from grpcschema.constants import SCALAR_TYPE_PREFIX

_FieldType = descriptor_pb2.FieldDescriptorProto.Type
_FieldLabel = descriptor_pb2.FieldDescriptorProto.Label


class TypeId(IntEnum):
    """Wire type classification of a field, plus the reserved ERROR tag."""

    ERROR = 0
    DOUBLE = _FieldType.Value('TYPE_DOUBLE')
    FLOAT = _FieldType.Value('TYPE_FLOAT')
    INT64 = _FieldType.Value('TYPE_INT64')
    UINT64 = _FieldType.Value('TYPE_UINT64')
    INT32 = _FieldType.Value('TYPE_INT32')
    FIXED64 = _FieldType.Value('TYPE_FIXED64')
    FIXED32 = _FieldType.Value('TYPE_FIXED32')
    BOOL = _FieldType.Value('TYPE_BOOL')
    STRING = _FieldType.Value('TYPE_STRING')
    GROUP = _FieldType.Value('TYPE_GROUP')
    MESSAGE = _FieldType.Value('TYPE_MESSAGE')
    BYTES = _FieldType.Value('TYPE_BYTES')
    UINT32 = _FieldType.Value('TYPE_UINT32')
    ENUM = _FieldType.Value('TYPE_ENUM')
    SFIXED32 = _FieldType.Value('TYPE_SFIXED32')
    SFIXED64 = _FieldType.Value('TYPE_SFIXED64')
    SINT32 = _FieldType.Value('TYPE_SINT32')
    SINT64 = _FieldType.Value('TYPE_SINT64')

    @classmethod
    def from_field_type(cls, value: int) -> TypeId:
        """Maps a FieldDescriptorProto.Type code; unknown codes become ERROR."""
        try:
            return cls(value)
        except ValueError:
            return cls.ERROR

    @property
    def keyword(self) -> str:
        return _KEYWORDS[self]


# Every member has a keyword. Protobuf codes map to their symbolic name
# without the "TYPE_" prefix, e.g. TYPE_INT32 -> "int32".
_KEYWORDS = {TypeId.ERROR: 'error'}
_KEYWORDS.update({
    member: _FieldType.Name(member.value)[len(SCALAR_TYPE_PREFIX):].lower()
    for member in TypeId
    if member is not TypeId.ERROR
})


class Label(IntEnum):
    OPTIONAL = _FieldLabel.Value('LABEL_OPTIONAL')
    REQUIRED = _FieldLabel.Value('LABEL_REQUIRED')
    REPEATED = _FieldLabel.Value('LABEL_REPEATED')


def _options_to_dict(options) -> Optional[Dict[str, Any]]:
    if options is None:
        return None
    return MessageToDict(options, preserving_proto_field_name=True)


@dataclass
class EnumValueInfo:
    name: str
    number: int

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'number': self.number}


@dataclass
class EnumInfo:
    name: str = ''
    values: List[EnumValueInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name}
        if self.values:
            data['values'] = [value.to_dict() for value in self.values]
        return data


@dataclass
class TypeInfo:
    """A node of the schema tree.

    ``fields is None`` for the error marker, scalar and enum markers, and
    cycle references; a resolved message always has a list, possibly
    empty. ``options`` holds the descriptor's ``MessageOptions`` when it
    declares any.
    """

    id: TypeId
    name: str
    fields: Optional[List[FieldInfo]] = None
    options: Optional[descriptor_pb2.MessageOptions] = None
    cyclic: bool = False

    @classmethod
    def error(cls, type_name: str) -> TypeInfo:
        return cls(id=TypeId.ERROR, name=type_name)

    @classmethod
    def scalar(cls, type_id: TypeId) -> TypeInfo:
        return cls(id=type_id, name=type_id.keyword)

    def to_dict(self) -> Dict[str, Any]:
        data = {'id': int(self.id), 'name': self.name}
        if self.fields is not None:
            data['fields'] = [f.to_dict() for f in self.fields]
        if self.options is not None:
            data['options'] = _options_to_dict(self.options)
        if self.cyclic:
            data['cyclic'] = True
        return data


@dataclass
class FieldInfo:
    name: str
    number: int
    type: TypeInfo
    label: Optional[Label] = None
    enum: Optional[EnumInfo] = None
    options: Optional[descriptor_pb2.FieldOptions] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {'name': self.name, 'number': self.number}
        if self.label is not None:
            data['label'] = int(self.label)
        data['type'] = self.type.to_dict()
        if self.enum is not None:
            data['enum'] = self.enum.to_dict()
        if self.options is not None:
            data['options'] = _options_to_dict(self.options)
        return data


@dataclass(frozen=True)
class Method:
    name: str
    in_type: TypeInfo
    out_type: TypeInfo
    in_stream: bool = False
    out_stream: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'in': self.in_type.to_dict(),
            'out': self.out_type.to_dict(),
        }
        if self.in_stream:
            data['in_stream'] = True
        if self.out_stream:
            data['out_stream'] = True
        return data


@dataclass
class Service:
    name: str
    package_name: str
    methods: List[Method] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'package_name': self.package_name,
            'methods': [method.to_dict() for method in self.methods],
        }


def services_to_json(services: List[Service], indent: Optional[int] = None) -> str:
    return json.dumps([service.to_dict() for service in services], indent=indent)
