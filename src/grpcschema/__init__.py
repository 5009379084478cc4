from grpcschema.errors import ReflectionError, SchemaError, SourceConnectionError
from grpcschema.models import (
    EnumInfo,
    EnumValueInfo,
    FieldInfo,
    Label,
    Method,
    Service,
    TypeId,
    TypeInfo,
    services_to_json,
)
from grpcschema.resolver import get_info, list_and_resolve_services, resolve_type

__all__ = [
    'EnumInfo',
    'EnumValueInfo',
    'FieldInfo',
    'Label',
    'Method',
    'ReflectionError',
    'SchemaError',
    'Service',
    'SourceConnectionError',
    'TypeId',
    'TypeInfo',
    'get_info',
    'list_and_resolve_services',
    'resolve_type',
    'services_to_json',
]
