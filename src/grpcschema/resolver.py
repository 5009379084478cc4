"""Turns descriptor source data into the ``Service`` / ``TypeInfo`` tree."""

from __future__ import annotations

import logging
from typing import Callable, FrozenSet, List, Optional

from google.protobuf import descriptor_pb2

from grpcschema.constants import ENUM_TYPE_NAME, REFLECTION_PACKAGES, SERVICE_KEY_SEPARATOR
from grpcschema.descriptorsource import DescriptorSource, ReflectionDescriptorSource
from grpcschema.models import EnumInfo, EnumValueInfo, FieldInfo, Label, Method, Service, TypeId, TypeInfo

logger = logging.getLogger("FunctionLogger")


def package_name(service_key: str) -> str:
    """Everything before the first separator, or the whole key."""
    return service_key.split(SERVICE_KEY_SEPARATOR, 1)[0]


def get_info(
    address: str,
    *,
    creds: Optional[dict] = None,
    auth: Optional[dict] = None,
    timeout: Optional[float] = None,
    source_factory: Optional[Callable[[], DescriptorSource]] = None,
) -> List[Service]:
    """Connects to ``address`` and returns every user-facing service it reflects.

    Raises ``SourceConnectionError`` when the server cannot be reached and
    ``ReflectionError`` when it refuses to list its services. The
    connection is closed on every exit path once established.
    """
    if source_factory is None:
        source = ReflectionDescriptorSource(creds=creds, auth=auth, timeout=timeout)
    else:
        source = source_factory()

    source.connect(address)
    try:
        return list_and_resolve_services(source)
    finally:
        source.disconnect()


def list_and_resolve_services(source: DescriptorSource) -> List[Service]:
    res = []
    for service_key, descriptor in source.list_services().items():
        package = package_name(service_key)
        if package in REFLECTION_PACKAGES:
            continue

        service = Service(name=descriptor.name, package_name=package)
        for method in descriptor.method:
            service.methods.append(Method(
                name=method.name,
                in_type=resolve_type(source, method.input_type),
                out_type=resolve_type(source, method.output_type),
                in_stream=method.client_streaming,
                out_stream=method.server_streaming,
            ))
        res.append(service)

    logger.debug("Resolved %d service(s)", len(res))
    return res


def resolve_type(source: DescriptorSource, type_name: str, _path: FrozenSet[str] = frozenset()) -> TypeInfo:
    """Expands ``type_name`` into a full ``TypeInfo`` tree.

    An unknown name yields the ERROR marker carrying the name as given. A
    name already being expanded further up the current path yields a
    shallow ``cyclic`` reference instead of recursing again.
    """
    desc = source.resolve_type(type_name)
    if desc is None:
        logger.debug("Type %r not found, using error marker", type_name)
        return TypeInfo.error(type_name)

    # ".pkg.M" and "pkg.M" name the same type
    path_key = type_name.lstrip(".")
    if path_key in _path:
        return TypeInfo(id=TypeId.MESSAGE, name=desc.name, cyclic=True)
    path = _path | {path_key}

    info = TypeInfo(
        id=TypeId.MESSAGE,
        name=desc.name,
        fields=[],
        options=desc.options if desc.HasField('options') else None,
    )
    for field in desc.field:
        info.fields.append(_field_info(source, field, path))
    return info


def _field_info(source: DescriptorSource, field: descriptor_pb2.FieldDescriptorProto, path: FrozenSet[str]) -> FieldInfo:
    type_id = TypeId.from_field_type(field.type)

    if field.type_name:
        field_type = resolve_type(source, field.type_name, path)
        # This field's own classification wins over the nested node's
        field_type.id = type_id
    else:
        field_type = TypeInfo.scalar(type_id)

    info = FieldInfo(
        name=field.name,
        number=field.number,
        type=field_type,
        label=Label(field.label) if field.HasField('label') else None,
        options=field.options if field.HasField('options') else None,
    )

    if type_id is TypeId.ENUM:
        field_type.name = ENUM_TYPE_NAME
        info.enum = EnumInfo()
        enum_desc = source.resolve_enum(field.type_name)
        if enum_desc is not None:
            info.enum.name = enum_desc.name
            info.enum.values = [EnumValueInfo(name=v.name, number=v.number) for v in enum_desc.value]
    return info
