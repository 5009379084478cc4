"""Shared fixtures and helpers for tests."""

import logging

import pytest
from google.protobuf import descriptor_pb2

FieldProto = descriptor_pb2.FieldDescriptorProto

# Keep helper() from attaching a file handler while tests run
logging.getLogger("FunctionLogger").addHandler(logging.NullHandler())


class FakeDescriptorSource:
    """In-memory descriptor source keyed by fully-qualified name."""

    def __init__(self, services=None, messages=None, enums=None, fail_connect=None):
        self.services = services or {}
        self.messages = messages or {}
        self.enums = enums or {}
        self.fail_connect = fail_connect
        self.connected_to = None
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.type_lookups = []

    def connect(self, address):
        self.connect_calls += 1
        if self.fail_connect is not None:
            raise self.fail_connect
        self.connected_to = address

    def disconnect(self):
        self.disconnect_calls += 1

    def list_services(self):
        return dict(self.services)

    def resolve_type(self, name):
        self.type_lookups.append(name)
        return self.messages.get(name)

    def resolve_enum(self, name):
        return self.enums.get(name)


def scalar_field(name, number, type_, label=FieldProto.LABEL_OPTIONAL):
    return FieldProto(name=name, number=number, type=type_, label=label)


def ref_field(name, number, type_name, type_=FieldProto.TYPE_MESSAGE, label=FieldProto.LABEL_OPTIONAL):
    return FieldProto(name=name, number=number, type=type_, type_name=type_name, label=label)


def message(name, *fields):
    return descriptor_pb2.DescriptorProto(name=name, field=list(fields))


def enum(name, *values):
    return descriptor_pb2.EnumDescriptorProto(
        name=name,
        value=[descriptor_pb2.EnumValueDescriptorProto(name=n, number=v) for n, v in values],
    )


def service(name, *methods):
    return descriptor_pb2.ServiceDescriptorProto(name=name, method=list(methods))


def method(name, input_type, output_type, client_streaming=False, server_streaming=False):
    return descriptor_pb2.MethodDescriptorProto(
        name=name,
        input_type=input_type,
        output_type=output_type,
        client_streaming=client_streaming,
        server_streaming=server_streaming,
    )


@pytest.fixture
def greeter_source():
    """pkg.Greeter with a single unary SayHello(HelloRequest) -> HelloReply."""
    return FakeDescriptorSource(
        services={
            "pkg/Greeter": service(
                "Greeter", method("SayHello", ".pkg.HelloRequest", ".pkg.HelloReply")
            ),
        },
        messages={
            ".pkg.HelloRequest": message(
                "HelloRequest",
                scalar_field("name", 1, FieldProto.TYPE_STRING),
                ref_field("mood", 2, ".pkg.Mood", FieldProto.TYPE_ENUM),
            ),
            ".pkg.HelloReply": message(
                "HelloReply",
                scalar_field("message", 1, FieldProto.TYPE_STRING),
                scalar_field("tags", 2, FieldProto.TYPE_STRING, FieldProto.LABEL_REPEATED),
            ),
        },
        enums={
            ".pkg.Mood": enum("Mood", ("MOOD_UNSPECIFIED", 0), ("HAPPY", 1), ("SAD", 2)),
        },
    )
