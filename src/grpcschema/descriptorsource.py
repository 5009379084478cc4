from typing import Dict, Optional, Protocol
from grpc_reflection.v1alpha import reflection_pb2, reflection_pb2_grpc
from google.protobuf import descriptor_pb2
import grpc
from grpcschema.constants import DEFAULT_TIMEOUT, SERVICE_KEY_SEPARATOR
from grpcschema.errors import ReflectionError, SourceConnectionError
from grpcschema.helper import helper


class DescriptorSource(Protocol):
    """Holds or fetches raw service, message and enum descriptors by name."""

    def connect(self, address: str) -> None:
        ...

    def disconnect(self) -> None:
        ...

    def list_services(self) -> Dict[str, descriptor_pb2.ServiceDescriptorProto]:
        """Services keyed as "<package>/<Service>"."""
        ...

    def resolve_type(self, name: str) -> Optional[descriptor_pb2.DescriptorProto]:
        ...

    def resolve_enum(self, name: str) -> Optional[descriptor_pb2.EnumDescriptorProto]:
        ...


def _qualify(prefix, name):
    return f"{prefix}.{name}" if prefix else name


class ReflectionDescriptorSource(helper):
    """
    Descriptor source backed by the gRPC server reflection service.

    File descriptors are fetched on demand and every message and enum they
    declare, nested ones included, is indexed by its fully-qualified name.
    The index lives as long as the connection: ``disconnect`` drops it.
    """

    def __init__(self, creds=None, auth=None, timeout=None):
        super().__init__()
        self.creds = creds or {}
        self.auth = auth
        self.timeout = DEFAULT_TIMEOUT if timeout is None else timeout
        self.address = None
        self.channel = None
        self.reflection_stub = None
        self.metadata = None
        self._reset_index()

    def _reset_index(self):
        self.loaded_files = {}
        self.messages = {}
        self.enums = {}
        self.missing_symbols = set()

    def _channel_credentials(self):
        root_certificates = private_key = certificate_chain = None

        if self.creds.get('client_key'):
            with open(self.creds['client_key'], 'rb') as f:
                private_key = f.read()

        if self.creds.get('client_certificate'):
            with open(self.creds['client_certificate'], 'rb') as f:
                certificate_chain = f.read()

        if self.creds.get('ca_certificate'):
            with open(self.creds['ca_certificate'], 'rb') as f:
                root_certificates = f.read()

        if (private_key is None) != (certificate_chain is None):
            raise ValueError("Both client_key and client_certificate are required for mutual TLS")

        return grpc.ssl_channel_credentials(
            root_certificates=root_certificates,
            private_key=private_key,
            certificate_chain=certificate_chain
        )

    def _call_metadata(self):
        pair = self.convert_auth(self.auth)
        return [pair] if pair else None

    def connect(self, address):
        self.disconnect()
        self.address = address
        self.metadata = self._call_metadata()

        if any(self.creds.values()):
            try:
                credentials = self._channel_credentials()
            except OSError as e:
                self.log(function_name='connect', args=[address], exception=e)
                raise SourceConnectionError(address, f"cannot read TLS file: {e}") from e
            channel = grpc.secure_channel(address, credentials)
        else:
            channel = grpc.insecure_channel(address)

        try:
            grpc.channel_ready_future(channel).result(timeout=self.timeout)
        except grpc.FutureTimeoutError as e:
            channel.close()
            self.log(function_name='connect', args=[address], exception=e)
            raise SourceConnectionError(address, 'channel not ready before timeout') from e

        self.channel = channel
        self.reflection_stub = reflection_pb2_grpc.ServerReflectionStub(channel)
        self.log(function_name='connect', args=[address], output='connected')

    def disconnect(self):
        if self.channel is not None:
            self.channel.close()
        self.channel = None
        self.reflection_stub = None
        self._reset_index()

    def _reflect(self, **request_fields):
        if self.reflection_stub is None:
            raise RuntimeError("Reflection stub not initialized. Call connect first.")
        request = reflection_pb2.ServerReflectionRequest(**request_fields)
        responses = self.reflection_stub.ServerReflectionInfo(
            iter([request]), timeout=self.timeout, metadata=self.metadata
        )
        return next(iter(responses), None)

    def _fetch_files(self, **request_fields):
        """
        Fetches the files named by one reflection request plus, through
        ``file_by_filename``, every dependency not loaded yet. Returns the
        FileDescriptorProtos of the first response, or an empty list when
        the server reports an error for the request.
        """
        response = self._reflect(**request_fields)
        if response is None or response.HasField('error_response'):
            if response is not None:
                self.log(function_name='_fetch_files', args=[request_fields],
                         output=response.error_response.error_message)
            return []

        fetched = []
        for fd_bytes in response.file_descriptor_response.file_descriptor_proto:
            fd_proto = descriptor_pb2.FileDescriptorProto()
            fd_proto.ParseFromString(fd_bytes)
            fetched.append(fd_proto)
            self._add_file(fd_proto)

        for fd_proto in fetched:
            for dep in fd_proto.dependency:
                if dep not in self.loaded_files:
                    self._fetch_files(file_by_filename=dep)
        return fetched

    def _add_file(self, fd_proto):
        if fd_proto.name in self.loaded_files:
            return
        self.loaded_files[fd_proto.name] = fd_proto

        def index_message(prefix, msg):
            full_name = _qualify(prefix, msg.name)
            self.messages[full_name] = msg
            for nested in msg.nested_type:
                index_message(full_name, nested)
            for enum in msg.enum_type:
                self.enums[_qualify(full_name, enum.name)] = enum

        for msg in fd_proto.message_type:
            index_message(fd_proto.package, msg)
        for enum in fd_proto.enum_type:
            self.enums[_qualify(fd_proto.package, enum.name)] = enum

    def list_services(self):
        try:
            response = self._reflect(list_services="")
        except grpc.RpcError as e:
            self.log(function_name='list_services', args=[self.address], exception=e)
            raise ReflectionError(f"Could not list services on '{self.address}': {e}") from e

        if response is None or not response.HasField('list_services_response'):
            raise ReflectionError(f"Server reflection on '{self.address}' did not return a service list")

        services = {}
        for listed in response.list_services_response.service:
            descriptor = self._find_service(listed.name)
            if descriptor is None:
                try:
                    self._fetch_files(file_containing_symbol=listed.name)
                except grpc.RpcError as e:
                    self.log(function_name='list_services', args=[listed.name], exception=e)
                    continue
                descriptor = self._find_service(listed.name)

            if descriptor is None:
                self.log(function_name='list_services', args=[listed.name],
                         output='service descriptor not found, skipped')
                continue
            package, service = descriptor
            services[f"{package}{SERVICE_KEY_SEPARATOR}{service.name}"] = service
        return services

    def _find_service(self, full_name):
        for fd_proto in self.loaded_files.values():
            for service in fd_proto.service:
                if _qualify(fd_proto.package, service.name) == full_name:
                    return fd_proto.package, service
        return None

    def _lookup(self, index, name):
        name = (name or "").lstrip(".")
        if not name:
            return None
        known = name in self.messages or name in self.enums or name in self.missing_symbols
        if not known:
            try:
                self._fetch_files(file_containing_symbol=name)
            except grpc.RpcError as e:
                self.log(function_name='_lookup', args=[name], exception=e)
            if name not in index:
                self.missing_symbols.add(name)
        return index.get(name)

    def resolve_type(self, name):
        return self._lookup(self.messages, name)

    def resolve_enum(self, name):
        return self._lookup(self.enums, name)
