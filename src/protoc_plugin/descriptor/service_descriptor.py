from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Dict, List, Optional

from google.api import annotations_pb2, http_pb2
from google.protobuf import descriptor_pb2

from protoc_plugin.descriptor.base import AbstractDescriptor, DescriptorKind
from protoc_plugin.errors import UnresolvedReferenceError

if TYPE_CHECKING:
    from protoc_plugin.context import ProcessingContext
    from protoc_plugin.descriptor.message_descriptor import MessageDescriptor


class MethodType(enum.Enum):
    """How a method streams, from its client/server streaming flags."""

    SIMPLE = "simple"
    SERVER_STREAM = "server_stream"
    CLIENT_STREAM = "client_stream"
    BI_STREAM = "bi_stream"

    @classmethod
    def from_proto(cls, method_proto: descriptor_pb2.MethodDescriptorProto) -> "MethodType":
        client = method_proto.client_streaming
        server = method_proto.server_streaming
        if server and not client:
            return cls.SERVER_STREAM
        if client and not server:
            return cls.CLIENT_STREAM
        if client and server:
            return cls.BI_STREAM
        return cls.SIMPLE


def _lookup_message(context: "ProcessingContext", type_name: str) -> "MessageDescriptor":
    descriptor = context.registry.lookup(type_name)
    if descriptor.kind is not DescriptorKind.MESSAGE:
        raise UnresolvedReferenceError(
            f"Method type {type_name} refers to a {descriptor.kind.value}, not a message."
        )
    return descriptor


class MethodDescriptor:
    """An rpc of a service, with its request and response messages resolved."""

    def __init__(
        self,
        context: "ProcessingContext",
        method_proto: descriptor_pb2.MethodDescriptorProto,
    ):
        self._comment = context.comment_at_path()
        self._input_message = _lookup_message(context, method_proto.input_type)
        self._output_message = _lookup_message(context, method_proto.output_type)
        self._type = MethodType.from_proto(method_proto)
        self._proto = method_proto

    @property
    def name(self) -> str:
        return self._proto.name

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def type(self) -> MethodType:
        return self._type

    @property
    def proto(self) -> descriptor_pb2.MethodDescriptorProto:
        return self._proto

    @property
    def input_message(self) -> "MessageDescriptor":
        return self._input_message

    @property
    def output_message(self) -> "MessageDescriptor":
        return self._output_message

    @property
    def http_rule(self) -> Optional[http_pb2.HttpRule]:
        """The google.api.http annotation on the method, if any."""
        options = self._proto.options
        if options.HasExtension(annotations_pb2.http):
            return options.Extensions[annotations_pb2.http]
        return None

    def __repr__(self) -> str:
        return f"MethodDescriptor({self.name!r}, {self._type.name})"


class ServiceDescriptor(AbstractDescriptor):
    kind = DescriptorKind.SERVICE

    def __init__(
        self,
        context: "ProcessingContext",
        service_proto: descriptor_pb2.ServiceDescriptorProto,
    ):
        super().__init__(context, service_proto.name)
        self._proto = service_proto
        self._comment = context.comment_at_path()

        methods: Dict[str, MethodDescriptor] = {}
        with context.service_method_list():
            for i, method_proto in enumerate(service_proto.method):
                with context.list_element(i):
                    methods[method_proto.name] = MethodDescriptor(context, method_proto)
        self._methods = methods

    @property
    def proto(self) -> descriptor_pb2.ServiceDescriptorProto:
        return self._proto

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def methods(self) -> List[MethodDescriptor]:
        """Methods in declaration order."""
        return list(self._methods.values())

    def method(self, name: str) -> MethodDescriptor:
        return self._methods[name]
