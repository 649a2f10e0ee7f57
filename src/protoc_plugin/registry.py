"""Symbol table of every declaration processed during one run."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List

from google.protobuf import descriptor_pb2

from protoc_plugin.descriptor.base import AbstractDescriptor
from protoc_plugin.descriptor.enum_descriptor import EnumDescriptor
from protoc_plugin.descriptor.message_descriptor import MessageDescriptor
from protoc_plugin.descriptor.one_of_descriptor import OneOfDescriptor
from protoc_plugin.descriptor.service_descriptor import ServiceDescriptor
from protoc_plugin.errors import NamingConflictError, UnresolvedReferenceError

if TYPE_CHECKING:
    from protoc_plugin.context import ProcessingContext

logger = logging.getLogger(__name__)


class Registry:
    """Index of already-processed descriptors.

    Descriptors reference each other (fields name other messages, methods
    name their request and response), so every descriptor is indexed here
    under two names as soon as it is built:

    - its qualified protobuf name, e.g. ``testPkg.Outer.Inner``
    - its name within the outer class, e.g. ``Outer.Inner``

    A registry belongs to one run. Create a new one per request.
    """

    def __init__(self):
        self._by_qualified_name: Dict[str, AbstractDescriptor] = {}
        self._by_outer_name: Dict[str, AbstractDescriptor] = {}
        self._ordered: List[AbstractDescriptor] = []

    def register_enum(
        self,
        context: "ProcessingContext",
        enum_proto: descriptor_pb2.EnumDescriptorProto,
    ) -> EnumDescriptor:
        return self._add(context, EnumDescriptor(context, enum_proto))

    def register_one_of(
        self,
        context: "ProcessingContext",
        one_of_proto: descriptor_pb2.OneofDescriptorProto,
        one_of_index: int,
    ) -> OneOfDescriptor:
        return self._add(context, OneOfDescriptor(context, one_of_proto, one_of_index))

    def register_service(
        self,
        context: "ProcessingContext",
        service_proto: descriptor_pb2.ServiceDescriptorProto,
    ) -> ServiceDescriptor:
        return self._add(context, ServiceDescriptor(context, service_proto))

    def register_message(
        self,
        context: "ProcessingContext",
        message_proto: descriptor_pb2.DescriptorProto,
    ) -> MessageDescriptor:
        """Register a message after all of its nested declarations.

        Nested messages, nested enums and oneofs are registered first (in that
        order), so the message's own descriptor is always built last.
        """
        children: List[AbstractDescriptor] = []

        with context.nested_message_list(message_proto.name):
            for i, nested in enumerate(message_proto.nested_type):
                with context.list_element(i):
                    children.append(self.register_message(context, nested))

        with context.nested_enum_list(message_proto.name):
            for i, nested_enum in enumerate(message_proto.enum_type):
                with context.list_element(i):
                    children.append(self.register_enum(context, nested_enum))

        with context.nested_one_of_list(message_proto.name):
            for i, one_of in enumerate(message_proto.oneof_decl):
                with context.list_element(i):
                    children.append(self.register_one_of(context, one_of, i))

        return self._add(context, MessageDescriptor(context, message_proto, children))

    def lookup(self, name: str) -> AbstractDescriptor:
        """Get a registered descriptor by name.

        ``name`` can be the name within the outer class (``TestMessage``) or
        the qualified protobuf name, optionally prefixed with "." the way
        protoc writes type references (``.testPkg.TestMessage``).

        Raises:
            UnresolvedReferenceError: nothing is registered under the name.
                Descriptors are only ever looked up after registration, so
                this means the input or the registration order is broken.
        """
        if name.startswith("."):
            stripped = name[1:]
            result = self._by_qualified_name.get(stripped) or self._by_outer_name.get(stripped)
        else:
            result = self._by_outer_name.get(name) or self._by_qualified_name.get(name)
        if result is None:
            raise UnresolvedReferenceError(f"Descriptor {name} is not present in the registry.")
        return result

    def descriptors(self) -> List[AbstractDescriptor]:
        """Every registered descriptor, in registration order."""
        return list(self._ordered)

    def __contains__(self, name: str) -> bool:
        try:
            self.lookup(name)
        except UnresolvedReferenceError:
            return False
        return True

    def __len__(self) -> int:
        return len(self._ordered)

    def _add(self, context: "ProcessingContext", descriptor):
        qualified = descriptor.qualified_proto_name
        if qualified in self._by_qualified_name:
            raise NamingConflictError(f"Descriptor {qualified} is already registered.")
        self._by_qualified_name[qualified] = descriptor

        short_name = descriptor.name_within_outer_class(context.type_name_formatter)
        existing = self._by_outer_name.setdefault(short_name, descriptor)
        if existing is not descriptor:
            logger.debug(
                "Name %s already refers to %s; %s is only reachable by its qualified name",
                short_name, existing.qualified_proto_name, qualified,
            )

        self._ordered.append(descriptor)
        return descriptor
