"""Common behaviour of every registered declaration."""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING, Callable, Tuple

from protoc_plugin.naming import OuterClass

if TYPE_CHECKING:
    from protoc_plugin.context import ProcessingContext
    from protoc_plugin.registry import Registry


class DescriptorKind(enum.Enum):
    """The closed set of registered declaration kinds."""

    MESSAGE = "message"
    ENUM = "enum"
    ONEOF = "oneof"
    SERVICE = "service"


def _identity(name: str) -> str:
    return name


class AbstractDescriptor:
    """A declaration from a .proto file, fixed at registration time.

    Construction reads everything it needs from the processing context,
    including a copy of the enclosing message names, and reports the name
    to the file's outer class so collisions with it are detected.
    """

    kind: DescriptorKind

    def __init__(self, context: "ProcessingContext", name: str):
        self._name = name
        self._target_package = context.target_package
        self._protobuf_package = context.protobuf_package
        self._outer_class = context.outer_class
        self._registry = context.registry
        self._type_name_formatter = context.type_name_formatter

        self._outer_class.on_new_descriptor(name)

        # The context's outers keep changing during the walk, so keep a snapshot.
        self._outer_messages: Tuple[str, ...] = context.outers

    @property
    def name(self) -> str:
        """The unqualified name, e.g. Msg3 for Msg.Msg2.Msg3."""
        return self._name

    @property
    def target_package(self) -> str:
        return self._target_package

    @property
    def protobuf_package(self) -> str:
        return self._protobuf_package

    @property
    def outer_class(self) -> OuterClass:
        return self._outer_class

    @property
    def outer_messages(self) -> Tuple[str, ...]:
        """Names of the enclosing messages, outermost first. Empty if not nested."""
        return self._outer_messages

    @property
    def registry(self) -> "Registry":
        return self._registry

    def name_within_outer_class(self, formatter: Callable[[str], str] = _identity) -> str:
        """The dotted path to this declaration inside the file's outer class.

        Equal to ``name`` for top-level declarations, otherwise e.g.
        ``Msg.Msg2.Msg3``. Each segment goes through ``formatter``.
        """
        return ".".join(formatter(n) for n in self._outer_messages + (self._name,))

    def qualified_name(self, formatter: Callable[[str], str] = _identity) -> str:
        """Fully qualified name of the class this plugin generates for the declaration."""
        return (
            f"{self._target_package}.{self._outer_class.plugin_class}."
            f"{self.name_within_outer_class(formatter)}"
        )

    @property
    def qualified_original_name(self) -> str:
        """Fully qualified name of the class protoc's Java generator produces."""
        return self._original_class_prefix() + self.name_within_outer_class()

    @property
    def qualified_proto_name(self) -> str:
        """Fully qualified protobuf name, e.g. testPkg.Msg.Msg2."""
        within = self.name_within_outer_class()
        if self._protobuf_package:
            return f"{self._protobuf_package}.{within}"
        return within

    def _original_class_prefix(self) -> str:
        # With java_multiple_files protoc does not nest classes in the outer class.
        if self._outer_class.multiple_files:
            return f"{self._target_package}."
        return f"{self._target_package}.{self._outer_class.proto_class}."

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.qualified_proto_name!r})"
