from __future__ import annotations

from typing import TYPE_CHECKING

from google.protobuf import descriptor_pb2

from protoc_plugin.descriptor.base import AbstractDescriptor, DescriptorKind
from protoc_plugin.naming import capitalize, format_field_name

if TYPE_CHECKING:
    from protoc_plugin.context import ProcessingContext


class OneOfDescriptor(AbstractDescriptor):
    """The parent of a oneof. Its variants are ordinary fields of the message."""

    kind = DescriptorKind.ONEOF

    def __init__(
        self,
        context: "ProcessingContext",
        one_of_proto: descriptor_pb2.OneofDescriptorProto,
        one_of_index: int,
    ):
        super().__init__(context, one_of_proto.name)
        self._proto = one_of_proto
        self._one_of_index = one_of_index
        self._comment = context.comment_at_path()

    @property
    def proto(self) -> descriptor_pb2.OneofDescriptorProto:
        return self._proto

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def one_of_index(self) -> int:
        """Position of this oneof among the oneofs of its message."""
        return self._one_of_index

    @property
    def case_name(self) -> str:
        """Capitalized camelCase name, e.g. my_choice -> MyChoice."""
        return capitalize(format_field_name(self.name))

    @property
    def qualified_original_name(self) -> str:
        """Qualified name of the case class protoc generates for the oneof.

        For ``oneof my_choice`` in message Msg of test.proto that is
        ``pkg.Test.Msg.MyChoice``.
        """
        return self._original_class_prefix() + ".".join(self.outer_messages + (self.case_name,))
