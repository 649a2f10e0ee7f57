from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Set, Tuple

from google.protobuf import descriptor_pb2

from protoc_plugin.descriptor.base import AbstractDescriptor, DescriptorKind
from protoc_plugin.descriptor.field_descriptor import FieldDescriptor
from protoc_plugin.naming import format_field_name

if TYPE_CHECKING:
    from protoc_plugin.context import ProcessingContext
    from protoc_plugin.descriptor.enum_descriptor import EnumDescriptor
    from protoc_plugin.descriptor.one_of_descriptor import OneOfDescriptor


def duplicate_field_names(fields: Iterable[descriptor_pb2.FieldDescriptorProto]) -> Set[str]:
    """camelCase names produced by more than one field.

    Only trailing or doubled underscores can make two valid proto field
    names format the same, e.g. my_field and my_field_.
    """
    counts = Counter(format_field_name(f.name) for f in fields)
    return {name for name, count in counts.items() if count > 1}


class MessageDescriptor(AbstractDescriptor):
    """A message, built after all of its nested declarations are registered."""

    kind = DescriptorKind.MESSAGE

    def __init__(
        self,
        context: "ProcessingContext",
        message_proto: descriptor_pb2.DescriptorProto,
        children: Sequence[AbstractDescriptor] = (),
    ):
        super().__init__(context, message_proto.name)
        self._proto = message_proto
        self._comment = context.comment_at_path()
        self._children = tuple(children)

        duplicates = duplicate_field_names(message_proto.field)
        fields: List[FieldDescriptor] = []
        with context.field_list():
            for i, field_proto in enumerate(message_proto.field):
                with context.list_element(i):
                    fields.append(FieldDescriptor(context, message_proto, field_proto, duplicates))
        self._fields = tuple(fields)

    @property
    def proto(self) -> descriptor_pb2.DescriptorProto:
        return self._proto

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def children(self) -> Tuple[AbstractDescriptor, ...]:
        """Nested messages, then nested enums, then oneofs."""
        return self._children

    @property
    def nested_messages(self) -> List["MessageDescriptor"]:
        return [c for c in self._children if c.kind is DescriptorKind.MESSAGE]

    @property
    def nested_enums(self) -> List["EnumDescriptor"]:
        return [c for c in self._children if c.kind is DescriptorKind.ENUM]

    @property
    def one_ofs(self) -> List["OneOfDescriptor"]:
        return [c for c in self._children if c.kind is DescriptorKind.ONEOF]

    @property
    def fields(self) -> Tuple[FieldDescriptor, ...]:
        return self._fields

    def field_by_proto_name(self, name: str) -> Optional[FieldDescriptor]:
        for f in self._fields:
            if f.proto.name == name:
                return f
        return None

    @property
    def is_map_entry(self) -> bool:
        """True for the synthetic key/value message protoc generates for a map field."""
        return self._proto.options.map_entry

    @property
    def map_type_name(self) -> str:
        """Java type of a map field using this entry, e.g. Map<String, Long>."""
        if not self.is_map_entry:
            raise ValueError(f"{self.qualified_proto_name} is not a map entry")
        key = self.field_by_proto_name("key")
        value = self.field_by_proto_name("value")
        return f"Map<{key.type_name}, {value.type_name}>"
