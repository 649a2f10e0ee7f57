from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Tuple

from google.protobuf import descriptor_pb2

from protoc_plugin.descriptor.base import AbstractDescriptor, DescriptorKind

if TYPE_CHECKING:
    from protoc_plugin.context import ProcessingContext


@dataclass(frozen=True)
class EnumValueDescriptor:
    name: str
    number: int
    comment: str


class EnumDescriptor(AbstractDescriptor):
    """An enum, with the comment on the enum and on each value."""

    kind = DescriptorKind.ENUM

    def __init__(
        self,
        context: "ProcessingContext",
        enum_proto: descriptor_pb2.EnumDescriptorProto,
    ):
        super().__init__(context, enum_proto.name)
        self._proto = enum_proto
        self._comment = context.comment_at_path()

        values: List[EnumValueDescriptor] = []
        with context.enum_value_list():
            for i, value in enumerate(enum_proto.value):
                with context.list_element(i):
                    values.append(EnumValueDescriptor(
                        name=value.name,
                        number=value.number,
                        comment=context.comment_at_path(),
                    ))
        self._values = tuple(values)

    @property
    def proto(self) -> descriptor_pb2.EnumDescriptorProto:
        return self._proto

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def values(self) -> Tuple[EnumValueDescriptor, ...]:
        return self._values
