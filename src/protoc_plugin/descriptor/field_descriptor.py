from __future__ import annotations

from typing import TYPE_CHECKING, AbstractSet, Dict, Optional

from google.protobuf import descriptor_pb2

from protoc_plugin.descriptor.base import AbstractDescriptor, DescriptorKind
from protoc_plugin.naming import format_field_name

if TYPE_CHECKING:
    from protoc_plugin.context import ProcessingContext

_FieldProto = descriptor_pb2.FieldDescriptorProto

# Suffix added to the Java name of every field to avoid clashes with Java keywords.
JAVA_SUFFIX = "_"

# Proto scalar type -> Java boxed type
BASE_FIELD_TYPES: Dict[int, str] = {
    _FieldProto.TYPE_DOUBLE: "Double",
    _FieldProto.TYPE_FLOAT: "Float",
    _FieldProto.TYPE_INT64: "Long",
    _FieldProto.TYPE_UINT64: "Long",
    _FieldProto.TYPE_FIXED64: "Long",
    _FieldProto.TYPE_SFIXED64: "Long",
    _FieldProto.TYPE_SINT64: "Long",
    _FieldProto.TYPE_INT32: "Integer",
    _FieldProto.TYPE_UINT32: "Integer",
    _FieldProto.TYPE_FIXED32: "Integer",
    _FieldProto.TYPE_SFIXED32: "Integer",
    _FieldProto.TYPE_SINT32: "Integer",
    _FieldProto.TYPE_BOOL: "Boolean",
    _FieldProto.TYPE_STRING: "String",
    _FieldProto.TYPE_BYTES: "ByteString",
}

_REFERENCE_TYPES = (_FieldProto.TYPE_MESSAGE, _FieldProto.TYPE_ENUM)

_UNRESOLVED = object()


def base_field_type(field_type: int) -> str:
    """Java type for a scalar proto type.

    Raises ValueError for groups, messages and enums, which have to be
    resolved through the registry instead.
    """
    try:
        return BASE_FIELD_TYPES[field_type]
    except KeyError:
        raise ValueError(f"Unexpected non-base type: {field_type}") from None


class FieldDescriptor:
    """A field of a message.

    Message and enum types are looked up in the registry when first needed
    rather than here: a field may refer to its own message or to a message
    declared later in the same file, and those are registered after the
    field is built.
    """

    def __init__(
        self,
        context: "ProcessingContext",
        parent_proto: descriptor_pb2.DescriptorProto,
        field_proto: _FieldProto,
        duplicate_names: AbstractSet[str],
    ):
        self._comment = context.comment_at_path()
        self._registry = context.registry
        self._parent_proto = parent_proto
        self._proto = field_proto
        # Set when e.g. my_field and my_field_ both format to myField.
        self._append_field_number = format_field_name(field_proto.name) in duplicate_names
        self._proto3 = context.is_proto3_syntax
        self._type_name_formatter = context.type_name_formatter
        self._content = _UNRESOLVED

    @property
    def name(self) -> str:
        """The camelCase name, with the field number appended if it is ambiguous."""
        formatted = format_field_name(self._proto.name)
        if self._append_field_number:
            formatted += str(self._proto.number)
        return formatted

    @property
    def suffixed_name(self) -> str:
        return self.name + JAVA_SUFFIX

    @property
    def appends_field_number(self) -> bool:
        return self._append_field_number

    @property
    def proto(self) -> _FieldProto:
        return self._proto

    @property
    def comment(self) -> str:
        return self._comment

    @property
    def is_proto3_syntax(self) -> bool:
        return self._proto3

    @property
    def is_required(self) -> bool:
        return self._proto.label == _FieldProto.LABEL_REQUIRED

    @property
    def is_list(self) -> bool:
        return self._proto.label == _FieldProto.LABEL_REPEATED

    @property
    def is_enum(self) -> bool:
        return self._proto.type == _FieldProto.TYPE_ENUM

    @property
    def oneof_name(self) -> Optional[str]:
        """camelCase name of the enclosing oneof, or None outside a oneof."""
        if not self._proto.HasField("oneof_index"):
            return None
        return format_field_name(self._parent_proto.oneof_decl[self._proto.oneof_index].name)

    @property
    def content_descriptor(self) -> Optional[AbstractDescriptor]:
        """The message or enum this field refers to, None for scalar fields."""
        if self._content is _UNRESOLVED:
            if self._proto.type in _REFERENCE_TYPES:
                self._content = self._registry.lookup(self._proto.type_name)
            else:
                self._content = None
        return self._content

    @property
    def type_name(self) -> str:
        """The element type: a boxed Java type or the plugin's qualified class name."""
        content = self.content_descriptor
        if content is None:
            return base_field_type(self._proto.type)
        return self._type_name_formatter(content.qualified_name(self._type_name_formatter))

    @property
    def proto_type_name(self) -> str:
        """The element type, naming the class protoc generates for messages and enums."""
        content = self.content_descriptor
        if content is None:
            return base_field_type(self._proto.type)
        return content.qualified_original_name

    @property
    def is_map_field(self) -> bool:
        if not self.is_list:
            return False
        content = self.content_descriptor
        return content is not None and content.kind is DescriptorKind.MESSAGE and content.is_map_entry

    @property
    def type(self) -> str:
        """The full Java type, wrapping repeated fields in List and map fields in Map."""
        if self.is_map_field:
            return self.content_descriptor.map_type_name
        if self.is_list:
            return f"List<{self.type_name}>"
        return self.type_name

    def __repr__(self) -> str:
        return f"FieldDescriptor({self._proto.name!r}, number={self._proto.number})"
