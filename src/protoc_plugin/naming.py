"""Name conversions that mirror the protobuf Java code generator.

Generated code refers to the classes ``protoc --java_out`` produces, so the
rules here have to match that generator exactly, quirks included.
"""

from __future__ import annotations

from typing import Callable

from google.protobuf import descriptor_pb2

from protoc_plugin.errors import NamingConflictError

# Suffix protoc appends to the outer class when a declaration shares its name.
OUTER_CLASS_SUFFIX = "OuterClass"

PROTO_EXTENSION = ".proto"


def capitalize(name: str) -> str:
    """Upper-case the first character only: fooBar -> FooBar."""
    return name[:1].upper() + name[1:]


def _first_char_only_to_upper(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def lower_underscore_to_lower_camel(name: str) -> str:
    """Convert my_field_name -> myFieldName.

    Every word after the first keeps only its first character upper-cased,
    so my_HTTP_field -> myHttpField. Empty words (trailing or doubled
    underscores) disappear: my_field_ -> myField.
    """
    words = name.split("_")
    return words[0].lower() + "".join(_first_char_only_to_upper(w) for w in words[1:])


def lower_underscore_to_upper_camel(name: str) -> str:
    """Convert test_msg -> TestMsg."""
    return "".join(_first_char_only_to_upper(w) for w in name.split("_"))


def format_field_name(name: str) -> str:
    """Format a snake_case field name as camelCase; other names are unchanged."""
    if "_" in name:
        return lower_underscore_to_lower_camel(name)
    return name


def original_outer_class_name(file_proto: descriptor_pb2.FileDescriptorProto) -> str:
    """Name of the outer class protoc's Java generator wraps the file in.

    Explicit ``java_outer_classname`` wins. Otherwise the file name (without
    folders and the .proto extension) is capitalized, and snake_case names
    are converted to UpperCamelCase.
    """
    if file_proto.options.HasField("java_outer_classname"):
        return file_proto.options.java_outer_classname

    file_name = file_proto.name[file_proto.name.rfind("/") + 1:]
    class_name = capitalize(file_name.replace(PROTO_EXTENSION, ""))
    if "_" in class_name:
        class_name = lower_underscore_to_upper_camel(class_name.lower())
    return class_name


class OuterClass:
    """The outer class pair for one .proto file.

    Both protoc's Java generator and a plugin built on this package wrap all
    declarations of a file in a single outer class. This keeps the name of
    the original (protoc) class and the plugin's own class.

    If a declaration in the file has the same name as the original class,
    protoc appends "OuterClass" to its class name. ``on_new_descriptor``
    tracks that during registration, after which ``proto_class`` returns the
    suffixed name. For example, test_msg.proto containing ``message TestMsg``
    compiles to ``TestMsgOuterClass``.
    """

    def __init__(
        self,
        file_proto: descriptor_pb2.FileDescriptorProto,
        plugin_outer_class: Callable[[str], str],
    ):
        self._original_class = original_outer_class_name(file_proto)
        self.plugin_class = plugin_outer_class(self._original_class)
        # With java_multiple_files protoc does not nest top-level types in the outer class.
        self.multiple_files = file_proto.options.java_multiple_files
        self.collision = False

    @property
    def original_class(self) -> str:
        """The derived class name before any collision suffix."""
        return self._original_class

    @property
    def proto_class(self) -> str:
        """The class name protoc actually generates for the file."""
        if self.collision:
            return self._original_class + OUTER_CLASS_SUFFIX
        return self._original_class

    def on_new_descriptor(self, name: str) -> None:
        """Record a declaration name; called once per registered descriptor."""
        if name == self._original_class:
            if self.collision and name == self.proto_class:
                raise NamingConflictError(
                    f"Descriptor name {name} not allowed. "
                    f"Protobuf compiler should have caught it."
                )
            self.collision = True
        elif name == self.plugin_class:
            raise NamingConflictError(
                f"Descriptor name {name} not allowed. "
                f"Reserved for the plugin's outer class."
            )
