"""The capability interface a concrete plugin supplies to the code generator."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, BinaryIO, Callable, List, Optional

from google.protobuf import descriptor_pb2

if TYPE_CHECKING:
    from protoc_plugin.descriptor.enum_descriptor import EnumDescriptor
    from protoc_plugin.descriptor.message_descriptor import MessageDescriptor
    from protoc_plugin.descriptor.one_of_descriptor import OneOfDescriptor
    from protoc_plugin.descriptor.service_descriptor import ServiceDescriptor


@dataclass(frozen=True)
class GeneratedFile:
    """One file in the response: a path relative to the output root and its content."""

    name: str
    content: str


def _no_content(_descriptor) -> Optional[str]:
    return None


def _no_imports() -> str:
    return ""


def _never_skip(_file_proto: descriptor_pb2.FileDescriptorProto) -> bool:
    return False


def _no_files() -> List[GeneratedFile]:
    return []


def _identity(text: str) -> str:
    return text


def _stdin() -> BinaryIO:
    return sys.stdin.buffer


def _stdout() -> BinaryIO:
    return sys.stdout.buffer


@dataclass(frozen=True)
class PluginHooks:
    """Everything the code generator needs from a concrete plugin.

    Only ``plugin_name`` and ``plugin_outer_class`` are required. Every other
    hook has a default that generates nothing, skips nothing, or passes text
    through unchanged.

    Attributes:
        plugin_name: Shown in the header of every generated file.
        plugin_outer_class: Maps the outer class protoc generates for a file
            (e.g. "TestDTO") to the plugin's own outer class (e.g. "TestDTOREST").
        imports: Returns the import block placed at the top of every file.
        generate_message: Code for a top-level message, or None for nothing.
        generate_enum: Code for an enum, or None for nothing.
        generate_service: Code for a service, or None for nothing.
        generate_one_of: Code for a oneof parent, or None for nothing.
            Oneofs are nested, so this is only reached through
            ``CodeGenerator.generate_code`` called from another hook.
        skip_file: True to register a file's types without generating a file.
        miscellaneous_files: Extra files not tied to any .proto file.
        type_name_formatter: Rewrites each type-name segment, e.g.
            TopologyEntityDTO -> TopologyEntityImpl.
        format_source: Pretty-prints the assembled file. Raising any
            exception aborts the run with a RenderError.
        source_extension: Extension of the generated files.
        input_stream: Where the serialized request is read from.
        output_stream: Where the serialized response is written to.
    """

    plugin_name: str
    plugin_outer_class: Callable[[str], str]
    imports: Callable[[], str] = _no_imports
    generate_message: Callable[["MessageDescriptor"], Optional[str]] = _no_content
    generate_enum: Callable[["EnumDescriptor"], Optional[str]] = _no_content
    generate_service: Callable[["ServiceDescriptor"], Optional[str]] = _no_content
    generate_one_of: Callable[["OneOfDescriptor"], Optional[str]] = _no_content
    skip_file: Callable[[descriptor_pb2.FileDescriptorProto], bool] = _never_skip
    miscellaneous_files: Callable[[], List[GeneratedFile]] = _no_files
    type_name_formatter: Callable[[str], str] = _identity
    format_source: Callable[[str], str] = _identity
    source_extension: str = ".java"
    input_stream: Callable[[], BinaryIO] = _stdin
    output_stream: Callable[[], BinaryIO] = _stdout
