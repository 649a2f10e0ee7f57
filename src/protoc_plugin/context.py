"""Per-file state shared by every descriptor built while walking one .proto file."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional, Tuple

from google.protobuf import descriptor_pb2

from protoc_plugin.errors import TraversalError
from protoc_plugin.naming import OuterClass

if TYPE_CHECKING:
    from protoc_plugin.generator.hooks import PluginHooks
    from protoc_plugin.registry import Registry

logger = logging.getLogger(__name__)

# What a missing comment formats to: an empty Java string literal.
EMPTY_COMMENT = '""'

PROTO3_SYNTAX = "proto3"

Path = Tuple[int, ...]

_FileProto = descriptor_pb2.FileDescriptorProto
_MessageProto = descriptor_pb2.DescriptorProto


def format_comment(comment: Optional[str]) -> str:
    """Format a comment as a Java string expression.

    For example:
        comment saying "stuff" and \\n \\n line2
    becomes:
        "comment saying \\"stuff\\" and\\n" + "line2"
    """
    if comment is None:
        return EMPTY_COMMENT
    in_quotes = '"' + comment.strip().replace('"', '\\"') + '"'
    lines = [line.strip() for line in in_quotes.split("\n")]
    return '\\n" + "'.join(line for line in lines if line)


def _location_comment(location: descriptor_pb2.SourceCodeInfo.Location) -> str:
    # Leading comments already end with a newline.
    text = ""
    if location.HasField("leading_comments"):
        text += location.leading_comments
    if location.HasField("trailing_comments"):
        text += location.trailing_comments
    return text


def index_comments(file_proto: _FileProto) -> Dict[Path, str]:
    """Map each source path to its leading and trailing comments.

    Detached comments and locations without comments are ignored. If two
    locations share a path, the first one wins.
    """
    comments: Dict[Path, str] = {}
    for location in file_proto.source_code_info.location:
        if not (location.HasField("leading_comments") or location.HasField("trailing_comments")):
            continue
        path = tuple(location.path)
        comment = _location_comment(location)
        if path in comments:
            logger.warning("Discarding comment due to duplicate path: %s", comment)
            continue
        comments[path] = comment
    return comments


def target_package(file_proto: _FileProto) -> str:
    """The java_package option if present, otherwise the protobuf package."""
    if file_proto.options.HasField("java_package"):
        return file_proto.options.java_package
    return file_proto.package


@dataclass(frozen=True)
class FileUnit:
    """Immutable facts about one .proto file."""

    source_name: str
    protobuf_package: str
    target_package: str
    proto3_syntax: bool
    outer_class: OuterClass
    comments: Dict[Path, str] = field(default_factory=dict)

    @classmethod
    def from_proto(
        cls,
        file_proto: _FileProto,
        plugin_outer_class: Callable[[str], str],
    ) -> "FileUnit":
        return cls(
            source_name=file_proto.name,
            protobuf_package=file_proto.package,
            target_package=target_package(file_proto),
            # Anything other than "proto3" is treated as proto2.
            proto3_syntax=file_proto.syntax == PROTO3_SYNTAX,
            outer_class=OuterClass(file_proto, plugin_outer_class),
            comments=index_comments(file_proto),
        )


@dataclass(frozen=True)
class _Frame:
    kind: str
    outer: Optional[str] = None


class ProcessingContext:
    """Traversal state for a single FileDescriptorProto.

    Besides the file's immutable facts, the context tracks where the walk
    currently is:

    - ``path``: the location path, alternating a descriptor field number
      (e.g. 4 for message_type) and an element index. Comments in
      ``source_code_info`` are indexed by these paths.
    - ``outers``: names of the messages enclosing the current declaration.

    Every ``start_*`` must be matched by its ``end_*`` in reverse order. The
    context-manager helpers (``field_list()``, ``list_element(i)``, ...) do
    the pairing automatically.
    """

    def __init__(
        self,
        registry: "Registry",
        file_proto: _FileProto,
        hooks: "PluginHooks",
        shared_package: Optional[str] = None,
        parameters: Optional[Dict[str, str]] = None,
    ):
        self.registry = registry
        self.file_proto = file_proto
        self.hooks = hooks
        self.file_unit = FileUnit.from_proto(file_proto, hooks.plugin_outer_class)
        # Longest package prefix shared by every file in the request.
        self.shared_package = shared_package
        self.parameters: Dict[str, str] = dict(parameters or {})
        self._path: List[int] = []
        self._frames: List[_Frame] = []
        self._outers: List[str] = []

    @property
    def target_package(self) -> str:
        return self.file_unit.target_package

    @property
    def protobuf_package(self) -> str:
        return self.file_unit.protobuf_package

    @property
    def outer_class(self) -> OuterClass:
        return self.file_unit.outer_class

    @property
    def is_proto3_syntax(self) -> bool:
        return self.file_unit.proto3_syntax

    @property
    def type_name_formatter(self) -> Callable[[str], str]:
        return self.hooks.type_name_formatter

    @property
    def path(self) -> Path:
        return tuple(self._path)

    @property
    def outers(self) -> Tuple[str, ...]:
        """Snapshot of the enclosing message names, outermost first."""
        return tuple(self._outers)

    @property
    def output_file_name(self) -> str:
        """Path of the generated file, e.g. com/example/TestREST.java."""
        file_name = self.outer_class.plugin_class + self.hooks.source_extension
        if not self.target_package:
            # protoc rejects absolute output paths.
            return file_name
        return self.target_package.replace(".", "/") + "/" + file_name

    def comment_at_path(self) -> str:
        """The formatted comment attached to the current path."""
        return format_comment(self.file_unit.comments.get(self.path))

    # Path-related methods. The orchestrator calls these while walking the
    # file so descriptors can find their comments.

    def start_field_list(self) -> None:
        self._push("field list", _MessageProto.FIELD_FIELD_NUMBER)

    def end_field_list(self) -> None:
        self._pop("field list")

    def start_enum_list(self) -> None:
        self._push("enum list", _FileProto.ENUM_TYPE_FIELD_NUMBER)

    def end_enum_list(self) -> None:
        self._pop("enum list")

    def start_enum_value_list(self) -> None:
        self._push("enum value list", descriptor_pb2.EnumDescriptorProto.VALUE_FIELD_NUMBER)

    def end_enum_value_list(self) -> None:
        self._pop("enum value list")

    def start_service_list(self) -> None:
        self._push("service list", _FileProto.SERVICE_FIELD_NUMBER)

    def end_service_list(self) -> None:
        self._pop("service list")

    def start_service_method_list(self) -> None:
        self._push("service method list", descriptor_pb2.ServiceDescriptorProto.METHOD_FIELD_NUMBER)

    def end_service_method_list(self) -> None:
        self._pop("service method list")

    def start_message_list(self) -> None:
        self._push("message list", _FileProto.MESSAGE_TYPE_FIELD_NUMBER)

    def end_message_list(self) -> None:
        self._pop("message list")

    def start_nested_message_list(self, outer_name: str) -> None:
        self._push("nested message list", _MessageProto.NESTED_TYPE_FIELD_NUMBER, outer_name)

    def end_nested_message_list(self) -> None:
        self._pop("nested message list")

    def start_nested_enum_list(self, outer_name: str) -> None:
        self._push("nested enum list", _MessageProto.ENUM_TYPE_FIELD_NUMBER, outer_name)

    def end_nested_enum_list(self) -> None:
        self._pop("nested enum list")

    def start_nested_one_of_list(self, outer_name: str) -> None:
        self._push("nested oneof list", _MessageProto.ONEOF_DECL_FIELD_NUMBER, outer_name)

    def end_nested_one_of_list(self) -> None:
        self._pop("nested oneof list")

    def start_list_element(self, index: int) -> None:
        self._push("list element", index)

    def end_list_element(self) -> None:
        self._pop("list element")

    def _push(self, kind: str, value: int, outer: Optional[str] = None) -> None:
        self._path.append(value)
        self._frames.append(_Frame(kind, outer))
        if outer is not None:
            self._outers.append(outer)

    def _pop(self, kind: str) -> None:
        if not self._frames:
            raise TraversalError(f"Cannot end {kind}: the path is empty")
        frame = self._frames[-1]
        if frame.kind != kind:
            raise TraversalError(
                f"Cannot end {kind} while inside {frame.kind} at path {list(self._path)}"
            )
        if frame.outer is not None:
            self._outers.pop()
        self._frames.pop()
        self._path.pop()

    # Scoped helpers: the matching end_* runs on every exit path.

    @contextmanager
    def field_list(self) -> Iterator[None]:
        self.start_field_list()
        try:
            yield
        finally:
            self.end_field_list()

    @contextmanager
    def enum_list(self) -> Iterator[None]:
        self.start_enum_list()
        try:
            yield
        finally:
            self.end_enum_list()

    @contextmanager
    def enum_value_list(self) -> Iterator[None]:
        self.start_enum_value_list()
        try:
            yield
        finally:
            self.end_enum_value_list()

    @contextmanager
    def service_list(self) -> Iterator[None]:
        self.start_service_list()
        try:
            yield
        finally:
            self.end_service_list()

    @contextmanager
    def service_method_list(self) -> Iterator[None]:
        self.start_service_method_list()
        try:
            yield
        finally:
            self.end_service_method_list()

    @contextmanager
    def message_list(self) -> Iterator[None]:
        self.start_message_list()
        try:
            yield
        finally:
            self.end_message_list()

    @contextmanager
    def nested_message_list(self, outer_name: str) -> Iterator[None]:
        self.start_nested_message_list(outer_name)
        try:
            yield
        finally:
            self.end_nested_message_list()

    @contextmanager
    def nested_enum_list(self, outer_name: str) -> Iterator[None]:
        self.start_nested_enum_list(outer_name)
        try:
            yield
        finally:
            self.end_nested_enum_list()

    @contextmanager
    def nested_one_of_list(self, outer_name: str) -> Iterator[None]:
        self.start_nested_one_of_list(outer_name)
        try:
            yield
        finally:
            self.end_nested_one_of_list()

    @contextmanager
    def list_element(self, index: int) -> Iterator[None]:
        self.start_list_element(index)
        try:
            yield
        finally:
            self.end_list_element()
