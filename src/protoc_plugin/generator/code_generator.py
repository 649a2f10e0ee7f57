"""Drives registration and code generation over a CodeGeneratorRequest."""

from __future__ import annotations

import logging
import os
from typing import Dict, Iterable, Optional

# Importing the annotations registers the google.api.http extension, so it
# is parsed out of method options when the request is read.
from google.api import annotations_pb2  # noqa: F401
from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2

from protoc_plugin.context import ProcessingContext
from protoc_plugin.descriptor.base import AbstractDescriptor, DescriptorKind
from protoc_plugin.generator.file_renderer import render_file
from protoc_plugin.generator.hooks import GeneratedFile, PluginHooks
from protoc_plugin.registry import Registry

logger = logging.getLogger(__name__)


def parse_parameters(parameter: str) -> Dict[str, str]:
    """Parse the request's "key=value,flag" parameter string."""
    values: Dict[str, str] = {}
    if not parameter:
        return values
    for chunk in parameter.split(","):
        key, _, value = chunk.partition("=")
        key = key.strip()
        if not key:
            continue
        values[key] = value.strip()
    return values


def shared_package(files: Iterable[descriptor_pb2.FileDescriptorProto]) -> Optional[str]:
    """Longest package prefix shared by all files, without a trailing ".".

    Each file contributes its java_package option, or its protobuf package.
    Files with neither are ignored. The prefix is character-wise, so
    com.foo and com.fob share com.fo.
    """
    shared: Optional[str] = None
    for file_proto in files:
        if file_proto.options.HasField("java_package"):
            package = file_proto.options.java_package
        elif file_proto.HasField("package"):
            package = file_proto.package
        else:
            continue
        shared = package if shared is None else os.path.commonprefix([shared, package])
        if shared.endswith("."):
            shared = shared[:-1]
    return shared


class CodeGenerator:
    """Turns a CodeGeneratorRequest into a CodeGeneratorResponse using a plugin's hooks.

    protoc lists the files of a request in dependency order (dependencies
    before dependents), so each file can be registered and generated in
    turn without a separate linking step: everything a file refers to is
    already in the registry.

    A CodeGenerator owns its registry. Use a new instance per request.
    """

    def __init__(self, hooks: PluginHooks):
        self.hooks = hooks
        self.registry = Registry()
        self.shared_package: Optional[str] = None
        self.parameters: Dict[str, str] = {}
        self._dispatch = {
            DescriptorKind.MESSAGE: hooks.generate_message,
            DescriptorKind.ENUM: hooks.generate_enum,
            DescriptorKind.SERVICE: hooks.generate_service,
            DescriptorKind.ONEOF: hooks.generate_one_of,
        }

    def generate_code(self, descriptor: AbstractDescriptor) -> Optional[str]:
        """Code for any registered declaration, or None if the plugin generates nothing."""
        return self._dispatch[descriptor.kind](descriptor)

    def run(self) -> None:
        """Read a request from the input stream and write the response to the output stream.

        Nothing is written unless every file was processed.
        """
        request = plugin_pb2.CodeGeneratorRequest.FromString(self.hooks.input_stream().read())
        response = self.generate(request)
        output = self.hooks.output_stream()
        output.write(response.SerializeToString())
        output.flush()

    def generate(self, request: plugin_pb2.CodeGeneratorRequest) -> plugin_pb2.CodeGeneratorResponse:
        self.shared_package = shared_package(request.proto_file)
        self.parameters = parse_parameters(request.parameter)

        response = plugin_pb2.CodeGeneratorResponse()
        for file_proto in request.proto_file:
            generated = self.process_file(file_proto)
            if generated is not None:
                _add_file(response, generated)

        for generated in self.hooks.miscellaneous_files():
            _add_file(response, generated)
        return response

    def process_file(self, file_proto: descriptor_pb2.FileDescriptorProto) -> Optional[GeneratedFile]:
        """Register one file's declarations and render its file unless the plugin skips it.

        Skipped files are still registered, so later files can refer to their types.
        """
        context = self.register_file(file_proto)

        logger.info("Generating messages in file: %s in package: %s", file_proto.name, file_proto.package)
        if self.hooks.skip_file(file_proto):
            return None
        return render_file(context, self.generate_code)

    def register_file(self, file_proto: descriptor_pb2.FileDescriptorProto) -> ProcessingContext:
        """Register top-level enums, then messages (recursively), then services."""
        logger.info("Registering messages in file: %s in package: %s", file_proto.name, file_proto.package)

        context = self.create_context(file_proto)
        with context.enum_list():
            for i, enum_proto in enumerate(file_proto.enum_type):
                with context.list_element(i):
                    self.registry.register_enum(context, enum_proto)

        with context.message_list():
            for i, message_proto in enumerate(file_proto.message_type):
                with context.list_element(i):
                    self.registry.register_message(context, message_proto)

        with context.service_list():
            for i, service_proto in enumerate(file_proto.service):
                with context.list_element(i):
                    self.registry.register_service(context, service_proto)
        return context

    def create_context(self, file_proto: descriptor_pb2.FileDescriptorProto) -> ProcessingContext:
        return ProcessingContext(
            self.registry,
            file_proto,
            self.hooks,
            shared_package=self.shared_package,
            parameters=self.parameters,
        )


def _add_file(response: plugin_pb2.CodeGeneratorResponse, generated: GeneratedFile) -> None:
    response_file = response.file.add()
    response_file.name = generated.name
    response_file.content = generated.content
