from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2

from protoc_plugin.errors import ProtocPluginError
from protoc_plugin.generator.code_generator import CodeGenerator, shared_package
from protoc_plugin.generator.hooks import PluginHooks

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def run_plugin(hooks: PluginHooks) -> None:
    """Entry point for a concrete plugin's main: read the request, generate, write the response.

    stdout carries the response, so logs go to stderr. Any fatal condition
    exits with status 1 before anything is written.
    """
    logging.basicConfig(stream=sys.stderr, level=logging.WARNING, format=LOG_FORMAT)
    try:
        CodeGenerator(hooks).run()
    except ProtocPluginError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)


def _load_files(args: argparse.Namespace) -> List[descriptor_pb2.FileDescriptorProto]:
    if args.request:
        request = plugin_pb2.CodeGeneratorRequest.FromString(Path(args.request).read_bytes())
        return list(request.proto_file)
    # protoc --include_imports --descriptor_set_out lists dependencies first, like a request.
    descriptor_set = descriptor_pb2.FileDescriptorSet.FromString(Path(args.descriptor_set).read_bytes())
    return list(descriptor_set.file)


def inspect_files(files: List[descriptor_pb2.FileDescriptorProto]) -> None:
    """Register the files and print every declaration with its generated names."""
    generator = CodeGenerator(PluginHooks(
        plugin_name="inspect",
        plugin_outer_class=lambda original: original + "Plugin",
    ))
    generator.shared_package = shared_package(files)
    registry = generator.registry
    for file_proto in files:
        already_registered = len(registry)
        context = generator.register_file(file_proto)
        outer = context.outer_class
        print(f"{file_proto.name}: outer class {outer.proto_class}, plugin class {outer.plugin_class}")
        for descriptor in registry.descriptors()[already_registered:]:
            print(f"  {descriptor.kind.value:<8} {descriptor.qualified_proto_name} -> {descriptor.qualified_original_name}")
    print(f"Registered {len(registry)} declaration(s) from {len(files)} file(s)")


def main():
    parser = argparse.ArgumentParser(
        description="Show how the plugin framework registers and names the declarations of .proto files",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--request",
        help="Path to a serialized CodeGeneratorRequest",
    )
    source.add_argument(
        "--descriptor-set",
        help="Path to a FileDescriptorSet written by protoc --include_imports --descriptor_set_out",
    )
    parser.add_argument("--verbose", action="store_true", help="Log registration progress to stderr")
    args = parser.parse_args()

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.INFO if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
    )
    try:
        inspect_files(_load_files(args))
    except ProtocPluginError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
