from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader, TemplateError

from protoc_plugin.descriptor.base import AbstractDescriptor
from protoc_plugin.errors import RenderError
from protoc_plugin.generator.hooks import GeneratedFile

if TYPE_CHECKING:
    from protoc_plugin.context import ProcessingContext

logger = logging.getLogger(__name__)

FILE_TEMPLATE = "file.java.j2"


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _qualified_proto_name(context: "ProcessingContext", name: str) -> str:
    # The leading "." makes the registry try the qualified key first, so an equal
    # short name registered by another file is never picked up.
    if context.protobuf_package:
        return f".{context.protobuf_package}.{name}"
    return f".{name}"


def _generate_all(
    context: "ProcessingContext",
    names: Iterable[str],
    generate_code: Callable[[AbstractDescriptor], Optional[str]],
) -> List[str]:
    """Run each top-level declaration through its hook, dropping the ones with no code."""
    code: List[str] = []
    for name in names:
        descriptor = context.registry.lookup(_qualified_proto_name(context, name))
        generated = generate_code(descriptor)
        if generated is not None:
            code.append(generated)
    return code


def render_file_contents(
    context: "ProcessingContext",
    generate_code: Callable[[AbstractDescriptor], Optional[str]],
) -> str:
    """Assemble and format the plugin's file for one .proto file."""
    file_proto = context.file_proto
    hooks = context.hooks

    try:
        template = _get_template_env().get_template(FILE_TEMPLATE)
        generated = template.render(
            plugin_name=hooks.plugin_name,
            imports=hooks.imports(),
            proto_source_name=file_proto.name,
            package_name=context.target_package,
            outer_class_name=context.outer_class.plugin_class,
            message_code=_generate_all(context, (m.name for m in file_proto.message_type), generate_code),
            enum_code=_generate_all(context, (e.name for e in file_proto.enum_type), generate_code),
            service_code=_generate_all(context, (s.name for s in file_proto.service), generate_code),
        )
    except TemplateError as e:
        raise RenderError(f"Got error {e} when rendering {file_proto.name}") from e

    logger.info("Running formatter...")
    try:
        return hooks.format_source(generated)
    except Exception as e:
        raise RenderError(
            f"Got error {e} when formatting content:\n{generated}", source=generated
        ) from e


def render_file(
    context: "ProcessingContext",
    generate_code: Callable[[AbstractDescriptor], Optional[str]],
) -> GeneratedFile:
    return GeneratedFile(
        name=context.output_file_name,
        content=render_file_contents(context, generate_code),
    )
