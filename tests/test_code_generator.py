import io

import pytest
from google.api import annotations_pb2
from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2

from protoc_plugin.errors import RenderError, UnresolvedReferenceError
from protoc_plugin.generator.code_generator import CodeGenerator, parse_parameters, shared_package
from protoc_plugin.generator.hooks import GeneratedFile, PluginHooks
from protoc_plugin.main import run_plugin

_Field = descriptor_pb2.FieldDescriptorProto


def _make_hooks(**overrides) -> PluginHooks:
    overrides.setdefault("generate_message", _describe_message)
    return PluginHooks(
        plugin_name="test-plugin",
        plugin_outer_class=lambda original: original + "REST",
        **overrides,
    )


def _describe_message(message) -> str:
    return f"// message {message.name}: " + ", ".join(f.type for f in message.fields)


def _common_file() -> descriptor_pb2.FileDescriptorProto:
    return descriptor_pb2.FileDescriptorProto(
        name="common.proto",
        package="testPkg",
        syntax="proto3",
        message_type=[descriptor_pb2.DescriptorProto(name="Shared")],
    )


def _api_file(method_options=None) -> descriptor_pb2.FileDescriptorProto:
    method = descriptor_pb2.MethodDescriptorProto(
        name="Get", input_type=".testPkg.Msg", output_type=".testPkg.Shared",
    )
    if method_options is not None:
        method.options.CopyFrom(method_options)
    return descriptor_pb2.FileDescriptorProto(
        name="api.proto",
        package="testPkg",
        syntax="proto3",
        dependency=["common.proto"],
        options=descriptor_pb2.FileOptions(java_package="com.example"),
        message_type=[descriptor_pb2.DescriptorProto(
            name="Msg",
            field=[_Field(
                name="shared", number=1, label=_Field.LABEL_OPTIONAL,
                type=_Field.TYPE_MESSAGE, type_name=".testPkg.Shared",
            )],
        )],
        enum_type=[descriptor_pb2.EnumDescriptorProto(
            name="Color",
            value=[descriptor_pb2.EnumValueDescriptorProto(name="RED", number=0)],
        )],
        service=[descriptor_pb2.ServiceDescriptorProto(
            name="Api",
            method=[method],
        )],
    )


def _make_request(*files, parameter="") -> plugin_pb2.CodeGeneratorRequest:
    return plugin_pb2.CodeGeneratorRequest(
        file_to_generate=[f.name for f in files],
        parameter=parameter,
        proto_file=list(files),
    )


class TestSharedPackage:
    def test_common_prefix(self):
        files = [
            descriptor_pb2.FileDescriptorProto(
                name="a.proto", package="a", options=descriptor_pb2.FileOptions(java_package="com.example.a")),
            descriptor_pb2.FileDescriptorProto(name="b.proto", package="com.example.b"),
        ]
        assert shared_package(files) == "com.example"

    def test_prefix_is_character_wise(self):
        files = [
            descriptor_pb2.FileDescriptorProto(name="a.proto", package="com.foo"),
            descriptor_pb2.FileDescriptorProto(name="b.proto", package="com.fob"),
        ]
        assert shared_package(files) == "com.fo"

    def test_files_without_package_are_ignored(self):
        files = [
            descriptor_pb2.FileDescriptorProto(name="a.proto"),
            descriptor_pb2.FileDescriptorProto(name="b.proto", package="com.example"),
        ]
        assert shared_package(files) == "com.example"

    def test_no_packages(self):
        assert shared_package([descriptor_pb2.FileDescriptorProto(name="a.proto")]) is None
        assert shared_package([]) is None


class TestParseParameters:
    def test_values_and_flags(self):
        assert parse_parameters("mode=lite, verbose ,=ignored") == {"mode": "lite", "verbose": ""}

    def test_empty(self):
        assert parse_parameters("") == {}


class TestGenerate:
    def test_one_file_per_proto_file(self):
        hooks = _make_hooks(
            imports=lambda: "import java.util.List;",
            generate_service=lambda service: "// service " + service.name,
        )
        response = CodeGenerator(hooks).generate(_make_request(_common_file(), _api_file()))

        assert [f.name for f in response.file] == ["testPkg/CommonREST.java", "com/example/ApiREST.java"]
        content = response.file[1].content
        assert "// Generated by the test-plugin compiler plugin. DO NOT EDIT!" in content
        assert "// source: api.proto" in content
        assert "package com.example;" in content
        assert "import java.util.List;" in content
        assert "public final class ApiREST {" in content
        assert "// message Msg: testPkg.CommonREST.Shared" in content
        assert "// service Api" in content

    def test_hooks_returning_none_add_nothing(self):
        response = CodeGenerator(_make_hooks(generate_message=lambda message: None)).generate(
            _make_request(_common_file())
        )
        content = response.file[0].content
        assert "Shared" not in content
        assert content.rstrip().endswith("}")

    def test_parameters_and_shared_package(self):
        generator = CodeGenerator(_make_hooks())
        generator.generate(_make_request(_common_file(), parameter="mode=lite"))
        assert generator.parameters == {"mode": "lite"}
        assert generator.shared_package == "testPkg"

    def test_skipped_files_are_still_registered(self):
        hooks = _make_hooks(skip_file=lambda file_proto: file_proto.name == "common.proto")
        generator = CodeGenerator(hooks)
        response = generator.generate(_make_request(_common_file(), _api_file()))
        assert [f.name for f in response.file] == ["com/example/ApiREST.java"]
        assert "// message Msg: testPkg.CommonREST.Shared" in response.file[0].content
        assert "Shared" in generator.registry

    def test_miscellaneous_files_come_last(self):
        hooks = _make_hooks(miscellaneous_files=lambda: [GeneratedFile("META-INF/plugin.txt", "extra")])
        response = CodeGenerator(hooks).generate(_make_request(_common_file()))
        assert [(f.name, f.content) for f in response.file][-1] == ("META-INF/plugin.txt", "extra")
        assert len(response.file) == 2

    def test_dependencies_out_of_order_fail(self):
        with pytest.raises(UnresolvedReferenceError, match="Shared"):
            CodeGenerator(_make_hooks()).generate(_make_request(_api_file(), _common_file()))

    def test_formatter_failure(self):
        def broken_formatter(source: str) -> str:
            raise ValueError("unbalanced braces")

        with pytest.raises(RenderError, match="unbalanced braces") as error:
            CodeGenerator(_make_hooks(format_source=broken_formatter)).generate(
                _make_request(_common_file())
            )
        assert "public final class CommonREST {" in error.value.source
        assert isinstance(error.value.__cause__, ValueError)

    def test_formatter_output_is_used(self):
        response = CodeGenerator(_make_hooks(format_source=str.upper)).generate(
            _make_request(_common_file())
        )
        assert "PUBLIC FINAL CLASS COMMONREST {" in response.file[0].content

    def test_collision_is_visible_to_hooks(self):
        file_proto = descriptor_pb2.FileDescriptorProto(
            name="test_msg.proto",
            package="testPkg",
            message_type=[descriptor_pb2.DescriptorProto(name="TestMsg")],
        )
        hooks = _make_hooks(generate_message=lambda message: "// " + message.qualified_original_name)
        response = CodeGenerator(hooks).generate(_make_request(file_proto))
        assert response.file[0].name == "testPkg/TestMsgREST.java"
        assert "// testPkg.TestMsgOuterClass.TestMsg" in response.file[0].content

    def test_file_without_package_gets_its_own_declarations(self):
        packaged = descriptor_pb2.FileDescriptorProto(
            name="a.proto", package="x", message_type=[descriptor_pb2.DescriptorProto(name="Foo")],
        )
        unpackaged = descriptor_pb2.FileDescriptorProto(
            name="b.proto", message_type=[descriptor_pb2.DescriptorProto(name="Foo")],
        )
        hooks = _make_hooks(generate_message=lambda message: "// " + message.qualified_proto_name)
        response = CodeGenerator(hooks).generate(_make_request(packaged, unpackaged))

        assert [f.name for f in response.file] == ["x/AREST.java", "BREST.java"]
        assert "// x.Foo" in response.file[0].content
        content = response.file[1].content
        assert "// Foo\n" in content
        assert "x.Foo" not in content

    def test_layout_without_package_or_imports(self):
        file_proto = descriptor_pb2.FileDescriptorProto(
            name="b.proto", message_type=[descriptor_pb2.DescriptorProto(name="Foo")],
        )
        hooks = _make_hooks(generate_message=lambda message: "// " + message.name)
        content = CodeGenerator(hooks).generate(_make_request(file_proto)).file[0].content

        assert content.startswith("// Generated by the test-plugin compiler plugin. DO NOT EDIT!\n"
                                  "// source: b.proto\n\n/**\n")
        assert "private BREST() {}\n\n// Foo\n}\n" in content
        assert "\n\n\n" not in content
        assert "package" not in content

    def test_layout_with_package_and_imports(self):
        hooks = _make_hooks(imports=lambda: "import java.util.List;")
        content = CodeGenerator(hooks).generate(_make_request(_common_file())).file[0].content

        assert "// source: common.proto\n\npackage testPkg;\n\nimport java.util.List;\n\n/**\n" in content
        assert "\n\n\n" not in content

    def test_generate_code_dispatches_by_kind(self):
        file_proto = descriptor_pb2.FileDescriptorProto(
            name="choice.proto",
            package="testPkg",
            message_type=[descriptor_pb2.DescriptorProto(
                name="Msg",
                oneof_decl=[descriptor_pb2.OneofDescriptorProto(name="my_choice")],
            )],
        )
        generator = CodeGenerator(_make_hooks(generate_one_of=lambda one_of: "case " + one_of.case_name))
        generator.register_file(file_proto)
        message = generator.registry.lookup("Msg")
        assert generator.generate_code(message) == "// message Msg: "
        assert generator.generate_code(message.one_ofs[0]) == "case MyChoice"


class TestRun:
    def test_reads_request_and_writes_response(self):
        options = descriptor_pb2.MethodOptions()
        options.Extensions[annotations_pb2.http].post = "/v1/msgs"
        request = _make_request(_common_file(), _api_file(options))
        output = io.BytesIO()
        hooks = _make_hooks(
            generate_service=lambda service: "// POST " + service.method("Get").http_rule.post,
            input_stream=lambda: io.BytesIO(request.SerializeToString()),
            output_stream=lambda: output,
        )

        CodeGenerator(hooks).run()

        response = plugin_pb2.CodeGeneratorResponse.FromString(output.getvalue())
        assert len(response.file) == 2
        assert "// POST /v1/msgs" in response.file[1].content

    def test_nothing_written_on_failure(self):
        request = _make_request(_api_file(), _common_file())
        output = io.BytesIO()
        hooks = _make_hooks(
            input_stream=lambda: io.BytesIO(request.SerializeToString()),
            output_stream=lambda: output,
        )
        with pytest.raises(UnresolvedReferenceError):
            CodeGenerator(hooks).run()
        assert output.getvalue() == b""

    def test_run_plugin_exits_on_fatal_error(self, capsys):
        request = _make_request(_api_file(), _common_file())
        output = io.BytesIO()
        hooks = _make_hooks(
            input_stream=lambda: io.BytesIO(request.SerializeToString()),
            output_stream=lambda: output,
        )
        with pytest.raises(SystemExit) as exit_info:
            run_plugin(hooks)
        assert exit_info.value.code == 1
        assert "FATAL: " in capsys.readouterr().err
        assert output.getvalue() == b""
