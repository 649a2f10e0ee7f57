import sys

import pytest
from google.protobuf import descriptor_pb2
from google.protobuf.compiler import plugin_pb2

from protoc_plugin import main as main_module

_Field = descriptor_pb2.FieldDescriptorProto


def _make_files():
    common = descriptor_pb2.FileDescriptorProto(
        name="common.proto",
        package="testPkg",
        message_type=[descriptor_pb2.DescriptorProto(name="Common")],
    )
    api = descriptor_pb2.FileDescriptorProto(
        name="api/my_api.proto",
        package="testPkg",
        dependency=["common.proto"],
        options=descriptor_pb2.FileOptions(java_package="com.example"),
        message_type=[descriptor_pb2.DescriptorProto(
            name="Request",
            field=[_Field(
                name="common", number=1, label=_Field.LABEL_OPTIONAL,
                type=_Field.TYPE_MESSAGE, type_name=".testPkg.Common",
            )],
            oneof_decl=[descriptor_pb2.OneofDescriptorProto(name="my_choice")],
        )],
        service=[descriptor_pb2.ServiceDescriptorProto(
            name="MyApi",
            method=[descriptor_pb2.MethodDescriptorProto(
                name="Get", input_type=".testPkg.Request", output_type=".testPkg.Common",
            )],
        )],
    )
    return [common, api]


def _run_main(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["protoc-plugin-inspect", *args])
    main_module.main()


class TestInspect:
    def test_descriptor_set(self, tmp_path, monkeypatch, capsys):
        descriptor_set = tmp_path / "all.pb"
        descriptor_set.write_bytes(
            descriptor_pb2.FileDescriptorSet(file=_make_files()).SerializeToString()
        )

        _run_main(monkeypatch, "--descriptor-set", str(descriptor_set))

        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "common.proto: outer class CommonOuterClass, plugin class CommonPlugin",
            "  message  testPkg.Common -> testPkg.CommonOuterClass.Common",
            "api/my_api.proto: outer class MyApiOuterClass, plugin class MyApiPlugin",
            "  oneof    testPkg.Request.my_choice -> com.example.MyApiOuterClass.Request.MyChoice",
            "  message  testPkg.Request -> com.example.MyApiOuterClass.Request",
            "  service  testPkg.MyApi -> com.example.MyApiOuterClass.MyApi",
            "Registered 4 declaration(s) from 2 file(s)",
        ]

    def test_request(self, tmp_path, monkeypatch, capsys):
        request = tmp_path / "request.pb"
        request.write_bytes(
            plugin_pb2.CodeGeneratorRequest(proto_file=_make_files()).SerializeToString()
        )

        _run_main(monkeypatch, "--request", str(request), "--verbose")

        out = capsys.readouterr().out
        assert out.endswith("Registered 4 declaration(s) from 2 file(s)\n")

    def test_missing_dependency_is_fatal(self, tmp_path, monkeypatch, capsys):
        descriptor_set = tmp_path / "api.pb"
        descriptor_set.write_bytes(
            descriptor_pb2.FileDescriptorSet(file=_make_files()[1:]).SerializeToString()
        )

        with pytest.raises(SystemExit) as exit_info:
            _run_main(monkeypatch, "--descriptor-set", str(descriptor_set))

        assert exit_info.value.code == 1
        assert "FATAL: Descriptor .testPkg.Common is not present in the registry." in capsys.readouterr().err

    def test_source_is_required(self, monkeypatch):
        with pytest.raises(SystemExit) as exit_info:
            _run_main(monkeypatch)
        assert exit_info.value.code == 2
