"""
Tests for config loading (codegen.yml) and the config check use case.
"""

import textwrap
from pathlib import Path

import pytest

from protobuild.core.config.loader import (
    ConfigError,
    find_config_file,
    load_config,
    project_root,
)
from protobuild.adapters.mock import MockAdapter
from protobuild.adapters.registry import AdapterRegistry
from protobuild.core.use_cases.config_check import check_config


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content))
    return path


class TestFindConfigFile:
    def test_in_start_dir(self, tmp_path: Path):
        config = _write(tmp_path / "codegen.yml", "schemas: [a.proto]\n")
        assert find_config_file(tmp_path) == config

    def test_walks_up(self, tmp_path: Path):
        config = _write(tmp_path / "codegen.yaml", "schemas: [a.proto]\n")
        nested = tmp_path / "src" / "deep"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == config

    def test_not_found(self, tmp_path: Path):
        assert find_config_file(tmp_path) is None


class TestLoadConfig:
    def test_full(self, tmp_path: Path):
        path = _write(tmp_path / "codegen.yml", """\
            name: reservation
            schemas:
              - protos/reservation.proto
            include_paths:
              - protos
            output_dir: src/pb
            generator:
              tool: protoc
              executable: /usr/local/bin/protoc
              pyi: false
            formatter:
              command: [black, -q]
              strict: false
            watch:
              directive_prefix: "cargo:rerun-if-changed="
        """)
        config = load_config(path)
        assert config.name == "reservation"
        assert config.generator.tool == "protoc"
        assert config.generator.pyi is False
        assert config.formatter.command == ["black", "-q"]
        assert config.formatter.strict is False
        assert config.watch.directive_prefix == "cargo:rerun-if-changed="
        assert project_root(path) == tmp_path.resolve()

    def test_wrapped_under_codegen_key(self, tmp_path: Path):
        path = _write(tmp_path / "codegen.yml", """\
            codegen:
              schemas: [a.proto]
              output_dir: out
        """)
        assert load_config(path).output_dir == "out"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "codegen.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = _write(tmp_path / "codegen.yml", "schemas: [a.proto\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_not_a_mapping(self, tmp_path: Path):
        path = _write(tmp_path / "codegen.yml", "- a.proto\n")
        with pytest.raises(ConfigError, match="Expected a YAML mapping"):
            load_config(path)

    def test_validation_error(self, tmp_path: Path):
        path = _write(tmp_path / "codegen.yml", "schemas: []\n")
        with pytest.raises(ConfigError, match="Invalid codegen configuration"):
            load_config(path)


class TestCheckConfig:
    def test_valid(self, reservation_project: Path):
        result = check_config(reservation_project, check_tools=False)
        assert result.valid
        assert result.errors == []
        assert result.to_dict()["schema_count"] == 1

    def test_missing_schema(self, tmp_path: Path):
        path = _write(tmp_path / "codegen.yml", "schemas: [protos/gone.proto]\n")
        result = check_config(path, check_tools=False)
        assert not result.valid
        assert result.errors == ["Schema file not found: protos/gone.proto"]

    def test_schema_outside_include_paths(self, tmp_path: Path):
        _write(tmp_path / "other" / "a.proto", 'syntax = "proto3";\n')
        (tmp_path / "protos").mkdir()
        path = _write(tmp_path / "codegen.yml", """\
            schemas: [other/a.proto]
            include_paths: [protos]
        """)
        result = check_config(path, check_tools=False)
        assert "Schema other/a.proto is not under any include path" in result.errors

    def test_output_dir_is_root(self, tmp_path: Path):
        _write(tmp_path / "a.proto", 'syntax = "proto3";\n')
        path = _write(tmp_path / "codegen.yml", "schemas: [a.proto]\noutput_dir: .\n")
        result = check_config(path, check_tools=False)
        assert not result.valid
        assert any("must not be the project root" in e for e in result.errors)

    def test_warnings(self, tmp_path: Path):
        _write(tmp_path / "protos" / "a.proto", 'syntax = "proto3";\n')
        path = _write(tmp_path / "codegen.yml", """\
            schemas: [protos/a.proto]
            include_paths: [protos, vendor]
            output_dir: protos/gen
            formatter:
              strict: false
        """)
        result = check_config(path, check_tools=False)
        assert result.valid
        assert "Include path does not exist: vendor" in result.warnings
        assert "output_dir protos/gen overlaps an include path" in result.warnings
        assert any("formatter.strict is off" in w for w in result.warnings)

    def test_output_dir_over_schemas(self, reservation_project: Path):
        reservation_project.write_text(
            reservation_project.read_text().replace("output_dir: generated", "output_dir: protos")
        )
        result = check_config(reservation_project, check_tools=False)
        assert not result.valid
        assert "output_dir protos would replace build input protos" in result.errors
        assert "output_dir protos would replace build input protos/reservation.proto" in result.errors

    def test_output_dir_above_include_path(self, tmp_path: Path):
        _write(tmp_path / "api" / "protos" / "a.proto", 'syntax = "proto3";\n')
        path = _write(tmp_path / "codegen.yml", """\
            schemas: [api/protos/a.proto]
            include_paths: [api/protos]
            output_dir: api
        """)
        result = check_config(path, check_tools=False)
        assert "output_dir api would replace build input api/protos" in result.errors

    def test_tools_come_from_registry(self, reservation_project: Path):
        registry = AdapterRegistry()
        registry.register(MockAdapter(adapter_name="protoc", available=False))
        registry.register(MockAdapter(adapter_name="formatter"))
        result = check_config(reservation_project, registry=registry)
        assert result.valid
        assert result.warnings == ["Generator not available: protoc"]

    def test_unregistered_tools(self, reservation_project: Path):
        result = check_config(reservation_project, registry=AdapterRegistry())
        assert "Generator adapter not registered: protoc" in result.warnings
        assert "Formatter adapter not registered: formatter" in result.warnings

    def test_unavailable_tools(self, reservation_project: Path):
        with reservation_project.open("a") as f:
            f.write("formatter:\n  command: [/nonexistent/formatter]\n")
        result = check_config(reservation_project, check_tools=True)
        assert "Formatter not available: /nonexistent/formatter" in result.warnings

    def test_invalid_config_reported(self, tmp_path: Path):
        path = _write(tmp_path / "codegen.yml", "name: x\n")
        result = check_config(path)
        assert not result.valid
        assert "Invalid codegen configuration" in result.errors[0]
