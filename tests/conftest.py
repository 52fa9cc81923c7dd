"""
Shared test fixtures and configuration.

The fake generator and formatter stand in for protoc and ruff: they are
MockAdapter handlers that write deterministic files, so the pipeline can
be exercised end to end without external binaries.
"""

import re
import textwrap
from pathlib import Path

import pytest

from protobuild.adapters.base import ExecutionContext
from protobuild.adapters.mock import MockAdapter
from protobuild.adapters.registry import AdapterRegistry

FIXTURES_DIR = Path(__file__).parent / "fixtures"
RESERVATION_PROTO = (FIXTURES_DIR / "reservation.proto").read_text()

_MESSAGE_RE = re.compile(r"message\s+(\w+)\s*\{(.*?)\}", re.DOTALL)
_FIELD_RE = re.compile(r"^\s*([\w.]+)\s+(\w+)\s*=\s*(\d+)\s*;", re.MULTILINE)
_SERVICE_RE = re.compile(r"service\s+(\w+)\s*\{(.*?)\n\}", re.DOTALL)
_RPC_RE = re.compile(r"rpc\s+(\w+)\s*\(\s*(\w+)\s*\)\s*returns\s*\(\s*(\w+)\s*\)")


def _flag_value(argv: list[str], flag: str) -> str | None:
    for arg in argv:
        if arg.startswith(f"{flag}="):
            return arg.split("=", 1)[1]
    return None


def fake_protoc(context: ExecutionContext):
    """Emit one *_pb2.py (and *_pb2_grpc.py) per schema, like protoc would."""
    argv = context.action.argv
    out = Path(_flag_value(argv, "--python_out"))
    grpc_out = _flag_value(argv, "--grpc_python_out")

    for schema in (Path(a) for a in argv if a.endswith(".proto")):
        text = schema.read_text()
        stem = schema.stem

        # trailing whitespace on class lines gives the fake formatter work to do
        lines = [f"# fake protoc output for {schema.name}", ""]
        for name, body in _MESSAGE_RE.findall(text):
            lines.append(f"class {name}:   ")
            lines.append(f"    FIELDS = {tuple(_FIELD_RE.findall(body))!r}")
            lines.append("")
        (out / f"{stem}_pb2.py").write_text("\n".join(lines) + "\n")

        if grpc_out:
            stubs = [f"import {stem}_pb2 as {stem}__pb2", ""]
            for service, body in _SERVICE_RE.findall(text):
                rpcs = _RPC_RE.findall(body)
                stubs.append(f"class {service}Stub:")
                for rpc, req, resp in rpcs:
                    stubs.append(f"    def {rpc}(self, request):  # {req} -> {resp}")
                    stubs.append("        raise NotImplementedError")
                stubs.append("")
                stubs.append(f"class {service}Servicer:")
                for rpc, req, resp in rpcs:
                    stubs.append(f"    def {rpc}(self, request, context):  # {req} -> {resp}")
                    stubs.append("        raise NotImplementedError")
                stubs.append("")
            (Path(grpc_out) / f"{stem}_pb2_grpc.py").write_text("\n".join(stubs) + "\n")
    return None


def fake_formatter(context: ExecutionContext):
    """Strip trailing whitespace in every .py file under the target."""
    target = Path(context.action.argv[0])
    for source in sorted(target.rglob("*.py")):
        text = source.read_text()
        cleaned = "\n".join(line.rstrip() for line in text.splitlines()) + "\n"
        if cleaned != text:
            source.write_text(cleaned)
    return None


@pytest.fixture
def fake_registry() -> AdapterRegistry:
    """Registry with a fake generator ("protoc") and fake formatter."""
    registry = AdapterRegistry()
    registry.register(MockAdapter(adapter_name="protoc", handler=fake_protoc))
    registry.register(MockAdapter(adapter_name="formatter", handler=fake_formatter))
    return registry


@pytest.fixture
def reservation_project(tmp_path: Path) -> Path:
    """A project with the reservation schema and a codegen.yml; returns the config path."""
    protos = tmp_path / "protos"
    protos.mkdir()
    (protos / "reservation.proto").write_text(RESERVATION_PROTO)

    config = tmp_path / "codegen.yml"
    config.write_text(textwrap.dedent("""\
        name: reservation
        schemas:
          - protos/reservation.proto
        include_paths:
          - protos
        output_dir: generated
        generator:
          well_known_types: false
    """))
    return config


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the test fixtures directory."""
    return FIXTURES_DIR
