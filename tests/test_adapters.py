"""
Tests for the adapter layer — base contract, mock, registry, command adapters.
"""

import sys
from pathlib import Path

from protobuild.adapters.base import ExecutionContext
from protobuild.adapters.mock import MockAdapter
from protobuild.adapters.registry import AdapterRegistry
from protobuild.adapters.tools.command import CommandAdapter
from protobuild.adapters.tools.formatter import FormatterAdapter
from protobuild.adapters.tools.protoc import ProtocAdapter, bundled_include_dirs
from protobuild.core.models.action import Action, Receipt


def _ctx(argv=None, adapter="mock", action_id="a1", **kwargs) -> ExecutionContext:
    return ExecutionContext(
        action=Action(id=action_id, adapter=adapter, argv=argv or []),
        **kwargs,
    )


# ── ExecutionContext ────────────────────────────────────────────────


class TestExecutionContext:
    def test_working_dir_defaults_to_project_root(self):
        assert _ctx(project_root="/repo").working_dir == "/repo"

    def test_action_cwd_wins(self):
        ctx = ExecutionContext(
            action=Action(id="a", adapter="x", cwd="/elsewhere"),
            project_root="/repo",
        )
        assert ctx.working_dir == "/elsewhere"


# ── MockAdapter ─────────────────────────────────────────────────────


class TestMockAdapter:
    def test_default_success(self):
        mock = MockAdapter()
        receipt = mock.execute(_ctx(argv=["x"]))
        assert receipt.ok
        assert receipt.command == ["x"]
        assert receipt.return_code == 0
        assert mock.call_count == 1
        assert mock.invocations == [["x"]]

    def test_set_failure(self):
        mock = MockAdapter()
        mock.set_failure("a1", error="nope", return_code=3)
        receipt = mock.execute(_ctx())
        assert receipt.failed
        assert receipt.error == "nope"
        assert receipt.return_code == 3

    def test_handler_receipt(self):
        mock = MockAdapter(handler=lambda ctx: Receipt.skip(adapter="mock", action_id=ctx.action.id, reason="r"))
        assert mock.execute(_ctx()).skipped

    def test_handler_none_means_success(self):
        seen = []
        mock = MockAdapter(handler=lambda ctx: seen.append(ctx.action.id))
        assert mock.execute(_ctx()).ok
        assert seen == ["a1"]

    def test_reset(self):
        mock = MockAdapter()
        mock.set_failure("a1")
        mock.execute(_ctx())
        mock.reset()
        assert mock.call_count == 0
        assert mock.execute(_ctx()).ok

    def test_availability(self):
        assert MockAdapter().is_available()
        assert not MockAdapter(available=False).is_available()

    def test_invoke_runs_outside_a_pipeline(self):
        mock = MockAdapter(adapter_name="protoc")
        receipt = mock.invoke(["--version"], cwd="/repo")
        assert receipt.ok
        assert receipt.action_id == "protoc:invoke"
        assert receipt.command == ["--version"]
        assert mock.invocations == [["--version"]]
        assert mock.call_log[0].working_dir == "/repo"

    def test_invoke_reports_failure(self):
        mock = MockAdapter(adapter_name="formatter")
        mock.set_failure("formatter:invoke", error="unknown flag", return_code=2)
        receipt = mock.invoke(["--bogus"])
        assert receipt.failed
        assert receipt.return_code == 2
        assert mock.call_log[0].project_root == "."


# ── AdapterRegistry ─────────────────────────────────────────────────


class TestAdapterRegistry:
    def test_register_and_get(self):
        registry = AdapterRegistry()
        protoc = MockAdapter(adapter_name="protoc")
        registry.register(protoc)
        registry.register(MockAdapter(adapter_name="formatter"))
        assert registry.get("protoc") is protoc
        assert registry.get("clang-format") is None

    def test_register_replaces_same_name(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter(adapter_name="protoc"))
        second = MockAdapter(adapter_name="protoc", available=False)
        registry.register(second)
        assert registry.get("protoc") is second

    def test_unknown_adapter(self):
        receipt = AdapterRegistry().execute_action(Action(id="g", adapter="protoc"))
        assert receipt.failed
        assert "No adapter registered for 'protoc'" in receipt.error

    def test_dry_run_does_not_execute(self):
        mock = MockAdapter(adapter_name="protoc")
        registry = AdapterRegistry()
        registry.register(mock)
        receipt = registry.execute_action(Action(id="g", adapter="protoc", argv=["a"]), dry_run=True)
        assert receipt.skipped
        assert receipt.command == ["a"]
        assert mock.call_count == 0

    def test_validation_failure(self):
        registry = AdapterRegistry()
        registry.register(FormatterAdapter())
        receipt = registry.execute_action(Action(id="format", adapter="formatter"))
        assert receipt.failed
        assert "No formatting target" in receipt.error

    def test_adapter_exception_becomes_receipt(self):
        def boom(ctx):
            raise RuntimeError("kaput")

        registry = AdapterRegistry()
        registry.register(MockAdapter(adapter_name="protoc", handler=boom))
        receipt = registry.execute_action(Action(id="g", adapter="protoc"))
        assert receipt.failed
        assert "kaput" in receipt.error

    def test_adapter_status(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter(adapter_name="protoc", available=False))
        registry.register(FormatterAdapter(command=["/opt/bin/ruff", "format"]))
        status = registry.adapter_status()
        assert status["protoc"] == {
            "name": "protoc",
            "program": "protoc",
            "available": False,
            "type": "MockAdapter",
        }
        assert status["formatter"]["program"] == "/opt/bin/ruff"


# ── CommandAdapter ──────────────────────────────────────────────────


class TestCommandAdapter:
    def test_success(self, tmp_path: Path):
        adapter = CommandAdapter(prefix=[sys.executable, "-c"])
        receipt = adapter.execute(_ctx(argv=["print('hello')"], project_root=str(tmp_path)))
        assert receipt.ok
        assert receipt.output == "hello"
        assert receipt.return_code == 0

    def test_nonzero_exit(self, tmp_path: Path):
        adapter = CommandAdapter(prefix=[sys.executable, "-c"])
        script = "import sys; sys.stderr.write('bad input'); sys.exit(4)"
        receipt = adapter.execute(_ctx(argv=[script], project_root=str(tmp_path)))
        assert receipt.failed
        assert receipt.return_code == 4
        assert receipt.error == "bad input"

    def test_launch_failure(self, tmp_path: Path):
        adapter = CommandAdapter(prefix=[str(tmp_path / "no-such-tool")])
        receipt = adapter.execute(_ctx(project_root=str(tmp_path)))
        assert receipt.failed
        assert receipt.return_code is None
        assert receipt.metadata["launch_error"] is True
        assert not adapter.is_available()

    def test_timeout(self, tmp_path: Path):
        adapter = CommandAdapter(prefix=[sys.executable, "-c"])
        ctx = ExecutionContext(
            action=Action(id="t", adapter="command", argv=["import time; time.sleep(5)"], timeout=0.2),
            project_root=str(tmp_path),
        )
        receipt = adapter.execute(ctx)
        assert receipt.failed
        assert "timed out" in receipt.error

    def test_validate_missing_cwd(self, tmp_path: Path):
        adapter = CommandAdapter(prefix=[sys.executable])
        ok, msg = adapter.validate(_ctx(project_root=str(tmp_path / "gone")))
        assert not ok
        assert "Working directory does not exist" in msg

    def test_invoke(self, tmp_path: Path):
        adapter = CommandAdapter(prefix=[sys.executable, "-c"], adapter_name="py")
        receipt = adapter.invoke(["print(1 + 1)"], cwd=str(tmp_path))
        assert receipt.ok
        assert receipt.output == "2"
        assert receipt.action_id == "py:invoke"


# ── Generator / formatter adapters ──────────────────────────────────


class TestProtocAdapter:
    def test_grpc_tools_prefix(self):
        adapter = ProtocAdapter()
        assert adapter.name == "protoc"
        assert adapter.prefix == [sys.executable, "-m", "grpc_tools.protoc"]
        assert adapter.program == "grpc_tools.protoc"

    def test_binary_prefix(self):
        adapter = ProtocAdapter(tool="protoc", executable="/opt/protoc/bin/protoc")
        assert adapter.prefix == ["/opt/protoc/bin/protoc"]

    def test_validate_requires_output_and_inputs(self, tmp_path: Path):
        adapter = ProtocAdapter()
        ok, msg = adapter.validate(_ctx(argv=["a.proto"], project_root=str(tmp_path)))
        assert not ok and "output flag" in msg
        ok, msg = adapter.validate(_ctx(argv=["--python_out=out"], project_root=str(tmp_path)))
        assert not ok and ".proto" in msg
        ok, _ = adapter.validate(_ctx(argv=["--python_out=out", "a.proto"], project_root=str(tmp_path)))
        assert ok

    def test_bundled_includes_missing_binary(self):
        dirs = bundled_include_dirs(tool="protoc", executable="/nonexistent/protoc")
        assert all(d.is_dir() for d in dirs)


class TestFormatterAdapter:
    def test_custom_command(self):
        adapter = FormatterAdapter(command=["black", "-q"])
        assert adapter.name == "formatter"
        assert adapter.command_for(_ctx(argv=["gen"])) == ["black", "-q", "gen"]

    def test_runs_command_on_target(self, tmp_path: Path):
        target = tmp_path / "gen"
        target.mkdir()
        script = "import pathlib, sys; pathlib.Path(sys.argv[1], 'touched').write_text('')"
        adapter = FormatterAdapter(command=[sys.executable, "-c", script])
        receipt = adapter.invoke([str(target)], cwd=str(tmp_path))
        assert receipt.ok
        assert (target / "touched").exists()
