"""
Command adapter — run an external program and capture its output.

The generator and formatter adapters are built on this one: each owns a
fixed program prefix and appends the action's argv. Commands run without
a shell and, unless the action sets one, without a timeout.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from pathlib import Path
from typing import Sequence

from protobuild.adapters.base import Adapter, ExecutionContext
from protobuild.core.models.action import Receipt

logger = logging.getLogger(__name__)


class CommandAdapter(Adapter):
    """Execute ``prefix + action.argv`` and capture output.

    A program that cannot be launched (missing, not executable) yields a
    failure receipt with ``return_code=None`` and ``metadata["launch_error"]``.
    """

    def __init__(self, prefix: Sequence[str] = (), adapter_name: str = "command"):
        self._prefix = list(prefix)
        self._name = adapter_name

    @property
    def name(self) -> str:
        return self._name

    @property
    def prefix(self) -> list[str]:
        return list(self._prefix)

    @property
    def program(self) -> str:
        """Label of the launched program, for error messages."""
        return self._prefix[0] if self._prefix else self._name

    def command_for(self, context: ExecutionContext) -> list[str]:
        return self._prefix + list(context.action.argv)

    def is_available(self) -> bool:
        if not self._prefix:
            return True
        program = self._prefix[0]
        return Path(program).is_file() or shutil.which(program) is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        if not self.command_for(context):
            return False, "Empty command line"

        cwd = context.working_dir
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        command = self.command_for(context)
        cwd = context.working_dir
        timeout = context.action.timeout

        logger.debug("Executing: %s (cwd=%s)", " ".join(command), cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"{self.program} timed out after {timeout}s",
                command=command,
                metadata={"timeout": timeout},
            )
        except OSError as e:
            # FileNotFoundError, PermissionError: the program never started
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Cannot launch {self.program}: {e}",
                command=command,
                metadata={"launch_error": True},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        output = result.stdout.strip()
        stderr = result.stderr.strip()

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                duration_ms=elapsed_ms,
                command=command,
                return_code=0,
                metadata={"stderr": stderr},
            )

        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or f"{self.program} exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            command=command,
            return_code=result.returncode,
            metadata={"stdout": output},
        )
