"""Compile/execute collaborator contract and the subprocess adapter."""

import json
import logging
import os
import subprocess  # nosec B404
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from ..modes import ConcreteMode
from ..selection import TestDescriptor
from ..snapshot import Metric
from .errors import CompileError, ExecutionTimeout, ExecutionTrap, Unsupported

logger = logging.getLogger(__name__)

# Exit status convention understood by SubprocessExecutor
EXIT_COMPILE_ERROR = 2
EXIT_UNSUPPORTED = 3

_DETAIL_LIMIT = 2000


class Executor(Protocol):
    def execute(self, descriptor: TestDescriptor, mode: ConcreteMode) -> list[Metric]:
        """Compile and run one test in one mode and return its metrics.

        Raises:
            CompileError, ExecutionTrap, ExecutionTimeout, Unsupported
        """
        ...


def _parse_metrics(stdout: str) -> list[Metric]:
    text = stdout.strip()
    if not text:
        return []
    data = json.loads(text)
    if isinstance(data, Mapping):
        data = data.get("metrics", data)
    if isinstance(data, Mapping):
        return [Metric(str(name), value) for name, value in data.items()]
    if isinstance(data, list):
        return [Metric.from_dict(item) for item in data]
    raise ValueError("metrics must be a JSON object or list")


def _tail(text: str) -> str:
    text = text.strip()
    return text[-_DETAIL_LIMIT:] if len(text) > _DETAIL_LIMIT else text


class SubprocessExecutor:
    """Run each item through an external command.

    The command is invoked as ``<command...> <test path> <mode>`` from the
    corpus root, with ``COMPILER_TESTER_MODE`` and ``COMPILER_TESTER_VERSION``
    also set in its environment. It reports metrics as JSON on stdout, either
    ``{"name": value}`` or ``[{"name", "value", "unit"}]``. Exit status 2 means
    the test did not compile, 3 that the mode is unsupported; any other
    non-zero status is an execution trap.
    """

    def __init__(self, command: Sequence[str], root: Path, timeout: float) -> None:
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.root = Path(root)
        self.timeout = timeout

    def execute(self, descriptor: TestDescriptor, mode: ConcreteMode) -> list[Metric]:
        args = [*self.command, descriptor.path, str(mode)]
        env = {
            **os.environ,
            "COMPILER_TESTER_MODE": str(mode),
            "COMPILER_TESTER_VERSION": str(mode.version),
        }
        logger.debug("Running %s", args)
        try:
            proc = subprocess.run(  # nosec B603
                args,
                cwd=self.root,
                env=env,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise ExecutionTimeout(self.timeout) from exc
        except OSError as exc:
            raise Unsupported(f"cannot start {self.command[0]}: {exc}") from exc

        if proc.returncode == EXIT_COMPILE_ERROR:
            raise CompileError(_tail(proc.stderr or proc.stdout))
        if proc.returncode == EXIT_UNSUPPORTED:
            raise Unsupported(_tail(proc.stderr or proc.stdout))
        if proc.returncode != 0:
            raise ExecutionTrap(f"exit status {proc.returncode}: {_tail(proc.stderr)}")

        try:
            return _parse_metrics(proc.stdout)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
            raise ExecutionTrap(f"invalid metrics output: {exc}") from exc
