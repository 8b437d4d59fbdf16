"""Process runner — invoke an external tool and stream its output live."""

from __future__ import annotations

import os
import subprocess
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Mapping, Protocol, Sequence

from loguru import logger

LineSink = Callable[[str], None]

# Lines kept on the result; every line still reaches the sink
OUTPUT_TAIL_LINES = 200

# Shell convention for "command not found / could not be executed"
EXIT_NOT_STARTED = 127

# Seconds a terminated child gets before it is killed
TERMINATE_GRACE = 10


@dataclass
class CommandResult:
    """Outcome of one external invocation."""

    command: str
    args: list[str]
    exit_code: int
    output: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class CommandRunner(Protocol):
    """Interface the managers depend on; tests substitute a scripted fake."""

    def run(
        self,
        command: str,
        args: Sequence[str],
        sink: LineSink | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult: ...

    def cancel(self) -> None: ...


def _log_line(line: str) -> None:
    logger.info(line)


def _stop(process: subprocess.Popen) -> None:
    process.terminate()
    try:
        process.wait(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()


class ProcessRunner:
    """Blocking subprocess runner that forwards combined output line by line.

    :meth:`cancel` may be called from another thread. It terminates the
    running child and makes every later :meth:`run` fail without starting.
    """

    def __init__(self, sink: LineSink | None = None) -> None:
        self._default_sink = sink or _log_line
        self._lock = threading.Lock()
        self._active: subprocess.Popen | None = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            process = self._active
        if process is not None and process.poll() is None:
            logger.warning(f"Cancelling {process.args[0]}")
            _stop(process)

    def run(
        self,
        command: str,
        args: Sequence[str],
        sink: LineSink | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CommandResult:
        sink = sink or self._default_sink
        argv = [command, *args]
        result = CommandResult(command=command, args=list(args), exit_code=EXIT_NOT_STARTED)

        full_env = None
        if env:
            full_env = dict(os.environ)
            full_env.update(env)

        with self._lock:
            if self._cancelled:
                line = f"{command}: cancelled"
                result.output.append(line)
                sink(line)
                return result

            logger.debug(f"Running: {' '.join(argv)}")
            try:
                process = subprocess.Popen(  # noqa: S603
                    argv,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    bufsize=1,
                    errors="replace",
                    env=full_env,
                )
            except OSError as e:
                line = f"{command}: {e}"
                result.output.append(line)
                sink(line)
                return result
            self._active = process

        tail: deque[str] = deque(maxlen=OUTPUT_TAIL_LINES)
        try:
            for raw in process.stdout or ():
                line = raw.rstrip("\n")
                if not line.strip():
                    continue
                tail.append(line)
                sink(line)
            process.wait()
        except KeyboardInterrupt:
            logger.warning(f"Interrupted, terminating {command}")
            _stop(process)
            raise
        finally:
            with self._lock:
                self._active = None
            if process.stdout is not None:
                process.stdout.close()

        result.output = list(tail)
        result.exit_code = process.returncode
        return result
