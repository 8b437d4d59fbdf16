"""Tests for the ProcessRunner against real child processes."""

from __future__ import annotations

import sys
import threading
import time

from sysb.core.runner import EXIT_NOT_STARTED, OUTPUT_TAIL_LINES, CommandResult, ProcessRunner


def python(code: str) -> list[str]:
    return ["-c", code]


class TestProcessRunner:
    def test_streams_lines_in_order(self) -> None:
        seen: list[str] = []
        result = ProcessRunner().run(
            sys.executable,
            python("import sys\nfor i in range(3): print(f'line {i}', flush=True)"),
            sink=seen.append,
        )
        assert result.ok
        assert seen == ["line 0", "line 1", "line 2"]
        assert result.output == seen

    def test_returns_command_exit_code(self) -> None:
        result = ProcessRunner(sink=lambda _: None).run(
            sys.executable, python("import sys; sys.exit(23)")
        )
        assert result.exit_code == 23
        assert not result.ok

    def test_stderr_is_forwarded(self) -> None:
        seen: list[str] = []
        ProcessRunner().run(
            sys.executable,
            python("import sys; print('oops', file=sys.stderr)"),
            sink=seen.append,
        )
        assert seen == ["oops"]

    def test_env_is_merged(self) -> None:
        seen: list[str] = []
        ProcessRunner().run(
            sys.executable,
            python("import os; print(os.environ['XZ_OPT'], 'PATH' in os.environ)"),
            sink=seen.append,
            env={"XZ_OPT": "-7"},
        )
        assert seen == ["-7 True"]

    def test_missing_command(self) -> None:
        seen: list[str] = []
        result = ProcessRunner().run("sysb-no-such-tool", ["--help"], sink=seen.append)
        assert result.exit_code == EXIT_NOT_STARTED
        assert seen and "sysb-no-such-tool" in seen[0]

    def test_output_tail_is_bounded(self) -> None:
        count: list[int] = [0]

        def sink(_line: str) -> None:
            count[0] += 1

        total = OUTPUT_TAIL_LINES + 50
        result = ProcessRunner().run(
            sys.executable, python(f"for i in range({total}): print(i)"), sink=sink
        )
        assert count[0] == total
        assert len(result.output) == OUTPUT_TAIL_LINES
        assert result.output[-1] == str(total - 1)

    def test_default_sink_used(self) -> None:
        seen: list[str] = []
        ProcessRunner(sink=seen.append).run(sys.executable, python("print('hi')"))
        assert seen == ["hi"]

    def test_cancel_terminates_running_child(self) -> None:
        runner = ProcessRunner()
        started = threading.Event()
        results: list[CommandResult] = []

        def sink(_line: str) -> None:
            started.set()

        worker = threading.Thread(
            target=lambda: results.append(
                runner.run(
                    sys.executable,
                    python("import time\nprint('ready', flush=True)\ntime.sleep(60)"),
                    sink=sink,
                )
            )
        )
        worker.start()
        assert started.wait(timeout=10)

        begin = time.monotonic()
        runner.cancel()
        worker.join(timeout=15)

        assert not worker.is_alive()
        assert time.monotonic() - begin < 15
        assert not results[0].ok

    def test_runs_refused_after_cancel(self) -> None:
        runner = ProcessRunner()
        runner.cancel()
        seen: list[str] = []
        result = runner.run(sys.executable, python("print('hi')"), sink=seen.append)
        assert runner.cancelled
        assert result.exit_code == EXIT_NOT_STARTED
        assert seen == [f"{sys.executable}: cancelled"]
