"""Tests for subprocess output capture."""

import asyncio
import sys

import pytest

from tail_buffer.capture import ProcessCapture, run_and_capture


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


@pytest.mark.asyncio
async def test_run_and_capture_keeps_last_lines():
    """Only the last max_lines of output are retained."""
    result = await run_and_capture(
        _python("for i in range(1, 21): print(f'line {i}')"),
        max_lines=3,
    )

    assert result.returncode == 0
    assert result.buffer.lines() == ["line 18", "line 19", "line 20"]
    assert str(result.buffer) == "line 18\nline 19\nline 20\n"


@pytest.mark.asyncio
async def test_small_chunks_do_not_split_lines():
    """One-byte reads produce the same lines as large reads."""
    code = "print('héllo wörld'); print('€' * 5); print('tail', end='')"

    env = {"PYTHONIOENCODING": "utf-8"}

    small = await run_and_capture(_python(code), max_lines=10, env=env, chunk_size=1)
    large = await run_and_capture(_python(code), max_lines=10, env=env, chunk_size=4096)

    assert small.buffer.lines() == ["héllo wörld", "€€€€€", "tail"]
    assert small.buffer.lines() == large.buffer.lines()


@pytest.mark.asyncio
async def test_stderr_is_merged_and_exit_code_kept():
    """stderr lands in the same buffer and the exit code is reported."""
    result = await run_and_capture(
        _python("import sys; print('out'); sys.stdout.flush(); print('err', file=sys.stderr); sys.exit(3)"),
        max_lines=5,
    )

    assert result.returncode == 3
    assert sorted(result.buffer.lines()) == ["err", "out"]


@pytest.mark.asyncio
async def test_env_is_merged():
    """Extra environment variables reach the child."""
    result = await run_and_capture(
        _python("import os; print(os.environ['TAIL_TEST_VALUE'], os.environ['PYTHONUNBUFFERED'])"),
        env={"TAIL_TEST_VALUE": "42"},
    )

    assert result.buffer.lines() == ["42 1"]


@pytest.mark.asyncio
async def test_terminate_all_stops_long_running_process():
    """terminate_all stops readers and reaps processes."""
    capture = ProcessCapture()
    captured = await capture.spawn(
        "sleeper",
        _python("import time\nprint('started', flush=True)\ntime.sleep(60)"),
        max_lines=5,
    )
    reader = asyncio.create_task(capture.read_output(captured))

    for _ in range(100):
        if captured.buffer.lines():
            break
        await asyncio.sleep(0.05)

    assert capture.get_buffer("sleeper") is captured.buffer

    await capture.terminate_all(timeout=2.0)
    await asyncio.wait_for(reader, timeout=2.0)

    assert capture.shutdown.is_set()
    assert captured.process.returncode is not None
    assert captured.buffer.lines() == ["started"]
    assert capture.get_buffer("sleeper") is None


@pytest.mark.asyncio
async def test_terminate_unknown_name_is_noop():
    """Terminating an unknown process does nothing."""
    capture = ProcessCapture()

    await capture.terminate("missing")

    assert capture.get_buffer("missing") is None


@pytest.mark.asyncio
async def test_spawn_rejects_empty_command():
    """An empty command is a ValueError."""
    with pytest.raises(ValueError, match="must not be empty"):
        await ProcessCapture().spawn("empty", [])


def test_chunk_size_must_be_positive():
    """chunk_size of zero is rejected."""
    with pytest.raises(ValueError, match="chunk_size"):
        ProcessCapture(chunk_size=0)


@pytest.mark.asyncio
async def test_cancelled_run_terminates_child(tmp_path):
    """Cancelling run_and_capture stops the child before it can finish."""
    marker = tmp_path / "finished"
    task = asyncio.create_task(
        run_and_capture(
            _python(f"import time\ntime.sleep(1.0)\nopen({str(marker)!r}, 'w').write('x')"),
            terminate_timeout=2.0,
        )
    )
    await asyncio.sleep(0.3)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    await asyncio.sleep(1.5)
    assert not marker.exists()


@pytest.mark.asyncio
async def test_run_and_capture_passes_terminate_timeout(monkeypatch):
    """terminate_timeout reaches terminate_all."""
    seen = []
    original = ProcessCapture.terminate_all

    async def spy(self, timeout=5.0):
        seen.append(timeout)
        await original(self, timeout=timeout)

    monkeypatch.setattr(ProcessCapture, "terminate_all", spy)

    result = await run_and_capture(_python("print('done')"), terminate_timeout=0.5)

    assert result.buffer.lines() == ["done"]
    assert seen == [0.5]
