"""Trace channel tests against a real named pipe."""

import os
import threading
import time

import pytest

from et_common.errors import TraceParseError, TraceSetupError
from et_runner.engine import trace_channel
from et_runner.engine.trace_channel import TraceSession
from et_runner.services.strace import parse_execve_lines
from tests.helpers.fakes import SAMPLE_TRACE, FakeTracer

pytestmark = [pytest.mark.unit, pytest.mark.unit_runner]


def test_setup_creates_fifo_and_teardown_removes_dir():
    with TraceSession() as session:
        assert session.temp_dir.is_dir()
        assert session.pipe_path.exists()
        assert session.sentinel_open
        temp_dir = session.temp_dir
    assert not temp_dir.exists()
    assert not session.sentinel_open


def test_reader_sees_trace_and_dir_outlives_reader():
    observed: dict = {}
    tracer = FakeTracer(delay=0.2)

    def parse(stream):
        timing = parse_execve_lines(stream)
        observed["dir_exists_at_eof"] = session.temp_dir.exists()
        observed["eof_at"] = time.monotonic()
        return timing

    with TraceSession() as session:
        future = session.start_reader(parse)
        proc = tracer.launch(session.pipe_path, ["sample-app"])
        proc.wait()
        timing, error = session.collect()
        assert future.done()

    assert error is None
    assert timing.total_time == pytest.approx(1.5)
    assert observed["dir_exists_at_eof"] is True
    # end-of-stream only after the delayed tracer released its writer
    assert observed["eof_at"] >= tracer.writer_closed_at


def test_sentinel_prevents_eof_before_tracer_starts():
    """A tracer that opens the pipe late must still be read completely."""
    with TraceSession() as session:
        future = session.start_reader(parse_execve_lines)

        def late_tracer():
            time.sleep(0.2)
            with open(session.pipe_path, "w", encoding="utf-8") as pipe:
                pipe.write("\n".join(SAMPLE_TRACE) + "\n")

        thread = threading.Thread(target=late_tracer)
        thread.start()
        time.sleep(0.05)
        assert not future.done()
        thread.join()
        timing, error = session.collect()

    assert error is None
    assert timing.total_time == pytest.approx(1.5)


def test_tracer_that_never_writes_yields_parse_error():
    tracer = FakeTracer(open_pipe=False)
    with TraceSession() as session:
        session.start_reader(parse_execve_lines)
        tracer.launch(session.pipe_path, ["sample-app"]).wait()
        timing, error = session.collect()

    assert timing is None
    assert isinstance(error, TraceParseError)


def test_foreign_parser_exception_is_wrapped():
    def parse(stream):
        stream.read()
        raise RuntimeError("parser crashed")

    with TraceSession() as session:
        session.start_reader(parse)
        timing, error = session.collect()

    assert timing is None
    assert isinstance(error, TraceParseError)
    assert "parser crashed" in str(error)


def test_exit_without_collect_still_joins_reader():
    with TraceSession() as session:
        future = session.start_reader(parse_execve_lines)
        temp_dir = session.temp_dir
    assert future.done()
    assert not temp_dir.exists()


def test_fifo_failure_is_fatal_and_cleans_up(monkeypatch):
    created = []
    real_mkdtemp = trace_channel.tempfile.mkdtemp

    def tracking_mkdtemp(*args, **kwargs):
        path = real_mkdtemp(*args, **kwargs)
        created.append(path)
        return path

    def broken_mkfifo(path, mode=0o666):
        raise PermissionError("mkfifo denied")

    monkeypatch.setattr(trace_channel.tempfile, "mkdtemp", tracking_mkdtemp)
    monkeypatch.setattr(trace_channel.os, "mkfifo", broken_mkfifo)

    with pytest.raises(TraceSetupError):
        with TraceSession():
            pass
    assert created and not os.path.exists(created[0])


def test_reader_cannot_start_twice():
    with TraceSession() as session:
        session.start_reader(parse_execve_lines)
        with pytest.raises(TraceSetupError):
            session.start_reader(parse_execve_lines)
