"""Pipe-backed channel between an external tracer and a background parser.

The channel owns a private temporary directory holding a named pipe. A
sentinel writer is held open on the pipe from setup until the traced process
has exited, so the reader never observes end-of-stream while the tracer may
still be starting (or if it dies before opening the pipe). Teardown order:

1. close the sentinel writer (after the traced process exited),
2. wait for the reader's completion future,
3. remove the temporary directory.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from concurrent.futures import Future
from pathlib import Path
from types import TracebackType
from typing import IO, Callable

from et_common.errors import TraceParseError, TraceSetupError
from et_runner.models.results import ExecveTiming

logger = logging.getLogger(__name__)

PIPE_NAME = "strace.fifo"

TraceParser = Callable[[IO[str]], ExecveTiming]


class TraceSession:
    """Owns the trace pipe, its sentinel writer and the reader thread."""

    def __init__(self, prefix: str = "exec-trace") -> None:
        self._prefix = prefix
        self.temp_dir: Path | None = None
        self.pipe_path: Path | None = None
        self._sentinel_fd: int | None = None
        self._future: Future[ExecveTiming] | None = None
        self._thread: threading.Thread | None = None

    def __enter__(self) -> "TraceSession":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def open(self) -> None:
        """Create the temp dir, the pipe and the sentinel writer."""
        try:
            self.temp_dir = Path(tempfile.mkdtemp(prefix=self._prefix))
            self.pipe_path = self.temp_dir / PIPE_NAME
            os.mkfifo(self.pipe_path, 0o640)
            # O_RDWR never blocks on a fifo, unlike O_WRONLY without a reader
            self._sentinel_fd = os.open(self.pipe_path, os.O_RDWR)
        except OSError as exc:
            self._remove_temp_dir()
            raise TraceSetupError(
                "cannot set up trace pipe",
                context={"dir": self.temp_dir},
                cause=exc,
            ) from exc
        logger.debug("Trace pipe ready at %s", self.pipe_path)

    @property
    def sentinel_open(self) -> bool:
        return self._sentinel_fd is not None

    def start_reader(self, parse: TraceParser) -> Future[ExecveTiming]:
        """Start the single background task draining the pipe into ``parse``."""
        if self.pipe_path is None:
            raise TraceSetupError("trace session is not open")
        if self._future is not None:
            raise TraceSetupError("trace reader already started")

        # opened here, while the sentinel guarantees a writer, so the open
        # cannot block even if the sentinel is closed before the thread runs
        try:
            stream = open(self.pipe_path, "r", encoding="utf-8", errors="replace")
        except OSError as exc:
            raise TraceSetupError(
                "cannot open trace pipe for reading",
                context={"pipe": self.pipe_path},
                cause=exc,
            ) from exc

        future: Future[ExecveTiming] = Future()
        future.set_running_or_notify_cancel()

        def _reader() -> None:
            try:
                with stream:
                    future.set_result(parse(stream))
            except BaseException as exc:  # reported through the future payload
                future.set_exception(exc)

        self._future = future
        self._thread = threading.Thread(target=_reader, name="etrace-trace-reader", daemon=True)
        self._thread.start()
        return future

    def close_sentinel(self) -> None:
        """Drop the sentinel writer; call only once the traced process exited."""
        if self._sentinel_fd is None:
            return
        fd, self._sentinel_fd = self._sentinel_fd, None
        os.close(fd)

    def collect(self) -> tuple[ExecveTiming | None, TraceParseError | None]:
        """Close the sentinel, wait for the reader and return its outcome."""
        self.close_sentinel()
        if self._future is None:
            return None, TraceParseError("trace reader was never started")
        exc = self._future.exception()
        if exc is None:
            return self._future.result(), None
        if isinstance(exc, TraceParseError):
            return None, exc
        return None, TraceParseError("cannot extract runtime data", cause=exc)

    def close(self) -> None:
        """Release everything; the temp dir goes only after the reader finished."""
        self.close_sentinel()
        if self._future is not None:
            # end-of-stream is reachable once the sentinel and tracer writers are gone
            self._future.exception()
        if self._thread is not None:
            self._thread.join()
        self._remove_temp_dir()

    def _remove_temp_dir(self) -> None:
        if self.temp_dir is None:
            return
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logger.debug("Removed trace dir %s", self.temp_dir)
