"""Process launch and session signalling tests."""

import signal
import subprocess
import sys

import pytest

from et_common.errors import ConfigurationError, LaunchError
from et_runner.api import ProcessLauncher, RunConfiguration
from et_runner.engine.launcher import signal_process_group
from tests.helpers.fakes import FakePopen, Recorder

pytestmark = [pytest.mark.unit, pytest.mark.unit_runner]

linux_only = pytest.mark.skipif(not sys.platform.startswith("linux"), reason="POSIX sessions")


def test_untraced_launch_gets_its_own_session():
    popen = FakePopen()
    launcher = ProcessLauncher(RunConfiguration(command=["sample-app", "-x"]), popen=popen)

    launcher.launch(None, None)

    command, kwargs = popen.calls[0]
    assert command == ["sample-app", "-x"]
    assert kwargs["start_new_session"] is True
    assert kwargs["stdin"] is None


def test_launch_failure_is_a_launch_error():
    def broken_popen(*args, **kwargs):
        raise FileNotFoundError("sample-app")

    launcher = ProcessLauncher(RunConfiguration(command=["sample-app"]), popen=broken_popen)
    with pytest.raises(LaunchError):
        launcher.launch(None, None)


def test_discard_without_snap_run_is_rejected():
    discard = Recorder()
    launcher = ProcessLauncher(
        RunConfiguration(command=["chromium"], discard_snap_ns=True),
        discard_namespace=discard,
    )
    with pytest.raises(ConfigurationError):
        launcher.prepare()
    assert discard.calls == []


@linux_only
def test_group_signal_reaches_grandchild():
    # the shell ignores TERM, the sleep it forks would survive a pid-only kill
    proc = subprocess.Popen(
        ["sh", "-c", "trap '' TERM; sleep 30 & wait"], start_new_session=True
    )
    try:
        signal_process_group(proc, signal.SIGKILL)
        assert proc.wait(timeout=5) == -signal.SIGKILL
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()


@linux_only
def test_process_in_our_group_is_signalled_alone():
    proc = subprocess.Popen(["sleep", "30"])
    try:
        signal_process_group(proc, signal.SIGTERM)
        assert proc.wait(timeout=5) == -signal.SIGTERM
    finally:
        if proc.poll() is None:
            proc.kill()
            proc.wait()


@linux_only
def test_exited_process_is_left_alone():
    proc = subprocess.Popen(["true"], start_new_session=True)
    proc.wait(timeout=5)
    signal_process_group(proc, signal.SIGKILL)
    assert proc.returncode == 0
