"""CLI behavior tests using Typer's CliRunner."""

import json

import pytest
from typer.testing import CliRunner

import et_ui.cli as cli
from et_runner.services.doctor import DoctorService
from et_ui.cli.commands import run as run_command
from tests.helpers.fakes import (
    SAMPLE_TOTAL_NS,
    FakeClock,
    FakePopen,
    FakeWindows,
    Recorder,
    make_collaborators,
)

pytestmark = [pytest.mark.unit, pytest.mark.unit_ui]

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch, restore_root_logger):
    """Keep log records off the captured output and pretend sudo exists."""
    monkeypatch.setenv("ETRACE_LOG_LEVEL", "WARNING")
    monkeypatch.setattr(run_command.shutil, "which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def collaborators(monkeypatch):
    """Route every run through faked collaborators and record what was built."""
    built = []

    def factory(config):
        collab = make_collaborators(popen=FakePopen(), clock=FakeClock(step=1_000_000))
        built.append((config, collab))
        return collab

    monkeypatch.setattr(cli.ctx_store, "collaborators_factory", factory)
    return built


def test_json_output_has_one_run_per_trial(collaborators):
    result = runner.invoke(cli.app, ["-n", "2", "run", "--json", "--no-trace", "sample-app"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert len(payload["Runs"]) == 3
    assert payload["Runs"][0]["TimeToDisplay"] == 1_000_000
    assert payload["Runs"][0]["ExecveTiming"] is None


def test_traced_json_output(collaborators):
    result = runner.invoke(cli.app, ["run", "-j", "sample-app"])

    assert result.exit_code == 0, result.output
    run = json.loads(result.stdout)["Runs"][0]
    assert run["TimeToRun"] == SAMPLE_TOTAL_NS
    assert run["ExecveTiming"]["ExeRuntimes"][0]["Exe"] == "/usr/lib/sample-helper"


def test_command_flags_are_not_parsed_as_options(collaborators):
    result = runner.invoke(
        cli.app, ["run", "--no-trace", "--json", "sample-app", "--json", "-n", "5"]
    )

    assert result.exit_code == 0, result.output
    config, collab = collaborators[0]
    assert config.command == ["sample-app", "--json", "-n", "5"]
    assert collab.popen.calls[0][0] == ["sample-app", "--json", "-n", "5"]
    assert config.additional_iterations == 0


def test_options_reach_configuration(collaborators, tmp_path):
    result = runner.invoke(
        cli.app,
        [
            "-e",
            "run",
            "-t",
            "-s",
            "-d",
            "-w",
            "Sample Window",
            "-c",
            "SampleClass",
            "--truncate-cmd-logs",
            "--window-timeout",
            "2.5",
            "--cmd-stdout",
            str(tmp_path / "out.log"),
            "sample-app",
        ],
    )

    assert result.exit_code == 0, result.output
    config, collab = collaborators[0]
    assert config.show_errors
    assert config.no_trace and config.use_snap_run and config.discard_snap_ns
    assert config.window_name == "Sample Window"
    assert config.window_class == "SampleClass"
    assert config.append_cmd_logs is False
    assert config.window_timeout == 2.5
    assert collab.discard_namespace.calls == [("sample-app",)]
    assert collab.windows.specs[0].class_name == "SampleClass"


def test_table_output_prints_startup_time(collaborators):
    result = runner.invoke(cli.app, ["run", "sample-app"])

    assert result.exit_code == 0, result.output
    assert "1 exec calls during run" in result.stdout
    assert "/usr/lib/sample-helper" in result.stdout
    assert "Total time: 1.500s" in result.stdout
    assert "Total startup time: 1ms" in result.stdout


def test_output_file_receives_results(collaborators, tmp_path):
    target = tmp_path / "results" / "run.json"
    target.parent.mkdir()
    target.write_text("stale contents that must disappear")

    result = runner.invoke(
        cli.app, ["run", "-t", "-j", "-o", str(target), "sample-app"]
    )

    assert result.exit_code == 0, result.output
    assert '"Runs"' not in result.stdout
    assert len(json.loads(target.read_text())["Runs"]) == 1


def test_discard_ns_requires_snap_run(collaborators):
    result = runner.invoke(cli.app, ["run", "-t", "-d", "sample-app"])

    assert result.exit_code == 1
    assert "cannot use --discard-snap-ns without --use-snap-run" in result.output
    _, collab = collaborators[0]
    assert collab.popen.calls == []


def test_fatal_setup_error_exits_nonzero(monkeypatch):
    from et_common.errors import CacheFlushError

    monkeypatch.setattr(
        cli.ctx_store,
        "collaborators_factory",
        lambda config: make_collaborators(flush_caches=Recorder(CacheFlushError("denied"))),
    )
    result = runner.invoke(cli.app, ["run", "-t", "sample-app"])

    assert result.exit_code == 1
    assert "Run failed: denied" in result.output


def test_missing_sudo_exits(monkeypatch, collaborators):
    monkeypatch.setattr(run_command.shutil, "which", lambda name: None)

    result = runner.invoke(cli.app, ["run", "sample-app"])

    assert result.exit_code == 1
    assert "cannot find sudo" in result.output
    assert collaborators == []


def test_window_errors_do_not_fail_the_run(monkeypatch):
    fallback = Recorder()
    monkeypatch.setattr(
        cli.ctx_store,
        "collaborators_factory",
        lambda config: make_collaborators(
            windows=FakeWindows(wait_fails=True), close_by_name=fallback
        ),
    )
    result = runner.invoke(cli.app, ["run", "-t", "-j", "sample-app"])

    assert result.exit_code == 0, result.output
    errors = json.loads(result.stdout)["Runs"][0]["Errors"]
    assert errors[0]["error_type"] == "WindowWaitError"
    assert fallback.calls == [("sample-app",)]


def test_doctor_fails_without_sudo(monkeypatch):
    monkeypatch.setattr(
        cli.ctx_store, "doctor_service", DoctorService(which=lambda name: None)
    )
    result = runner.invoke(cli.app, ["doctor"])

    assert result.exit_code == 1
    assert "Privileges" in result.output
    assert "Found 1 failures." in result.output


def test_doctor_passes(monkeypatch):
    monkeypatch.setattr(
        cli.ctx_store, "doctor_service", DoctorService(which=lambda name: f"/bin/{name}")
    )
    result = runner.invoke(cli.app, ["doctor"])

    assert result.exit_code == 0
    assert "All checks passed." in result.output
