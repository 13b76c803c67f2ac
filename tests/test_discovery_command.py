from __future__ import annotations

import time

import pytest

from topology_publisher.discovery import run_discovery_command
from topology_publisher.errors import DiscoveryCommandFailedError


def test_returns_stdout_and_stderr_combined():
    output = run_discovery_command("echo SwitchName=a; echo 'warning: slow port' >&2; echo SwitchName=b")

    assert output == b"SwitchName=a\nwarning: slow port\nSwitchName=b\n"


def test_runs_a_script_path_without_arguments(tmp_path):
    script = tmp_path / "slurmibtopology.sh"
    script.write_text('#!/bin/bash\necho "args=$#"\necho SwitchName=sw1\n')
    script.chmod(0o755)

    assert run_discovery_command(str(script)) == b"args=0\nSwitchName=sw1\n"


def test_non_zero_exit_is_fatal():
    with pytest.raises(DiscoveryCommandFailedError) as excinfo:
        run_discovery_command("echo 'ibnetdiscover: no HCA'; exit 3")

    err = excinfo.value
    assert err.step == "extract_topology"
    assert err.context["returncode"] == 3
    assert "no HCA" in err.context["output"]


def test_missing_command_is_fatal(tmp_path):
    with pytest.raises(DiscoveryCommandFailedError) as excinfo:
        run_discovery_command(str(tmp_path / "does-not-exist.sh"))

    assert excinfo.value.context["returncode"] == 127


def test_timeout_is_fatal():
    with pytest.raises(DiscoveryCommandFailedError, match="timed out"):
        run_discovery_command("sleep 5", timeout=0.2)


def _running(pid: int) -> bool:
    try:
        with open(f"/proc/{pid}/stat") as stat:
            state = stat.read().rsplit(")", 1)[1].split()[0]
    except FileNotFoundError:
        return False
    return state != "Z"


def test_timeout_kills_processes_started_by_the_script(tmp_path):
    pidfile = tmp_path / "child.pid"
    command = f"sleep 30 & echo $! > {pidfile}; wait"

    with pytest.raises(DiscoveryCommandFailedError, match="timed out"):
        run_discovery_command(command, timeout=0.5)

    child = int(pidfile.read_text())
    deadline = time.monotonic() + 5
    while _running(child) and time.monotonic() < deadline:
        time.sleep(0.05)
    assert not _running(child)
