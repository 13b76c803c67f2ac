from __future__ import annotations

import os
import signal
import subprocess
from typing import Optional

import structlog

from ..errors import DiscoveryCommandFailedError

SHELL = "/bin/bash"

logger = structlog.get_logger("discovery.command")


def run_discovery_command(command: str, *, timeout: Optional[float] = None) -> bytes:
    """
    Run the discovery command through bash and return its combined output.

    stderr is merged into stdout so the caller sees the report exactly as a
    terminal would. The command takes no arguments. A non-zero exit, a
    failure to start bash, or hitting `timeout` raises
    DiscoveryCommandFailedError.

    bash runs in its own session; on timeout the whole process group is
    killed, including anything the script started.
    """
    log = logger.bind(command=command)
    log.info("discovery_command_start", timeout_seconds=timeout)

    try:
        proc = subprocess.Popen(
            [SHELL, "-c", command],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise DiscoveryCommandFailedError(
            f"failed to run {command}: {exc}",
            command=command,
        ) from exc

    with proc:
        try:
            output, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            _kill_process_group(proc)
            partial, _ = proc.communicate()
            raise DiscoveryCommandFailedError(
                f"failed to run {command}: timed out after {timeout}s",
                command=command,
                output=_tail(partial),
            ) from exc

    output = output or b""
    log.debug("discovery_command_output", output=output.decode("utf-8", "replace"))

    if proc.returncode != 0:
        raise DiscoveryCommandFailedError(
            f"failed to run {command}: exit status {proc.returncode}",
            command=command,
            returncode=proc.returncode,
            output=_tail(output),
        )

    log.info("discovery_command_done", output_bytes=len(output))
    return output


def _kill_process_group(proc: subprocess.Popen) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def _tail(output: Optional[bytes], limit: int = 2048) -> str:
    """Last `limit` bytes of the command output, for error context."""
    if not output:
        return ""
    return output[-limit:].decode("utf-8", "replace")
