from __future__ import annotations

from typing import List

import structlog

SWITCH_RECORD_PREFIX = b"SwitchName="

logger = structlog.get_logger("discovery.report")


def iter_report_lines(report: bytes) -> List[bytes]:
    """
    Split a topology report into lines.

    Lines end at `\\n`; one trailing `\\r` is dropped so CRLF output parses
    the same as LF output. A final line without a newline is kept.
    """
    lines = report.split(b"\n")
    if lines and lines[-1] == b"":
        lines.pop()
    return [line[:-1] if line.endswith(b"\r") else line for line in lines]


def parse_topology_report(report: bytes) -> bytes:
    """
    Keep the switch records of a topology report.

    A switch record is a line starting with `SwitchName=`; it is copied
    verbatim and terminated with a single newline. Records keep their
    report order. Every other line (warnings, progress output of the
    discovery script) is dropped. A report without records yields b"".
    """
    kept: List[bytes] = []
    dropped = 0
    for line in iter_report_lines(report):
        if line.startswith(SWITCH_RECORD_PREFIX):
            kept.append(line + b"\n")
        else:
            dropped += 1
            logger.debug("report_line_dropped", line=line.decode("utf-8", "replace"))

    payload = b"".join(kept)
    logger.debug(
        "report_parsed",
        switch_records=len(kept),
        dropped_lines=dropped,
        payload=payload.decode("utf-8", "replace"),
    )
    return payload


def count_switch_records(payload: bytes) -> int:
    # every record is newline terminated
    return payload.count(b"\n")
