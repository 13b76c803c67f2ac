from __future__ import annotations

"""
Fabric topology discovery.

This package provides:
- A runner for the external discovery command (combined stdout/stderr)
- The report parser that keeps `SwitchName=` records
- One extractor per network type, selected by `get_extractor()`
"""

from .command import run_discovery_command
from .extractors import (
    IBTopologyExtractor,
    RoCETopologyExtractor,
    TopologyExtractor,
    get_extractor,
)
from .report import SWITCH_RECORD_PREFIX, count_switch_records, parse_topology_report

__all__ = [
    "run_discovery_command",
    "parse_topology_report",
    "count_switch_records",
    "SWITCH_RECORD_PREFIX",
    "TopologyExtractor",
    "IBTopologyExtractor",
    "RoCETopologyExtractor",
    "get_extractor",
]
