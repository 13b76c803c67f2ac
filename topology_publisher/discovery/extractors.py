from __future__ import annotations

from typing import Callable, Dict, Optional, Protocol

import structlog

from ..config import NetworkType, Settings
from ..errors import EmptyTopologyError, UnimplementedModeError, UnsupportedNetworkTypeError
from .command import run_discovery_command
from .report import count_switch_records, parse_topology_report

logger = structlog.get_logger("discovery.extractors")


class TopologyExtractor(Protocol):
    """Anything that can produce a topology payload for one run."""

    network_type: NetworkType

    def extract(self) -> bytes:
        ...


class IBTopologyExtractor:
    """
    InfiniBand fabric: run the slurmibtopology script and keep its
    `SwitchName=` records.
    """

    network_type = NetworkType.IB

    def __init__(
        self,
        command: str,
        *,
        timeout: Optional[float] = None,
        allow_empty: bool = True,
    ):
        self.command = command
        self.timeout = timeout
        self.allow_empty = allow_empty

    def extract(self) -> bytes:
        output = run_discovery_command(self.command, timeout=self.timeout)
        payload = parse_topology_report(output)
        records = count_switch_records(payload)

        if records == 0:
            if not self.allow_empty:
                raise EmptyTopologyError(
                    f"{self.command} reported no switch records",
                    command=self.command,
                )
            logger.warning("topology_empty", command=self.command)

        logger.info(
            "topology_extracted",
            network_type=self.network_type.value,
            switch_records=records,
            payload_bytes=len(payload),
        )
        return payload


class RoCETopologyExtractor:
    """RoCE fabrics have no discovery yet; selecting one fails the run."""

    network_type = NetworkType.ROCE

    def extract(self) -> bytes:
        raise UnimplementedModeError(self.network_type.value)


def _build_ib(settings: Settings) -> TopologyExtractor:
    return IBTopologyExtractor(
        settings.discovery_command,
        timeout=settings.discovery_timeout_seconds,
        allow_empty=settings.allow_empty_topology,
    )


def _build_roce(settings: Settings) -> TopologyExtractor:
    return RoCETopologyExtractor()


_EXTRACTORS: Dict[NetworkType, Callable[[Settings], TopologyExtractor]] = {
    NetworkType.IB: _build_ib,
    NetworkType.ROCE: _build_roce,
}


def get_extractor(settings: Settings) -> TopologyExtractor:
    """
    Pick the extractor for the configured network type.

    Building an extractor has no side effects; nothing runs until
    `extract()` is called.
    """
    try:
        factory = _EXTRACTORS[NetworkType(settings.network_type)]
    except (KeyError, ValueError) as exc:
        raise UnsupportedNetworkTypeError(settings.network_type) from exc
    return factory(settings)
