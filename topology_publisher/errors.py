from __future__ import annotations

"""
Error taxonomy for a publisher run.

Every failure is fatal for the run. Library code raises one of these and
only the entrypoint (`topology_publisher.main.main`) logs it and turns it
into a non-zero exit status.
"""

from typing import Any, Dict, Iterable


class TopologyPublisherError(Exception):
    """
    Base class for all publisher failures.

    `step` names the pipeline state the failure belongs to and `context`
    carries identifiers worth logging (namespace, config map name, ...).
    """

    step = "unknown"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def log_fields(self) -> Dict[str, Any]:
        return {"step": self.step, "error": self.message, **self.context}


# --------------------------------------------------------------------------- #
# Configuration
# --------------------------------------------------------------------------- #


class ConfigurationMissingError(TopologyPublisherError):
    step = "configure"

    def __init__(self, fields: Iterable[str]):
        self.fields = sorted(fields)
        super().__init__(
            "required configuration missing: " + ", ".join(self.fields),
            fields=self.fields,
        )


class ConfigurationInvalidError(TopologyPublisherError):
    step = "configure"


class UnsupportedNetworkTypeError(TopologyPublisherError):
    step = "configure"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"unsupported network type: {value!r}", network_type=value)


# --------------------------------------------------------------------------- #
# Topology extraction
# --------------------------------------------------------------------------- #


class UnimplementedModeError(TopologyPublisherError):
    step = "extract_topology"

    def __init__(self, network_type: str):
        super().__init__(
            f"{network_type} topology discovery is not implemented yet",
            network_type=network_type,
        )


class DiscoveryCommandFailedError(TopologyPublisherError):
    step = "extract_topology"


class EmptyTopologyError(TopologyPublisherError):
    step = "extract_topology"


# --------------------------------------------------------------------------- #
# Configuration store
# --------------------------------------------------------------------------- #


class StoreClientInitError(TopologyPublisherError):
    step = "connect_store"


class StoreFetchFailedError(TopologyPublisherError):
    step = "fetch_resource"


class StoreUpdateConflictError(TopologyPublisherError):
    step = "submit_update"


class StoreUpdateFailedError(TopologyPublisherError):
    step = "submit_update"
