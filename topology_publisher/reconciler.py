from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Optional

import structlog

from .discovery.report import count_switch_records
from .store import ConfigStore

TOPOLOGY_KEY = "topology.conf"

logger = structlog.get_logger("reconciler")


@dataclass(frozen=True)
class ReconcileResult:
    namespace: str
    name: str
    key: str
    previous_resource_version: Optional[str]
    resource_version: Optional[str]
    switch_records: int
    payload_bytes: int
    changed: bool


def encode_payload(payload: bytes) -> str:
    """Standard base64 (with padding) of the topology payload."""
    return base64.b64encode(payload).decode("ascii")


def reconcile(
    store: ConfigStore,
    namespace: str,
    name: str,
    payload: bytes,
    *,
    key: str = TOPOLOGY_KEY,
) -> ReconcileResult:
    """
    Write the topology payload into the ConfigMap `namespace/name`.

    Read-modify-write:
      1. fetch the ConfigMap (its resource version is kept on the object)
      2. set `data[key]` to the base64 payload; nothing else is touched
      3. replace the whole ConfigMap; the API server rejects the write if
         the resource version is stale

    `key` is `topology.conf` unless the operator set TOPOLOGY_KEY, e.g. to
    keep one topology per fabric in the same ConfigMap.

    Store errors propagate unchanged (StoreFetchFailedError,
    StoreUpdateConflictError, StoreUpdateFailedError). Nothing is retried.
    """
    log = logger.bind(namespace=namespace, config_map=name, key=key)

    resource = store.get(namespace, name)
    previous_version = resource.metadata.resource_version
    log.info("configmap_fetched", resource_version=previous_version)

    if resource.data is None:
        resource.data = {}
    encoded = encode_payload(payload)
    changed = resource.data.get(key) != encoded
    resource.data[key] = encoded
    log.debug("configmap_mutated", changed=changed, encoded_bytes=len(encoded))

    updated = store.replace(resource)
    new_version = updated.metadata.resource_version if updated is not None else None
    log.info(
        "configmap_updated",
        previous_resource_version=previous_version,
        resource_version=new_version,
        changed=changed,
    )

    return ReconcileResult(
        namespace=namespace,
        name=name,
        key=key,
        previous_resource_version=previous_version,
        resource_version=new_version,
        switch_records=count_switch_records(payload),
        payload_bytes=len(payload),
        changed=changed,
    )
