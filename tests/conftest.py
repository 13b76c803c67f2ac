from __future__ import annotations

import base64
import copy
from typing import Callable, Dict, List, Optional

import pytest
import structlog
from kubernetes.client import V1ConfigMap, V1ObjectMeta

from topology_publisher.config import Settings
from topology_publisher.errors import StoreFetchFailedError, StoreUpdateConflictError

ENV_VARS = (
    "NAMESPACE",
    "CONFIG_MAP_NAME",
    "SLURMIBTOPOLOGY_SH",
    "NETWORK_TYPE",
    "LOG_LEVEL",
    "LOG_FORMAT",
    "TOPOLOGY_KEY",
    "ALLOW_EMPTY_TOPOLOGY",
    "DISCOVERY_TIMEOUT_SECONDS",
    "STORE_TIMEOUT_SECONDS",
    "PUSHGATEWAY_URL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the caller's environment and any .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    def _make(**overrides) -> Settings:
        values = {"namespace": "slurm", "config_map_name": "slurm-config"}
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


def make_configmap(
    data: Optional[Dict[str, str]] = None,
    *,
    name: str = "slurm-config",
    namespace: str = "slurm",
    resource_version: str = "1",
    labels: Optional[Dict[str, str]] = None,
) -> V1ConfigMap:
    return V1ConfigMap(
        metadata=V1ObjectMeta(
            name=name,
            namespace=namespace,
            resource_version=resource_version,
            labels=labels,
        ),
        data=data,
    )


class FakeConfigStore:
    """
    In-memory ConfigStore with resource-version checks.

    `after_get` runs right after a read and can simulate another writer
    updating the ConfigMap between fetch and replace.
    """

    def __init__(self, *resources: V1ConfigMap):
        self.resources: Dict[tuple, V1ConfigMap] = {}
        self.replaced: List[V1ConfigMap] = []
        self.after_get: Optional[Callable[["FakeConfigStore", V1ConfigMap], None]] = None
        for resource in resources:
            self.resources[self._key(resource)] = copy.deepcopy(resource)

    @staticmethod
    def _key(resource: V1ConfigMap) -> tuple:
        return (resource.metadata.namespace, resource.metadata.name)

    def get(self, namespace: str, name: str) -> V1ConfigMap:
        stored = self.resources.get((namespace, name))
        if stored is None:
            raise StoreFetchFailedError(
                f"failed to get ConfigMap {name} in namespace {namespace}: not found",
                namespace=namespace,
                config_map=name,
            )
        fetched = copy.deepcopy(stored)
        if self.after_get is not None:
            self.after_get(self, stored)
        return fetched

    def bump(self, resource: V1ConfigMap, **data: str) -> None:
        """Concurrent write by someone else."""
        resource.data = {**(resource.data or {}), **data}
        resource.metadata.resource_version = str(int(resource.metadata.resource_version) + 1)

    def replace(self, resource: V1ConfigMap) -> V1ConfigMap:
        key = self._key(resource)
        stored = self.resources[key]
        if stored.metadata.resource_version != resource.metadata.resource_version:
            raise StoreUpdateConflictError(
                "ConfigMap was modified concurrently",
                namespace=key[0],
                config_map=key[1],
            )
        updated = copy.deepcopy(resource)
        updated.metadata.resource_version = str(int(resource.metadata.resource_version) + 1)
        self.resources[key] = updated
        self.replaced.append(copy.deepcopy(updated))
        return copy.deepcopy(updated)


def decode_payload(value: str) -> bytes:
    return base64.b64decode(value, validate=True)


class StaticExtractor:
    """Extractor returning a fixed payload."""

    def __init__(self, payload: bytes):
        self.payload = payload
        self.calls = 0

    def extract(self) -> bytes:
        self.calls += 1
        return self.payload
