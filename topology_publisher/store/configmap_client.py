from __future__ import annotations

from typing import Any, Optional, Protocol

import structlog
from kubernetes import client, config
from kubernetes.client import V1ConfigMap
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from ..errors import (
    StoreClientInitError,
    StoreFetchFailedError,
    StoreUpdateConflictError,
    StoreUpdateFailedError,
)

logger = structlog.get_logger("store.configmap")

HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409


class ConfigStore(Protocol):
    """
    Versioned key-value store holding the scheduler configuration.

    `replace()` must reject the write when the resource changed after it
    was fetched (the resource carries the version it was read at).
    """

    def get(self, namespace: str, name: str) -> V1ConfigMap:
        ...

    def replace(self, resource: V1ConfigMap) -> V1ConfigMap:
        ...


class ConfigMapClient:
    """
    Thin wrapper around the Kubernetes CoreV1 ConfigMap API.

    `replace()` is a full PUT that sends `metadata.resourceVersion` back to
    the API server, which answers 409 Conflict if another writer updated
    the ConfigMap in between. Conflicts are reported, never retried.
    """

    def __init__(self, api: Any, *, request_timeout: Optional[float] = None):
        self._api = api
        self._request_timeout = request_timeout

    @classmethod
    def from_environment(
        cls,
        *,
        request_timeout: Optional[float] = None,
    ) -> "ConfigMapClient":
        """
        Build a client from the pod's service account, falling back to the
        local kubeconfig (KUBECONFIG or ~/.kube/config) outside a cluster.
        """
        try:
            config.load_incluster_config()
            source = "incluster"
        except ConfigException:
            try:
                config.load_kube_config()
                source = "kubeconfig"
            except (ConfigException, OSError) as exc:
                raise StoreClientInitError(
                    f"failed to create k8s client: {exc}",
                ) from exc

        logger.info("k8s_client_created", config_source=source)
        return cls(client.CoreV1Api(), request_timeout=request_timeout)

    def _call_kwargs(self) -> dict:
        if self._request_timeout is None:
            return {}
        return {"_request_timeout": self._request_timeout}

    def get(self, namespace: str, name: str) -> V1ConfigMap:
        """
        Read a ConfigMap. Missing ConfigMaps and API/transport errors raise
        StoreFetchFailedError.
        """
        try:
            resource = self._api.read_namespaced_config_map(
                name,
                namespace,
                **self._call_kwargs(),
            )
        except ApiException as exc:
            reason = "not found" if exc.status == HTTP_NOT_FOUND else exc.reason
            raise StoreFetchFailedError(
                f"failed to get ConfigMap {name} in namespace {namespace}: {reason}",
                namespace=namespace,
                config_map=name,
                status=exc.status,
            ) from exc
        except Exception as exc:  # urllib3 / socket errors
            raise StoreFetchFailedError(
                f"failed to get ConfigMap {name} in namespace {namespace}: {exc}",
                namespace=namespace,
                config_map=name,
            ) from exc

        logger.debug(
            "configmap_read",
            namespace=namespace,
            config_map=name,
            resource_version=resource.metadata.resource_version,
        )
        return resource

    def replace(self, resource: V1ConfigMap) -> V1ConfigMap:
        """
        Replace a ConfigMap with `resource`, guarded by its resource version.
        """
        name = resource.metadata.name
        namespace = resource.metadata.namespace
        try:
            return self._api.replace_namespaced_config_map(
                name,
                namespace,
                resource,
                **self._call_kwargs(),
            )
        except ApiException as exc:
            if exc.status == HTTP_CONFLICT:
                raise StoreUpdateConflictError(
                    f"ConfigMap {name} in namespace {namespace} was modified concurrently",
                    namespace=namespace,
                    config_map=name,
                    resource_version=resource.metadata.resource_version,
                    status=exc.status,
                ) from exc
            raise StoreUpdateFailedError(
                f"failed to update ConfigMap {name} in namespace {namespace}: {exc.reason}",
                namespace=namespace,
                config_map=name,
                status=exc.status,
            ) from exc
        except Exception as exc:  # urllib3 / socket errors
            raise StoreUpdateFailedError(
                f"failed to update ConfigMap {name} in namespace {namespace}: {exc}",
                namespace=namespace,
                config_map=name,
            ) from exc
