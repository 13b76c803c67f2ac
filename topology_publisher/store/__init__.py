from __future__ import annotations

"""
Configuration store access.

The scheduler configuration lives in a Kubernetes ConfigMap. The
reconciler depends on the `ConfigStore` protocol; `ConfigMapClient` is the
real implementation on top of the kubernetes client.
"""

from .configmap_client import ConfigMapClient, ConfigStore

__all__ = [
    "ConfigMapClient",
    "ConfigStore",
]
