from __future__ import annotations

"""
Publish the cluster fabric topology into the scheduler's ConfigMap.

The job runs the fabric discovery command, keeps its `SwitchName=` records
and writes them (base64 encoded) under `topology.conf` of a Kubernetes
ConfigMap.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
