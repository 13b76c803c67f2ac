from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

import structlog

from . import __version__
from .config import Settings, load_settings
from .discovery import TopologyExtractor, count_switch_records, get_extractor
from .errors import TopologyPublisherError
from .logging_config import setup_logging
from .metrics import RunMetrics
from .reconciler import ReconcileResult, reconcile
from .store import ConfigMapClient, ConfigStore

EXIT_OK = 0
EXIT_FAILURE = 1


def extract_topology(
    settings: Settings,
    *,
    extractor: Optional[TopologyExtractor] = None,
) -> bytes:
    """ExtractTopology step: run the extractor for the configured fabric."""
    if extractor is None:
        extractor = get_extractor(settings)
    return extractor.extract()


def run(
    settings: Settings,
    *,
    store: Optional[ConfigStore] = None,
    extractor: Optional[TopologyExtractor] = None,
) -> ReconcileResult:
    """
    One publisher run:

        ExtractTopology -> FetchResource -> MutateResource -> SubmitUpdate

    The first failure raises a TopologyPublisherError and nothing after it
    runs. The Kubernetes client is only created once a payload exists.
    """
    log = structlog.get_logger("run")

    payload = extract_topology(settings, extractor=extractor)

    if store is None:
        store = ConfigMapClient.from_environment(
            request_timeout=settings.store_timeout_seconds,
        )

    log.info("reconcile_start", payload_bytes=len(payload))
    return reconcile(
        store,
        settings.namespace,
        settings.config_map_name,
        payload,
        key=settings.topology_key,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="topology-publisher",
        description=(
            "Discover the cluster fabric topology and publish it as "
            "topology.conf in a Kubernetes ConfigMap. Configuration comes "
            "from the environment (NAMESPACE, CONFIG_MAP_NAME, "
            "SLURMIBTOPOLOGY_SH, NETWORK_TYPE, LOG_LEVEL)."
        ),
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="extract the topology and report it without touching the ConfigMap",
    )
    parser.add_argument(
        "--print-payload",
        action="store_true",
        help="write the extracted topology to stdout (implies --dry-run)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Entrypoint. Returns the process exit status.

    This is the only place that handles publisher errors: the failed step
    is logged once with its context and the run exits non-zero.
    """
    args = build_parser().parse_args(argv)

    # Default logging until the settings (and LOG_LEVEL) are loaded
    setup_logging()
    log = structlog.get_logger("main")
    metrics = RunMetrics()
    settings: Optional[Settings] = None

    try:
        settings = load_settings()
        setup_logging(settings)
        structlog.contextvars.bind_contextvars(
            namespace=settings.namespace,
            config_map=settings.config_map_name,
            network_type=settings.network_type.value,
        )
        log.info("run_start", dry_run=args.dry_run or args.print_payload)

        if args.dry_run or args.print_payload:
            payload = extract_topology(settings)
            if args.print_payload:
                sys.stdout.buffer.write(payload)
                sys.stdout.flush()
            log.info(
                "dry_run_done",
                switch_records=count_switch_records(payload),
                payload_bytes=len(payload),
            )
            return EXIT_OK

        result = run(settings)
    except TopologyPublisherError as exc:
        metrics.record_failure(exc.step)
        fields = {}
        if settings is not None:
            fields.update(namespace=settings.namespace, config_map=settings.config_map_name)
        fields.update(exc.log_fields())
        log.error("run_failed", **fields)
        if settings is not None:
            metrics.push(settings.pushgateway_url)
        return EXIT_FAILURE
    finally:
        structlog.contextvars.clear_contextvars()

    metrics.record_success(result.switch_records, result.payload_bytes)
    log.info(
        "run_succeeded",
        namespace=result.namespace,
        config_map=result.name,
        resource_version=result.resource_version,
        switch_records=result.switch_records,
        changed=result.changed,
    )
    metrics.push(settings.pushgateway_url)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
