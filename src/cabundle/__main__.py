"""Run the CA bundle operator as a process.

Settings come from ``CABUNDLE_*`` environment variables; command-line
options override them.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from kubernetes import client, config

from cabundle.cluster import KubernetesClusterClient
from cabundle.config import OperatorConfig, parse_labels
from cabundle.controller import Operator
from cabundle.exceptions import CABundleConfigError

_logger = logging.getLogger("cabundle")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cabundle-operator",
        description="Sync CA bundles published over HTTP into ConfigMaps.",
    )
    parser.add_argument("--namespace", help="Target namespace (env: CABUNDLE_NAMESPACE)")
    parser.add_argument("--interval", type=float, help="Seconds between syncs (env: CABUNDLE_INTERVAL)")
    parser.add_argument(
        "--config-name",
        help="ConfigMap holding bundle_url (env: CABUNDLE_CONFIG_NAME)",
    )
    parser.add_argument(
        "--owner-labels",
        help="Ownership labels as k=v,k2=v2 (env: CABUNDLE_OWNER_LABELS)",
    )
    parser.add_argument(
        "--fetch-timeout",
        type=float,
        help="Upper bound in seconds for one fetch (env: CABUNDLE_FETCH_TIMEOUT)",
    )
    parser.add_argument("--queue-size", type=int, help="Trigger queue capacity (env: CABUNDLE_QUEUE_SIZE)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser


def _load_kube_config() -> None:
    try:
        config.load_incluster_config()
    except config.ConfigException:
        _logger.info("Not running in a cluster; loading kubeconfig")
        config.load_kube_config()


async def _run(operator_config: OperatorConfig) -> None:
    cluster = KubernetesClusterClient(client.CoreV1Api())
    async with Operator(operator_config, cluster) as operator:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, operator.stop)
        _logger.info(
            "Starting cabundle operator namespace=%s interval=%gs",
            operator_config.namespace,
            operator_config.interval,
        )
        await operator.run()
    _logger.info("cabundle operator stopped")


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        operator_config = OperatorConfig.from_env(
            namespace=args.namespace,
            interval=args.interval,
            config_name=args.config_name,
            owner_labels=parse_labels(args.owner_labels) if args.owner_labels else None,
            fetch_timeout=args.fetch_timeout,
            queue_size=args.queue_size,
        )
    except CABundleConfigError as exc:
        _logger.error("Invalid configuration: %s", exc)
        return 2

    _load_kube_config()
    asyncio.run(_run(operator_config))
    return 0


if __name__ == "__main__":
    sys.exit(main())
