"""Reconciliation loop for CA bundle ConfigMaps."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import aiohttp

from cabundle._constants import BUNDLE_URL_KEY
from cabundle.cluster import ClusterClient
from cabundle.config import OperatorConfig
from cabundle.exceptions import CABundleError, ConfigMissingKeyError, FetchError
from cabundle.fetcher import BundleSource, HttpBundleFetcher
from cabundle.models.bundle import BundleRecord
from cabundle.models.results import ReconcileResult, ReconcileStatus
from cabundle.models.trigger import TriggerEvent, TriggerSource
from cabundle.sync.converge import converge
from cabundle.sync.reap import reap
from cabundle.trigger.periodic import PeriodicTrigger
from cabundle.trigger.queue import TriggerQueue

_logger = logging.getLogger(__name__)


class BundleReconciler:
    """Runs one fetch, converge, reap cycle per trigger event."""

    def __init__(
        self,
        config: OperatorConfig,
        cluster: ClusterClient,
        fetcher: BundleSource,
    ) -> None:
        self._config = config
        self._cluster = cluster
        self._fetcher = fetcher

    async def _bundle_url(self, event: TriggerEvent) -> str | None:
        """Read ``bundle_url`` from the config resource named by *event*.

        Returns ``None`` when the resource does not exist and raises
        :class:`ConfigMissingKeyError` when it exists without the key.
        """
        source = await self._cluster.get_config(event.namespace, event.name)
        if source is None:
            return None
        url = source.bundle_url
        if url is None:
            raise ConfigMissingKeyError(
                f"{BUNDLE_URL_KEY} key not found in ConfigMap {event.namespace}/{event.name}",
                namespace=event.namespace,
                name=event.name,
                key=BUNDLE_URL_KEY,
            )
        return url

    async def _fetch(self, base_url: str) -> list[BundleRecord]:
        timeout = self._config.fetch_timeout
        try:
            async with asyncio.timeout(timeout):
                return await self._fetcher.fetch(base_url)
        except TimeoutError as exc:
            raise FetchError(f"Fetching {base_url} timed out after {timeout:g}s", url=base_url) from exc

    async def reconcile(self, event: TriggerEvent) -> ReconcileResult:
        """Converge the owned ConfigMaps on the bundles currently published.

        A missing config resource or ``bundle_url`` key skips the cycle.
        Fetch and cluster failures propagate; nothing is deleted unless the
        fetch succeeded, and reaping only runs after convergence finished.
        """
        _logger.info(
            "Reconciling CA bundles namespace=%s name=%s source=%s",
            event.namespace,
            event.name,
            event.source,
        )
        try:
            base_url = await self._bundle_url(event)
        except ConfigMissingKeyError as exc:
            _logger.warning("%s; skipping cycle", exc)
            return ReconcileResult(status=ReconcileStatus.SKIPPED, reason=str(exc))
        if base_url is None:
            reason = f"ConfigMap {event.namespace}/{event.name} not found"
            _logger.warning("%s; skipping cycle", reason)
            return ReconcileResult(status=ReconcileStatus.SKIPPED, reason=reason)

        records = await self._fetch(base_url)
        _logger.debug("Fetched %d bundles from %s", len(records), base_url)

        namespace = self._config.namespace
        owner_labels = self._config.owner_labels
        converged = await converge(records, self._cluster, namespace, owner_labels)
        deleted = await reap(records, self._cluster, namespace, owner_labels)

        _logger.info(
            "CA bundles synced namespace=%s created=%d updated=%d unchanged=%d deleted=%d",
            namespace,
            len(converged.created),
            len(converged.updated),
            len(converged.unchanged),
            len(deleted),
        )
        return ReconcileResult(status=ReconcileStatus.SYNCED, converge=converged, deleted=deleted)

    async def run(self, queue: TriggerQueue) -> None:
        """Drain *queue*, one complete cycle per event, until it is closed.

        Failed cycles are logged and left for the next trigger to retry.
        """
        while True:
            event = await queue.get()
            if event is None:
                _logger.debug("Trigger queue closed; reconciliation loop exiting")
                return
            try:
                await self.reconcile(event)
            except CABundleError:
                _logger.exception(
                    "Reconcile of %s/%s failed; retrying on next trigger",
                    event.namespace,
                    event.name,
                )
            except Exception:
                _logger.exception(
                    "Unexpected error reconciling %s/%s; retrying on next trigger",
                    event.namespace,
                    event.name,
                )


class Operator:
    """Wires the trigger, queue and reconciler together.

    Usage::

        async with Operator(config, cluster) as operator:
            await operator.run()
    """

    def __init__(
        self,
        config: OperatorConfig,
        cluster: ClusterClient,
        *,
        fetcher: BundleSource | None = None,
        http_session: aiohttp.ClientSession | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._config = config
        self._cluster = cluster
        self._fetcher = fetcher
        self._external_session = http_session is not None
        self._http_session = http_session
        self._sleep = sleep
        self._queue: TriggerQueue | None = None
        self._trigger: PeriodicTrigger | None = None
        self._reconciler: BundleReconciler | None = None
        self._loop_task: asyncio.Task[None] | None = None
        self._stopped = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> Operator:
        if self._fetcher is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession(
                    timeout=aiohttp.ClientTimeout(total=self._config.fetch_timeout),
                )
            self._fetcher = HttpBundleFetcher(self._http_session)
        self._queue = TriggerQueue(self._config.queue_size)
        self._trigger = PeriodicTrigger(
            self._queue,
            interval=self._config.interval,
            namespace=self._config.namespace,
            name=self._config.config_name,
            sleep=self._sleep,
        )
        self._reconciler = BundleReconciler(self._config, self._cluster, self._fetcher)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.stop()
        if self._loop_task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._loop_task
        if self._trigger is not None:
            await self._trigger.aclose()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    @property
    def queue(self) -> TriggerQueue:
        if self._queue is None:
            raise CABundleError("Operator not started. Use 'async with Operator(...) as operator:'")
        return self._queue

    def trigger_now(self) -> bool:
        """Request an immediate cycle. Returns ``False`` if the request was dropped."""
        return self.queue.offer(
            TriggerEvent(
                name=self._config.config_name,
                namespace=self._config.namespace,
                source=TriggerSource.MANUAL,
            )
        )

    async def run(self) -> None:
        """Sync once immediately, then on every interval until :meth:`stop`."""
        if self._trigger is None or self._reconciler is None:
            raise CABundleError("Operator not started. Use 'async with Operator(...) as operator:'")
        if self._stopped:
            return
        self.trigger_now()
        self._trigger.start()
        self._loop_task = asyncio.create_task(
            self._reconciler.run(self.queue),
            name="cabundle-reconcile-loop",
        )
        try:
            await self._loop_task
        except asyncio.CancelledError:
            # Cancelled by stop(); anything else is the caller's cancellation.
            if not self._stopped:
                raise
        finally:
            await self._trigger.aclose()

    def stop(self) -> None:
        """Stop triggering and abort the running cycle.

        Events still queued are discarded. Safe to call more than once.
        """
        self._stopped = True
        if self._trigger is not None:
            self._trigger.stop()
        task = self._loop_task
        if task is not None and not task.done():
            _logger.info("Stopping reconciliation loop")
            task.cancel()
