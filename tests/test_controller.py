from __future__ import annotations

import asyncio
import logging

import pytest
from conftest import NAMESPACE, FakeCluster, StaticSource, bundle

from cabundle._constants import DEFAULT_CONFIG_NAME
from cabundle.config import OperatorConfig
from cabundle.controller import BundleReconciler, Operator
from cabundle.exceptions import ConvergeError, FetchError
from cabundle.models.bundle import BundleRecord
from cabundle.models.results import ReconcileStatus
from cabundle.models.trigger import TriggerEvent, TriggerSource
from cabundle.trigger.queue import TriggerQueue

BUNDLE_URL = "https://pki.example.com/bundles/"


def _event() -> TriggerEvent:
    return TriggerEvent(name=DEFAULT_CONFIG_NAME, namespace=NAMESPACE)


@pytest.fixture
def configured(cluster: FakeCluster) -> FakeCluster:
    cluster.seed_config(DEFAULT_CONFIG_NAME, {"bundle_url": BUNDLE_URL})
    return cluster


@pytest.mark.asyncio
async def test_cycle_creates_fetched_and_deletes_stale(
    configured: FakeCluster,
    operator_config: OperatorConfig,
) -> None:
    configured.seed("bundle-c", b"CCC")
    source = StaticSource([bundle("bundle-a.pem", b"AAA"), bundle("bundle-b.crt", b"BBB")])
    reconciler = BundleReconciler(operator_config, configured, source)

    result = await reconciler.reconcile(_event())

    assert result.status == ReconcileStatus.SYNCED
    assert configured.owned() == {"bundle-a": b"AAA", "bundle-b": b"BBB"}
    assert result.converge.created == ["bundle-a", "bundle-b"]
    assert result.deleted == ["bundle-c"]
    assert source.urls == [BUNDLE_URL]


@pytest.mark.asyncio
async def test_cycle_updates_changed_bundle_without_recreating(
    configured: FakeCluster,
    operator_config: OperatorConfig,
) -> None:
    configured.seed("bundle-a", b"OLD")
    reconciler = BundleReconciler(operator_config, configured, StaticSource([bundle("bundle-a.pem", b"AAA")]))

    result = await reconciler.reconcile(_event())

    assert configured.owned() == {"bundle-a": b"AAA"}
    assert configured.writes == [("update", "bundle-a")]
    assert result.converge.updated == ["bundle-a"]
    assert result.deleted == []


@pytest.mark.asyncio
async def test_missing_bundle_url_skips_cycle(cluster: FakeCluster, operator_config: OperatorConfig) -> None:
    cluster.seed_config(DEFAULT_CONFIG_NAME, {"other": "value"})
    cluster.seed("bundle-c", b"CCC")
    source = StaticSource()

    result = await BundleReconciler(operator_config, cluster, source).reconcile(_event())

    assert result.status == ReconcileStatus.SKIPPED
    assert "bundle_url" in result.reason
    assert source.urls == []
    assert cluster.writes == []


@pytest.mark.asyncio
async def test_missing_config_resource_skips_cycle(cluster: FakeCluster, operator_config: OperatorConfig) -> None:
    source = StaticSource()

    result = await BundleReconciler(operator_config, cluster, source).reconcile(_event())

    assert result.status == ReconcileStatus.SKIPPED
    assert source.urls == []


@pytest.mark.asyncio
async def test_fetch_failure_deletes_nothing(configured: FakeCluster, operator_config: OperatorConfig) -> None:
    configured.seed("bundle-a", b"AAA")
    source = StaticSource(error=FetchError("HTTP 503", url=BUNDLE_URL, status_code=503))

    with pytest.raises(FetchError):
        await BundleReconciler(operator_config, configured, source).reconcile(_event())

    assert configured.writes == []
    assert set(configured.owned()) == {"bundle-a"}


@pytest.mark.asyncio
async def test_slow_fetch_times_out(configured: FakeCluster) -> None:
    class _HangingSource:
        async def fetch(self, base_url: str) -> list[BundleRecord]:
            await asyncio.sleep(10)
            return []

    config = OperatorConfig(namespace=NAMESPACE, fetch_timeout=0.01)

    with pytest.raises(FetchError) as exc_info:
        await BundleReconciler(config, configured, _HangingSource()).reconcile(_event())

    assert exc_info.value.url == BUNDLE_URL
    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_converge_failure_skips_reap(configured: FakeCluster, operator_config: OperatorConfig) -> None:
    configured.seed("bundle-c", b"CCC")
    configured.fail_on[("create", "bundle-a")] = 500
    source = StaticSource([bundle("bundle-a.pem", b"AAA")])

    with pytest.raises(ConvergeError):
        await BundleReconciler(operator_config, configured, source).reconcile(_event())

    assert ("delete", "bundle-c") not in configured.writes


@pytest.mark.asyncio
async def test_run_logs_failed_cycle_and_continues(
    configured: FakeCluster,
    operator_config: OperatorConfig,
    caplog: pytest.LogCaptureFixture,
) -> None:
    class _FlakySource:
        def __init__(self) -> None:
            self.calls = 0

        async def fetch(self, base_url: str) -> list[BundleRecord]:
            self.calls += 1
            if self.calls == 1:
                raise FetchError("connection reset", url=base_url)
            return [bundle("bundle-a.pem", b"AAA")]

    source = _FlakySource()
    queue = TriggerQueue(maxsize=2)
    queue.offer(_event())
    queue.offer(_event())
    queue.close()

    with caplog.at_level(logging.ERROR, logger="cabundle.controller"):
        await asyncio.wait_for(BundleReconciler(operator_config, configured, source).run(queue), timeout=1.0)

    assert source.calls == 2
    assert configured.owned() == {"bundle-a": b"AAA"}
    assert "retrying on next trigger" in caplog.text


@pytest.mark.asyncio
async def test_operator_syncs_immediately_then_stops(
    configured: FakeCluster,
    operator_config: OperatorConfig,
) -> None:
    synced = asyncio.Event()

    class _SignallingSource(StaticSource):
        async def fetch(self, base_url: str) -> list[BundleRecord]:
            records = await super().fetch(base_url)
            synced.set()
            return records

    source = _SignallingSource([bundle("bundle-a.pem", b"AAA")])
    async with Operator(operator_config, configured, fetcher=source, sleep=_never) as operator:
        runner = asyncio.create_task(operator.run())
        await asyncio.wait_for(synced.wait(), timeout=1.0)
        operator.stop()
        await asyncio.wait_for(runner, timeout=1.0)

        assert operator.queue.closed
        assert operator.trigger_now() is False

    assert configured.owned() == {"bundle-a": b"AAA"}
    assert source.urls == [BUNDLE_URL]


@pytest.mark.asyncio
async def test_trigger_now_is_manual(configured: FakeCluster, operator_config: OperatorConfig) -> None:
    async with Operator(operator_config, configured, fetcher=StaticSource()) as operator:
        assert operator.trigger_now() is True
        event = await operator.queue.get()

    assert event is not None
    assert event.source == TriggerSource.MANUAL
    assert event.name == operator_config.config_name


@pytest.mark.asyncio
async def test_run_survives_unexpected_errors(
    configured: FakeCluster,
    operator_config: OperatorConfig,
    caplog: pytest.LogCaptureFixture,
) -> None:
    class _BrokenSource:
        def __init__(self) -> None:
            self.calls = 0

        async def fetch(self, base_url: str) -> list[BundleRecord]:
            self.calls += 1
            if self.calls == 1:
                raise ValueError("Invalid IPv6 URL")
            return [bundle("bundle-a.pem", b"AAA")]

    source = _BrokenSource()
    queue = TriggerQueue(maxsize=2)
    queue.offer(_event())
    queue.offer(_event())
    queue.close()

    with caplog.at_level(logging.ERROR, logger="cabundle.controller"):
        await asyncio.wait_for(BundleReconciler(operator_config, configured, source).run(queue), timeout=1.0)

    assert source.calls == 2
    assert configured.owned() == {"bundle-a": b"AAA"}
    assert "Unexpected error reconciling" in caplog.text


class _BlockingSource:
    """Source whose fetch never returns on its own."""

    def __init__(self) -> None:
        self.started = 0
        self.cancelled = False
        self.entered = asyncio.Event()

    async def fetch(self, base_url: str) -> list[BundleRecord]:
        self.started += 1
        self.entered.set()
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return []


async def _never(_delay: float) -> None:
    await asyncio.Event().wait()


@pytest.mark.asyncio
async def test_stop_aborts_cycle_and_discards_queued_events(
    configured: FakeCluster,
    operator_config: OperatorConfig,
) -> None:
    source = _BlockingSource()
    async with Operator(operator_config, configured, fetcher=source, sleep=_never) as operator:
        runner = asyncio.create_task(operator.run())
        await asyncio.wait_for(source.entered.wait(), timeout=1.0)
        assert operator.trigger_now() is True

        operator.stop()
        await asyncio.wait_for(runner, timeout=1.0)

    assert source.started == 1
    assert source.cancelled
    assert configured.writes == []


@pytest.mark.asyncio
async def test_stop_before_run_starts_nothing(
    configured: FakeCluster,
    operator_config: OperatorConfig,
) -> None:
    source = _BlockingSource()
    async with Operator(operator_config, configured, fetcher=source, sleep=_never) as operator:
        operator.stop()
        await asyncio.wait_for(operator.run(), timeout=1.0)

    assert source.started == 0


@pytest.mark.asyncio
async def test_caller_cancellation_still_propagates(
    configured: FakeCluster,
    operator_config: OperatorConfig,
) -> None:
    source = _BlockingSource()
    async with Operator(operator_config, configured, fetcher=source, sleep=_never) as operator:
        runner = asyncio.create_task(operator.run())
        await asyncio.wait_for(source.entered.wait(), timeout=1.0)

        runner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await runner

    assert source.cancelled
