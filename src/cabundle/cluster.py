"""Cluster access for trust-bundle ConfigMaps."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from kubernetes.client import ApiException, CoreV1Api, V1ConfigMap, V1ObjectMeta

from cabundle.exceptions import ClusterError, ClusterReadError, ClusterWriteError
from cabundle.models.resource import ConfigSource, TrustResource

_logger = logging.getLogger(__name__)

_NOT_FOUND = 404


def label_selector(labels: Mapping[str, str]) -> str:
    """Render labels as an equality-based selector (``k=v,k2=v2``)."""
    return ",".join(f"{key}={value}" for key, value in sorted(labels.items()))


class ClusterClient(Protocol):
    """Structural cluster interface used by the sync layer.

    ``get``/``get_config`` return ``None`` for missing resources and
    ``delete`` returns ``False`` when the resource was already gone. Every
    other failure raises a :class:`ClusterError` subclass.
    """

    async def get(self, namespace: str, name: str) -> TrustResource | None:
        ...

    async def get_config(self, namespace: str, name: str) -> ConfigSource | None:
        ...

    async def list(self, namespace: str, label_selector: str) -> list[TrustResource]:
        ...

    async def create(self, resource: TrustResource) -> None:
        ...

    async def update(self, resource: TrustResource) -> None:
        ...

    async def delete(self, namespace: str, name: str) -> bool:
        ...


def _to_trust_resource(config_map: Any) -> TrustResource:
    meta = config_map.metadata
    return TrustResource(
        name=meta.name,
        namespace=meta.namespace,
        labels=dict(meta.labels or {}),
        data=dict(config_map.data or {}),
        resource_version=meta.resource_version,
    )


def _to_body(resource: TrustResource) -> V1ConfigMap:
    return V1ConfigMap(
        metadata=V1ObjectMeta(
            name=resource.name,
            namespace=resource.namespace,
            labels=dict(resource.labels),
            resource_version=resource.resource_version,
        ),
        data=dict(resource.data),
    )


class KubernetesClusterClient:
    """ClusterClient backed by the synchronous ``kubernetes`` CoreV1Api.

    Calls run in worker threads so the event loop keeps serving the trigger
    while a request is in flight. Retries are left to the kubernetes client.
    """

    def __init__(self, core_api: CoreV1Api) -> None:
        self._api = core_api

    async def _call(
        self,
        action: str,
        fn: Callable[..., Any],
        *args: Any,
        error_cls: type[ClusterError],
        namespace: str,
        name: str = "",
        missing_ok: bool = False,
        **kwargs: Any,
    ) -> tuple[bool, Any]:
        """Run *fn* in a thread.

        Returns ``(found, result)``. A 404 yields ``(False, None)`` when
        *missing_ok* is set and raises *error_cls* otherwise, like every
        other API failure.
        """
        try:
            return True, await asyncio.to_thread(fn, *args, **kwargs)
        except ApiException as exc:
            if missing_ok and exc.status == _NOT_FOUND:
                return False, None
            target = f"{namespace}/{name}" if name else namespace
            raise error_cls(
                f"{action} {target} failed: {exc.status} {exc.reason}",
                namespace=namespace,
                name=name,
                status=exc.status,
            ) from exc

    async def get(self, namespace: str, name: str) -> TrustResource | None:
        found, config_map = await self._call(
            "get",
            self._api.read_namespaced_config_map,
            name,
            namespace,
            error_cls=ClusterReadError,
            namespace=namespace,
            name=name,
            missing_ok=True,
        )
        if not found:
            return None
        return _to_trust_resource(config_map)

    async def get_config(self, namespace: str, name: str) -> ConfigSource | None:
        resource = await self.get(namespace, name)
        if resource is None:
            return None
        return ConfigSource(name=resource.name, namespace=resource.namespace, data=resource.data)

    async def list(self, namespace: str, label_selector: str) -> list[TrustResource]:
        _, result = await self._call(
            "list",
            self._api.list_namespaced_config_map,
            namespace,
            label_selector=label_selector,
            error_cls=ClusterReadError,
            namespace=namespace,
        )
        return [_to_trust_resource(item) for item in result.items]

    async def create(self, resource: TrustResource) -> None:
        await self._call(
            "create",
            self._api.create_namespaced_config_map,
            resource.namespace,
            _to_body(resource),
            error_cls=ClusterWriteError,
            namespace=resource.namespace,
            name=resource.name,
        )

    async def update(self, resource: TrustResource) -> None:
        await self._call(
            "update",
            self._api.replace_namespaced_config_map,
            resource.name,
            resource.namespace,
            _to_body(resource),
            error_cls=ClusterWriteError,
            namespace=resource.namespace,
            name=resource.name,
        )

    async def delete(self, namespace: str, name: str) -> bool:
        found, _ = await self._call(
            "delete",
            self._api.delete_namespaced_config_map,
            name,
            namespace,
            error_cls=ClusterWriteError,
            namespace=namespace,
            name=name,
            missing_ok=True,
        )
        if not found:
            _logger.debug("ConfigMap %s/%s already gone", namespace, name)
        return found
