from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from cabundle._constants import CA_KEY, OWNER_LABELS
from cabundle.config import OperatorConfig
from cabundle.exceptions import ClusterReadError, ClusterWriteError
from cabundle.models.bundle import BundleRecord
from cabundle.models.resource import ConfigSource, TrustResource

NAMESPACE = "certs"


@dataclass
class FakeCluster:
    """In-memory ClusterClient with call recording and failure injection.

    ``fail_on`` maps ``(action, name)`` to the HTTP status to fail with.
    ``vanish_on_delete`` names resources that list normally but are
    already gone by the time ``delete`` runs.
    """

    resources: dict[tuple[str, str], TrustResource] = field(default_factory=dict)
    configs: dict[tuple[str, str], ConfigSource] = field(default_factory=dict)
    calls: list[tuple[str, str]] = field(default_factory=list)
    fail_on: dict[tuple[str, str], int] = field(default_factory=dict)
    vanish_on_delete: set[str] = field(default_factory=set)
    fail_list: bool = False
    _version: int = 0

    def _record(self, action: str, name: str) -> None:
        self.calls.append((action, name))

    def _check(self, action: str, namespace: str, name: str, error_cls: type) -> None:
        status = self.fail_on.get((action, name))
        if status is not None:
            raise error_cls(f"{action} {namespace}/{name} failed: {status}", namespace=namespace, name=name, status=status)

    def _next_version(self) -> str:
        self._version += 1
        return str(self._version)

    def seed(
        self,
        name: str,
        payload: bytes = b"",
        *,
        namespace: str = NAMESPACE,
        labels: dict[str, str] | None = None,
        extra_data: dict[str, str] | None = None,
    ) -> TrustResource:
        data = {CA_KEY: payload.decode("utf-8"), **(extra_data or {})}
        resource = TrustResource(
            name=name,
            namespace=namespace,
            labels=dict(OWNER_LABELS) if labels is None else labels,
            data=data,
            resource_version=self._next_version(),
        )
        self.resources[(namespace, name)] = resource
        return resource

    def seed_config(self, name: str, data: dict[str, str], *, namespace: str = NAMESPACE) -> None:
        self.configs[(namespace, name)] = ConfigSource(name=name, namespace=namespace, data=data)

    def owned(self, namespace: str = NAMESPACE) -> dict[str, bytes | None]:
        return {
            res.name: res.payload
            for (ns, _), res in self.resources.items()
            if ns == namespace and res.is_owned_by(OWNER_LABELS)
        }

    @property
    def writes(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] in {"create", "update", "delete"}]

    async def get(self, namespace: str, name: str) -> TrustResource | None:
        self._record("get", name)
        self._check("get", namespace, name, ClusterReadError)
        return self.resources.get((namespace, name))

    async def get_config(self, namespace: str, name: str) -> ConfigSource | None:
        self._record("get_config", name)
        return self.configs.get((namespace, name))

    async def list(self, namespace: str, label_selector: str) -> list[TrustResource]:
        self._record("list", label_selector)
        if self.fail_list:
            raise ClusterReadError(f"list {namespace} failed: 500", namespace=namespace, status=500)
        wanted = dict(part.split("=", 1) for part in label_selector.split(",") if part)
        return [
            res
            for (ns, _), res in self.resources.items()
            if ns == namespace and all(res.labels.get(k) == v for k, v in wanted.items())
        ]

    async def create(self, resource: TrustResource) -> None:
        self._record("create", resource.name)
        self._check("create", resource.namespace, resource.name, ClusterWriteError)
        key = (resource.namespace, resource.name)
        if key in self.resources:
            raise ClusterWriteError("already exists", namespace=resource.namespace, name=resource.name, status=409)
        self.resources[key] = resource.model_copy(update={"resource_version": self._next_version()})

    async def update(self, resource: TrustResource) -> None:
        self._record("update", resource.name)
        self._check("update", resource.namespace, resource.name, ClusterWriteError)
        key = (resource.namespace, resource.name)
        if key not in self.resources:
            raise ClusterWriteError("not found", namespace=resource.namespace, name=resource.name, status=404)
        self.resources[key] = resource.model_copy(update={"resource_version": self._next_version()})

    async def delete(self, namespace: str, name: str) -> bool:
        self._record("delete", name)
        self._check("delete", namespace, name, ClusterWriteError)
        if name in self.vanish_on_delete:
            self.resources.pop((namespace, name), None)
            return False
        return self.resources.pop((namespace, name), None) is not None


@dataclass
class StaticSource:
    """BundleSource returning fixed records, or raising a fixed error."""

    records: list[BundleRecord] = field(default_factory=list)
    error: Exception | None = None
    urls: list[str] = field(default_factory=list)

    async def fetch(self, base_url: str) -> list[BundleRecord]:
        self.urls.append(base_url)
        if self.error is not None:
            raise self.error
        return list(self.records)


def bundle(name: str, content: bytes) -> BundleRecord:
    return BundleRecord(logical_name=name, content=content)


@pytest.fixture
def cluster() -> FakeCluster:
    return FakeCluster()


@pytest.fixture
def operator_config() -> OperatorConfig:
    return OperatorConfig(namespace=NAMESPACE, interval=60.0, fetch_timeout=5.0)
