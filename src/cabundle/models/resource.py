"""Cluster-side resource views.

Both models are plain snapshots of a ConfigMap. They carry no client state;
the cluster client builds them from API objects and turns them back into
API bodies.
"""

from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field

from cabundle._constants import BUNDLE_URL_KEY, CA_KEY


class TrustResource(BaseModel):
    """A ConfigMap holding one synchronized bundle under ``ca.crt``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    namespace: str
    labels: dict[str, str] = Field(default_factory=dict)
    data: dict[str, str] = Field(default_factory=dict)
    resource_version: str | None = None

    @classmethod
    def for_bundle(
        cls,
        *,
        name: str,
        namespace: str,
        owner_labels: Mapping[str, str],
        content: bytes,
    ) -> TrustResource:
        return cls(
            name=name,
            namespace=namespace,
            labels=dict(owner_labels),
            data={CA_KEY: content.decode("utf-8")},
        )

    @property
    def payload(self) -> bytes | None:
        """Bundle bytes, or ``None`` when the resource has no ``ca.crt`` key."""
        value = self.data.get(CA_KEY)
        if value is None:
            return None
        return value.encode("utf-8")

    def is_owned_by(self, owner_labels: Mapping[str, str]) -> bool:
        return all(self.labels.get(key) == value for key, value in owner_labels.items())

    def with_payload(self, content: bytes, owner_labels: Mapping[str, str]) -> TrustResource:
        """Return a copy carrying *content* and the ownership labels.

        Other data keys and labels are preserved.
        """
        labels = {**self.labels, **owner_labels}
        data = {**self.data, CA_KEY: content.decode("utf-8")}
        return self.model_copy(update={"labels": labels, "data": data})


class ConfigSource(BaseModel):
    """The trigger-config ConfigMap read at the start of every cycle."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    namespace: str
    data: dict[str, str] = Field(default_factory=dict)

    @property
    def bundle_url(self) -> str | None:
        value = self.data.get(BUNDLE_URL_KEY)
        if value is None or not value.strip():
            return None
        return value.strip()
