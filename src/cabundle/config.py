"""Operator configuration for cabundle."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from cabundle._constants import (
    DEFAULT_CONFIG_NAME,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_INTERVAL_SECONDS,
    OWNER_LABELS,
)
from cabundle.exceptions import CABundleConfigError


def parse_labels(value: str) -> dict[str, str]:
    """Parse a ``k=v,k2=v2`` label string into a dict.

    Raises :class:`CABundleConfigError` on entries without ``=``.
    """
    labels: dict[str, str] = {}
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        key, sep, label_value = part.partition("=")
        if not sep:
            raise CABundleConfigError(f"label must be key=value, got {part!r}")
        labels[key.strip()] = label_value.strip()
    return labels


@dataclasses.dataclass(frozen=True)
class OperatorConfig:
    """Operator configuration.

    Parameters
    ----------
    namespace : str
        Namespace holding the owned trust-bundle ConfigMaps and the
        trigger-config resource.
    interval : float
        Seconds between periodic reconciliation triggers.
    config_name : str
        Name of the ConfigMap whose ``bundle_url`` key points at the
        bundle listing.
    owner_labels : dict[str, str]
        Labels stamped on every owned ConfigMap. The reaper only ever
        deletes resources carrying all of them.
    fetch_timeout : float
        Upper bound in seconds for one complete fetch (listing plus every
        bundle download).
    queue_size : int
        Capacity of the trigger queue. Triggers arriving while it is full
        are dropped.
    """

    namespace: str
    interval: float = DEFAULT_INTERVAL_SECONDS
    config_name: str = DEFAULT_CONFIG_NAME
    owner_labels: dict[str, str] = dataclasses.field(default_factory=lambda: dict(OWNER_LABELS))
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    queue_size: int = 1

    def __post_init__(self) -> None:
        if not self.namespace or not self.namespace.strip():
            raise CABundleConfigError("namespace must be non-empty")
        if not self.config_name or not self.config_name.strip():
            raise CABundleConfigError("config_name must be non-empty")
        if self.interval <= 0:
            raise CABundleConfigError(f"interval must be positive, got {self.interval}")
        if self.fetch_timeout <= 0:
            raise CABundleConfigError(f"fetch_timeout must be positive, got {self.fetch_timeout}")
        if self.queue_size < 1:
            raise CABundleConfigError(f"queue_size must be at least 1, got {self.queue_size}")
        if not self.owner_labels:
            raise CABundleConfigError("owner_labels must contain at least one label")
        for key, value in self.owner_labels.items():
            if not key or not value:
                raise CABundleConfigError(f"owner label {key!r}={value!r} must have a key and a value")

    @classmethod
    def from_env(cls, **overrides: Any) -> OperatorConfig:
        """Create configuration from environment variables.

        Reads ``CABUNDLE_NAMESPACE`` and the optional ``CABUNDLE_*``
        variables. Explicit keyword arguments override environment values.
        """
        env = os.environ

        config_kwargs: dict[str, Any] = {}
        _ENV_CONFIG_MAP = {
            "CABUNDLE_NAMESPACE": "namespace",
            "CABUNDLE_CONFIG_NAME": "config_name",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        try:
            interval_env = env.get("CABUNDLE_INTERVAL")
            if interval_env is not None:
                config_kwargs["interval"] = float(interval_env)

            timeout_env = env.get("CABUNDLE_FETCH_TIMEOUT")
            if timeout_env is not None:
                config_kwargs["fetch_timeout"] = float(timeout_env)

            queue_env = env.get("CABUNDLE_QUEUE_SIZE")
            if queue_env is not None:
                config_kwargs["queue_size"] = int(queue_env)
        except ValueError as exc:
            raise CABundleConfigError(f"invalid numeric setting: {exc}") from exc

        labels_env = env.get("CABUNDLE_OWNER_LABELS")
        if labels_env is not None:
            config_kwargs["owner_labels"] = parse_labels(labels_env)

        config_kwargs.update({k: v for k, v in overrides.items() if v is not None})

        if "namespace" not in config_kwargs:
            raise CABundleConfigError("namespace is required (set CABUNDLE_NAMESPACE)")

        return cls(**config_kwargs)
