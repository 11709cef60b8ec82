"""Custom exception hierarchy for cabundle."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cabundle.models.results import ConvergeResult


class CABundleError(Exception):
    """Base exception for all cabundle errors."""


class CABundleConfigError(CABundleError):
    """Invalid or missing operator configuration."""


class FetchError(CABundleError):
    """Bundle download failure (network, non-2xx, unparseable listing, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        url: str = "",
        status_code: int | None = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)


class ConfigMissingKeyError(CABundleError):
    """The trigger-config resource lacks a required data key.

    This is a soft failure: the reconciler skips the cycle instead of
    reporting it as an error.
    """

    def __init__(
        self,
        message: str,
        *,
        namespace: str = "",
        name: str = "",
        key: str = "",
    ) -> None:
        self.namespace = namespace
        self.name = name
        self.key = key
        super().__init__(message)


class ClusterError(CABundleError):
    """Cluster API call failed for a single resource."""

    def __init__(
        self,
        message: str,
        *,
        namespace: str = "",
        name: str = "",
        status: int | None = None,
    ) -> None:
        self.namespace = namespace
        self.name = name
        self.status = status
        super().__init__(message)


class ClusterReadError(ClusterError):
    """A get or list call failed."""


class ClusterWriteError(ClusterError):
    """A create, update or delete call failed."""


class ConvergeError(CABundleError):
    """Convergence stopped at the first failing record.

    ``result`` holds what was applied before the failure. Those writes are
    not rolled back; the next cycle picks up where this one stopped.
    """

    def __init__(self, message: str, *, result: ConvergeResult) -> None:
        self.result = result
        super().__init__(message)


class ReapError(CABundleError):
    """One or more stale resources could not be deleted.

    Raised only after every stale resource was attempted.
    """

    def __init__(
        self,
        message: str,
        *,
        failures: Mapping[str, ClusterError],
        deleted: Sequence[str] = (),
    ) -> None:
        self.failures = dict(failures)
        self.deleted = list(deleted)
        super().__init__(message)
