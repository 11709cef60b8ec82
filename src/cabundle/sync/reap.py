"""Delete owned ConfigMaps whose bundle is no longer published."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from cabundle.cluster import ClusterClient, label_selector
from cabundle.exceptions import ClusterError, ReapError
from cabundle.models.bundle import BundleRecord
from cabundle.naming import normalize

_logger = logging.getLogger(__name__)


async def reap(
    records: Iterable[BundleRecord],
    cluster: ClusterClient,
    namespace: str,
    owner_labels: Mapping[str, str],
) -> list[str]:
    """Delete every owned ConfigMap not backed by one of *records*.

    Returns the names that were deleted (or were already gone). A failed
    delete does not stop the sweep; once every stale resource was tried,
    :class:`ReapError` is raised listing all failures.
    """
    wanted = {normalize(record.logical_name) for record in records}
    owned = await cluster.list(namespace, label_selector(owner_labels))

    stale = sorted(
        resource.name
        for resource in owned
        if resource.name not in wanted and resource.is_owned_by(owner_labels)
    )
    if not stale:
        return []

    _logger.info("Found %d stale ConfigMaps in %s", len(stale), namespace)

    deleted: list[str] = []
    failures: dict[str, ClusterError] = {}
    for name in stale:
        try:
            removed = await cluster.delete(namespace, name)
        except ClusterError as exc:
            _logger.warning("Failed to delete stale ConfigMap %s/%s: %s", namespace, name, exc)
            failures[name] = exc
            continue
        if removed:
            _logger.info("Deleted stale ConfigMap %s/%s", namespace, name)
        deleted.append(name)

    if failures:
        raise ReapError(
            f"failed to delete {len(failures)} of {len(stale)} stale ConfigMaps in {namespace}: "
            + ", ".join(sorted(failures)),
            failures=failures,
            deleted=deleted,
        )
    return deleted
