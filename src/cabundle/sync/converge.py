"""Create or update one owned ConfigMap per fetched bundle."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from cabundle.cluster import ClusterClient
from cabundle.exceptions import ClusterError, ConvergeError
from cabundle.models.bundle import BundleRecord
from cabundle.models.resource import TrustResource
from cabundle.models.results import ConvergeResult
from cabundle.sync.desired import desired_bundles

_logger = logging.getLogger(__name__)


async def converge(
    records: Iterable[BundleRecord],
    cluster: ClusterClient,
    namespace: str,
    owner_labels: Mapping[str, str],
) -> ConvergeResult:
    """Bring every fetched bundle's ConfigMap up to date.

    Missing resources are created, resources whose ``ca.crt`` differs
    byte-for-byte (or that lack the ownership labels) are updated in place,
    and matching resources are left alone, so a second run over the same
    records performs no writes.

    The first cluster failure stops the pass and raises
    :class:`ConvergeError`; records already written stay written.
    """
    result = ConvergeResult()
    for name, record in desired_bundles(records).items():
        try:
            existing = await cluster.get(namespace, name)
            if existing is None:
                _logger.info("Creating ConfigMap %s/%s for %s", namespace, name, record.logical_name)
                await cluster.create(
                    TrustResource.for_bundle(
                        name=name,
                        namespace=namespace,
                        owner_labels=owner_labels,
                        content=record.content,
                    )
                )
                result.created.append(name)
            elif existing.payload != record.content or not existing.is_owned_by(owner_labels):
                _logger.info("Updating ConfigMap %s/%s for %s", namespace, name, record.logical_name)
                await cluster.update(existing.with_payload(record.content, owner_labels))
                result.updated.append(name)
            else:
                _logger.debug("ConfigMap %s/%s is up to date", namespace, name)
                result.unchanged.append(name)
        except ClusterError as exc:
            raise ConvergeError(
                f"convergence stopped at {namespace}/{name} after {result.applied} writes: {exc}",
                result=result,
            ) from exc
    return result
