"""Desired state derived from one fetch."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from cabundle.models.bundle import BundleRecord
from cabundle.naming import normalize

_logger = logging.getLogger(__name__)


def desired_bundles(records: Iterable[BundleRecord]) -> dict[str, BundleRecord]:
    """Map resource names to the record that should back them.

    Insertion order follows fetch order. When two logical names normalize
    to the same resource name the later record wins and a warning is
    logged; applying both would rewrite the resource twice on every cycle.
    """
    desired: dict[str, BundleRecord] = {}
    for record in records:
        name = normalize(record.logical_name)
        previous = desired.pop(name, None)
        if previous is not None and previous.logical_name != record.logical_name:
            _logger.warning(
                "Bundles %r and %r both map to ConfigMap %s; using %r",
                previous.logical_name,
                record.logical_name,
                name,
                record.logical_name,
            )
        desired[name] = record
    return desired
