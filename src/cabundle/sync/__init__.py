"""Sync layer.

Level-triggered: each pass recomputes desired state from the fetched
bundles and the live cluster, carrying nothing over from earlier passes.
"""

from cabundle.sync.converge import converge
from cabundle.sync.desired import desired_bundles
from cabundle.sync.reap import reap

__all__ = ["converge", "desired_bundles", "reap"]
