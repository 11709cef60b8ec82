"""Data models for bundles, cluster resources and cycle outcomes."""

from cabundle.models.bundle import BundleRecord
from cabundle.models.resource import ConfigSource, TrustResource
from cabundle.models.results import ConvergeResult, ReconcileResult, ReconcileStatus
from cabundle.models.trigger import TriggerEvent, TriggerSource

__all__ = [
    "BundleRecord",
    "ConfigSource",
    "ConvergeResult",
    "ReconcileResult",
    "ReconcileStatus",
    "TriggerEvent",
    "TriggerSource",
    "TrustResource",
]
