"""cabundle - Keep CA bundle ConfigMaps in sync with an HTTP bundle listing."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cabundle-operator")
except PackageNotFoundError:
    __version__ = "0+local"
from cabundle.cluster import ClusterClient, KubernetesClusterClient, label_selector
from cabundle.config import OperatorConfig
from cabundle.controller import BundleReconciler, Operator
from cabundle.exceptions import (
    CABundleConfigError,
    CABundleError,
    ClusterError,
    ClusterReadError,
    ClusterWriteError,
    ConfigMissingKeyError,
    ConvergeError,
    FetchError,
    ReapError,
)
from cabundle.fetcher import BundleSource, HttpBundleFetcher
from cabundle.models import (
    BundleRecord,
    ConfigSource,
    ConvergeResult,
    ReconcileResult,
    ReconcileStatus,
    TriggerEvent,
    TriggerSource,
    TrustResource,
)
from cabundle.naming import normalize
from cabundle.sync import converge, reap
from cabundle.trigger import PeriodicTrigger, TriggerQueue, TriggerState

__all__ = [
    "__version__",
    "BundleReconciler",
    "BundleRecord",
    "BundleSource",
    "CABundleConfigError",
    "CABundleError",
    "ClusterClient",
    "ClusterError",
    "ClusterReadError",
    "ClusterWriteError",
    "ConfigMissingKeyError",
    "ConfigSource",
    "ConvergeError",
    "ConvergeResult",
    "FetchError",
    "HttpBundleFetcher",
    "KubernetesClusterClient",
    "Operator",
    "OperatorConfig",
    "PeriodicTrigger",
    "ReapError",
    "ReconcileResult",
    "ReconcileStatus",
    "TriggerEvent",
    "TriggerQueue",
    "TriggerSource",
    "TriggerState",
    "TrustResource",
    "converge",
    "label_selector",
    "normalize",
    "reap",
]
