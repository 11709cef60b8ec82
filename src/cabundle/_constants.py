"""Internal constants shared across the package."""

USER_AGENT = "cabundle-operator"

#: Data key holding the bundle text in every owned ConfigMap.
CA_KEY = "ca.crt"

#: Data key in the trigger-config resource that names the listing URL.
BUNDLE_URL_KEY = "bundle_url"

#: File suffixes recognized as certificate bundles, checked in order.
BUNDLE_SUFFIXES: tuple[str, ...] = (".pem", ".crt")

OWNER_LABELS: dict[str, str] = {"app": "cabundle-operator"}

#: Name of the config resource the periodic trigger points the reconciler at.
DEFAULT_CONFIG_NAME = "periodic-cabundle-enqueue"

DEFAULT_INTERVAL_SECONDS: float = 5 * 60
DEFAULT_FETCH_TIMEOUT_SECONDS: float = 5 * 60
