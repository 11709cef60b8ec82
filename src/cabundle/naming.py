"""Mapping from published bundle file names to ConfigMap names."""

from __future__ import annotations

import re

from cabundle._constants import BUNDLE_SUFFIXES

_SEPARATOR = "-"
_INVALID_RUN = re.compile(r"[^a-zA-Z0-9]+")


def has_bundle_suffix(name: str) -> bool:
    """Return whether *name* ends in a recognized bundle suffix."""
    return name.endswith(BUNDLE_SUFFIXES)


def strip_bundle_suffix(name: str) -> str:
    """Remove one recognized bundle suffix, if present."""
    for suffix in BUNDLE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def normalize(logical_name: str) -> str:
    """Return the resource identifier for *logical_name*.

    ``"My Root CA.pem"`` -> ``"my-root-ca"``. Runs of characters outside
    ``[a-zA-Z0-9]`` collapse into a single ``-``. Leading or trailing
    separators are kept.
    """
    return _INVALID_RUN.sub(_SEPARATOR, strip_bundle_suffix(logical_name)).lower()
