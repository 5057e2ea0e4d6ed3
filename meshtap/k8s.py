"""
Kubernetes resource kinds and the label keys the proxy attaches to peers.

Peer labels are keyed by canonical (singular, lowercase) resource kinds,
e.g. ``{'deployment': 'web', 'namespace': 'emojivoto', 'pod': 'web-5f4'}``.
"""

from __future__ import annotations

from collections.abc import Mapping

# ==============================================================================
# Canonical resource kinds
# ==============================================================================

AUTHORITY = 'authority'
DAEMONSET = 'daemonset'
DEPLOYMENT = 'deployment'
JOB = 'job'
NAMESPACE = 'namespace'
POD = 'pod'
REPLICATIONCONTROLLER = 'replicationcontroller'
REPLICASET = 'replicaset'
SERVICE = 'service'
STATEFULSET = 'statefulset'

# Peer label carrying the TLS identity status ("true", "no_identity", ...)
TLS_LABEL = 'tls'

DEFAULT_SHORT_NAMES: Mapping[str, str] = {
    AUTHORITY: 'au',
    DAEMONSET: 'ds',
    DEPLOYMENT: 'deploy',
    JOB: 'job',
    NAMESPACE: 'ns',
    POD: 'po',
    REPLICATIONCONTROLLER: 'rc',
    REPLICASET: 'rs',
    SERVICE: 'svc',
    STATEFULSET: 'sts',
}


def short_name(resource_kind: str, short_names: Mapping[str, str]) -> str:
    """Abbreviate a canonical kind, or return it unchanged when there is no entry."""
    return short_names.get(resource_kind) or resource_kind


def canonical_resource_kind(name: str, short_names: Mapping[str, str] = DEFAULT_SHORT_NAMES) -> str | None:
    """
    Resolve a user-friendly resource type to its canonical kind.

    Accepts the canonical form, its plural and its short name, in any case:
    ``deploy``, ``deployments`` and ``Deployment`` all give ``deployment``.

    Returns:
        The canonical kind, or None if the name is not a known resource type
    """
    wanted = name.strip().lower()
    for canonical, short in short_names.items():
        if wanted in (canonical, f'{canonical}s', short):
            return canonical
    return None
