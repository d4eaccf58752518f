"""Cluster model and API access for control-plane members.

Key components:
- Member, Marker, ReadinessCondition: Per-cycle snapshots of nodes
- EXEMPTION_MARKER, OUT_OF_SERVICE_MARKER: Markers the healing loop reads/writes
- NodeClient: Interface the healing core calls
- KubernetesNodeClient: NodeClient backed by the kubernetes client
"""

from asklepios.cluster.client import KubernetesNodeClient, NodeClient
from asklepios.cluster.markers import (
    CONTROL_PLANE_SELECTOR,
    EXEMPTION_MARKER,
    OUT_OF_SERVICE_MARKER,
    has_exemption_marker,
    marker_exists,
)
from asklepios.cluster.models import (
    Marker,
    MarkerEffect,
    Member,
    ReadinessCondition,
    ReadinessStatus,
)

__all__ = [
    # Models
    "Marker",
    "MarkerEffect",
    "Member",
    "ReadinessCondition",
    "ReadinessStatus",
    # Markers
    "CONTROL_PLANE_SELECTOR",
    "EXEMPTION_MARKER",
    "OUT_OF_SERVICE_MARKER",
    "has_exemption_marker",
    "marker_exists",
    # Clients
    "NodeClient",
    "KubernetesNodeClient",
]
