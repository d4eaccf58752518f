"""Cluster access for the healing loop.

NodeClient is the capability the healing core calls to read control-plane
members and to change their scheduling state. KubernetesNodeClient
implements it on top of the official kubernetes client.

Every failure, whatever its origin (API error response, connection failure,
TLS error), is raised as ClusterAPIError so callers handle a single type.

Usage:
    from asklepios.cluster.client import KubernetesNodeClient

    client = KubernetesNodeClient.from_environment()
    for member in client.list_control_plane_members():
        print(member)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.config.config_exception import ConfigException

from asklepios.cluster.markers import CONTROL_PLANE_SELECTOR
from asklepios.cluster.models import (
    Marker,
    MarkerEffect,
    Member,
    ReadinessCondition,
    ReadinessStatus,
)
from asklepios.utils.exceptions import KUBE_API_ERRORS, ClusterAPIError, ConfigError

logger = logging.getLogger(__name__)


class NodeClient(ABC):
    """Interface to the platform's node API.

    Implementations must raise ClusterAPIError on any failure and must not
    retry internally; the reconciliation loop owns retry timing.
    """

    @abstractmethod
    def list_control_plane_members(self) -> list[Member]:
        """List all members carrying the control-plane role label."""
        ...

    @abstractmethod
    def get_member(self, name: str) -> Member:
        """Read the current state of one member."""
        ...

    @abstractmethod
    def set_unschedulable(self, name: str, unschedulable: bool) -> None:
        """Patch the member's scheduling-block flag."""
        ...

    @abstractmethod
    def replace_markers(
        self,
        name: str,
        markers: Sequence[Marker],
        resource_version: Optional[str] = None,
    ) -> None:
        """Replace the member's full marker set.

        When resource_version is given the write must fail if the member
        changed since it was read.
        """
        ...


# =============================================================================
# Kubernetes object conversion
# =============================================================================


def _epoch(value: Any) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return float(value)


def _rfc3339(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def marker_from_taint(taint: Any) -> Marker:
    """Convert a V1Taint into a Marker."""
    try:
        effect = MarkerEffect(taint.effect)
    except ValueError:
        logger.debug(
            f"Unknown taint effect {taint.effect!r} on {taint.key}, treating as NoSchedule"
        )
        effect = MarkerEffect.NO_SCHEDULE
    return Marker(
        key=taint.key,
        value=taint.value or "",
        effect=effect,
        time_added=_epoch(taint.time_added),
    )


def marker_to_taint(marker: Marker) -> dict[str, Any]:
    """Convert a Marker into the JSON form of a taint."""
    taint: dict[str, Any] = {"key": marker.key, "effect": marker.effect.value}
    if marker.value:
        taint["value"] = marker.value
    if marker.time_added is not None:
        taint["timeAdded"] = _rfc3339(marker.time_added)
    return taint


def member_from_node(node: Any) -> Member:
    """Convert a V1Node into a Member snapshot."""
    spec = node.spec
    status = node.status
    conditions = []
    for cond in (status.conditions if status and status.conditions else []):
        conditions.append(
            ReadinessCondition(
                type=cond.type,
                status=ReadinessStatus.parse(cond.status),
                last_transition_time=_epoch(cond.last_transition_time),
            )
        )
    taints = [marker_from_taint(t) for t in (spec.taints if spec and spec.taints else [])]
    return Member(
        name=node.metadata.name,
        conditions=conditions,
        unschedulable=bool(spec.unschedulable) if spec else False,
        taints=taints,
        resource_version=node.metadata.resource_version,
    )


# =============================================================================
# Kubernetes implementation
# =============================================================================


def load_core_api(kubeconfig: Optional[str] = None) -> k8s_client.CoreV1Api:
    """Build a CoreV1Api from in-cluster config or a kubeconfig file.

    Raises:
        ConfigError: If no usable cluster configuration is found
    """
    try:
        if kubeconfig:
            k8s_config.load_kube_config(config_file=kubeconfig)
            logger.debug(f"Loaded kubeconfig from {kubeconfig}")
        else:
            try:
                k8s_config.load_incluster_config()
                logger.debug("Loaded in-cluster configuration")
            except ConfigException:
                k8s_config.load_kube_config()
                logger.debug("Loaded default kubeconfig")
    except (ConfigException, OSError) as e:
        raise ConfigError(f"Could not load cluster configuration: {e}") from e
    return k8s_client.CoreV1Api()


class KubernetesNodeClient(NodeClient):
    """NodeClient backed by kubernetes.client.CoreV1Api.

    Mutations are JSON patches so that each write touches exactly the field
    it means to change.
    """

    def __init__(
        self,
        core_api: k8s_client.CoreV1Api,
        label_selector: str = CONTROL_PLANE_SELECTOR,
    ):
        self._core = core_api
        self.label_selector = label_selector

    @classmethod
    def from_environment(cls, kubeconfig: Optional[str] = None) -> KubernetesNodeClient:
        return cls(load_core_api(kubeconfig))

    def list_control_plane_members(self) -> list[Member]:
        try:
            nodes = self._core.list_node(label_selector=self.label_selector)
        except KUBE_API_ERRORS as e:
            raise ClusterAPIError.wrap(e, "list_nodes") from e
        members = [member_from_node(node) for node in nodes.items]
        logger.debug(f"Listed {len(members)} control-plane members")
        return members

    def get_member(self, name: str) -> Member:
        try:
            node = self._core.read_node(name)
        except KUBE_API_ERRORS as e:
            raise ClusterAPIError.wrap(e, "read_node", name) from e
        logger.debug(f"Got the node object for {name}")
        return member_from_node(node)

    def set_unschedulable(self, name: str, unschedulable: bool) -> None:
        body = [{"op": "add", "path": "/spec/unschedulable", "value": unschedulable}]
        try:
            self._core.patch_node(name, body)
        except KUBE_API_ERRORS as e:
            raise ClusterAPIError.wrap(e, "patch_unschedulable", name) from e

    def replace_markers(
        self,
        name: str,
        markers: Sequence[Marker],
        resource_version: Optional[str] = None,
    ) -> None:
        body: list[dict[str, Any]] = []
        if resource_version:
            body.append(
                {"op": "test", "path": "/metadata/resourceVersion", "value": resource_version}
            )
        body.append(
            {"op": "add", "path": "/spec/taints", "value": [marker_to_taint(m) for m in markers]}
        )
        try:
            self._core.patch_node(name, body)
        except KUBE_API_ERRORS as e:
            raise ClusterAPIError.wrap(e, "patch_taints", name) from e
