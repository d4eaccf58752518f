"""Tests for KubernetesNodeClient and Kubernetes object conversion.

CoreV1Api is replaced with a MagicMock; node objects are real kubernetes
client models.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
import urllib3
from kubernetes import client as k8s
from kubernetes.client.exceptions import ApiException
from kubernetes.config.config_exception import ConfigException

from asklepios.cluster.client import (
    KubernetesNodeClient,
    NodeClient,
    load_core_api,
    marker_from_taint,
    marker_to_taint,
    member_from_node,
)
from asklepios.cluster.markers import CONTROL_PLANE_SELECTOR, OUT_OF_SERVICE_MARKER
from asklepios.cluster.models import Marker, MarkerEffect, ReadinessStatus
from asklepios.utils.exceptions import ClusterAPIError, ConfigError

TRANSITION = datetime(2024, 6, 1, 0, 0, 0, tzinfo=timezone.utc)


def make_node(
    name: str = "cp-1",
    ready: str = "False",
    unschedulable=None,
    taints=None,
    conditions=True,
) -> k8s.V1Node:
    status = None
    if conditions:
        status = k8s.V1NodeStatus(
            conditions=[
                k8s.V1NodeCondition(
                    type="MemoryPressure", status="False", last_transition_time=TRANSITION
                ),
                k8s.V1NodeCondition(type="Ready", status=ready, last_transition_time=TRANSITION),
            ]
        )
    return k8s.V1Node(
        metadata=k8s.V1ObjectMeta(name=name, resource_version="42"),
        spec=k8s.V1NodeSpec(unschedulable=unschedulable, taints=taints),
        status=status,
    )


class TestConversion:
    """Tests for V1Node -> Member conversion."""

    def test_member_from_node(self):
        node = make_node(
            unschedulable=True,
            taints=[k8s.V1Taint(key="dedicated", value="etcd", effect="NoSchedule")],
        )

        member = member_from_node(node)

        assert member.name == "cp-1"
        assert member.resource_version == "42"
        assert member.unschedulable is True
        assert member.ready_condition.status is ReadinessStatus.FALSE
        assert member.ready_condition.last_transition_time == TRANSITION.timestamp()
        assert member.taints == [Marker("dedicated", "etcd", MarkerEffect.NO_SCHEDULE)]

    def test_unschedulable_none_means_schedulable(self):
        assert member_from_node(make_node(unschedulable=None)).unschedulable is False

    def test_missing_transition_time_kept_as_none(self):
        node = make_node()
        node.status.conditions[1].last_transition_time = None

        member = member_from_node(node)

        assert member.ready_condition.status is ReadinessStatus.FALSE
        assert member.ready_condition.last_transition_time is None

    def test_node_without_status(self):
        member = member_from_node(make_node(conditions=False))
        assert member.conditions == []
        assert member.ready_condition is None

    def test_taint_with_time_added(self):
        taint = k8s.V1Taint(
            key=OUT_OF_SERVICE_MARKER.key,
            value="nodeshutdown",
            effect="NoExecute",
            time_added=TRANSITION,
        )

        marker = marker_from_taint(taint)

        assert marker.matches(OUT_OF_SERVICE_MARKER)
        assert marker.time_added == TRANSITION.timestamp()

    def test_naive_datetime_treated_as_utc(self):
        taint = k8s.V1Taint(key="k", effect="NoExecute", time_added=datetime(2024, 6, 1))
        assert marker_from_taint(taint).time_added == TRANSITION.timestamp()

    def test_marker_to_taint(self):
        marker = Marker(OUT_OF_SERVICE_MARKER.key, "nodeshutdown", MarkerEffect.NO_EXECUTE,
                        TRANSITION.timestamp())

        assert marker_to_taint(marker) == {
            "key": "node.kubernetes.io/out-of-service",
            "value": "nodeshutdown",
            "effect": "NoExecute",
            "timeAdded": "2024-06-01T00:00:00Z",
        }

    def test_marker_to_taint_minimal(self):
        assert marker_to_taint(Marker("k", "", MarkerEffect.NO_SCHEDULE)) == {
            "key": "k",
            "effect": "NoSchedule",
        }


class TestKubernetesNodeClient:
    """Tests for KubernetesNodeClient API calls."""

    def _client(self):
        core = MagicMock()
        return KubernetesNodeClient(core), core

    def test_is_node_client(self):
        client, _ = self._client()
        assert isinstance(client, NodeClient)

    def test_list_uses_control_plane_selector(self):
        client, core = self._client()
        core.list_node.return_value = k8s.V1NodeList(items=[make_node("a"), make_node("b")])

        members = client.list_control_plane_members()

        core.list_node.assert_called_once_with(label_selector=CONTROL_PLANE_SELECTOR)
        assert [m.name for m in members] == ["a", "b"]

    def test_list_failure_wrapped(self):
        client, core = self._client()
        core.list_node.side_effect = ApiException(status=503, reason="Service Unavailable")

        with pytest.raises(ClusterAPIError) as exc_info:
            client.list_control_plane_members()

        assert exc_info.value.status == 503
        assert exc_info.value.operation == "list_nodes"

    def test_connection_failure_wrapped(self):
        client, core = self._client()
        core.list_node.side_effect = urllib3.exceptions.MaxRetryError(None, "/api/v1/nodes")

        with pytest.raises(ClusterAPIError):
            client.list_control_plane_members()

    def test_get_member(self):
        client, core = self._client()
        core.read_node.return_value = make_node("cp-2")

        member = client.get_member("cp-2")

        core.read_node.assert_called_once_with("cp-2")
        assert member.name == "cp-2"

    def test_get_member_not_found(self):
        client, core = self._client()
        core.read_node.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(ClusterAPIError) as exc_info:
            client.get_member("gone")

        assert exc_info.value.not_found
        assert exc_info.value.name == "gone"

    def test_set_unschedulable_patches_single_field(self):
        client, core = self._client()

        client.set_unschedulable("cp-1", True)

        core.patch_node.assert_called_once_with(
            "cp-1", [{"op": "add", "path": "/spec/unschedulable", "value": True}]
        )

    def test_set_unschedulable_failure(self):
        client, core = self._client()
        core.patch_node.side_effect = ApiException(status=500, reason="Internal Server Error")

        with pytest.raises(ClusterAPIError, match="patch_unschedulable cp-1"):
            client.set_unschedulable("cp-1", False)

    def test_replace_markers_with_resource_version(self):
        client, core = self._client()
        marker = Marker("dedicated", "etcd", MarkerEffect.NO_SCHEDULE)

        client.replace_markers("cp-1", [marker], resource_version="42")

        name, body = core.patch_node.call_args[0]
        assert name == "cp-1"
        assert body == [
            {"op": "test", "path": "/metadata/resourceVersion", "value": "42"},
            {
                "op": "add",
                "path": "/spec/taints",
                "value": [{"key": "dedicated", "value": "etcd", "effect": "NoSchedule"}],
            },
        ]

    def test_replace_markers_empty_list(self):
        client, core = self._client()

        client.replace_markers("cp-1", [])

        _, body = core.patch_node.call_args[0]
        assert body == [{"op": "add", "path": "/spec/taints", "value": []}]

    def test_replace_markers_conflict(self):
        client, core = self._client()
        core.patch_node.side_effect = ApiException(status=409, reason="Conflict")

        with pytest.raises(ClusterAPIError) as exc_info:
            client.replace_markers("cp-1", [], resource_version="1")

        assert exc_info.value.conflict


class TestLoadCoreApi:
    """Tests for load_core_api()."""

    def test_prefers_in_cluster(self):
        with patch("asklepios.cluster.client.k8s_config") as cfg:
            load_core_api()
        cfg.load_incluster_config.assert_called_once()
        cfg.load_kube_config.assert_not_called()

    def test_falls_back_to_kubeconfig(self):
        with patch("asklepios.cluster.client.k8s_config") as cfg:
            cfg.load_incluster_config.side_effect = ConfigException("not in cluster")
            load_core_api()
        cfg.load_kube_config.assert_called_once_with()

    def test_explicit_kubeconfig(self):
        with patch("asklepios.cluster.client.k8s_config") as cfg:
            load_core_api("/tmp/kubeconfig")
        cfg.load_kube_config.assert_called_once_with(config_file="/tmp/kubeconfig")
        cfg.load_incluster_config.assert_not_called()

    def test_no_configuration_is_config_error(self):
        with patch("asklepios.cluster.client.k8s_config") as cfg:
            cfg.load_incluster_config.side_effect = ConfigException("not in cluster")
            cfg.load_kube_config.side_effect = ConfigException("no kubeconfig")
            with pytest.raises(ConfigError, match="no kubeconfig"):
                load_core_api()
