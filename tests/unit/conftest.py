"""Shared pytest fixtures for Asklepios unit tests.

Provides an in-memory NodeClient and a factory for member snapshots.
"""

from __future__ import annotations

import copy
from typing import Optional, Sequence

import pytest

from asklepios.cluster.client import NodeClient
from asklepios.cluster.models import (
    Marker,
    Member,
    ReadinessCondition,
    ReadinessStatus,
)
from asklepios.utils.exceptions import ClusterAPIError

# Fixed "now" used across tests (2024-06-01T00:00:00Z)
NOW = 1717200000.0


# =============================================================================
# FAKE CLUSTER
# =============================================================================


class FakeNodeClient(NodeClient):
    """NodeClient backed by a dict of members.

    Every call is recorded in `calls` as (operation, name, value). Only
    set_unschedulable and replace_markers mutate state; `mutations` lists
    just those calls.
    """

    def __init__(self, members: Sequence[Member] = ()):
        self.members: dict[str, Member] = {m.name: copy.deepcopy(m) for m in members}
        self.calls: list[tuple[str, Optional[str], object]] = []
        self.list_error: Optional[ClusterAPIError] = None
        self.get_errors: dict[str, ClusterAPIError] = {}
        self.patch_errors: dict[str, ClusterAPIError] = {}
        self._version = 0

    def add(self, member: Member) -> None:
        self.members[member.name] = copy.deepcopy(member)

    @property
    def mutations(self) -> list[tuple[str, Optional[str], object]]:
        return [c for c in self.calls if c[0] in ("set_unschedulable", "replace_markers")]

    def _bump(self, member: Member) -> None:
        self._version += 1
        member.resource_version = str(self._version)

    def list_control_plane_members(self) -> list[Member]:
        self.calls.append(("list", None, None))
        if self.list_error is not None:
            raise self.list_error
        return [copy.deepcopy(m) for m in self.members.values()]

    def get_member(self, name: str) -> Member:
        self.calls.append(("get_member", name, None))
        if name in self.get_errors:
            raise self.get_errors[name]
        if name not in self.members:
            raise ClusterAPIError(f"read_node {name} failed: HTTP 404", "read_node", name, 404)
        return copy.deepcopy(self.members[name])

    def set_unschedulable(self, name: str, unschedulable: bool) -> None:
        self.calls.append(("set_unschedulable", name, unschedulable))
        if name in self.patch_errors:
            raise self.patch_errors[name]
        member = self.members[name]
        member.unschedulable = unschedulable
        self._bump(member)

    def replace_markers(
        self,
        name: str,
        markers: Sequence[Marker],
        resource_version: Optional[str] = None,
    ) -> None:
        self.calls.append(("replace_markers", name, list(markers)))
        if name in self.patch_errors:
            raise self.patch_errors[name]
        member = self.members[name]
        if resource_version is not None and resource_version != member.resource_version:
            raise ClusterAPIError(f"patch_taints {name} failed: HTTP 409", "patch_taints", name, 409)
        member.taints = list(markers)
        self._bump(member)


# =============================================================================
# FIXTURES
# =============================================================================


def make_member(
    name: str = "cp-1",
    status: str = "False",
    transitioned_ago: float = 70.0,
    now: float = NOW,
    unschedulable: bool = False,
    taints: Sequence[Marker] = (),
    with_ready: bool = True,
) -> Member:
    """Build a member whose Ready condition changed `transitioned_ago` seconds before now."""
    conditions = [
        ReadinessCondition("MemoryPressure", ReadinessStatus.FALSE, now - 10000),
    ]
    if with_ready:
        conditions.append(
            ReadinessCondition("Ready", ReadinessStatus.parse(status), now - transitioned_ago)
        )
    return Member(
        name=name,
        conditions=conditions,
        unschedulable=unschedulable,
        taints=list(taints),
        resource_version="0",
    )


@pytest.fixture
def member_factory():
    """Provide the make_member factory."""
    return make_member


@pytest.fixture
def fake_client():
    """Provide an empty FakeNodeClient."""
    return FakeNodeClient()


@pytest.fixture
def fixed_clock():
    """Provide a clock frozen at NOW."""
    return lambda: NOW
