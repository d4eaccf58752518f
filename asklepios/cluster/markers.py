"""Well-known markers and helpers for working with marker sets.

Two markers matter to the healing loop:
- EXEMPTION_MARKER: put on a member by an operator to opt it out of all
  automation. Only its presence is checked; Asklepios never writes it.
- OUT_OF_SERVICE_MARKER: added when a member is isolated, removed when it
  is restored. The platform evicts workloads from members carrying it.

The helpers never mutate their input and return new lists.
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import Iterable, Optional

from asklepios.cluster.models import Marker, MarkerEffect

CONTROL_PLANE_SELECTOR = "node-role.kubernetes.io/control-plane="

EXEMPTION_MARKER = Marker(
    key="node.kubernetes.io/asklepios",
    value="skip",
    effect=MarkerEffect.NO_EXECUTE,
)

OUT_OF_SERVICE_MARKER = Marker(
    key="node.kubernetes.io/out-of-service",
    value="nodeshutdown",
    effect=MarkerEffect.NO_EXECUTE,
)


def marker_exists(markers: Iterable[Marker], target: Marker) -> bool:
    """Check if a marker with the same key and effect as target is present."""
    return any(marker.matches(target) for marker in markers)


def has_exemption_marker(markers: Iterable[Marker]) -> bool:
    """Check for the exemption marker, matching by key and value."""
    return any(
        marker.key == EXEMPTION_MARKER.key and marker.value == EXEMPTION_MARKER.value
        for marker in markers
    )


def out_of_service_marker(now: Optional[float] = None) -> Marker:
    """Build the out-of-service marker stamped with the time it is added."""
    return replace(OUT_OF_SERVICE_MARKER, time_added=time.time() if now is None else now)


def add_or_update_marker(
    markers: Iterable[Marker],
    marker: Marker,
) -> tuple[list[Marker], bool]:
    """Add marker, replacing any existing marker with the same key and effect.

    Returns:
        (new marker list, whether anything changed)
    """
    result: list[Marker] = []
    updated = False
    found = False
    for existing in markers:
        if existing.matches(marker):
            found = True
            if existing.value == marker.value:
                result.append(existing)
                continue
            result.append(marker)
            updated = True
            continue
        result.append(existing)

    if not found:
        result.append(marker)
        updated = True
    return result, updated


def remove_marker(
    markers: Iterable[Marker],
    marker: Marker,
) -> tuple[list[Marker], bool]:
    """Remove every marker with the same key and effect, keeping all others.

    Returns:
        (new marker list, whether anything was removed)
    """
    current = list(markers)
    result = [existing for existing in current if not existing.matches(marker)]
    return result, len(result) != len(current)
