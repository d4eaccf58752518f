"""Exemption check for members an operator has opted out of automation."""

from __future__ import annotations

import logging

from asklepios.cluster.client import NodeClient
from asklepios.cluster.markers import EXEMPTION_MARKER, has_exemption_marker
from asklepios.cluster.models import Member
from asklepios.utils.exceptions import ClusterAPIError

logger = logging.getLogger(__name__)


class SkipFilter:
    """Decides whether a member is exempt from all automation.

    The member is re-read before checking so that an exemption marker added
    after the cycle's listing is honored. A failed re-read is logged and
    treated as "not exempt": the member is still evaluated, it is never
    silently exempted.
    """

    def __init__(self, client: NodeClient):
        self._client = client

    def is_exempt(self, member: Member) -> bool:
        try:
            current = self._client.get_member(member.name)
        except ClusterAPIError as e:
            logger.warning(
                f"[SkipFilter] Could not check exemption for {member.name}, "
                f"evaluating it anyway: {e}"
            )
            return False

        if has_exemption_marker(current.taints):
            logger.info(
                f"[SkipFilter] Skip the node {member.name} (node has the skip taint "
                f"{EXEMPTION_MARKER.key}={EXEMPTION_MARKER.value})"
            )
            return True
        return False
