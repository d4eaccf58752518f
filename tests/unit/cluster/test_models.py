"""Tests for cluster model dataclasses."""

from asklepios.cluster.models import (
    Marker,
    MarkerEffect,
    Member,
    ReadinessCondition,
    ReadinessStatus,
)


class TestReadinessStatus:
    """Tests for ReadinessStatus enum."""

    def test_values_match_api_strings(self):
        assert {s.value for s in ReadinessStatus} == {"True", "False", "Unknown"}

    def test_parse_known(self):
        assert ReadinessStatus.parse("True") is ReadinessStatus.TRUE
        assert ReadinessStatus.parse("False") is ReadinessStatus.FALSE

    def test_parse_unknown_values(self):
        assert ReadinessStatus.parse("true") is ReadinessStatus.UNKNOWN
        assert ReadinessStatus.parse(None) is ReadinessStatus.UNKNOWN


class TestMarker:
    """Tests for Marker dataclass."""

    def test_matches_key_and_effect(self):
        a = Marker("k", "v1", MarkerEffect.NO_EXECUTE)
        b = Marker("k", "v2", MarkerEffect.NO_EXECUTE, time_added=5.0)
        assert a.matches(b)

    def test_effect_mismatch(self):
        assert not Marker("k", "v", MarkerEffect.NO_EXECUTE).matches(
            Marker("k", "v", MarkerEffect.NO_SCHEDULE)
        )

    def test_str(self):
        assert str(Marker("k", "v", MarkerEffect.NO_EXECUTE)) == "k=v:NoExecute"


class TestMember:
    """Tests for Member dataclass."""

    def test_ready_condition_found(self):
        ready = ReadinessCondition("Ready", ReadinessStatus.TRUE, 100.0)
        member = Member(
            name="cp-1",
            conditions=[ReadinessCondition("DiskPressure", ReadinessStatus.FALSE, 50.0), ready],
        )
        assert member.ready_condition is ready
        assert member.ready_condition.is_ready

    def test_ready_condition_missing(self):
        member = Member(name="cp-1")
        assert member.ready_condition is None

    def test_defaults(self):
        member = Member(name="cp-1")
        assert member.unschedulable is False
        assert member.taints == []
        assert member.resource_version is None

    def test_str(self):
        member = Member(
            name="cp-1",
            conditions=[ReadinessCondition("Ready", ReadinessStatus.FALSE, 1.0)],
            unschedulable=True,
        )
        assert str(member) == "cp-1 (Ready=False, unschedulable=True)"
