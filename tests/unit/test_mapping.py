"""
Unit Tests for Status and Permission Mapping

Tests the build status -> commit state table and the access level ->
capability table.
"""

import pytest

from models.platform import BuildStatus, CommitState, Permissions
from utils.mapping import map_access_level, map_build_status


class TestMapBuildStatus:
    """Test map_build_status()."""

    @pytest.mark.parametrize(
        "status,state,description",
        [
            (BuildStatus.SUCCESS, CommitState.SUCCESS, "Everything looks good!"),
            (BuildStatus.FAILURE, CommitState.FAILURE, "Did not work as expected."),
            (BuildStatus.ABORTED, CommitState.FAILURE, "Aborted mid-flight"),
            (BuildStatus.RUNNING, CommitState.PENDING, "Testing your code..."),
            (BuildStatus.QUEUED, CommitState.PENDING, "Looking for a place to park..."),
        ],
    )
    def test_known_statuses(self, status, state, description):
        """GIVEN a known build status WHEN mapping THEN the table entry is returned."""
        result = map_build_status(status)

        assert result.state == state
        assert result.description == description

    def test_accepts_plain_strings(self):
        """GIVEN the status as a plain string WHEN mapping THEN it maps like the enum."""
        assert map_build_status("RUNNING").state == CommitState.PENDING
        assert map_build_status("success").state == CommitState.SUCCESS

    @pytest.mark.parametrize("status", ["UNSTABLE", "", "BLOCKED", None, 42])
    def test_unknown_status_is_failure(self, status):
        """GIVEN an unknown status WHEN mapping THEN state is failure, never success."""
        result = map_build_status(status)

        assert result.state == CommitState.FAILURE
        assert result.state != CommitState.SUCCESS


class TestMapAccessLevel:
    """Test map_access_level()."""

    @pytest.mark.parametrize(
        "level,expected",
        [
            (50, Permissions(admin=True, push=True, pull=True)),  # Owner
            (40, Permissions(admin=True, push=True, pull=True)),  # Maintainer
            (30, Permissions(admin=False, push=True, pull=True)),  # Developer
            (20, Permissions(admin=False, push=False, pull=True)),  # Reporter
            (10, Permissions(admin=False, push=False, pull=False)),  # Guest
            (0, Permissions(admin=False, push=False, pull=False)),
        ],
    )
    def test_tiers(self, level, expected):
        """GIVEN a provider access level WHEN mapping THEN the cumulative tier is returned."""
        assert map_access_level(level) == expected

    def test_missing_level_grants_nothing(self):
        """GIVEN no access level WHEN mapping THEN nothing is granted."""
        assert map_access_level(None) == Permissions()

    def test_capabilities_are_cumulative(self):
        """GIVEN any level WHEN mapping THEN admin implies push and push implies pull."""
        for level in range(0, 61):
            permissions = map_access_level(level)
            if permissions.admin:
                assert permissions.push and permissions.pull
            if permissions.push:
                assert permissions.pull

    def test_monotonic(self):
        """GIVEN levels a < b WHEN mapping THEN capabilities of a are a subset of those of b."""
        levels = list(range(0, 61))
        for a in levels:
            for b in levels:
                if a < b:
                    assert map_access_level(a).issubset(map_access_level(b)), (a, b)
