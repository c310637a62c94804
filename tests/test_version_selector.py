"""
Test cases for version selection from the manifest.
"""

import pytest
from histgen.core.enums import BranchType
from histgen.core.exceptions import ConsistencyError
from histgen.core.models import BranchSpec, VersionManifest
from histgen.manifest.version_selector import VersionSelector


def manifest_data(latest_release="1.2", latest_snapshot="24w01a"):
    """Manifest document, newest entry first"""
    entries = [
        ("24w01a", "snapshot", "2024-01-03T10:00:00+00:00"),
        ("1.2", "release", "2023-06-01T10:00:00+00:00"),
        ("1.2-pre1", "snapshot", "2023-05-20T10:00:00+00:00"),
        ("1.1", "release", "2022-06-01T10:00:00+00:00"),
        ("1.1-pre1", "snapshot", "2022-05-20T10:00:00+00:00"),
        ("1.0", "release", "2021-06-01T10:00:00Z"),
        ("b1.0", "old_beta", "2011-01-01T00:00:00Z"),
    ]
    return {
        "latest": {"release": latest_release, "snapshot": latest_snapshot},
        "versions": [
            {
                "id": version_id,
                "type": version_type,
                "url": f"https://example.invalid/{version_id}.json",
                "time": released,
                "releaseTime": released,
                "sha1": "0" * 40,
            }
            for version_id, version_type, released in entries
        ],
    }


@pytest.fixture
def selector():
    return VersionSelector(VersionManifest.from_dict(manifest_data()))


def ids(releases):
    return [r.id for r in releases]


class TestDefaultBounds:
    """Bounds default to the manifest extremes"""

    def test_all_versions_oldest_first(self, selector):
        selected = selector.select(BranchSpec(type=BranchType.ALL))

        assert ids(selected) == ["b1.0", "1.0", "1.1-pre1", "1.1", "1.2-pre1", "1.2", "24w01a"]

    def test_releases_only(self, selector):
        selected = selector.select(BranchSpec(type=BranchType.RELEASE))

        assert ids(selected) == ["1.0", "1.1", "1.2"]

    def test_latest_prefers_newer_of_release_and_snapshot(self):
        older_snapshot = VersionSelector(VersionManifest.from_dict(manifest_data(latest_snapshot="1.2-pre1")))

        assert older_snapshot.latest(BranchSpec(type=BranchType.ALL)) == "1.2"

    def test_latest_without_latest_entries(self):
        data = manifest_data()
        del data["latest"]

        with pytest.raises(ConsistencyError):
            VersionSelector(VersionManifest.from_dict(data)).select(BranchSpec())


class TestExplicitBounds:

    def test_start_and_end(self, selector):
        selected = selector.select(BranchSpec(type=BranchType.ALL, start="1.1-pre1", end="1.2"))

        assert ids(selected) == ["1.1-pre1", "1.1", "1.2-pre1", "1.2"]

    def test_unknown_start(self, selector):
        with pytest.raises(ConsistencyError):
            selector.select(BranchSpec(start="0.9"))

    def test_out_of_order_bounds(self, selector):
        with pytest.raises(ConsistencyError):
            selector.select(BranchSpec(start="1.2", end="1.0"))

    def test_releases_only_with_snapshot_start(self, selector):
        selected = selector.select(BranchSpec(type=BranchType.RELEASE, start="1.1-pre1", end="1.2"))

        assert ids(selected) == ["1.1", "1.2"]


class TestIncludeExclude:

    def test_exclude_removes_versions(self, selector):
        spec = BranchSpec(type=BranchType.RELEASE, exclude_versions=["1.1"])

        assert ids(selector.select(spec)) == ["1.0", "1.2"]

    def test_include_adds_other_types(self, selector):
        spec = BranchSpec(type=BranchType.RELEASE, include_versions=["1.2-pre1"])

        assert ids(selector.select(spec)) == ["1.0", "1.1", "1.2-pre1", "1.2"]

    def test_include_outside_bounds(self, selector):
        spec = BranchSpec(type=BranchType.RELEASE, start="1.1", end="1.2", include_versions=["b1.0"])

        assert ids(selector.select(spec)) == ["b1.0", "1.1", "1.2"]

    def test_unknown_include(self, selector):
        with pytest.raises(ConsistencyError):
            selector.select(BranchSpec(include_versions=["9.9"]))


class TestExplicitVersions:

    def test_versions_in_manifest_order(self, selector):
        spec = BranchSpec(versions=["1.2", "1.0", "1.1-pre1"])

        assert ids(selector.select(spec)) == ["1.0", "1.1-pre1", "1.2"]

    def test_unknown_version(self, selector):
        with pytest.raises(ConsistencyError):
            selector.select(BranchSpec(versions=["1.0", "7.0"]))
