"""
Resolves which releases a run covers.
"""
import logging
from typing import List, Optional

from ..core.enums import ReleaseType
from ..core.exceptions import ConsistencyError
from ..core.models import BranchSpec, ReleaseInfo, VersionManifest


class VersionSelector:
    """Turns manifest data plus a BranchSpec into an oldest-first release list"""

    def __init__(self, manifest: VersionManifest):
        self.manifest = manifest
        self.logger = logging.getLogger(__name__)

    def _allowed(self, info: ReleaseInfo, spec: BranchSpec) -> bool:
        return not spec.releases_only or info.type == ReleaseType.RELEASE.value

    def latest(self, spec: BranchSpec) -> str:
        """
        Determine the default target version.

        Releases-only branches target the latest release; others target
        whichever of latest release and latest snapshot is newer.
        """
        latest = self.manifest.latest
        if latest is None:
            raise ConsistencyError(
                "Failed to determine latest version, manifest does not contain latest entries"
            )

        if spec.releases_only:
            if latest.release is None:
                raise ConsistencyError("Manifest does not name a latest release")
            return latest.release

        release = self.manifest.find(latest.release) if latest.release else None
        snapshot = self.manifest.find(latest.snapshot) if latest.snapshot else None
        if release is None and snapshot is None:
            raise ConsistencyError(
                f"Failed to find latest, manifest specified {latest.release} and "
                f"{latest.snapshot} and both are missing"
            )
        if release is None:
            return snapshot.id
        if snapshot is None:
            return release.id
        return snapshot.id if snapshot.release_time > release.release_time else release.id

    def oldest(self, spec: BranchSpec) -> str:
        for info in reversed(self.manifest.versions):
            if self._allowed(info, spec):
                return info.id
        raise ConsistencyError("Manifest contains no versions matching the branch type")

    def select(self, spec: BranchSpec) -> List[ReleaseInfo]:
        """
        Resolve the releases to generate.

        Args:
            spec: Branch specification

        Returns:
            Releases ordered oldest first

        Raises:
            ConsistencyError: If bounds or explicit versions are not in the manifest
        """
        versions = self.manifest.versions

        if spec.versions:
            wanted = set(spec.versions)
            known = {info.id for info in versions}
            missing = sorted(wanted - known)
            if missing:
                raise ConsistencyError(f"Versions not found in manifest: {', '.join(missing)}")
            selected = [info for info in versions if info.id in wanted]
            selected.reverse()
            return selected

        end = spec.end or self.latest(spec)
        start = spec.start or self.oldest(spec)

        start_idx: Optional[int] = None
        end_idx: Optional[int] = None
        for i, info in enumerate(versions):
            if info.id == end:
                end_idx = i
            if info.id == start:
                start_idx = i
                break

        if start_idx is None or end_idx is None:
            raise ConsistencyError(
                f"Could not find start ({start}) and/or end ({end}) version in "
                "version manifest (or they were out of order)"
            )

        include = set(spec.include_versions)
        exclude = set(spec.exclude_versions)
        selected = [
            info for info in versions[end_idx:start_idx + 1]
            if (self._allowed(info, spec) or info.id in include) and info.id not in exclude
        ]

        # Included versions outside the bounds are still honoured
        chosen = {info.id for info in selected}
        extra = [
            info for info in versions
            if info.id in include and info.id not in chosen and info.id not in exclude
        ]
        if extra:
            selected = [info for info in versions if info in selected or info in extra]

        unknown = include - {info.id for info in versions}
        if unknown:
            raise ConsistencyError(f"Included versions not found in manifest: {', '.join(sorted(unknown))}")

        selected.reverse()
        self.logger.info(f"Selected {len(selected)} versions from {start} to {end}")
        return selected
