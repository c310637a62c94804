"""
Per-release stage chain: mappings -> merge -> libraries -> rename -> decompile.
"""
import logging
from typing import List

from ..core.exceptions import HistgenError
from ..core.models import ReleaseInfo, StageResult
from ..manifest.manifest_client import ManifestClient
from .context import RunContext
from .decompile import get_decompiled_jar
from .libraries import get_libraries
from .mappings import MappingTask
from .merge import MergeTask
from .rename import get_renamed_jar


class ReleasePipeline:
    """
    Regenerates the source archive of one release.

    Stage failures are reported as a fatal StageResult instead of an
    exception so the caller can tell them apart from skipped releases.
    """

    def __init__(self, context: RunContext, manifest_client: ManifestClient):
        self.context = context
        self.manifest_client = manifest_client
        self.mappings = MappingTask(context)
        self.merge = MergeTask(context)
        self.logger = logging.getLogger(__name__)

    async def filter_with_mappings(self, releases: List[ReleaseInfo]) -> List[ReleaseInfo]:
        """
        Keep only releases for which both client and server mappings exist.

        Args:
            releases: Candidate releases, oldest first

        Returns:
            Releases in the same order, without those lacking mappings
        """
        self.logger.info("Downloading version manifests")
        kept = []
        for release in releases:
            details = await self.manifest_client.fetch_details(release)
            if self.mappings.has_mappings(release, details):
                kept.append(release)
            else:
                self.logger.info(f"Skipping {release.id}: no mappings published")
        return kept

    async def generate(self, release: ReleaseInfo) -> StageResult:
        """
        Run every stage for a release.

        Returns:
            OK with the decompiled archive, SKIP when mappings are missing,
            or FATAL carrying the error that stopped the chain
        """
        cache = self.context.release_dir(release.id)
        cache.mkdir(parents=True, exist_ok=True)

        try:
            details = await self.manifest_client.fetch_details(release)

            mappings = await self.mappings.get_joined_mappings(release, details)
            if mappings is None:
                return StageResult.skip(f"no mappings for {release.id}")

            joined = await self.merge.get_joined_jar(details, mappings)
            libraries = await get_libraries(self.context, details)
            renamed = await get_renamed_jar(self.context, cache, joined, mappings, libraries)
            decompiled = await get_decompiled_jar(self.context, cache, renamed, libraries)
        except HistgenError as e:
            self.logger.error(f"  Generating {release.id} failed: {e}")
            return StageResult.fatal(str(e), error=e)

        return StageResult.ok(decompiled)
