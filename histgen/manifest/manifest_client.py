"""
Retrieval of the version manifest and per-release detail documents.
"""
import json
import logging
from pathlib import Path

from ..cache.hash_function import HashFunction
from ..core.exceptions import ConsistencyError
from ..core.models import ReleaseDetails, ReleaseInfo, VersionManifest
from ..net.http_client import HttpClient


class ManifestClient:
    """Fetches manifest data, caching release details per version"""

    DETAILS_FILE_NAME = "version.json"

    def __init__(self, http: HttpClient, manifest_url: str, cache_dir: Path):
        self.http = http
        self.manifest_url = manifest_url
        self.cache_dir = Path(cache_dir)
        self.logger = logging.getLogger(__name__)

    async def fetch_manifest(self) -> VersionManifest:
        """Download the manifest; it is never cached because it changes with every release"""
        data = await self.http.get_json(self.manifest_url)
        if not isinstance(data, dict) or data.get('versions') is None:
            raise ConsistencyError("Failed to find versions, manifest missing versions listing")

        manifest = VersionManifest.from_dict(data)
        self.logger.info(f"Manifest lists {len(manifest.versions)} versions")
        return manifest

    def details_path(self, release: ReleaseInfo) -> Path:
        return self.cache_dir / release.id / self.DETAILS_FILE_NAME

    async def fetch_details(self, release: ReleaseInfo) -> ReleaseDetails:
        """
        Load the release's detail document, downloading it when missing or stale.

        Args:
            release: Manifest entry

        Returns:
            Parsed ReleaseDetails
        """
        path = self.details_path(release)
        stale = not path.exists()
        if not stale and release.sha1:
            stale = HashFunction.SHA1.hash_file(path) != release.sha1

        if stale:
            await self.http.download_file(path, release.url, release.sha1)

        return self.load_details(path)

    @staticmethod
    def load_details(path: Path) -> ReleaseDetails:
        with open(path, 'r', encoding='utf-8') as f:
            return ReleaseDetails.from_dict(json.load(f))
