from .manifest_client import ManifestClient
from .version_selector import VersionSelector

__all__ = ['ManifestClient', 'VersionSelector']
