from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..cache.dependency_hashes import DependencyHashTable
from ..cache.runner import StageRunner
from ..config.global_config_loader import GlobalConfig
from ..net.http_client import HttpClient


@dataclass
class RunContext:
    """Everything a release pipeline needs, passed explicitly"""
    config: GlobalConfig
    cache_dir: Path
    dependency_hashes: DependencyHashTable
    runner: StageRunner
    http: HttpClient
    extra_mappings: Optional[Path] = None

    @property
    def libraries_dir(self) -> Path:
        return self.cache_dir / "libraries"

    def release_dir(self, release_id: str) -> Path:
        return self.cache_dir / release_id
