"""
Layout of the resources shipped inside the histgen package.

Resolved once at startup and passed down, so components never probe the
filesystem to discover where they are running from.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .._version import __version__


@dataclass(frozen=True)
class ResourceLayout:
    root: Path

    @property
    def dependency_hashes(self) -> Path:
        return self.root / "dependency_hashes.txt"

    @property
    def gitattributes(self) -> Path:
        return self.root / "gitattributes"

    @property
    def gitignore(self) -> Path:
        return self.root / "gitignore"

    @property
    def scaffold_dir(self) -> Path:
        return self.root / "scaffold"

    def scaffold_files(self) -> List[Path]:
        """Scaffold files relative to ``scaffold_dir``, sorted"""
        if not self.scaffold_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.scaffold_dir)
            for p in self.scaffold_dir.rglob("*")
            if p.is_file()
        )

    @classmethod
    def from_package(cls) -> 'ResourceLayout':
        return cls(root=Path(__file__).resolve().parent.parent / "resources")


RESOURCE_LAYOUT = ResourceLayout.from_package()

# Recorded in every branch checkpoint; branches built by another engine
# version are rejected.
ENGINE_IDENTITY = f"histgen {__version__}"
