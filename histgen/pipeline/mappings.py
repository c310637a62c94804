"""
Obfuscation mappings: retrieval, validation and merging.

Mappings use the ProGuard text format::

    net.example.Named -> a:
        int count -> b
        1:4:void run(java.lang.String) -> c
"""
import logging
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set

from ..cache.runner import StageInputs
from ..core.exceptions import ConsistencyError
from ..core.models import ReleaseDetails, ReleaseInfo
from .context import RunContext


_LINE_NUMBERS = re.compile(r"^\d+:\d+:")

SIDES = ("client", "server")


@dataclass
class MappedClass:
    named: str
    obfuscated: str
    fields: Set[str] = field(default_factory=set)
    methods: Set[str] = field(default_factory=set)


class MappingSet:
    """Parsed ProGuard mappings keyed by deobfuscated class name"""

    def __init__(self, classes: Dict[str, MappedClass]):
        self.classes = classes

    @classmethod
    def parse(cls, text: str) -> 'MappingSet':
        classes: Dict[str, MappedClass] = {}
        current: Optional[MappedClass] = None

        for raw in text.splitlines():
            if not raw.strip() or raw.lstrip().startswith('#'):
                continue

            if not raw[0].isspace():
                line = raw.strip()
                if not line.endswith(':') or ' -> ' not in line:
                    raise ConsistencyError(f"Malformed mapping class line: {line}")
                named, obfuscated = line[:-1].split(' -> ', 1)
                current = MappedClass(named=named, obfuscated=obfuscated)
                classes[named] = current
                continue

            if current is None:
                raise ConsistencyError(f"Mapping member outside of a class: {raw.strip()}")

            member = _LINE_NUMBERS.sub('', raw.strip())
            if '(' in member:
                current.methods.add(member)
            else:
                current.fields.add(member)

        return cls(classes)

    @classmethod
    def load(cls, path: Path) -> 'MappingSet':
        return cls.parse(Path(path).read_text(encoding='utf-8'))

    def __len__(self) -> int:
        return len(self.classes)


def is_superset(client: MappingSet, server: MappingSet) -> bool:
    """
    Test whether the client mappings contain every server mapping.

    If so the client mappings can be used for the joined artifact.
    """
    for named, server_cls in server.classes.items():
        client_cls = client.classes.get(named)
        if client_cls is None or client_cls.obfuscated != server_cls.obfuscated:
            return False
        if not server_cls.fields <= client_cls.fields:
            return False
        if not server_cls.methods <= client_cls.methods:
            return False
    return True


class MappingTask:
    """Produces the joined mapping file for a release"""

    JOINED_FILE_NAME = "joined_mappings.txt"

    def __init__(self, context: RunContext):
        self.context = context
        self.logger = logging.getLogger(__name__)

    def _extra_mapping(self, release: ReleaseInfo, side: str) -> Optional[Path]:
        if self.context.extra_mappings is None:
            return None
        path = self.context.extra_mappings / release.type / release.id / "maps" / f"{side}.txt"
        return path if path.exists() else None

    def has_mappings(self, release: ReleaseInfo, details: ReleaseDetails) -> bool:
        """Whether both mapping sides are obtainable for a release"""
        if all(self._extra_mapping(release, side) for side in SIDES):
            return True
        return all(f"{side}_mappings" in details.downloads for side in SIDES)

    async def _obtain(self, cache: Path, release: ReleaseInfo, details: ReleaseDetails, side: str) -> Optional[Path]:
        target = cache / f"{side}_mappings.txt"
        if target.exists():
            return target

        extra = self._extra_mapping(release, side)
        if extra is not None:
            shutil.copyfile(extra, target)
            return target

        download = details.downloads.get(f"{side}_mappings")
        if download is None:
            return None

        self.logger.info(f"  Downloading {side} mappings")
        return await self.context.http.download_file(target, download.url, download.sha1)

    async def get_joined_mappings(self, release: ReleaseInfo, details: ReleaseDetails) -> Optional[Path]:
        """
        Obtain validated joined mappings.

        Returns:
            Path to the joined mappings, or None when a side is unavailable

        Raises:
            ConsistencyError: If the client mappings are not a superset of the server mappings
        """
        cache = self.context.release_dir(release.id)

        client_path = await self._obtain(cache, release, details, "client")
        if client_path is None:
            self.logger.info("  Client mappings not found, skipping version")
            return None

        server_path = await self._obtain(cache, release, details, "server")
        if server_path is None:
            self.logger.info("  Server mappings not found, skipping version")
            return None

        inputs = (StageInputs()
                  .file("client", client_path)
                  .file("server", server_path))
        output = cache / self.JOINED_FILE_NAME

        async def merge():
            client = MappingSet.load(client_path)
            server = MappingSet.load(server_path)
            if not is_superset(client, server):
                raise ConsistencyError(
                    f"Client mappings for {release.id} are not a strict superset of the server mappings."
                )
            shutil.copyfile(client_path, output)

        return await self.context.runner.run("mappings", output, inputs, merge)
