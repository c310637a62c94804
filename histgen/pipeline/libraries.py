"""
Library artifacts referenced by a release.
"""
import logging
from pathlib import Path
from typing import List, Tuple

from ..cache.hash_function import HashFunction
from ..core.models import ReleaseDetails
from .context import RunContext


logger = logging.getLogger(__name__)


async def get_libraries(context: RunContext, details: ReleaseDetails) -> List[Path]:
    """
    Download every library artifact of a release into the shared library cache.

    Returns:
        Artifact paths in the order the release lists them
    """
    libs_dir = context.libraries_dir
    paths = []
    for library in details.libraries:
        artifact = library.artifact
        if artifact is None or artifact.path is None:
            continue

        target = libs_dir / artifact.path
        if target.exists() and artifact.sha1 is not None:
            if HashFunction.SHA1.hash_file(target) != artifact.sha1.lower():
                logger.warning(f"  Cached library {artifact.path} does not match its hash, downloading again")
                target.unlink()
        if not target.exists():
            await context.http.download_file(target, artifact.url, artifact.sha1)
        paths.append(target)

    logger.debug(f"  {len(paths)} libraries referenced by {details.id}")
    return paths


def library_keys(libs_dir: Path, libraries: List[Path]) -> List[Tuple[str, Path]]:
    """Fingerprint keys for libraries, relative to the library cache so relocation keeps them stable"""
    return [(lib.relative_to(libs_dir).as_posix(), lib) for lib in libraries]


def write_libraries_cfg(target: Path, libraries: List[Path]) -> Path:
    """Write the ``-e=<path>`` library listing consumed by the rename and decompile tools"""
    target.write_text("\n".join(f"-e={lib}" for lib in libraries), encoding='utf-8')
    return target
