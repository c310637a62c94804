"""
Extraction of the real server jar from a bundled server distribution.

Bundled servers carry a ``Bundler-Format`` manifest attribute and list the
embedded jar in ``META-INF/versions.list`` as ``sha256<TAB>id<TAB>path``.
"""
import logging
import zipfile
from pathlib import Path
from typing import Optional, Tuple

from ..cache.hash_function import HashFunction
from ..cache.runner import StageInputs
from ..core.exceptions import IntegrityError, StageError
from .context import RunContext
from .tools import BUNDLER


logger = logging.getLogger(__name__)

MANIFEST_ENTRY = "META-INF/MANIFEST.MF"
VERSIONS_LIST_ENTRY = "META-INF/versions.list"
FORMAT_ATTRIBUTE = "Bundler-Format"


def bundler_format(jar: Path) -> Optional[str]:
    """Return the bundle format version, or None for a plain jar"""
    with zipfile.ZipFile(jar) as zf:
        try:
            manifest = zf.read(MANIFEST_ENTRY).decode('utf-8', errors='replace')
        except KeyError:
            return None

    for line in manifest.splitlines():
        name, sep, value = line.partition(':')
        if sep and name.strip() == FORMAT_ATTRIBUTE:
            return value.strip()
    return None


def _bundled_entry(zf: zipfile.ZipFile) -> Tuple[str, str]:
    try:
        listing = zf.read(VERSIONS_LIST_ENTRY).decode('utf-8')
    except KeyError as e:
        raise StageError("extract server", f"bundle has no {VERSIONS_LIST_ENTRY}") from e

    for line in listing.splitlines():
        parts = line.strip().split('\t')
        if len(parts) == 3:
            return parts[0], f"META-INF/versions/{parts[2]}"
    raise StageError("extract server", f"{VERSIONS_LIST_ENTRY} is empty")


def extract_bundled_jar(bundle: Path, output: Path) -> None:
    with zipfile.ZipFile(bundle) as zf:
        sha256, entry = _bundled_entry(zf)
        data = zf.read(entry)

    actual = HashFunction.SHA256.hash_bytes(data)
    if actual != sha256.lower():
        raise IntegrityError(f"{bundle}!{entry}", sha256, actual)
    output.write_bytes(data)


async def get_extracted_server_jar(context: RunContext, cache: Path, server_jar: Path) -> Path:
    """Return the plain server jar, extracting it from a bundle if needed"""
    fmt = bundler_format(server_jar)
    if fmt is None:
        return server_jar  # Already a plain jar
    logger.debug(f"  Server jar is bundled (format {fmt})")

    inputs = (StageInputs()
              .dependency(BUNDLER, context.dependency_hashes)
              .file("server", server_jar))
    output = cache / "server-extracted.jar"

    async def extract():
        extract_bundled_jar(server_jar, output)

    return await context.runner.run("extract server", output, inputs, extract)
