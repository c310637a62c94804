"""
Cache-aware execution of pipeline stages.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple, Union

from ..core.exceptions import HistgenError, StageError
from .dependency_hashes import DependencyHashTable
from .record import CacheRecord, KeyFilter


StageAction = Callable[[], Awaitable[None]]

SIDECAR_SUFFIX = ".cache"


def sidecar_path(output: Path) -> Path:
    """Path of the cache record kept beside a stage artifact"""
    return output.with_name(output.name + SIDECAR_SUFFIX)


class StageInputs:
    """
    Declared inputs of a stage, in the order they are fingerprinted.

    Each entry becomes one key of the stage's cache record. Dynamic inputs
    such as a variable list of library artifacts are added with ``files``,
    keyed by a stable relative identifier rather than an absolute path.
    """

    def __init__(self):
        self._entries: List[Tuple[str, str, object]] = []

    def string(self, key: str, value: str) -> 'StageInputs':
        self._entries.append(('string', key, value))
        return self

    def file(self, key: str, path: Union[str, Path]) -> 'StageInputs':
        self._entries.append(('file', key, Path(path)))
        return self

    def dependency(self, key: str, table: DependencyHashTable) -> 'StageInputs':
        self._entries.append(('dependency', key, table))
        return self

    def files(self, pairs: Iterable[Tuple[str, Union[str, Path]]]) -> 'StageInputs':
        for key, path in pairs:
            self.file(key, path)
        return self

    def keys(self) -> List[str]:
        return [key for _, key, _ in self._entries]

    def to_record(self) -> CacheRecord:
        record = CacheRecord()
        for kind, key, value in self._entries:
            if kind == 'string':
                record.put(key, value)
            elif kind == 'file':
                record.put_file(key, value)
            else:
                record.put_dependency(key, value)
        return record


@dataclass
class StageStats:
    hits: int = 0
    misses: int = 0


class StageRunner:
    """Runs a stage action only when its cache record is stale"""

    def __init__(self):
        self.stats = StageStats()
        self.logger = logging.getLogger(__name__)

    def is_current(
        self,
        output: Path,
        inputs: StageInputs,
        should_consider: Optional[KeyFilter] = None
    ) -> bool:
        """Check whether ``output`` exists and was produced from ``inputs``"""
        output = Path(output)
        if not output.exists():
            return False
        return inputs.to_record().is_valid(sidecar_path(output), should_consider)

    async def run(
        self,
        name: str,
        output: Path,
        inputs: StageInputs,
        action: StageAction,
        should_consider: Optional[KeyFilter] = None
    ) -> Path:
        """
        Produce ``output`` unless a valid cached copy exists.

        Args:
            name: Stage name used in logs and errors
            output: Artifact the action produces
            inputs: Declared inputs of the stage
            action: Coroutine function producing ``output`` deterministically
            should_consider: Optional key filter for the validity check

        Returns:
            Path to the artifact

        Raises:
            StageError: If the action fails or produces nothing
        """
        output = Path(output)
        sidecar = sidecar_path(output)

        if output.exists() and inputs.to_record().is_valid(sidecar, should_consider):
            self.stats.hits += 1
            self.logger.debug(f"  Cache hit for {name}: {output.name}")
            return output

        self.stats.misses += 1
        self.logger.info(f"  Running {name}")

        # A stale sidecar must never vouch for a half-written artifact
        if sidecar.exists():
            sidecar.unlink()

        output.parent.mkdir(parents=True, exist_ok=True)
        try:
            await action()
        except HistgenError:
            raise
        except Exception as e:
            raise StageError(name, str(e)) from e

        if not output.exists():
            raise StageError(name, f"expected output {output} was not produced")

        # Inputs are fingerprinted after the action so files it downloaded are hashed too
        inputs.to_record().write(sidecar)
        return output
