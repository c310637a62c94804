"""
Materialization of a generated source tree into the persistent working tree.

The synchronizer copies only what changed and reports the touched paths so
the caller can stage exactly those. It never talks to git.
"""
import logging
import os
import zipfile
from pathlib import Path, PurePosixPath
from typing import Callable, Iterator, List, Optional, Set, Tuple

import pathspec

from ..cache.hash_function import HashFunction
from ..core.exceptions import ConsistencyError
from ..core.models import SyncChanges


# (relative posix path, reader returning the file bytes)
SourceEntry = Tuple[str, Callable[[], bytes]]

SOURCE_SUFFIX = ".java"


class TreeSynchronizer:
    """
    Applies a generated tree to ``<output_root>/src/main``.

    ``.java`` files land under ``src/main/java`` and everything else under
    ``src/main/resources``. Files known from the previous tree but absent
    from the new one are deleted.
    """

    def __init__(
        self,
        output_root: Path,
        includes: Optional[List[str]] = None,
        excludes: Optional[List[str]] = None
    ):
        self.output_root = Path(output_root).resolve()
        self.main_dir = self.output_root / "src" / "main"
        self.java_dir = self.main_dir / "java"
        self.resources_dir = self.main_dir / "resources"
        self.include_spec = pathspec.PathSpec.from_lines("gitwildmatch", includes) if includes else None
        self.exclude_spec = pathspec.PathSpec.from_lines("gitwildmatch", excludes) if excludes else None
        self.logger = logging.getLogger(__name__)

    def is_selected(self, relative: str) -> bool:
        """Check a generated path against the include and exclude patterns"""
        if self.include_spec is not None and not self.include_spec.match_file(relative):
            return False
        if self.exclude_spec is not None and self.exclude_spec.match_file(relative):
            return False
        return True

    def known_files(self) -> Set[Path]:
        """Every file (or link) currently under ``src/main``"""
        known: Set[Path] = set()
        if not self.main_dir.exists():
            return known
        for dirpath, _dirnames, filenames in os.walk(self.main_dir, followlinks=True):
            for name in filenames:
                known.add(Path(dirpath) / name)
        return known

    def target_for(self, relative: str) -> Path:
        base = self.java_dir if relative.endswith(SOURCE_SUFFIX) else self.resources_dir
        return base / relative

    def _repo_path(self, path: Path) -> str:
        return path.relative_to(self.output_root).as_posix()

    @staticmethod
    def _check_relative(name: str) -> str:
        relative = PurePosixPath(name)
        if relative.is_absolute() or '..' in relative.parts:
            raise ConsistencyError(f"Refusing to materialize unsafe path from generated tree: {name}")
        return relative.as_posix()

    def _iter_archive(self, archive: Path) -> Iterator[SourceEntry]:
        with zipfile.ZipFile(archive) as zf:
            names = sorted(info.filename for info in zf.infolist() if not info.is_dir())
            for name in names:
                yield self._check_relative(name), (lambda n=name: zf.read(n))

    def _iter_directory(self, root: Path) -> Iterator[SourceEntry]:
        files = sorted(p for p in root.rglob("*") if p.is_file())
        for path in files:
            yield path.relative_to(root).as_posix(), path.read_bytes

    def iter_source(self, source: Path) -> Iterator[SourceEntry]:
        """Regular files of a generated tree, sorted by relative path"""
        source = Path(source)
        if source.is_dir():
            return self._iter_directory(source)
        if zipfile.is_zipfile(source):
            return self._iter_archive(source)
        raise ConsistencyError(f"Generated tree {source} is neither a directory nor an archive")

    def _is_stale_link(self, target: Path) -> bool:
        return target.is_symlink() or target.resolve() != target

    def _detach_linked_parents(self, target: Path) -> None:
        """Turn any linked directory between ``src/main`` and ``target`` into a real one"""
        current = self.main_dir
        for part in target.relative_to(self.main_dir).parts[:-1]:
            current = current / part
            if current.is_symlink():
                current.unlink()
                current.mkdir()

    def _replace_stale(self, target: Path, data: bytes, known: Set[Path], changes: SyncChanges) -> None:
        real = target.resolve()
        if real != target and real.is_file():
            logical = self._logical_path(real)
            if logical is None:
                real.unlink()
            elif logical != target and logical in known:
                # Only files not yet visited by this sync may go
                real.unlink()
                known.discard(logical)
                changes.removed.append(self._repo_path(logical))

        self._detach_linked_parents(target)
        if target.is_symlink() or target.exists():
            target.unlink()

        changes.removed.append(self._repo_path(target))
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        changes.added.append(self._repo_path(target))

    def _logical_path(self, real: Path) -> Optional[Path]:
        """Map a resolved path back into the working tree, if it lies inside it"""
        try:
            real.relative_to(self.output_root)
        except ValueError:
            return None
        return real

    def _prune_empty_dirs(self) -> None:
        if not self.main_dir.exists():
            return
        for dirpath, _dirnames, _filenames in os.walk(self.main_dir, topdown=False):
            path = Path(dirpath)
            if path != self.main_dir and not os.listdir(path):
                path.rmdir()

    def sync(self, source: Path) -> SyncChanges:
        """
        Make ``src/main`` mirror a generated tree.

        Args:
            source: Decompiled archive or directory

        Returns:
            SyncChanges with sorted repository-relative paths
        """
        known = self.known_files()
        changes = SyncChanges()

        for relative, read in self.iter_source(source):
            if not self.is_selected(relative):
                continue

            target = self.target_for(relative)
            if target in known:
                known.discard(target)
                data = read()
                if not target.exists() or self._is_stale_link(target):
                    self.logger.warning(f"  Replacing linked file {self._repo_path(target)}")
                    self._replace_stale(target, data, known, changes)
                elif HashFunction.MD5.hash_file(target) != HashFunction.MD5.hash_bytes(data):
                    target.write_bytes(data)
                    changes.updated.append(self._repo_path(target))
            else:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_bytes(read())
                changes.added.append(self._repo_path(target))

        for leftover in sorted(known):
            if leftover.is_symlink() or leftover.exists():
                leftover.unlink()
            changes.removed.append(self._repo_path(leftover))

        self._prune_empty_dirs()

        changes.added.sort()
        changes.updated.sort()
        changes.removed = sorted(set(changes.removed))
        self.logger.info(
            f"  Synchronized tree: {len(changes.added)} added, "
            f"{len(changes.updated)} updated, {len(changes.removed)} removed"
        )
        return changes
