"""
Stage cache records.

A record is an ordered ``key: value`` mapping persisted as a sidecar file
beside a stage artifact. The stage re-runs whenever the record computed from
its current inputs differs from the persisted one.
"""
import logging
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Tuple, Union

from .dependency_hashes import DependencyHashTable
from .hash_function import HashFunction


logger = logging.getLogger(__name__)

KeyFilter = Callable[[str], bool]


def _parse_line(line: str) -> Optional[Tuple[str, str]]:
    # A data line has a space immediately preceded by a colon
    idx = line.find(' ')
    if idx <= 1 or line[idx - 1] != ':':
        return None
    return line[:idx - 1], line[idx + 1:]


class CacheRecord:
    """Ordered fingerprint mapping with an optional header comment"""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._comment: Optional[str] = None

    def comment(self, *lines: str) -> 'CacheRecord':
        self._comment = "\n".join(lines) if lines else None
        return self

    def put(self, key: str, value: str) -> 'CacheRecord':
        self._data[key] = value
        return self

    def put_file(self, key: str, path: Union[str, Path]) -> 'CacheRecord':
        self._data[key] = HashFunction.SHA1.hash_file(path)
        return self

    def put_dependency(self, key: str, table: DependencyHashTable) -> 'CacheRecord':
        self._data[key] = table.require(key)
        return self

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._data.items())

    def to_dict(self) -> Dict[str, str]:
        return dict(self._data)

    def serialize(self) -> str:
        buf = []
        if self._comment is not None:
            buf.append(self._comment + "\n\n")
        for key, value in self._data.items():
            buf.append(f"{key}: {value}\n")
        return "".join(buf)

    def write(self, target: Union[str, Path]) -> None:
        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.serialize(), encoding='utf-8')

    @staticmethod
    def _read_entries(target: Path, should_consider: Optional[KeyFilter] = None) -> Dict[str, str]:
        entries = {}
        with open(target, 'r', encoding='utf-8', errors='replace') as f:
            for line in f:
                parsed = _parse_line(line.rstrip('\r\n'))
                if parsed is None:
                    continue
                key, value = parsed
                if should_consider is None or should_consider(key):
                    entries[key] = value
        return entries

    @classmethod
    def read(cls, target: Union[str, Path]) -> 'CacheRecord':
        """Rebuild a record from a sidecar file, ignoring comment lines"""
        record = cls()
        for key, value in cls._read_entries(Path(target)).items():
            record.put(key, value)
        return record

    def is_valid(self, target: Union[str, Path], should_consider: Optional[KeyFilter] = None) -> bool:
        """
        Check a persisted sidecar against this record.

        Args:
            target: Sidecar file path
            should_consider: Optional predicate; persisted keys it rejects
                are left out of the comparison

        Returns:
            True only if the persisted mapping equals this record exactly
        """
        target = Path(target)
        if not target.exists():
            return False

        existing = self._read_entries(target, should_consider)
        valid = existing == self._data
        if not valid:
            logger.debug(f"Cache record mismatch for {target}")
        return valid

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CacheRecord):
            return NotImplemented
        return self._data == other._data

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"CacheRecord({self._data!r})"
