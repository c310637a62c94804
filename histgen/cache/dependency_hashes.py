"""
Precomputed identity hashes of the external transformation tools.
"""
import logging
from pathlib import Path
from typing import Dict, Optional, Union

from ..core.exceptions import ConfigurationError


class DependencyHashTable:
    """
    Maps a tool key to a stable hash identifying the tool build.

    Putting these values into stage records means upgrading a tool
    invalidates every artifact that tool produced.
    """

    def __init__(self, hashes: Optional[Dict[str, str]] = None):
        self._hashes: Dict[str, str] = dict(hashes or {})
        self.logger = logging.getLogger(__name__)

    @classmethod
    def parse(cls, text: str) -> 'DependencyHashTable':
        """
        Parse ``key=value`` lines.

        Lines starting with ``#`` or lacking ``=`` are ignored, an inline
        ``#`` truncates the line and the first ``=`` splits key from value.
        """
        hashes = {}
        for line in text.splitlines():
            comment_idx = line.find('#')
            if comment_idx == 0:
                continue
            if comment_idx != -1:
                line = line[:comment_idx].strip()

            equal_idx = line.find('=')
            if equal_idx == -1:
                continue

            hashes[line[:equal_idx]] = line[equal_idx + 1:]
        return cls(hashes)

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'DependencyHashTable':
        """Load the table from a UTF-8 resource file"""
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Dependency hash file not found: {path}")
        return cls.parse(path.read_text(encoding='utf-8'))

    def get(self, key: str) -> Optional[str]:
        return self._hashes.get(key)

    def require(self, key: str) -> str:
        value = self._hashes.get(key)
        if value is None:
            raise ConfigurationError(f"No dependency hash recorded for '{key}'")
        return value

    def __contains__(self, key: str) -> bool:
        return key in self._hashes

    def __len__(self) -> int:
        return len(self._hashes)
