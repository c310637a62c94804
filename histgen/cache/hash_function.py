"""
Hash functions used for fingerprints and file comparison.
"""
import hashlib
import logging
from enum import Enum
from pathlib import Path
from typing import Union


logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


class HashFunction(Enum):
    """Digest algorithms by their hex digest length"""
    MD5 = ("md5", 32)
    SHA1 = ("sha1", 40)
    SHA256 = ("sha256", 64)
    SHA512 = ("sha512", 128)

    def __init__(self, algorithm: str, length: int):
        self.algorithm = algorithm
        self.length = length

    @property
    def extension(self) -> str:
        return self.name.lower()

    def new(self):
        return hashlib.new(self.algorithm)

    def hash_bytes(self, data: bytes) -> str:
        digest = self.new()
        digest.update(data)
        return self.pad(digest.hexdigest())

    def hash_string(self, value: str) -> str:
        return self.hash_bytes(value.encode('utf-8'))

    def hash_file(self, file_path: Union[str, Path]) -> str:
        """
        Compute hash of raw file content.

        Args:
            file_path: Path to file

        Returns:
            Hex digest string
        """
        digest = self.new()
        try:
            with open(file_path, 'rb') as f:
                for chunk in iter(lambda: f.read(_CHUNK_SIZE), b''):
                    digest.update(chunk)
        except OSError as e:
            logger.error(f"Failed to compute {self.algorithm} for {file_path}: {e}")
            raise
        return self.pad(digest.hexdigest())

    def pad(self, digest: str) -> str:
        return digest.rjust(self.length, '0')
