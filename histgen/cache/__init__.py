"""
Content-addressed stage cache.
Fingerprints stage inputs and skips stages whose inputs are unchanged.
"""

from .hash_function import HashFunction
from .dependency_hashes import DependencyHashTable
from .record import CacheRecord
from .runner import StageInputs, StageRunner, sidecar_path

__all__ = [
    'HashFunction',
    'DependencyHashTable',
    'CacheRecord',
    'StageInputs',
    'StageRunner',
    'sidecar_path',
]
