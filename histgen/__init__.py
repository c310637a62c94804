"""
histgen - regenerates upstream releases into an append-only git history

Main modules:
- core: Data models, enums, errors and the retry decorator
- cache: Content-addressed stage cache
- manifest: Version manifest retrieval and version selection
- pipeline: Per-release merge, rename and decompile stages
- sync: Materialization of generated trees into the working tree
- vcs: Branch checkpoints, resume detection and batched pushes
"""

from ._version import __version__
from .generator import GenerateOptions, GenerateSummary, Generator

__all__ = [
    '__version__',
    'GenerateOptions',
    'GenerateSummary',
    'Generator',
]
