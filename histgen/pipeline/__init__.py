"""
Per-release transformation pipeline.
Fetches artifacts and drives the external merge, rename and decompile tools.
"""

from .context import RunContext
from .mappings import MappingSet, MappingTask, is_superset
from .merge import MergeTask
from .build_descriptor import BUILD_FILE_NAME, render_build_descriptor, write_build_descriptor
from .release_pipeline import ReleasePipeline

__all__ = [
    'RunContext',
    'MappingSet',
    'MappingTask',
    'is_superset',
    'MergeTask',
    'BUILD_FILE_NAME',
    'render_build_descriptor',
    'write_build_descriptor',
    'ReleasePipeline',
]
