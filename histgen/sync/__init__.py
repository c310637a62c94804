from .tree_sync import TreeSynchronizer

__all__ = ['TreeSynchronizer']
