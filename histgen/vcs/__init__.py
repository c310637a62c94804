"""
Git side of the generator.
Branch checkpoints, resume detection, remote credentials and batched pushes.
"""

from .credentials import RemoteCredentials, resolve_credentials
from .repository import GitRepository
from .classifier import CommitClassifier
from .checkpoint import CHECKPOINT_FILE, CheckpointManager
from .history_resumer import HistoryResumer
from .push_batcher import CommitBatcher

__all__ = [
    'RemoteCredentials',
    'resolve_credentials',
    'GitRepository',
    'CommitClassifier',
    'CHECKPOINT_FILE',
    'CheckpointManager',
    'HistoryResumer',
    'CommitBatcher',
]
