from .enums import ReleaseType, BranchType, StageOutcome, CommitKind, BranchState, PushStatus
from .exceptions import (
    HistgenError,
    ConfigurationError,
    DownloadError,
    IntegrityError,
    ConsistencyError,
    StageError,
    PipelineError,
    PushError,
    RunLockError,
)
from .models import (
    ReleaseInfo,
    LatestVersions,
    VersionManifest,
    Download,
    Library,
    ReleaseDetails,
    BranchSpec,
    CommitIdentity,
    BranchCheckpoint,
    SyncChanges,
    StageResult,
    ClassifiedCommit,
)

__all__ = [
    'ReleaseType',
    'BranchType',
    'StageOutcome',
    'CommitKind',
    'BranchState',
    'PushStatus',
    'HistgenError',
    'ConfigurationError',
    'DownloadError',
    'IntegrityError',
    'ConsistencyError',
    'StageError',
    'PipelineError',
    'PushError',
    'RunLockError',
    'ReleaseInfo',
    'LatestVersions',
    'VersionManifest',
    'Download',
    'Library',
    'ReleaseDetails',
    'BranchSpec',
    'CommitIdentity',
    'BranchCheckpoint',
    'SyncChanges',
    'StageResult',
    'ClassifiedCommit',
]
