from enum import Enum


class ReleaseType(str, Enum):
    RELEASE = "release"
    SNAPSHOT = "snapshot"
    OLD_BETA = "old_beta"
    OLD_ALPHA = "old_alpha"


class BranchType(str, Enum):
    """Which manifest entries a branch considers"""
    RELEASE = "release"
    ALL = "all"


class StageOutcome(str, Enum):
    OK = "ok"
    SKIP = "skip"
    FATAL = "fatal"


class CommitKind(str, Enum):
    """Closed set of commit classifications on a generated branch"""
    CHECKPOINT = "checkpoint"
    RELEASE = "release"
    FOREIGN = "foreign"


class BranchState(str, Enum):
    """Outcome of preparing the target branch for a run"""
    INITIALIZED = "initialized"
    VALID = "valid"
    MISMATCH = "mismatch"


class PushStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    PUSHED = "pushed"
    FORCED = "forced"
    SKIPPED = "skipped"
