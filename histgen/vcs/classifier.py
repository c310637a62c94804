"""
Classification of commits found on a generated branch.
"""
import git

from ..core.enums import CommitKind
from ..core.models import ClassifiedCommit, CommitIdentity


class CommitClassifier:
    """
    Sorts commits into checkpoint, release or foreign.

    Only commits authored and committed under the reserved identity count as
    automated; anything else was made by hand and is ignored when resuming.
    """

    def __init__(self, identity: CommitIdentity, checkpoint_message: str):
        self.identity = identity
        self.checkpoint_message = checkpoint_message

    def is_automated(self, commit: git.Commit) -> bool:
        reserved = self.identity.name.lower()
        return (commit.author.name or "").lower() == reserved and (commit.committer.name or "").lower() == reserved

    def classify(self, commit: git.Commit) -> ClassifiedCommit:
        if not self.is_automated(commit):
            return ClassifiedCommit(commit.hexsha, CommitKind.FOREIGN)

        message = commit.message.strip()
        if message == self.checkpoint_message:
            return ClassifiedCommit(commit.hexsha, CommitKind.CHECKPOINT)

        if not message:
            return ClassifiedCommit(commit.hexsha, CommitKind.FOREIGN)

        release_id = message.splitlines()[0].strip()
        return ClassifiedCommit(commit.hexsha, CommitKind.RELEASE, release_id)
